"""Registry for ATS handlers."""

import logging
from typing import TypeVar

from autoapply.browser.base import BrowserSession
from autoapply.detection.ats_detector import ATSType, DetectionResult
from autoapply.handlers.base import ATSHandler
from autoapply.handlers.common import FormToolkit

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ATSHandler)

GENERIC_HANDLER = ATSType.GENERIC.value


class HandlerRegistry:
    """Registry for ATS handlers.

    Usage:
        @HandlerRegistry.register
        class GreenhouseHandler(ATSHandler):
            ...

        handler = await HandlerRegistry.select(browser, detection)
    """

    _handlers: dict[str, type[ATSHandler]] = {}

    @classmethod
    def register(cls, handler_class: type[T]) -> type[T]:
        """Register a handler class under its ``name``.

        Use as a decorator:
            @HandlerRegistry.register
            class MyHandler(ATSHandler):
                ...
        """
        name = handler_class().name
        cls._handlers[name] = handler_class
        logger.debug(f"Registered ATS handler: {name}")
        return handler_class

    @classmethod
    def create(cls, name: str, toolkit: FormToolkit | None = None) -> ATSHandler:
        """Create a handler by name, falling back to the generic handler.

        Raises:
            KeyError: If neither the handler nor the generic handler is registered
        """
        handler_class = cls._handlers.get(name.lower()) or cls._handlers[GENERIC_HANDLER]
        return handler_class(toolkit)

    @classmethod
    async def select(
        cls,
        browser: BrowserSession,
        detection: DetectionResult,
        toolkit: FormToolkit | None = None,
    ) -> ATSHandler:
        """Pick the handler for a classified page.

        A vendor handler is only used when its own ``detect()`` agrees with
        the classifier; otherwise the generic handler drives the page.

        Args:
            browser: Initialized browser session
            detection: Classifier result for the current page
            toolkit: Shared toolkit handed to the handler

        Returns:
            ATSHandler instance
        """
        name = detection.type.value
        if name != GENERIC_HANDLER and name in cls._handlers:
            handler = cls._handlers[name](toolkit)
            if await handler.detect(browser):
                logger.info(f"Using {name} handler (confidence {detection.confidence:.2f})")
                return handler
            logger.info(f"{name} handler did not confirm the page, using generic handler")
        elif name != GENERIC_HANDLER:
            logger.info(f"No dedicated handler for {name}, using generic handler")

        return cls.create(GENERIC_HANDLER, toolkit)

    @classmethod
    def list_handlers(cls) -> list[str]:
        return list(cls._handlers.keys())
