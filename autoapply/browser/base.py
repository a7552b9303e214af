"""Browser session service: a small, logged command set over a headless browser."""

import base64
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

from autoapply.browser.models import (
    ActionLogEntry,
    ActionResult,
    BrowserAction,
    BrowserConfig,
    DOMControl,
    ElementInfo,
    FilePayload,
    QuestionCard,
    ScreenshotRef,
)
from autoapply.exceptions import BrowserError, BrowserInitializationError, BrowserNotInitializedError

logger = logging.getLogger(__name__)


class BrowserSession(ABC):
    """One exclusively-owned browser session with a chronological action log.

    Public commands never raise for page-level failures: they record an
    ``error`` entry in the action log and return ``False``/``None``/``""``.
    Only :meth:`initialize` raises, and every command raises
    :class:`BrowserNotInitializedError` when called before it.

    Subclasses implement the underscored primitives; the logging and
    fail-soft policy live here so every backend behaves the same.

    Usage:
        session = PlaywrightSession(BrowserConfig(headless=True))
        await session.initialize()
        if await session.navigate_to("https://example.com/jobs/1"):
            shot = await session.take_screenshot("initial")
        await session.close()
    """

    def __init__(self, config: BrowserConfig | None = None) -> None:
        """Initialize session state."""
        self.config = config or BrowserConfig()
        self.session_tag = uuid4().hex[:8]
        self._action_log: list[ActionLogEntry] = []
        self._initialized = False
        self._closed = False
        self._screenshot_count = 0

    @property
    @abstractmethod
    def adapter_name(self) -> str:
        """Return the adapter name for logging."""
        ...

    @property
    def is_initialized(self) -> bool:
        """Whether the session is open and accepting commands."""
        return self._initialized and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def action_log(self) -> list[ActionLogEntry]:
        """Copy of the action log in chronological order."""
        return list(self._action_log)

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def _launch(self) -> None:
        """Start the browser, context and page."""
        ...

    @abstractmethod
    async def _shutdown(self) -> None:
        """Release every browser resource."""
        ...

    @abstractmethod
    async def _goto(self, url: str) -> None: ...

    @abstractmethod
    async def _sleep(self, ms: int) -> None: ...

    @abstractmethod
    async def _capture_png(self) -> bytes: ...

    @abstractmethod
    async def _wait_for(self, selector: str, timeout: int) -> None: ...

    @abstractmethod
    async def _click(self, selector: str) -> None: ...

    @abstractmethod
    async def _fill(self, selector: str, value: str) -> None: ...

    @abstractmethod
    async def _set_input_files(self, selector: str, payload: FilePayload) -> None: ...

    @abstractmethod
    async def _select_option(self, selector: str, label: str) -> None: ...

    @abstractmethod
    async def _content(self) -> str: ...

    @abstractmethod
    async def _url(self) -> str: ...

    @abstractmethod
    async def _query_all(self, selector: str) -> list[ElementInfo]: ...

    @abstractmethod
    async def _body_text(self) -> str: ...

    @abstractmethod
    async def _controls(self) -> list[DOMControl]: ...

    @abstractmethod
    async def _question_cards(self, card_selector: str, label_selector: str) -> list[QuestionCard]: ...

    # ------------------------------------------------------------------
    # Logged commands
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Launch the browser.

        Raises:
            BrowserInitializationError: If the browser could not be started.
        """
        if self._closed:
            raise BrowserError("Browser session already closed")
        if self._initialized:
            return

        logger.info(f"Initializing {self.adapter_name} session {self.session_tag} (headless={self.config.headless})")
        try:
            await self._launch()
        except Exception as e:
            self._log_action(BrowserAction.INITIALIZE, ActionResult.ERROR, f"Failed to initialize: {e}")
            raise BrowserInitializationError(f"Failed to initialize browser: {e}") from e

        self._initialized = True
        self._log_action(BrowserAction.INITIALIZE, ActionResult.SUCCESS, "Browser initialized")

    async def navigate_to(self, url: str) -> bool:
        """Load a URL and let dynamic content settle.

        Returns:
            True if the page loaded
        """
        self._require_initialized()
        self._log_action(BrowserAction.NAVIGATE, ActionResult.SUCCESS, f"Navigating to {url}")
        try:
            await self._goto(url)
            if self.config.post_navigation_wait_ms:
                await self._sleep(self.config.post_navigation_wait_ms)
        except Exception as e:
            self._log_action(BrowserAction.NAVIGATE, ActionResult.ERROR, f"Failed to navigate: {e}")
            return False

        self._log_action(BrowserAction.NAVIGATE, ActionResult.SUCCESS, f"Loaded {url}")
        return True

    async def take_screenshot(self, label: str = "screenshot") -> ScreenshotRef | None:
        """Capture the viewport.

        Args:
            label: Short name for the step being captured

        Returns:
            ScreenshotRef, or None if the capture failed
        """
        self._require_initialized()
        try:
            png = await self._capture_png()
            ref = self._store_screenshot(label, png)
        except Exception as e:
            self._log_action(BrowserAction.SCREENSHOT, ActionResult.ERROR, f"Failed to capture screenshot: {e}")
            return None

        self._log_action(BrowserAction.SCREENSHOT, ActionResult.SUCCESS, label, screenshot=ref)
        return ref

    async def wait_for_selector(self, selector: str, timeout: int | None = None) -> bool:
        """Wait until a selector is attached and visible."""
        self._require_initialized()
        try:
            await self._wait_for(selector, timeout or self.config.timeout)
        except Exception as e:
            self._log_action(BrowserAction.WAIT_FOR_SELECTOR, ActionResult.WARNING, f"{selector} did not appear: {e}")
            return False

        self._log_action(BrowserAction.WAIT_FOR_SELECTOR, ActionResult.SUCCESS, selector)
        return True

    async def click(self, selector: str) -> bool:
        self._require_initialized()
        try:
            await self._click(selector)
        except Exception as e:
            self._log_action(BrowserAction.CLICK, ActionResult.ERROR, f"Click failed for {selector}: {e}")
            return False

        self._log_action(BrowserAction.CLICK, ActionResult.SUCCESS, selector)
        return True

    async def fill(self, selector: str, value: str) -> bool:
        self._require_initialized()
        try:
            await self._fill(selector, value)
        except Exception as e:
            self._log_action(BrowserAction.FILL, ActionResult.ERROR, f"Fill failed for {selector}: {e}")
            return False

        # Never log filled values
        self._log_action(BrowserAction.FILL, ActionResult.SUCCESS, f"{selector} ({len(value)} chars)")
        return True

    async def upload_file(self, selector: str, payload: FilePayload) -> bool:
        """Attach an in-memory file to a file input."""
        self._require_initialized()
        try:
            await self._set_input_files(selector, payload)
        except Exception as e:
            self._log_action(BrowserAction.UPLOAD, ActionResult.ERROR, f"Upload failed for {selector}: {e}")
            return False

        self._log_action(BrowserAction.UPLOAD, ActionResult.SUCCESS, f"{payload.name} -> {selector}")
        return True

    async def select_option(self, selector: str, label: str) -> bool:
        """Select a dropdown option by its visible label."""
        self._require_initialized()
        try:
            await self._select_option(selector, label)
        except Exception as e:
            self._log_action(BrowserAction.SELECT, ActionResult.ERROR, f"Select failed for {selector}: {e}")
            return False

        self._log_action(BrowserAction.SELECT, ActionResult.SUCCESS, f"{selector} = {label}")
        return True

    async def get_page_content(self) -> str:
        """Get page HTML, or an empty string on failure."""
        self._require_initialized()
        try:
            content = await self._content()
        except Exception as e:
            self._log_action(BrowserAction.GET_CONTENT, ActionResult.ERROR, f"Failed to read content: {e}")
            return ""

        self._log_action(BrowserAction.GET_CONTENT, ActionResult.SUCCESS, f"{len(content)} chars")
        return content

    async def get_current_url(self) -> str:
        self._require_initialized()
        try:
            url = await self._url()
        except Exception as e:
            self._log_action(BrowserAction.GET_URL, ActionResult.ERROR, f"Failed to read URL: {e}")
            return ""

        self._log_action(BrowserAction.GET_URL, ActionResult.SUCCESS, url)
        return url

    async def wait_for_timeout(self, ms: int) -> None:
        """Fixed wait, used after clicks and uploads."""
        self._require_initialized()
        try:
            await self._sleep(ms)
        except Exception as e:
            self._log_action(BrowserAction.WAIT, ActionResult.WARNING, f"Wait of {ms}ms interrupted: {e}")
            return

        self._log_action(BrowserAction.WAIT, ActionResult.SUCCESS, f"{ms}ms")

    async def close(self) -> None:
        """Close the browser. Safe to call any number of times."""
        if self._closed:
            return
        self._closed = True

        if not self._initialized:
            self._log_action(BrowserAction.CLOSE, ActionResult.SUCCESS, "Session closed before initialization")
            return

        try:
            await self._shutdown()
        except Exception as e:
            self._log_action(BrowserAction.CLOSE, ActionResult.WARNING, f"Error while closing: {e}")
            return

        self._log_action(BrowserAction.CLOSE, ActionResult.SUCCESS, "Browser closed")
        logger.info(f"Closed {self.adapter_name} session {self.session_tag}")

    # ------------------------------------------------------------------
    # Read-only inspection (not action-logged)
    # ------------------------------------------------------------------

    async def query_all(self, selector: str) -> list[ElementInfo]:
        """All elements matching a selector; empty on invalid selectors."""
        self._require_initialized()
        try:
            return await self._query_all(selector)
        except Exception as e:
            logger.debug(f"Query failed for {selector}: {e}")
            return []

    async def query(self, selector: str) -> ElementInfo | None:
        """First element matching a selector, if any."""
        matches = await self.query_all(selector)
        return matches[0] if matches else None

    async def exists(self, selector: str) -> bool:
        return await self.query(selector) is not None

    async def get_body_text(self) -> str:
        """Visible text of the page body."""
        self._require_initialized()
        try:
            return await self._body_text()
        except Exception as e:
            logger.debug(f"Failed to read body text: {e}")
            return ""

    async def discover_controls(self) -> list[DOMControl]:
        """Every fillable input, textarea and select on the page."""
        self._require_initialized()
        try:
            return await self._controls()
        except Exception as e:
            logger.warning(f"Control discovery failed: {e}")
            return []

    async def discover_question_cards(self, card_selector: str, label_selector: str = "label") -> list[QuestionCard]:
        """Question containers with their label and controls."""
        self._require_initialized()
        try:
            return await self._question_cards(card_selector, label_selector)
        except Exception as e:
            logger.warning(f"Question card discovery failed for {card_selector}: {e}")
            return []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise BrowserNotInitializedError("Browser not initialized. Call initialize() first.")

    def _log_action(
        self,
        action: BrowserAction,
        result: ActionResult,
        details: str | None = None,
        screenshot: ScreenshotRef | None = None,
    ) -> None:
        self._action_log.append(
            ActionLogEntry(action=action, result=result, details=details, screenshot=screenshot)
        )
        if result == ActionResult.ERROR:
            logger.warning(f"[{self.session_tag}] {action.value}: {details}")
        else:
            logger.debug(f"[{self.session_tag}] {action.value}: {details}")

    def _store_screenshot(self, label: str, png: bytes) -> ScreenshotRef:
        self._screenshot_count += 1

        if not self.config.screenshot_dir:
            encoded = base64.b64encode(png).decode("utf-8")
            return ScreenshotRef(label=label, uri=f"data:image/png;base64,{encoded}")

        directory = Path(self.config.screenshot_dir)
        directory.mkdir(parents=True, exist_ok=True)
        safe_label = re.sub(r"[^a-zA-Z0-9_-]+", "_", label) or "screenshot"
        path = directory / f"{self.session_tag}_{self._screenshot_count:02d}_{safe_label}.png"
        path.write_bytes(png)
        return ScreenshotRef(label=label, uri=str(path))
