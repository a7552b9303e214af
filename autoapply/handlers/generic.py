"""Generic handler for unknown ATS platforms."""

import logging

from autoapply.browser.base import BrowserSession
from autoapply.handlers.base import ATSHandler
from autoapply.handlers.models import FormAnalysis
from autoapply.handlers.registry import HandlerRegistry

logger = logging.getLogger(__name__)


@HandlerRegistry.register
class GenericHandler(ATSHandler):
    """Fallback handler driven purely by the shared form heuristics.

    Used for unrecognised pages and for vendors without a dedicated
    handler, or whose handler did not confirm the classifier's guess.
    """

    @property
    def name(self) -> str:
        return "generic"

    @property
    def submit_selectors(self) -> list[str]:
        return self.toolkit.SUBMIT_SELECTORS + [
            'button:has-text("Continue")',
            ".submit-button",
            "#submit",
        ]

    async def detect(self, browser: BrowserSession) -> bool:
        return await browser.exists("form")

    async def analyze_form(self, browser: BrowserSession) -> FormAnalysis:
        """Analyze controls inside <form> elements, or the whole page if none."""
        analysis = await self.toolkit.analyze(browser, forms_only=True)
        if not analysis.fields:
            logger.info("No controls inside a <form>, analyzing the whole page")
            analysis = await self.toolkit.analyze(browser)
        self._last_analysis = analysis
        return analysis
