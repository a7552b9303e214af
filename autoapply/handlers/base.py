"""Base ATS handler interface."""

import logging
from abc import ABC, abstractmethod

from autoapply.browser.base import BrowserSession
from autoapply.exceptions import BrowserError
from autoapply.handlers.common import SUCCESS_PATTERNS, FormToolkit
from autoapply.handlers.models import (
    ApplicationData,
    FillResult,
    FormAnalysis,
    SubmitResult,
    UploadResult,
)

logger = logging.getLogger(__name__)


class ATSHandler(ABC):
    """Strategy for one ATS vendor's application form.

    Handlers compose a FormToolkit holding the shared heuristics and only
    override what the vendor does differently: detection, the stable field
    selectors, question containers and submit/success markers.

    Usage:
        handler = GreenhouseHandler()
        if await handler.detect(browser):
            analysis = await handler.analyze_form(browser)
            await handler.fill_application(browser, data)
            await handler.upload_documents(browser, data)
            result = await handler.submit(browser)
    """

    def __init__(self, toolkit: FormToolkit | None = None) -> None:
        self.toolkit = toolkit or FormToolkit()
        self._last_analysis: FormAnalysis | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Handler identifier (e.g., 'greenhouse', 'lever', 'generic')."""
        ...

    @property
    def submit_selectors(self) -> list[str]:
        return self.toolkit.SUBMIT_SELECTORS

    @property
    def success_patterns(self) -> list[str]:
        return SUCCESS_PATTERNS

    @property
    def error_selectors(self) -> list[str]:
        return self.toolkit.ERROR_SELECTORS

    @property
    def success_url_markers(self) -> list[str]:
        """Substrings of the vendor's post-submit confirmation URL."""
        return []

    @property
    def last_analysis(self) -> FormAnalysis | None:
        return self._last_analysis

    @abstractmethod
    async def detect(self, browser: BrowserSession) -> bool:
        """Confirm the current page belongs to this handler's vendor.

        Args:
            browser: Initialized browser session

        Returns:
            True if this handler should drive the page
        """
        ...

    async def analyze_form(self, browser: BrowserSession) -> FormAnalysis:
        """Build the structural model of the current form."""
        self._last_analysis = await self.toolkit.analyze(browser)
        return self._last_analysis

    async def fill_application(self, browser: BrowserSession, data: ApplicationData) -> FillResult:
        """Fill every known field and answered custom question.

        The form is re-analyzed first so checkbox and radio state reflects
        the live page, which keeps repeated fills from toggling values off.

        Args:
            browser: Initialized browser session
            data: Applicant data with generated answers

        Returns:
            FillResult with counts and per-field errors
        """
        analysis = await self.analyze_form(browser)
        return await self.toolkit.fill_fields(browser, analysis.fields, data)

    async def upload_documents(self, browser: BrowserSession, data: ApplicationData) -> UploadResult:
        """Attach the resume and cover letter to the form's file inputs."""
        return await self.toolkit.upload_by_heuristic(browser, data)

    async def submit(self, browser: BrowserSession) -> SubmitResult:
        """Click submit and classify the result page.

        Errors while submitting are reported as requiring manual action,
        since the form may or may not have been sent.
        """
        selectors = list(self.submit_selectors)
        if self._last_analysis and self._last_analysis.submit_selector:
            selectors.insert(0, self._last_analysis.submit_selector)
        try:
            return await self.toolkit.submit(
                browser,
                selectors,
                success_patterns=self.success_patterns,
                error_selectors=self.error_selectors,
                success_url_markers=self.success_url_markers,
                vendor=self.name.capitalize() if self.name != "generic" else None,
            )
        except BrowserError as e:
            logger.error(f"Submit failed: {e}")
            return SubmitResult(
                success=False,
                error=f"Submit error: {e}",
                requires_manual_action=True,
                manual_action_reason="Error occurred during submission",
            )

    async def has_captcha(self, browser: BrowserSession) -> bool:
        """Check for a visible CAPTCHA challenge."""
        return await self.toolkit.has_captcha(browser)

    async def go_to_next_step(self, browser: BrowserSession) -> bool:
        """Advance a multi-step form to its next page."""
        return await self.toolkit.go_to_next_step(browser)
