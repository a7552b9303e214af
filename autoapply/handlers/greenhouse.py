"""Greenhouse ATS handler.

Greenhouse boards use stable ids for the standard applicant fields
(``#first_name``, ``#email`` ...) and wrap employer-specific questions in
question containers, so custom questions come from those containers.
"""

import logging
import re

from autoapply.browser.base import BrowserSession
from autoapply.handlers.base import ATSHandler
from autoapply.handlers.common import ANY_FILE_INPUT
from autoapply.handlers.models import ApplicationData, FieldKind, FormAnalysis, UploadResult
from autoapply.handlers.registry import HandlerRegistry

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"greenhouse\.io|boards\.greenhouse\.io|grnh\.se", re.IGNORECASE)


@HandlerRegistry.register
class GreenhouseHandler(ATSHandler):
    """Handler for Greenhouse-hosted and Greenhouse-embedded forms."""

    FIELD_SELECTORS: dict[str, str] = {
        "first_name": "#first_name",
        "last_name": "#last_name",
        "email": "#email",
        "phone": "#phone",
        "location": "#job_application_location",
        "linkedin_url": 'input[name*="linkedin"]',
        "portfolio_url": 'input[name*="website"], input[name*="portfolio"]',
    }

    QUESTION_CARD_SELECTORS: list[str] = [
        '[class*="custom-question"]',
        ".application-question:not(.required-fields)",
    ]

    RESUME_SELECTORS: list[str] = [
        'input[name*="resume"]',
        "#resume",
        'input[data-field="resume"]',
    ]

    COVER_LETTER_SELECTORS: list[str] = [
        'input[name*="cover_letter"]',
        "#cover_letter",
        'input[data-field="cover_letter"]',
    ]

    @property
    def name(self) -> str:
        return "greenhouse"

    @property
    def submit_selectors(self) -> list[str]:
        return [
            "#submit_app",
            'button[type="submit"]',
            'input[type="submit"]',
            'button:has-text("Submit Application")',
            'button:has-text("Submit")',
        ]

    @property
    def success_patterns(self) -> list[str]:
        return [
            r"thank you",
            r"application.*received",
            r"successfully submitted",
            r"we've received your application",
            r"application complete",
        ]

    @property
    def error_selectors(self) -> list[str]:
        return [".field-error", ".error-message", '[class*="error"]']

    @property
    def success_url_markers(self) -> list[str]:
        return ["confirmation", "thank"]

    async def detect(self, browser: BrowserSession) -> bool:
        if URL_PATTERN.search(await browser.get_current_url()):
            return True
        return await browser.exists("#grnhse_app") or await browser.exists('script[src*="greenhouse"]')

    async def analyze_form(self, browser: BrowserSession) -> FormAnalysis:
        """Known Greenhouse fields plus question-container custom questions."""
        fields = await self.toolkit.known_fields(browser, self.FIELD_SELECTORS)
        card_fields, custom_questions = await self.toolkit.card_fields(
            browser,
            self.QUESTION_CARD_SELECTORS,
            exclude={f.selector for f in fields},
        )
        fields.extend(card_fields)

        has_file_upload = any(f.kind == FieldKind.FILE for f in fields)
        if not has_file_upload:
            for selector in self.RESUME_SELECTORS + self.COVER_LETTER_SELECTORS + [ANY_FILE_INPUT]:
                if await browser.exists(selector):
                    has_file_upload = True
                    break

        steps = await self.toolkit.blockers.detect_steps(browser)
        self._last_analysis = FormAnalysis(
            fields=fields,
            has_file_upload=has_file_upload,
            custom_questions=custom_questions,
            submit_selector=await self.toolkit.find_first(browser, self.submit_selectors),
            is_multi_step=steps.is_multi_step,
            current_step=steps.current_step,
            total_steps=steps.total_steps,
        )
        logger.info(f"Greenhouse form: {len(fields)} fields, {len(custom_questions)} custom questions")
        return self._last_analysis

    async def upload_documents(self, browser: BrowserSession, data: ApplicationData) -> UploadResult:
        """Upload to Greenhouse's resume and cover-letter inputs.

        Without a resume-named input the resume goes to the first file
        input that is not a cover-letter input.
        """
        result = UploadResult()
        if data.resume:
            result.resume_uploaded = await self.toolkit.upload_to_first(
                browser, self.RESUME_SELECTORS, data.resume, result, "resume"
            )
            if not result.resume_uploaded:
                result.resume_uploaded = await self.toolkit.upload_resume_fallback(browser, data.resume, result)
        if data.cover_letter:
            result.cover_letter_uploaded = await self.toolkit.upload_to_first(
                browser, self.COVER_LETTER_SELECTORS, data.cover_letter, result, "cover letter"
            )
        return result
