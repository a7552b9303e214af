"""Lever ATS handler."""

import logging
import re

from autoapply.browser.base import BrowserSession
from autoapply.handlers.base import ATSHandler
from autoapply.handlers.models import ApplicationData, FieldKind, FormAnalysis, UploadResult
from autoapply.handlers.registry import HandlerRegistry

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"lever\.co|jobs\.lever\.co", re.IGNORECASE)

DOM_MARKERS = [
    ".posting-page",
    ".application-page",
    'script[src*="lever"]',
    '[class*="posting-"]',
    '[class*="application-form"]',
]


@HandlerRegistry.register
class LeverHandler(ATSHandler):
    """Handler for jobs.lever.co application forms.

    Lever asks for a single full name and a resume file, and has no
    cover-letter upload: the cover letter text goes into the comments box.
    """

    FIELD_SELECTORS: dict[str, str] = {
        "full_name": 'input[name="name"]',
        "email": 'input[name="email"]',
        "phone": 'input[name="phone"]',
        "current_company": 'input[name="org"]',
        "linkedin_url": 'input[name="urls[LinkedIn]"]',
        "portfolio_url": 'input[name="urls[Portfolio]"]',
        "github_url": 'input[name="urls[GitHub]"]',
        "website_url": 'input[name="urls[Other]"]',
        "additional_info": 'textarea[name="comments"]',
    }

    QUESTION_CARD_SELECTORS: list[str] = [
        ".application-question",
        '[class*="custom-question"]',
    ]

    RESUME_SELECTORS: list[str] = [
        'input[type="file"]',
        'input[name="resume"]',
        '.resume-upload input[type="file"]',
    ]

    COMMENTS_SELECTORS: list[str] = [
        'textarea[name="comments"]',
        'textarea[name*="additional"]',
    ]

    @property
    def name(self) -> str:
        return "lever"

    @property
    def submit_selectors(self) -> list[str]:
        return [
            'button[type="submit"]',
            ".application-submit button",
            'button:has-text("Submit application")',
            'button:has-text("Apply")',
            'input[type="submit"]',
        ]

    @property
    def success_patterns(self) -> list[str]:
        return [
            r"thank you",
            r"application.*submitted",
            r"we've received",
            r"application complete",
        ]

    @property
    def error_selectors(self) -> list[str]:
        return [".error", ".validation-error", '[class*="error"]']

    @property
    def success_url_markers(self) -> list[str]:
        return ["thanks", "confirmation"]

    async def detect(self, browser: BrowserSession) -> bool:
        if URL_PATTERN.search(await browser.get_current_url()):
            return True
        for selector in DOM_MARKERS:
            if await browser.exists(selector):
                return True
        return False

    async def analyze_form(self, browser: BrowserSession) -> FormAnalysis:
        """Known Lever fields plus question-card custom questions."""
        fields = await self.toolkit.known_fields(browser, self.FIELD_SELECTORS)
        card_fields, custom_questions = await self.toolkit.card_fields(
            browser,
            self.QUESTION_CARD_SELECTORS,
            label_selector="label, .question-label",
            exclude={f.selector for f in fields},
        )
        fields.extend(card_fields)

        has_file_upload = any(f.kind == FieldKind.FILE for f in fields) or await browser.exists(
            'input[type="file"]'
        )
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
        logger.info(f"Lever form: {len(fields)} fields, {len(custom_questions)} custom questions")
        return self._last_analysis

    async def upload_documents(self, browser: BrowserSession, data: ApplicationData) -> UploadResult:
        """Upload the resume and place the cover letter text in the comments box."""
        result = UploadResult()
        if data.resume:
            result.resume_uploaded = await self.toolkit.upload_to_first(
                browser, self.RESUME_SELECTORS, data.resume, result, "resume"
            )

        if data.cover_letter_text:
            await self._write_cover_letter(browser, data.cover_letter_text, result)
        return result

    async def _write_cover_letter(self, browser: BrowserSession, text: str, result: UploadResult) -> None:
        for selector in self.COMMENTS_SELECTORS:
            element = await browser.query(selector)
            if element is None:
                continue
            if element.value:
                logger.info("Lever comments already filled, skipping cover letter text")
                return
            if not await browser.fill(selector, text):
                result.errors.append(f"Failed to write cover letter text to {selector}")
            return
