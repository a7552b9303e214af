"""Vendor-agnostic form heuristics composed by every ATS handler."""

import logging
import re

from autoapply.blockers import BlockerDetector
from autoapply.browser.base import BrowserSession
from autoapply.browser.models import DOMControl, ElementInfo
from autoapply.config import Settings, settings as default_settings
from autoapply.exceptions import FieldFillError
from autoapply.handlers.field_mapping import looks_like_question, map_label, normalize_label
from autoapply.handlers.models import (
    TEXT_KINDS,
    ApplicationData,
    CustomQuestion,
    DocumentFile,
    FieldInfo,
    FieldKind,
    FillResult,
    FormAnalysis,
    SubmitResult,
    UploadResult,
)
from autoapply.utils.options import (
    AFFIRMATIVE_PATTERN,
    NEGATIVE_PATTERN,
    match_option,
    usable_options,
)

logger = logging.getLogger(__name__)

INPUT_KINDS: dict[str, FieldKind] = {
    "email": FieldKind.EMAIL,
    "tel": FieldKind.PHONE,
    "number": FieldKind.NUMBER,
    "date": FieldKind.DATE,
    "file": FieldKind.FILE,
    "radio": FieldKind.RADIO,
    "checkbox": FieldKind.CHECKBOX,
}

QUESTION_KINDS = {FieldKind.TEXTAREA, FieldKind.SELECT, FieldKind.RADIO, FieldKind.CHECKBOX}

SUCCESS_PATTERNS: list[str] = [
    r"thank\s*you",
    r"application.*submitted",
    r"application.*received",
    r"successfully",
    r"confirmation",
    r"we.*received.*application",
]

UNVERIFIED_MESSAGE = "Application may have been submitted - please verify"

ANY_FILE_INPUT = 'input[type="file"]'


def control_kind(control: DOMControl) -> FieldKind:
    """Map a DOM control to the field kind used for filling."""
    if control.tag == "textarea":
        return FieldKind.TEXTAREA
    if control.tag == "select":
        return FieldKind.SELECT
    return INPUT_KINDS.get(control.input_type, FieldKind.TEXT)


def element_kind(element: ElementInfo) -> FieldKind:
    """Field kind of a matched element, from its tag and type attribute."""
    if element.tag == "textarea":
        return FieldKind.TEXTAREA
    if element.tag == "select":
        return FieldKind.SELECT
    return INPUT_KINDS.get((element.attr("type") or "text").lower(), FieldKind.TEXT)


def file_input_hint(control: DOMControl) -> str:
    """Lower-cased name, id and label of a file input."""
    return " ".join(filter(None, [control.name, control.element_id, control.label])).lower()


class FormToolkit:
    """Shared field discovery, filling, upload and submit heuristics.

    Handlers hold one toolkit and pass their vendor-specific selectors
    and patterns into it rather than re-implementing the mechanics.
    """

    SUBMIT_SELECTORS: list[str] = [
        'button[type="submit"]',
        'input[type="submit"]',
        'button:has-text("Submit")',
        'button:has-text("Apply")',
        'button:has-text("Send")',
        'input[value*="Submit"]',
        'input[value*="Apply"]',
    ]

    NEXT_STEP_SELECTORS: list[str] = [
        'button:has-text("Next")',
        'button:has-text("Continue")',
        'a:has-text("Next")',
        '[data-action="next"]',
        'input[value*="Next"]',
        'input[value*="Continue"]',
    ]

    ERROR_SELECTORS: list[str] = [
        ".error-message",
        ".validation-error",
        ".alert-danger",
        ".error",
        '[class*="error"]',
    ]

    def __init__(
        self,
        blockers: BlockerDetector | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.blockers = blockers or BlockerDetector()
        self.settings = settings or default_settings

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(self, browser: BrowserSession, forms_only: bool = False) -> FormAnalysis:
        """Walk every fillable control and build the form model.

        Args:
            browser: Initialized browser session
            forms_only: Ignore controls outside a <form>

        Returns:
            FormAnalysis for the current page
        """
        controls = await browser.discover_controls()
        if forms_only:
            controls = [c for c in controls if c.in_form]

        fields = self.build_fields(controls)
        custom_questions = [self.to_custom_question(f) for f in fields if self.is_custom_question(f)]
        submit_selector = await self.find_first(browser, self.SUBMIT_SELECTORS)
        steps = await self.blockers.detect_steps(browser)

        has_file_upload = any(f.kind == FieldKind.FILE for f in fields) or await browser.exists(ANY_FILE_INPUT)

        analysis = FormAnalysis(
            fields=fields,
            has_file_upload=has_file_upload,
            custom_questions=custom_questions,
            submit_selector=submit_selector,
            is_multi_step=steps.is_multi_step,
            current_step=steps.current_step,
            total_steps=steps.total_steps,
        )
        logger.info(
            f"Analyzed form: {len(fields)} fields, "
            f"{sum(1 for f in fields if f.mapped_field)} mapped, "
            f"{len(custom_questions)} custom questions"
        )
        return analysis

    def build_fields(self, controls: list[DOMControl], label: str | None = None) -> list[FieldInfo]:
        """Turn DOM controls into fields, grouping radios by name.

        Args:
            controls: Controls as extracted from the page
            label: Label to use for every field, e.g. a question card's label

        Returns:
            FieldInfo list with ``mapped_field`` resolved
        """
        fields: list[FieldInfo] = []
        groups: dict[str, FieldInfo] = {}
        checkbox_names = [c.name for c in controls if c.input_type == "checkbox" and c.name]

        for control in controls:
            kind = control_kind(control)
            grouped = kind == FieldKind.RADIO or (
                kind == FieldKind.CHECKBOX and checkbox_names.count(control.name) > 1
            )

            if grouped:
                key = control.name or control.selector
                option_label = (control.label or control.value or control.selector).strip()
                group = groups.get(key)
                if group is None:
                    group = FieldInfo(
                        kind=kind,
                        selector=control.selector,
                        label=(label or control.group_label or control.name or "").strip(),
                    )
                    groups[key] = group
                    fields.append(group)
                group.options.append(option_label)
                group.option_selectors[option_label] = control.selector
                group.required = group.required or control.required
                if control.checked:
                    group.checked_options.append(option_label)
                continue

            field_label = label or control.label or control.placeholder or control.name or control.element_id or ""
            fields.append(
                FieldInfo(
                    kind=kind,
                    selector=control.selector,
                    label=field_label.strip(),
                    required=control.required,
                    options=control.options,
                    value=control.value,
                    checked=control.checked,
                    max_length=control.max_length,
                )
            )

        for field in fields:
            field.mapped_field = map_label(field.label, field.kind)
        return fields

    @staticmethod
    def is_custom_question(field: FieldInfo) -> bool:
        """Unmapped select/radio with options, or unmapped text phrased as a question."""
        if field.mapped_field or field.kind == FieldKind.FILE:
            return False
        if not normalize_label(field.label):
            return False
        if field.kind in (FieldKind.SELECT, FieldKind.RADIO):
            return bool(usable_options(field.options))
        return looks_like_question(field.label)

    @staticmethod
    def to_custom_question(field: FieldInfo) -> CustomQuestion:
        kind = field.kind if field.kind in QUESTION_KINDS else FieldKind.TEXT
        return CustomQuestion(
            question=normalize_label(field.label),
            selector=field.selector,
            kind=kind,
            options=usable_options(field.options),
            required=field.required,
            max_length=field.max_length,
        )

    async def known_fields(self, browser: BrowserSession, selectors: dict[str, str]) -> list[FieldInfo]:
        """Fields for a vendor's stable selectors that exist on the page.

        Args:
            browser: Initialized browser session
            selectors: ApplicationData attribute -> CSS selector

        Returns:
            One pre-mapped FieldInfo per selector found
        """
        fields = []
        for attribute, selector in selectors.items():
            element = await browser.query(selector)
            if element is None:
                continue
            fields.append(
                FieldInfo(
                    kind=element_kind(element),
                    selector=selector,
                    label=element.attr("aria-label") or attribute.replace("_", " "),
                    required=element.attr("required") is not None or element.attr("aria-required") == "true",
                    value=element.value,
                    mapped_field=attribute,
                )
            )
        return fields

    async def card_fields(
        self,
        browser: BrowserSession,
        card_selectors: list[str],
        label_selector: str = "label",
        exclude: set[str] | None = None,
    ) -> tuple[list[FieldInfo], list[CustomQuestion]]:
        """Fields and custom questions from vendor question containers.

        Every unmapped, labeled control inside a card is a custom question,
        whether or not its label ends in "?".

        Args:
            browser: Initialized browser session
            card_selectors: Question container selectors, tried in order
            label_selector: Selector of the label inside a card
            exclude: Selectors already covered by known fields

        Returns:
            Tuple of (fields, custom questions)
        """
        seen = set(exclude or ())
        fields: list[FieldInfo] = []
        questions: list[CustomQuestion] = []

        for card_selector in card_selectors:
            for card in await browser.discover_question_cards(card_selector, label_selector):
                label = normalize_label(card.label)
                for field in self.build_fields(card.controls, label=label or None):
                    if field.selector in seen:
                        continue
                    seen.add(field.selector)
                    fields.append(field)
                    if field.mapped_field or field.kind == FieldKind.FILE or not normalize_label(field.label):
                        continue
                    if field.kind in (FieldKind.SELECT, FieldKind.RADIO) and not usable_options(field.options):
                        continue
                    questions.append(self.to_custom_question(field))

        return fields, questions

    async def find_first(self, browser: BrowserSession, selectors: list[str]) -> str | None:
        """First selector that matches a visible element."""
        for selector in selectors:
            for element in await browser.query_all(selector):
                if element.visible:
                    return selector
        return None

    # ------------------------------------------------------------------
    # Filling
    # ------------------------------------------------------------------

    async def fill_fields(
        self,
        browser: BrowserSession,
        fields: list[FieldInfo],
        data: ApplicationData,
    ) -> FillResult:
        """Fill every field that has a mapped value or a generated answer.

        A field that cannot be filled is recorded in ``errors`` and skipped.
        """
        result = FillResult()

        for field in fields:
            if field.kind == FieldKind.FILE:
                continue
            result.fields_total += 1

            value = data.value_for(field.mapped_field) if field.mapped_field else None
            if not value:
                value = data.custom_responses.get(field.selector)
            if not value:
                continue

            try:
                await self.fill_field(browser, field, value)
                result.fields_filled += 1
            except FieldFillError as e:
                result.errors.append(f"Failed to fill {field.label or field.selector}: {e}")
                continue

            if self.settings.field_fill_delay_ms:
                await browser.wait_for_timeout(self.settings.field_fill_delay_ms)

        if result.errors:
            logger.warning(f"Fill errors: {result.errors}")
        return result

    async def fill_field(self, browser: BrowserSession, field: FieldInfo, value: str) -> None:
        """Write one value into one field according to its kind.

        Raises:
            FieldFillError: If the control could not be filled
        """
        if field.kind in TEXT_KINDS:
            text = value[: field.max_length] if field.max_length else value
            if not await browser.fill(field.selector, text):
                raise FieldFillError(f"could not fill {field.selector}")
            return

        if field.kind == FieldKind.SELECT:
            option = match_option(field.options, value)
            if option is None:
                raise FieldFillError(f"no option matching '{value}'")
            if not await browser.select_option(field.selector, option):
                raise FieldFillError(f"could not select '{option}'")
            return

        if field.kind in (FieldKind.RADIO, FieldKind.CHECKBOX) and field.option_selectors:
            option = match_option(list(field.option_selectors), value)
            if option is None:
                raise FieldFillError(f"no option matching '{value}'")
            if option in field.checked_options:
                return
            if not await browser.click(field.option_selectors[option]):
                raise FieldFillError(f"could not click '{option}'")
            return

        if field.kind == FieldKind.CHECKBOX:
            if NEGATIVE_PATTERN.search(value):
                wanted = False
            elif AFFIRMATIVE_PATTERN.search(value):
                wanted = True
            else:
                raise FieldFillError(f"'{value}' is not a yes/no answer")
            if wanted != field.checked and not await browser.click(field.selector):
                raise FieldFillError(f"could not toggle {field.selector}")
            return

        raise FieldFillError(f"unsupported field kind {field.kind.value}")

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def upload_by_heuristic(self, browser: BrowserSession, data: ApplicationData) -> UploadResult:
        """Attach documents to file inputs classified by name, id and label.

        "resume"/"cv" inputs get the resume and "cover" inputs the cover
        letter. An unclassified input gets the resume if none was
        uploaded yet. At most one of each is uploaded.
        """
        result = UploadResult()
        file_controls = [c for c in await browser.discover_controls() if c.input_type == "file"]

        for control in file_controls:
            hint = file_input_hint(control)
            is_resume = "resume" in hint or "cv" in hint
            is_cover = "cover" in hint

            if data.resume and not result.resume_uploaded and (is_resume or not is_cover):
                result.resume_uploaded = await self._upload(browser, control.selector, data.resume, result, "resume")
            elif data.cover_letter and not result.cover_letter_uploaded and is_cover:
                result.cover_letter_uploaded = await self._upload(
                    browser, control.selector, data.cover_letter, result, "cover letter"
                )

        if data.resume and not file_controls:
            result.resume_uploaded = await self.upload_resume_fallback(browser, data.resume, result)

        return result

    async def upload_resume_fallback(
        self,
        browser: BrowserSession,
        resume: DocumentFile,
        result: UploadResult,
    ) -> bool:
        """Upload the resume to the first file input not meant for a cover letter.

        Bare file inputs that were not discovered as controls are used
        only when no file control was discovered at all.
        """
        file_controls = [c for c in await browser.discover_controls() if c.input_type == "file"]
        for control in file_controls:
            if "cover" not in file_input_hint(control):
                return await self._upload(browser, control.selector, resume, result, "resume")

        if not file_controls and await browser.exists(ANY_FILE_INPUT):
            return await self._upload(browser, ANY_FILE_INPUT, resume, result, "resume")

        logger.info("No file input available for the resume")
        return False

    async def upload_to_first(
        self,
        browser: BrowserSession,
        selectors: list[str],
        document: DocumentFile,
        result: UploadResult,
        description: str,
    ) -> bool:
        """Upload a document to the first selector present on the page."""
        for selector in selectors:
            if not await browser.exists(selector):
                continue
            if await self._upload(browser, selector, document, result, description):
                return True
        return False

    async def _upload(
        self,
        browser: BrowserSession,
        selector: str,
        document: DocumentFile,
        result: UploadResult,
        description: str,
    ) -> bool:
        if not await browser.upload_file(selector, document.to_payload()):
            result.errors.append(f"Failed to upload {description} to {selector}")
            return False
        await browser.wait_for_timeout(self.settings.post_upload_wait_ms)
        logger.info(f"Uploaded {description} ({document.filename})")
        return True

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        browser: BrowserSession,
        submit_selectors: list[str],
        success_patterns: list[str] | None = None,
        error_selectors: list[str] | None = None,
        success_url_markers: list[str] | None = None,
        vendor: str | None = None,
    ) -> SubmitResult:
        """Click submit and classify the outcome.

        After the click settles a confirmation screenshot is taken, then in
        order: a CAPTCHA means manual action; a success phrase (or a vendor
        confirmation URL) means success; a navigation with no visible error
        means success; a visible error marker means failure; anything else
        is reported as an unverified success.

        Args:
            browser: Initialized browser session
            submit_selectors: Candidate submit controls, in priority order
            success_patterns: Regexes matched against the result page text
            error_selectors: Error marker selectors
            success_url_markers: Substrings of vendor confirmation URLs
            vendor: Vendor name for the confirmation message

        Returns:
            SubmitResult
        """
        success_patterns = success_patterns or SUCCESS_PATTERNS
        error_selectors = error_selectors or self.ERROR_SELECTORS
        suffix = f" via {vendor}" if vendor else ""

        submit_selector = await self.find_first(browser, submit_selectors)
        if submit_selector is None:
            return SubmitResult(
                success=False,
                error="Submit button not found",
                requires_manual_action=True,
                manual_action_reason="Could not locate the submit button",
            )

        before_url = await browser.get_current_url()
        if not await browser.click(submit_selector):
            return SubmitResult(
                success=False,
                error=f"Could not click submit button {submit_selector}",
                requires_manual_action=True,
                manual_action_reason="Submit button could not be clicked",
            )

        await browser.wait_for_timeout(self.settings.post_submit_wait_ms)
        screenshot = await browser.take_screenshot("confirmation")
        after_url = await browser.get_current_url()

        if await self.has_captcha(browser):
            return SubmitResult(
                success=False,
                error="CAPTCHA detected after submitting",
                confirmation_screenshot=screenshot,
                requires_manual_action=True,
                manual_action_reason="Please complete the CAPTCHA verification",
            )

        navigated = bool(after_url) and after_url != before_url
        if navigated and success_url_markers and any(m in after_url.lower() for m in success_url_markers):
            return SubmitResult(
                success=True,
                confirmation_message=f"Application submitted successfully{suffix}",
                confirmation_screenshot=screenshot,
            )

        page_text = await browser.get_body_text()
        for pattern in success_patterns:
            if re.search(pattern, page_text, re.IGNORECASE):
                return SubmitResult(
                    success=True,
                    confirmation_message=f"Application submitted successfully{suffix}",
                    confirmation_screenshot=screenshot,
                )

        error_text = await self.visible_error(browser, error_selectors)
        if navigated and error_text is None:
            return SubmitResult(
                success=True,
                confirmation_message="Form submitted - please verify on the confirmation page",
                confirmation_screenshot=screenshot,
            )

        if error_text is not None:
            return SubmitResult(success=False, error=error_text, confirmation_screenshot=screenshot)

        return SubmitResult(
            success=True,
            confirmation_message=UNVERIFIED_MESSAGE,
            confirmation_screenshot=screenshot,
        )

    async def visible_error(self, browser: BrowserSession, error_selectors: list[str]) -> str | None:
        """Text of the first visible, non-empty error marker."""
        for selector in error_selectors:
            for element in await browser.query_all(selector):
                if element.visible and element.text.strip():
                    return element.text.strip()
        return None

    # ------------------------------------------------------------------
    # Blockers and steps
    # ------------------------------------------------------------------

    async def has_captcha(self, browser: BrowserSession) -> bool:
        return await self.blockers.has_captcha(browser)

    async def go_to_next_step(self, browser: BrowserSession) -> bool:
        """Click the Next/Continue control of a multi-step form."""
        selector = await self.find_first(browser, self.NEXT_STEP_SELECTORS)
        if selector is None:
            logger.info("No next-step control found")
            return False
        if not await browser.click(selector):
            return False
        await browser.wait_for_timeout(self.settings.step_transition_wait_ms)
        return True
