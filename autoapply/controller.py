"""Apply controller: the auto-apply state machine for one run."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from autoapply.ai.responder import AIResponder
from autoapply.ai.tracing import flush_langfuse
from autoapply.application_data import build_application_data
from autoapply.browser.base import BrowserSession
from autoapply.browser.models import BrowserConfig
from autoapply.browser.playwright_session import PlaywrightSession
from autoapply.config import Settings, settings as default_settings
from autoapply.detection.apply_page import find_apply_target, is_application_page
from autoapply.detection.ats_detector import ATSDetector
from autoapply.documents import DocumentRenderer, PDFDocumentRenderer
from autoapply.exceptions import AutoApplyError, BrowserError, NavigationError
from autoapply.handlers import ATSHandler, FormToolkit, HandlerRegistry
from autoapply.handlers.models import ApplicationData, CustomQuestion, FillResult
from autoapply.models import (
    AutoApplyInput,
    AutoApplySession,
    AutoApplyStatus,
    CoverLetterData,
)

logger = logging.getLogger(__name__)

StatusCallback = Callable[[AutoApplySession], None]


class ApplyController:
    """Drives one application from job URL to submitted form.

    The controller owns the session record and the browser session for
    the whole run. Every run ends in exactly one terminal status
    (completed, failed, captcha or manual) and closes the browser once.

    Usage:
        controller = ApplyController("session-1", on_status_update=store.set_snapshot)
        session = await controller.apply(apply_input)
    """

    def __init__(
        self,
        session_id: str,
        browser: BrowserSession | None = None,
        *,
        detector: ATSDetector | None = None,
        registry: type[HandlerRegistry] = HandlerRegistry,
        responder: AIResponder | None = None,
        renderer: DocumentRenderer | None = None,
        on_status_update: StatusCallback | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.browser = browser or PlaywrightSession(BrowserConfig.from_settings(self.settings))
        self.detector = detector or ATSDetector()
        self.registry = registry
        self.responder = responder or AIResponder(settings=self.settings)
        self.renderer = renderer or PDFDocumentRenderer()
        self.toolkit = FormToolkit(settings=self.settings)
        self.on_status_update = on_status_update
        self.session = AutoApplySession(id=session_id)
        self._started = False

    async def apply(self, input: AutoApplyInput) -> AutoApplySession:
        """Run the application end to end.

        Never raises for run failures: errors end the run in ``failed``
        and are recorded on the returned session.

        Args:
            input: Job and applicant data for this run

        Returns:
            The final AutoApplySession

        Raises:
            AutoApplyError: If this controller already ran
        """
        if self._started:
            raise AutoApplyError("ApplyController.apply() can only be called once")
        self._started = True

        try:
            self.session.started_at = datetime.now(timezone.utc)
            await self._run(input)
        except Exception as e:
            logger.error(f"Auto-apply {self.session.id} failed: {e}")
            self.session.error = str(e) or type(e).__name__
            self._update_status(AutoApplyStatus.FAILED, self.session.progress, f"Error: {self.session.error}")
            try:
                await self._capture("error")
            except BrowserError as screenshot_error:
                logger.debug(f"Error screenshot unavailable: {screenshot_error}")
        finally:
            self.session.completed_at = datetime.now(timezone.utc)
            self.session.action_log = self.browser.action_log
            await self.browser.close()
            flush_langfuse()
            self._notify()

        return self.session

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run(self, input: AutoApplyInput) -> None:
        self._update_status(AutoApplyStatus.PENDING, 5, "Initializing browser")
        await self.browser.initialize()

        self._update_status(AutoApplyStatus.NAVIGATING, 10, "Navigating to application page")
        if not await self.browser.navigate_to(input.job_url):
            raise NavigationError(f"Failed to navigate to {input.job_url}")
        await self._capture("initial")

        if not await is_application_page(self.browser):
            self._update_status(AutoApplyStatus.NAVIGATING, 15, "Finding apply button")
            await self._follow_apply_control()

        self._update_status(AutoApplyStatus.DETECTING, 20, "Detecting application system")
        detection = await self.detector.detect(self.browser)
        handler = await self.registry.select(self.browser, detection, self.toolkit)
        self.session.ats_detected = detection.type
        self.session.ats_confidence = detection.confidence
        self.session.handler_name = handler.name

        if await handler.has_captcha(self.browser):
            self._update_status(AutoApplyStatus.CAPTCHA, 25, "CAPTCHA detected - requires manual intervention")
            await self._capture("captcha")
            return

        self._update_status(AutoApplyStatus.DETECTING, 30, "Analyzing application form")
        analysis = await handler.analyze_form(self.browser)
        self.session.fields_total = len(analysis.fields)
        self.session.custom_questions = list(analysis.custom_questions)

        self._update_status(AutoApplyStatus.FILLING, 35, "Generating application documents")
        data = await self._build_application_data(input)

        if analysis.custom_questions:
            self._update_status(AutoApplyStatus.FILLING, 40, "Generating answers for custom questions")
            await self._answer_questions(analysis.custom_questions, input, data)

        self._update_status(AutoApplyStatus.FILLING, 50, "Filling application form")
        await self._fill_all_steps(handler, input, data)
        await self._capture("filled")

        self._update_status(AutoApplyStatus.UPLOADING, 70, "Uploading resume and cover letter")
        upload_result = await handler.upload_documents(self.browser, data)
        if upload_result.errors:
            logger.warning(f"Upload errors: {upload_result.errors}")
            self.session.warnings.extend(upload_result.errors)
        await self.browser.wait_for_timeout(self.settings.pre_submit_screenshot_wait_ms)
        await self._capture("uploaded")

        # CAPTCHAs can appear once fields are filled
        if await handler.has_captcha(self.browser):
            self._update_status(AutoApplyStatus.CAPTCHA, 85, "CAPTCHA detected before submission")
            await self._capture("captcha_pre_submit")
            return

        self._update_status(AutoApplyStatus.SUBMITTING, 90, "Submitting application")
        result = await handler.submit(self.browser)
        self.session.result = result
        if result.confirmation_screenshot:
            self.session.screenshots.append(result.confirmation_screenshot)

        if result.success:
            self._update_status(AutoApplyStatus.COMPLETED, 100, "Application submitted successfully")
        elif result.requires_manual_action:
            self._update_status(AutoApplyStatus.MANUAL, 95, result.manual_action_reason or "Manual action required")
        else:
            self.session.error = result.error
            self._update_status(AutoApplyStatus.FAILED, 95, result.error or "Submission failed")

    async def _follow_apply_control(self) -> None:
        target = await find_apply_target(self.browser)
        if not target:
            logger.info("No apply control found, treating current page as the application")
            return

        current_url = await self.browser.get_current_url()
        if target != current_url:
            await self.browser.navigate_to(target)
            await self.browser.wait_for_timeout(self.settings.apply_click_wait_ms)

    async def _build_application_data(self, input: AutoApplyInput) -> ApplicationData:
        resume = await self.renderer.build_resume(input.resume_data)

        cover_letter = None
        if input.cover_letter_content:
            cover_letter = await self.renderer.build_cover_letter(
                CoverLetterData(
                    full_name=input.resume_data.full_name,
                    email=input.resume_data.email,
                    phone=input.resume_data.phone,
                    company_name=input.company_name,
                    job_title=input.job_title,
                    content=input.cover_letter_content,
                )
            )

        return build_application_data(input, resume, cover_letter)

    async def _answer_questions(
        self,
        questions: list[CustomQuestion],
        input: AutoApplyInput,
        data: ApplicationData,
    ) -> None:
        """Resolve every answer, then key them by field selector."""
        responses = await self.responder.generate_responses(
            questions,
            input.applicant_profile,
            input.job_context(),
            input.cover_letter_content or None,
        )
        for question in questions:
            answer = responses.get(question.question)
            if answer:
                data.custom_responses[question.selector] = answer

    async def _fill_all_steps(self, handler: ATSHandler, input: AutoApplyInput, data: ApplicationData) -> None:
        """Fill the form, advancing through a bounded number of extra steps."""
        self._record_fill(await handler.fill_application(self.browser, data))

        steps_advanced = 0
        analysis = handler.last_analysis
        while analysis and analysis.has_more_steps and steps_advanced < self.settings.max_form_steps:
            if not await handler.go_to_next_step(self.browser):
                break
            steps_advanced += 1
            self.session.current_step = f"Filling application form (step {steps_advanced + 1})"
            self._notify()

            analysis = await handler.analyze_form(self.browser)
            new_questions = [q for q in analysis.custom_questions if q.selector not in data.custom_responses]
            if new_questions:
                self.session.custom_questions.extend(new_questions)
                await self._answer_questions(new_questions, input, data)

            self._record_fill(await handler.fill_application(self.browser, data), accumulate=True)
            analysis = handler.last_analysis

        if steps_advanced:
            logger.info(f"Advanced through {steps_advanced} additional form steps")

    def _record_fill(self, result: FillResult, accumulate: bool = False) -> None:
        if accumulate:
            self.session.fields_total += result.fields_total
            self.session.fields_filled += result.fields_filled
        else:
            self.session.fields_total = result.fields_total
            self.session.fields_filled = result.fields_filled
        if result.errors:
            self.session.warnings.extend(result.errors)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _capture(self, label: str) -> None:
        screenshot = await self.browser.take_screenshot(label)
        if screenshot:
            self.session.screenshots.append(screenshot)

    def _update_status(self, status: AutoApplyStatus, progress: int, current_step: str) -> None:
        self.session.status = status
        self.session.progress = max(self.session.progress, progress)
        self.session.current_step = current_step
        logger.info(f"[{self.session.id}] {status.value} ({self.session.progress}%): {current_step}")
        self._notify()

    def _notify(self) -> None:
        if not self.on_status_update:
            return
        try:
            self.on_status_update(self.session.model_copy(deep=True))
        except Exception as e:
            logger.warning(f"Status update callback failed: {e}")


async def run_auto_apply(
    session_id: str,
    input: AutoApplyInput,
    on_status_update: StatusCallback | None = None,
    **deps,
) -> AutoApplySession:
    """Run one auto-apply session with a fresh controller.

    Args:
        session_id: Id for the session record
        input: Job and applicant data
        on_status_update: Called with a snapshot on every status change
        **deps: Collaborators forwarded to ApplyController (browser, responder, ...)

    Returns:
        The final AutoApplySession
    """
    controller = ApplyController(session_id, on_status_update=on_status_update, **deps)
    return await controller.apply(input)
