"""Tests for ATS handlers and the shared form toolkit."""

import pytest
from conftest import FakePage, element

from autoapply.browser.models import DOMControl, QuestionCard
from autoapply.handlers import (
    ApplicationData,
    DocumentFile,
    FieldInfo,
    FieldKind,
    FormToolkit,
    GenericHandler,
    GreenhouseHandler,
    LeverHandler,
)
from autoapply.handlers.common import UNVERIFIED_MESSAGE

GREENHOUSE_URL = "https://job-boards.greenhouse.io/acme/jobs/123"
LEVER_URL = "https://jobs.lever.co/acme/5f1c/apply"
FORM_URL = "https://careers.example.com/jobs/42/apply"
DONE_URL = "https://careers.example.com/jobs/42/done"


@pytest.fixture
def toolkit(test_settings):
    return FormToolkit(settings=test_settings)


@pytest.fixture
def application_data():
    return ApplicationData(
        first_name="Jane",
        last_name="Doe",
        full_name="Jane Doe",
        email="jane@example.com",
        phone="+1 555 0100",
        linkedin_url="https://linkedin.com/in/janedoe",
        years_of_experience=6,
        resume=DocumentFile(filename="Jane_Doe_Resume.pdf", content=b"%PDF-1.4 resume"),
        cover_letter=DocumentFile(filename="Jane_Doe_Cover_Letter.pdf", content=b"%PDF-1.4 cover"),
        cover_letter_text="Dear Hiring Manager, I would love to join Acme.",
    )


@pytest.fixture
def greenhouse_page():
    """Four standard fields, one mapped card field and two custom questions."""
    return FakePage(
        url=GREENHOUSE_URL,
        elements={
            "#grnhse_app": [element("div")],
            "#resume": [element("input", type="file")],
            "#submit_app": [element("button", text="Submit Application")],
        },
        controls=[
            DOMControl(selector="#first_name", tag="input", element_id="first_name", required=True),
            DOMControl(selector="#last_name", tag="input", element_id="last_name", required=True),
            DOMControl(selector="#email", tag="input", input_type="email", element_id="email", required=True),
            DOMControl(selector="#phone", tag="input", input_type="tel", element_id="phone"),
        ],
        cards={
            '[class*="custom-question"]': [
                QuestionCard(
                    label="LinkedIn Profile",
                    controls=[DOMControl(selector="#question_1", tag="input", name="question_1")],
                ),
                QuestionCard(
                    label="Are you legally authorized to work in the US? *",
                    controls=[
                        DOMControl(selector="#q2_yes", tag="input", input_type="radio", name="q2", label="Yes"),
                        DOMControl(selector="#q2_no", tag="input", input_type="radio", name="q2", label="No"),
                    ],
                ),
                QuestionCard(
                    label="Why do you want to join Acme?",
                    controls=[DOMControl(selector="#question_3", tag="textarea", name="question_3")],
                ),
            ]
        },
    )


async def _open(make_browser, *pages: FakePage):
    browser = make_browser(*pages)
    await browser.initialize()
    await browser.navigate_to(pages[0].url)
    return browser


class TestFieldDiscovery:
    """Tests for field building and custom-question detection."""

    def test_radio_group_becomes_one_field(self, toolkit):
        """Test radios sharing a name form a single choice field."""
        controls = [
            DOMControl(selector="#r1", tag="input", input_type="radio", name="relocate", label="Yes",
                       group_label="Are you willing to relocate?"),
            DOMControl(selector="#r2", tag="input", input_type="radio", name="relocate", label="No",
                       group_label="Are you willing to relocate?", checked=True),
        ]

        fields = toolkit.build_fields(controls)

        assert len(fields) == 1
        assert fields[0].kind == FieldKind.RADIO
        assert fields[0].label == "Are you willing to relocate?"
        assert fields[0].options == ["Yes", "No"]
        assert fields[0].option_selectors == {"Yes": "#r1", "No": "#r2"}
        assert fields[0].checked_options == ["No"]

    def test_single_checkbox_is_not_grouped(self, toolkit):
        """Test a lone checkbox stays a standalone field."""
        controls = [DOMControl(selector="#terms", tag="input", input_type="checkbox", name="terms",
                               label="I agree to the terms")]

        fields = toolkit.build_fields(controls)

        assert fields[0].kind == FieldKind.CHECKBOX
        assert fields[0].option_selectors == {}

    def test_custom_question_rules(self, toolkit):
        """Test which unmapped fields count as custom questions."""
        controls = [
            DOMControl(selector="#fn", tag="input", label="First Name"),
            DOMControl(selector="#nick", tag="input", label="Nickname"),
            DOMControl(selector="#why", tag="textarea", label="Why Acme?"),
            DOMControl(selector="#size", tag="select", label="T-shirt size", options=["Select...", "S", "M"]),
            DOMControl(selector="#empty", tag="select", label="Office", options=["Select..."]),
        ]

        fields = toolkit.build_fields(controls)
        questions = [toolkit.to_custom_question(f) for f in fields if toolkit.is_custom_question(f)]

        assert [q.question for q in questions] == ["Why Acme?", "T-shirt size"]
        assert questions[0].kind == FieldKind.TEXTAREA
        assert questions[1].options == ["S", "M"]

    @pytest.mark.asyncio
    async def test_generic_analysis(self, make_browser, generic_form_pages, toolkit):
        """Test the generic handler maps the name field and finds the upload."""
        browser = await _open(make_browser, *generic_form_pages)
        handler = GenericHandler(toolkit)

        analysis = await handler.analyze_form(browser)

        assert [f.mapped_field for f in analysis.fields] == ["full_name", None]
        assert analysis.has_file_upload is True
        assert analysis.submit_selector == 'button[type="submit"]'
        assert analysis.custom_questions == []
        assert analysis.is_multi_step is False

    @pytest.mark.asyncio
    async def test_generic_analysis_falls_back_to_whole_page(self, make_browser, toolkit):
        """Test controls outside any form are used when no form has controls."""
        page = FakePage(
            url=FORM_URL,
            controls=[DOMControl(selector="#email", tag="input", input_type="email", label="Email", in_form=False)],
        )
        browser = await _open(make_browser, page)

        analysis = await GenericHandler(toolkit).analyze_form(browser)

        assert [f.mapped_field for f in analysis.fields] == ["email"]

    @pytest.mark.asyncio
    async def test_multi_step_detection(self, make_browser, toolkit):
        """Test "Step X of Y" text marks the form as multi-step."""
        page = FakePage(
            url=FORM_URL,
            text="Step 1 of 3 - Personal information",
            controls=[DOMControl(selector="#email", tag="input", input_type="email", label="Email")],
        )
        browser = await _open(make_browser, page)

        analysis = await GenericHandler(toolkit).analyze_form(browser)

        assert analysis.is_multi_step is True
        assert (analysis.current_step, analysis.total_steps) == (1, 3)
        assert analysis.has_more_steps is True


class TestFormToolkit:
    """Tests for toolkit filling and generic uploads."""

    @pytest.mark.asyncio
    async def test_years_select_filled_from_answer(self, make_browser, toolkit, application_data):
        """Test an unmapped years select takes the generated answer's option."""
        page = FakePage(
            url=FORM_URL,
            controls=[
                DOMControl(
                    selector="#years",
                    tag="select",
                    input_type="select",
                    label="How many years of experience do you have?",
                    options=["0-2 years", "3-5 years", "6+ years"],
                )
            ],
        )
        browser = await _open(make_browser, page)
        field = FieldInfo(
            kind=FieldKind.SELECT,
            selector="#years",
            label="How many years of experience do you have?",
            options=["0-2 years", "3-5 years", "6+ years"],
        )
        application_data.custom_responses = {"#years": "6+ years"}

        result = await toolkit.fill_fields(browser, [field], application_data)

        assert result.errors == []
        assert result.fields_filled == 1
        assert browser.selected["#years"] == "6+ years"

    @pytest.mark.asyncio
    async def test_years_radio_group_filled_from_answer(self, make_browser, toolkit, application_data):
        """Test a years radio group clicks the option matching the answer."""
        page = FakePage(
            url=FORM_URL,
            controls=[
                DOMControl(selector="#years_junior", tag="input", input_type="radio", name="years", label="0-2 years"),
                DOMControl(selector="#years_senior", tag="input", input_type="radio", name="years", label="6+ years"),
            ],
        )
        browser = await _open(make_browser, page)
        field = FieldInfo(
            kind=FieldKind.RADIO,
            selector="#years_junior",
            label="Years of experience",
            options=["0-2 years", "6+ years"],
            option_selectors={"0-2 years": "#years_junior", "6+ years": "#years_senior"},
        )
        application_data.custom_responses = {"#years_junior": "6+ years"}

        result = await toolkit.fill_fields(browser, [field], application_data)

        assert result.errors == []
        assert browser.clicked == ["#years_senior"]

    @pytest.mark.asyncio
    async def test_bare_file_input_gets_resume(self, make_browser, toolkit, application_data):
        """Test a file input with no id, name or label still receives the resume."""
        page = FakePage(
            url=FORM_URL,
            elements={"form": [element("form")], 'input[type="file"]': [element("input", type="file")]},
            controls=[DOMControl(selector="#full_name", tag="input", element_id="full_name", label="Full name")],
        )
        browser = await _open(make_browser, page)

        result = await GenericHandler(toolkit).upload_documents(browser, application_data)

        assert result.resume_uploaded is True
        assert result.cover_letter_uploaded is False
        assert browser.uploaded['input[type="file"]'].name == "Jane_Doe_Resume.pdf"


class TestGreenhouseHandler:
    """Tests for GreenhouseHandler."""

    @pytest.mark.asyncio
    async def test_detect(self, make_browser, greenhouse_page):
        """Test Greenhouse confirms its own boards."""
        browser = await _open(make_browser, greenhouse_page)

        assert await GreenhouseHandler().detect(browser) is True

    @pytest.mark.asyncio
    async def test_detect_rejects_other_pages(self, make_browser, generic_form_pages):
        """Test Greenhouse does not claim unrelated forms."""
        browser = await _open(make_browser, *generic_form_pages)

        assert await GreenhouseHandler().detect(browser) is False

    @pytest.mark.asyncio
    async def test_analyze_counts_mapped_fields_and_questions(self, make_browser, greenhouse_page, toolkit):
        """Test N mappable fields and M custom questions are reported exactly."""
        browser = await _open(make_browser, greenhouse_page)

        analysis = await GreenhouseHandler(toolkit).analyze_form(browser)

        mapped = [f.mapped_field for f in analysis.fields if f.mapped_field]
        assert mapped == ["first_name", "last_name", "email", "phone", "linkedin_url"]
        assert [q.question for q in analysis.custom_questions] == [
            "Are you legally authorized to work in the US?",
            "Why do you want to join Acme?",
        ]
        assert analysis.custom_questions[0].kind == FieldKind.RADIO
        assert analysis.custom_questions[0].options == ["Yes", "No"]
        assert analysis.has_file_upload is True
        assert analysis.submit_selector == "#submit_app"

    @pytest.mark.asyncio
    async def test_fill_application(self, make_browser, greenhouse_page, toolkit, application_data):
        """Test mapped values and answers are written to the form."""
        browser = await _open(make_browser, greenhouse_page)
        handler = GreenhouseHandler(toolkit)
        application_data.custom_responses = {"#q2_yes": "Yes", "#question_3": "Acme builds what I care about."}

        result = await handler.fill_application(browser, application_data)

        assert result.errors == []
        assert result.fields_total == 7
        assert result.fields_filled == 7
        assert browser.filled["#first_name"] == "Jane"
        assert browser.filled["#question_1"] == "https://linkedin.com/in/janedoe"
        assert browser.filled["#question_3"] == "Acme builds what I care about."
        assert browser.clicked == ["#q2_yes"]

    @pytest.mark.asyncio
    async def test_fill_twice_is_stable(self, make_browser, greenhouse_page, toolkit, application_data):
        """Test refilling a filled form neither raises nor loses fields."""
        browser = await _open(make_browser, greenhouse_page)
        handler = GreenhouseHandler(toolkit)
        application_data.custom_responses = {"#q2_yes": "Yes", "#question_3": "Acme builds what I care about."}

        first = await handler.fill_application(browser, application_data)
        second = await handler.fill_application(browser, application_data)

        assert second.fields_filled >= first.fields_filled
        assert second.errors == []
        # An already selected radio is not clicked again
        assert browser.clicked == ["#q2_yes"]

    @pytest.mark.asyncio
    async def test_fill_error_is_recorded(self, make_browser, greenhouse_page, toolkit, application_data):
        """Test an unanswerable choice is reported without aborting the fill."""
        browser = await _open(make_browser, greenhouse_page)
        application_data.custom_responses = {"#q2_yes": "Maybe later"}

        result = await GreenhouseHandler(toolkit).fill_application(browser, application_data)

        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to fill Are you legally authorized")
        assert browser.filled["#email"] == "jane@example.com"

    @pytest.mark.asyncio
    async def test_upload_documents(self, make_browser, greenhouse_page, toolkit, application_data):
        """Test the resume goes to the resume input and a missing cover input is skipped."""
        browser = await _open(make_browser, greenhouse_page)

        result = await GreenhouseHandler(toolkit).upload_documents(browser, application_data)

        assert result.resume_uploaded is True
        assert result.cover_letter_uploaded is False
        assert browser.uploaded["#resume"].name == "Jane_Doe_Resume.pdf"

    @pytest.mark.asyncio
    async def test_resume_skips_cover_letter_input(self, make_browser, toolkit, application_data):
        """Test without a resume-named input the resume avoids the cover-letter input."""
        page = FakePage(
            url=GREENHOUSE_URL,
            elements={"#grnhse_app": [element("div")]},
            controls=[
                DOMControl(
                    selector="#cover_letter",
                    tag="input",
                    input_type="file",
                    element_id="cover_letter",
                    label="Cover Letter",
                ),
                DOMControl(selector="#attachment", tag="input", input_type="file", element_id="attachment", label="Attach"),
            ],
        )
        browser = await _open(make_browser, page)

        result = await GreenhouseHandler(toolkit).upload_documents(browser, application_data)

        assert result.resume_uploaded is True
        assert result.cover_letter_uploaded is True
        assert browser.uploaded["#attachment"].name == "Jane_Doe_Resume.pdf"
        assert browser.uploaded["#cover_letter"].name == "Jane_Doe_Cover_Letter.pdf"

    @pytest.mark.asyncio
    async def test_resume_not_uploaded_to_only_cover_letter_input(self, make_browser, toolkit, application_data):
        """Test a lone cover-letter input never receives the resume."""
        page = FakePage(
            url=GREENHOUSE_URL,
            elements={"#grnhse_app": [element("div")]},
            controls=[
                DOMControl(
                    selector="#cover_letter",
                    tag="input",
                    input_type="file",
                    element_id="cover_letter",
                    label="Cover Letter",
                )
            ],
        )
        browser = await _open(make_browser, page)

        result = await GreenhouseHandler(toolkit).upload_documents(browser, application_data)

        assert result.resume_uploaded is False
        assert result.cover_letter_uploaded is True
        assert list(browser.uploaded) == ["#cover_letter"]

    @pytest.mark.asyncio
    async def test_submit_confirmation_url(self, make_browser, greenhouse_page, toolkit):
        """Test a redirect to a confirmation URL counts as success."""
        greenhouse_page.on_click = {"#submit_app": f"{GREENHOUSE_URL}/confirmation"}
        done = FakePage(url=f"{GREENHOUSE_URL}/confirmation", text="Done")
        browser = await _open(make_browser, greenhouse_page, done)

        result = await GreenhouseHandler(toolkit).submit(browser)

        assert result.success is True
        assert result.confirmation_message == "Application submitted successfully via Greenhouse"
        assert result.confirmation_screenshot.label == "confirmation"


class TestLeverHandler:
    """Tests for LeverHandler."""

    @pytest.fixture
    def lever_page(self):
        return FakePage(
            url=LEVER_URL,
            elements={'input[type="file"]': [element("input", type="file", name="resume")]},
            controls=[
                DOMControl(selector='input[name="name"]', tag="input", name="name"),
                DOMControl(selector='input[name="email"]', tag="input", input_type="email", name="email"),
                DOMControl(selector='textarea[name="comments"]', tag="textarea", name="comments"),
            ],
            cards={
                ".application-question": [
                    QuestionCard(
                        label="How many years of Python experience do you have?",
                        controls=[
                            DOMControl(
                                selector="#cards_0",
                                tag="select",
                                options=["Select...", "0-2 years", "3-5 years", "6+ years"],
                            )
                        ],
                    )
                ]
            },
        )

    @pytest.mark.asyncio
    async def test_analyze(self, make_browser, lever_page, toolkit):
        """Test Lever's full-name field and a select question card."""
        browser = await _open(make_browser, lever_page)

        analysis = await LeverHandler(toolkit).analyze_form(browser)

        assert [f.mapped_field for f in analysis.fields][:3] == ["full_name", "email", "additional_info"]
        assert len(analysis.custom_questions) == 1
        assert analysis.custom_questions[0].options == ["0-2 years", "3-5 years", "6+ years"]

    @pytest.mark.asyncio
    async def test_cover_letter_goes_to_comments(self, make_browser, lever_page, toolkit, application_data):
        """Test the cover letter text fills an empty comments box."""
        browser = await _open(make_browser, lever_page)

        result = await LeverHandler(toolkit).upload_documents(browser, application_data)

        assert result.resume_uploaded is True
        assert result.cover_letter_uploaded is False
        assert browser.filled['textarea[name="comments"]'] == application_data.cover_letter_text

    @pytest.mark.asyncio
    async def test_existing_comments_are_kept(self, make_browser, lever_page, toolkit, application_data):
        """Test comments already written are not overwritten."""
        lever_page.controls[2].value = "Referred by Sam."
        browser = await _open(make_browser, lever_page)

        await LeverHandler(toolkit).upload_documents(browser, application_data)

        assert 'textarea[name="comments"]' not in browser.filled


class TestSubmitClassification:
    """Tests for submit outcome classification."""

    def _pages(self, result_page: FakePage) -> list[FakePage]:
        form = FakePage(
            url=FORM_URL,
            elements={'button[type="submit"]': [element("button", text="Submit", type="submit")]},
            on_click={'button[type="submit"]': result_page.url},
        )
        return [form, result_page]

    @pytest.mark.asyncio
    async def test_thank_you_page_is_success(self, make_browser, toolkit):
        """Test a thank-you phrase means success."""
        pages = self._pages(FakePage(url=DONE_URL, text="Thank you for applying!"))
        browser = await _open(make_browser, *pages)

        result = await GenericHandler(toolkit).submit(browser)

        assert result.success is True
        assert result.confirmation_message == "Application submitted successfully"

    @pytest.mark.asyncio
    async def test_visible_error_is_failure(self, make_browser, toolkit):
        """Test a visible error marker without a success phrase means failure."""
        error_page = FakePage(
            url=FORM_URL + "?errors=1",
            text="Please fix the highlighted fields",
            elements={".error-message": [element("div", text="Email is invalid")]},
        )
        browser = await _open(make_browser, *self._pages(error_page))

        result = await GenericHandler(toolkit).submit(browser)

        assert result.success is False
        assert result.error == "Email is invalid"
        assert result.requires_manual_action is False

    @pytest.mark.asyncio
    async def test_navigation_without_error_is_success(self, make_browser, toolkit):
        """Test landing on a new page with no error is treated as success."""
        browser = await _open(make_browser, *self._pages(FakePage(url=DONE_URL, text="Acme Careers")))

        result = await GenericHandler(toolkit).submit(browser)

        assert result.success is True
        assert "please verify" in result.confirmation_message

    @pytest.mark.asyncio
    async def test_ambiguous_outcome_is_unverified_success(self, make_browser, toolkit):
        """Test staying on the same page with no signal is an unverified success."""
        form = FakePage(
            url=FORM_URL,
            text="Apply",
            elements={'button[type="submit"]': [element("button", text="Submit", type="submit")]},
        )
        browser = await _open(make_browser, form)

        result = await GenericHandler(toolkit).submit(browser)

        assert result.success is True
        assert result.confirmation_message == UNVERIFIED_MESSAGE

    @pytest.mark.asyncio
    async def test_captcha_after_click_needs_manual_action(self, make_browser, toolkit):
        """Test a challenge shown after submitting requires a person."""
        challenge = FakePage(
            url=DONE_URL,
            text="Thank you",
            elements={'iframe[src*="hcaptcha"]': [element("iframe")]},
        )
        browser = await _open(make_browser, *self._pages(challenge))

        result = await GenericHandler(toolkit).submit(browser)

        assert result.success is False
        assert result.requires_manual_action is True

    @pytest.mark.asyncio
    async def test_missing_submit_button(self, make_browser, toolkit):
        """Test a form without a submit control requires manual action."""
        browser = await _open(make_browser, FakePage(url=FORM_URL))

        result = await GenericHandler(toolkit).submit(browser)

        assert result.success is False
        assert result.requires_manual_action is True
        assert result.error == "Submit button not found"


class TestCaptchaDetection:
    """Tests for hasCaptcha."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "selector",
        ['iframe[src*="recaptcha"]', 'iframe[src*="hcaptcha"]', ".g-recaptcha", ".h-captcha"],
    )
    async def test_captcha_present(self, make_browser, toolkit, selector):
        """Test known CAPTCHA markers are detected."""
        page = FakePage(url=FORM_URL, elements={selector: [element("iframe")]})
        browser = await _open(make_browser, page)

        assert await GenericHandler(toolkit).has_captcha(browser) is True

    @pytest.mark.asyncio
    async def test_no_captcha(self, make_browser, toolkit, generic_form_pages):
        """Test a plain form has no CAPTCHA."""
        browser = await _open(make_browser, *generic_form_pages)

        assert await GenericHandler(toolkit).has_captcha(browser) is False
