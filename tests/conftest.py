"""Pytest configuration and fixtures."""

import os
from dataclasses import dataclass, field
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment
os.environ["APP_ENV"] = "development"

from autoapply.ai.completion import CompletionClient  # noqa: E402
from autoapply.browser.base import BrowserSession  # noqa: E402
from autoapply.browser.models import (  # noqa: E402
    BrowserConfig,
    DOMControl,
    ElementInfo,
    FilePayload,
    QuestionCard,
)
from autoapply.config import Settings  # noqa: E402
from autoapply.documents import DocumentRenderer  # noqa: E402
from autoapply.models import (  # noqa: E402
    ApplicantProfile,
    AutoApplyInput,
    CoverLetterData,
    JobContext,
    ResumeData,
    ResumeExperience,
    WorkExperience,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


# ============================================================================
# Scripted browser
# ============================================================================


@dataclass
class FakePage:
    """A scripted page: what the browser sees at one URL."""

    url: str
    html: str = "<html><body></body></html>"
    text: str = ""
    elements: dict[str, list[ElementInfo]] = field(default_factory=dict)
    controls: list[DOMControl] = field(default_factory=list)
    cards: dict[str, list[QuestionCard]] = field(default_factory=dict)
    on_click: dict[str, str] = field(default_factory=dict)  # selector -> URL of the page shown after the click


class FakeBrowser(BrowserSession):
    """In-memory BrowserSession over a set of FakePages.

    Selectors are looked up literally; comma-separated selectors match
    any of their parts. Form controls are addressable by their own
    selector, and clicks/fills update them so re-analysis sees the
    live state.
    """

    def __init__(self, pages: list[FakePage], fail_launch: bool = False, config: BrowserConfig | None = None):
        super().__init__(config or BrowserConfig(post_navigation_wait_ms=0))
        self.pages = {page.url: page for page in pages}
        self.page: FakePage | None = None
        self.fail_launch = fail_launch
        self.filled: dict[str, str] = {}
        self.selected: dict[str, str] = {}
        self.clicked: list[str] = []
        self.uploaded: dict[str, FilePayload] = {}
        self.waits: list[int] = []
        self.close_calls = 0
        self.shutdown_calls = 0

    @property
    def adapter_name(self) -> str:
        return "fake"

    async def close(self) -> None:
        self.close_calls += 1
        await super().close()

    async def _launch(self) -> None:
        if self.fail_launch:
            raise RuntimeError("Executable doesn't exist")

    async def _shutdown(self) -> None:
        self.shutdown_calls += 1

    async def _goto(self, url: str) -> None:
        if url not in self.pages:
            raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self.page = self.pages[url]

    async def _sleep(self, ms: int) -> None:
        self.waits.append(ms)

    async def _capture_png(self) -> bytes:
        return PNG_BYTES

    async def _wait_for(self, selector: str, timeout: int) -> None:
        if not await self._query_all(selector):
            raise TimeoutError(f"Timeout {timeout}ms exceeded")

    async def _click(self, selector: str) -> None:
        await self._require_present(selector)
        self.clicked.append(selector)

        control = self._control(selector)
        if control is not None and control.input_type == "checkbox":
            control.checked = not control.checked
        elif control is not None and control.input_type == "radio":
            for other in self._all_controls():
                if other.input_type == "radio" and other.name == control.name:
                    other.checked = other is control

        target = self.page.on_click.get(selector)
        if target:
            self.page = self.pages[target]

    async def _fill(self, selector: str, value: str) -> None:
        await self._require_present(selector)
        self.filled[selector] = value
        control = self._control(selector)
        if control is not None:
            control.value = value
        for element in self.page.elements.get(selector, []):
            element.value = value

    async def _set_input_files(self, selector: str, payload: FilePayload) -> None:
        await self._require_present(selector)
        self.uploaded[selector] = payload

    async def _select_option(self, selector: str, label: str) -> None:
        await self._require_present(selector)
        control = self._control(selector)
        if control is not None and label not in control.options:
            raise ValueError(f"No option {label!r}")
        self.selected[selector] = label
        if control is not None:
            control.value = label

    async def _content(self) -> str:
        return self._current().html

    async def _url(self) -> str:
        return self.page.url if self.page else "about:blank"

    async def _query_all(self, selector: str) -> list[ElementInfo]:
        if self.page is None:
            return []
        matches: list[ElementInfo] = []
        for part in (p.strip() for p in selector.split(",")):
            matches.extend(self.page.elements.get(part, []))
            for control in self._all_controls():
                if control.selector == part:
                    matches.append(self._as_element(control))
        return matches

    async def _body_text(self) -> str:
        return self._current().text

    async def _controls(self) -> list[DOMControl]:
        return list(self._current().controls)

    async def _question_cards(self, card_selector: str, label_selector: str) -> list[QuestionCard]:
        return list(self._current().cards.get(card_selector, []))

    # helpers

    def _current(self) -> FakePage:
        if self.page is None:
            raise RuntimeError("No page loaded")
        return self.page

    def _all_controls(self) -> list[DOMControl]:
        if self.page is None:
            return []
        controls = list(self.page.controls)
        for cards in self.page.cards.values():
            for card in cards:
                controls.extend(card.controls)
        return controls

    def _control(self, selector: str) -> DOMControl | None:
        for control in self._all_controls():
            if control.selector == selector:
                return control
        return None

    async def _require_present(self, selector: str) -> None:
        if not await self._query_all(selector):
            raise RuntimeError(f"No element matches {selector}")

    @staticmethod
    def _as_element(control: DOMControl) -> ElementInfo:
        attributes = {"type": control.input_type}
        if control.name:
            attributes["name"] = control.name
        if control.element_id:
            attributes["id"] = control.element_id
        if control.required:
            attributes["required"] = ""
        return ElementInfo(tag=control.tag, attributes=attributes, value=control.value, visible=control.visible)


class FakeRenderer(DocumentRenderer):
    """Renderer returning tiny placeholder PDFs."""

    def render_resume(self, data: ResumeData) -> bytes:
        return b"%PDF-1.4 resume"

    def render_cover_letter(self, data: CoverLetterData) -> bytes:
        return b"%PDF-1.4 cover letter"


def element(tag: str, text: str = "", visible: bool = True, **attributes: str) -> ElementInfo:
    return ElementInfo(tag=tag, text=text, attributes=attributes, visible=visible)


# ============================================================================
# Fixtures: browser
# ============================================================================


@pytest.fixture
def make_browser():
    """Build a FakeBrowser over the given pages."""

    def _make(*pages: FakePage, **kwargs) -> FakeBrowser:
        return FakeBrowser(list(pages), **kwargs)

    return _make


@pytest.fixture
def make_element():
    return element


@pytest.fixture
def generic_form_pages():
    """A vendor-less form with a text input, a file input and a submit button."""
    form = FakePage(
        url="https://careers.example.com/jobs/42/apply",
        html="<html><body><form><input id='full_name'><input type='file' id='resume'></form></body></html>",
        text="Apply for this position. Personal information",
        elements={
            "form": [element("form")],
            'input[type="file"]': [element("input", type="file")],
            'button[type="submit"]': [element("button", text="Submit", type="submit")],
        },
        controls=[
            DOMControl(selector="#full_name", tag="input", element_id="full_name", label="Full Name", required=True),
            DOMControl(selector="#resume", tag="input", input_type="file", element_id="resume", label="Resume/CV"),
        ],
        on_click={'button[type="submit"]': "https://careers.example.com/jobs/42/done"},
    )
    done = FakePage(
        url="https://careers.example.com/jobs/42/done",
        text="Your application received. We will be in touch.",
    )
    return [form, done]


@pytest.fixture
def captcha_page():
    return FakePage(
        url="https://careers.example.com/jobs/7/apply",
        text="Submit your application. Personal information",
        elements={
            "form": [element("form")],
            'input[type="email"]': [element("input", type="email")],
            ".g-recaptcha": [element("div")],
        },
        controls=[DOMControl(selector="#email", tag="input", input_type="email", label="Email")],
    )


# ============================================================================
# Fixtures: run inputs
# ============================================================================


@pytest.fixture
def profile():
    """Sample applicant profile."""
    return ApplicantProfile(
        full_name="Jane Doe",
        email="jane@example.com",
        headline="Senior Backend Engineer",
        summary="Backend engineer building data-heavy Python services.",
        skills=["Python", "PostgreSQL", "AWS", "Kubernetes"],
        years_of_experience=6,
        current_company="Globex",
        current_title="Senior Engineer",
        experiences=[
            WorkExperience(
                company="Globex",
                title="Senior Engineer",
                highlights=["Cut API latency by 40%", "Led migration to Kubernetes"],
            )
        ],
        phone="+1 555 0100",
        location="Boston, MA",
        linkedin_url="https://linkedin.com/in/janedoe",
    )


@pytest.fixture
def job():
    """Sample job context."""
    return JobContext(
        title="Staff Engineer",
        company="Acme",
        description="Acme is hiring a Staff Engineer to scale its Python platform.",
    )


@pytest.fixture
def resume_data():
    return ResumeData(
        full_name="Jane Doe",
        email="jane@example.com",
        phone="+1 555 0199",
        location="Remote",
        summary="Backend engineer with six years of Python experience.",
        skills=["Python", "PostgreSQL"],
        experiences=[
            ResumeExperience(
                company="Globex",
                title="Senior Engineer",
                start_date="2020",
                is_current=True,
                highlights=["Cut API latency by 40%"],
            )
        ],
    )


@pytest.fixture
def apply_input(profile, resume_data):
    def _make(job_url: str, cover_letter_content: str = "") -> AutoApplyInput:
        return AutoApplyInput(
            job_url=job_url,
            job_title="Staff Engineer",
            company_name="Acme",
            job_description="Acme is hiring a Staff Engineer to scale its Python platform.",
            applicant_profile=profile,
            resume_data=resume_data,
            cover_letter_content=cover_letter_content,
        )

    return _make


# ============================================================================
# Fixtures: collaborators
# ============================================================================


@pytest.fixture
def test_settings():
    """Settings with every fixed wait disabled."""
    return Settings(
        anthropic_api_key=None,
        openrouter_api_key=None,
        bedrock_enabled=False,
        field_fill_delay_ms=0,
        apply_click_wait_ms=0,
        post_navigation_wait_ms=0,
        post_upload_wait_ms=0,
        post_submit_wait_ms=0,
        pre_submit_screenshot_wait_ms=0,
        step_transition_wait_ms=0,
    )


@pytest.fixture
def mock_completion_client():
    """Completion client whose replies are set per test."""
    client = AsyncMock(spec=CompletionClient)
    client.complete.return_value = "I bring six years of Python platform work that maps directly to this role."
    return client


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def mock_anthropic_response():
    """Create a mock Anthropic API response."""

    def _create_response(text: str, input_tokens: int = 100, output_tokens: int = 200):
        mock_response = MagicMock()
        mock_response.content = [MagicMock(type="text", text=text)]
        mock_response.usage = MagicMock(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        return mock_response

    return _create_response
