"""Pydantic models for the browser session service."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from autoapply.config import Settings


class BrowserAction(str, Enum):
    """Browser action types for the action log."""

    INITIALIZE = "initialize"
    NAVIGATE = "navigate"
    SCREENSHOT = "screenshot"
    WAIT_FOR_SELECTOR = "wait_for_selector"
    CLICK = "click"
    FILL = "fill"
    UPLOAD = "upload"
    SELECT = "select"
    GET_CONTENT = "get_content"
    GET_URL = "get_url"
    WAIT = "wait"
    CLOSE = "close"


class ActionResult(str, Enum):
    """Outcome recorded for a logged action."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


# ============================================================================
# Session Configuration
# ============================================================================


class BrowserConfig(BaseModel):
    """Launch and context options for one browser session."""

    headless: bool = True
    slow_mo: int = Field(default=0, ge=0, le=1000, description="Slow motion delay in ms")
    timeout: int = Field(default=30000, ge=1000, le=120000, description="Default timeout in ms")
    viewport_width: int = Field(default=1280, ge=320)
    viewport_height: int = Field(default=800, ge=240)
    user_agent: str | None = None
    locale: str = "en-US"
    timezone_id: str = "America/New_York"
    wait_until: str = "networkidle"
    post_navigation_wait_ms: int = Field(default=1000, ge=0)
    screenshot_dir: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "BrowserConfig":
        """Build a session config from application settings."""
        return cls(
            headless=settings.playwright_headless,
            slow_mo=settings.playwright_slow_mo,
            timeout=settings.browser_timeout,
            viewport_width=settings.browser_viewport_width,
            viewport_height=settings.browser_viewport_height,
            user_agent=settings.browser_user_agent,
            locale=settings.browser_locale,
            timezone_id=settings.browser_timezone,
            wait_until=settings.navigation_wait_until,
            post_navigation_wait_ms=settings.post_navigation_wait_ms,
            screenshot_dir=settings.screenshot_dir,
        )


# ============================================================================
# Audit Trail
# ============================================================================


class ScreenshotRef(BaseModel):
    """Opaque reference to a captured screenshot.

    ``uri`` is either a ``data:image/png;base64,...`` URL or a file path,
    depending on how the session was configured.
    """

    label: str
    uri: str
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ActionLogEntry(BaseModel):
    """One entry of a session's chronological action log."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action: BrowserAction
    result: ActionResult
    details: str | None = None
    screenshot: ScreenshotRef | None = None


# ============================================================================
# Page Inspection
# ============================================================================


class FilePayload(BaseModel):
    """In-memory file handed to a file input."""

    name: str
    mime_type: str = "application/pdf"
    content: bytes


class ElementInfo(BaseModel):
    """Snapshot of a single matched element."""

    tag: str
    text: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    value: str | None = None
    visible: bool = True

    def attr(self, name: str) -> str | None:
        """Get an attribute value, or None when absent."""
        return self.attributes.get(name)


class DOMControl(BaseModel):
    """A form control as extracted from the live DOM."""

    selector: str
    tag: str  # input, textarea, select
    input_type: str = "text"
    element_id: str | None = None
    name: str | None = None
    label: str | None = None
    placeholder: str | None = None
    required: bool = False
    options: list[str] = Field(default_factory=list)
    value: str | None = None
    checked: bool = False
    accept: str | None = None
    max_length: int | None = None
    group_label: str | None = None  # fieldset legend for radio groups
    in_form: bool = True
    visible: bool = True


class QuestionCard(BaseModel):
    """A vendor question container: its label and the controls inside it."""

    label: str
    controls: list[DOMControl] = Field(default_factory=list)
