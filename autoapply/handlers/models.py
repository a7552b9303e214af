"""Models shared by the ATS handlers.

Kept separate from the handlers to avoid circular imports with the
controller and the AI responder.
"""

from enum import Enum

from pydantic import BaseModel, Field

from autoapply.browser.models import FilePayload, ScreenshotRef


class FieldKind(str, Enum):
    """Kinds of form control the handlers know how to fill."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    FILE = "file"
    DATE = "date"
    NUMBER = "number"


CHOICE_KINDS = {FieldKind.SELECT, FieldKind.RADIO, FieldKind.CHECKBOX}
TEXT_KINDS = {
    FieldKind.TEXT,
    FieldKind.EMAIL,
    FieldKind.PHONE,
    FieldKind.TEXTAREA,
    FieldKind.DATE,
    FieldKind.NUMBER,
}


class FieldInfo(BaseModel):
    """One discovered form control. Rebuilt on every analysis."""

    kind: FieldKind
    selector: str
    label: str = ""
    required: bool = False
    options: list[str] = Field(default_factory=list)
    option_selectors: dict[str, str] = Field(default_factory=dict)  # radio/checkbox label -> selector
    checked_options: list[str] = Field(default_factory=list)
    value: str | None = None
    checked: bool = False
    max_length: int | None = None
    mapped_field: str | None = None  # ApplicationData attribute name


class CustomQuestion(BaseModel):
    """A labeled control that no ApplicationData attribute answers."""

    question: str
    selector: str
    kind: FieldKind = FieldKind.TEXT
    options: list[str] = Field(default_factory=list)
    required: bool = False
    max_length: int | None = None


class FormAnalysis(BaseModel):
    """Structural model of the form on the current page."""

    fields: list[FieldInfo] = Field(default_factory=list)
    has_file_upload: bool = False
    custom_questions: list[CustomQuestion] = Field(default_factory=list)
    submit_selector: str | None = None
    is_multi_step: bool = False
    current_step: int | None = None
    total_steps: int | None = None

    @property
    def has_more_steps(self) -> bool:
        """Whether a multi-step form has steps left before the final submit."""
        if not self.is_multi_step:
            return False
        if self.current_step is not None and self.total_steps is not None:
            return self.current_step < self.total_steps
        return self.submit_selector is None


class FillResult(BaseModel):
    """Result of filling the form."""

    fields_filled: int = 0
    fields_total: int = 0
    errors: list[str] = Field(default_factory=list)


class UploadResult(BaseModel):
    """Result of attaching documents."""

    resume_uploaded: bool = False
    cover_letter_uploaded: bool = False
    errors: list[str] = Field(default_factory=list)


class SubmitResult(BaseModel):
    """Outcome of a submit attempt."""

    success: bool
    confirmation_message: str | None = None
    confirmation_screenshot: ScreenshotRef | None = None
    application_id: str | None = None
    error: str | None = None
    requires_manual_action: bool = False
    manual_action_reason: str | None = None


class DocumentFile(BaseModel):
    """A generated document ready to attach."""

    filename: str
    content: bytes
    mime_type: str = "application/pdf"

    def to_payload(self) -> FilePayload:
        return FilePayload(name=self.filename, mime_type=self.mime_type, content=self.content)


class ApplicationData(BaseModel):
    """Flattened, form-fillable view of the applicant for one run."""

    # Personal info
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None
    location: str | None = None

    # Links
    portfolio_url: str | None = None
    linkedin_url: str | None = None
    website_url: str | None = None
    github_url: str | None = None
    dribbble_url: str | None = None
    behance_url: str | None = None

    # Documents
    resume: DocumentFile | None = None
    cover_letter: DocumentFile | None = None
    cover_letter_text: str | None = None

    # Work authorization
    work_authorization: str | None = None
    requires_sponsorship: bool | None = None

    # Experience
    years_of_experience: int | None = None
    current_company: str | None = None
    current_title: str | None = None

    # Additional
    salary: str | None = None
    start_date: str | None = None
    heard_about: str | None = None
    additional_info: str | None = None

    # Field selector -> generated answer
    custom_responses: dict[str, str] = Field(default_factory=dict)

    def value_for(self, attribute: str) -> str | None:
        """Get a fillable string for a mapped attribute.

        Args:
            attribute: ApplicationData attribute name

        Returns:
            String value, "Yes"/"No" for flags, or None when unset
        """
        value = getattr(self, attribute, None)
        if value is None or isinstance(value, (DocumentFile, dict)):
            return None
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, int):
            return str(value)
        return value or None
