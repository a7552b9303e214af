"""Run inputs and the auto-apply session record."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from autoapply.browser.models import ActionLogEntry, ScreenshotRef
from autoapply.detection.ats_detector import ATSType
from autoapply.handlers.models import CustomQuestion, SubmitResult

# ============================================================================
# Applicant and Job
# ============================================================================


class WorkExperience(BaseModel):
    """A prior role used to answer questions."""

    company: str
    title: str
    description: str | None = None
    highlights: list[str] = Field(default_factory=list)


class ApplicantProfile(BaseModel):
    """Applicant identity and work history for one run."""

    model_config = {"frozen": True}

    full_name: str
    email: str
    headline: str | None = None
    summary: str | None = None
    skills: list[str] = Field(default_factory=list)
    years_of_experience: int | None = Field(default=None, ge=0)
    current_company: str | None = None
    current_title: str | None = None
    experiences: list[WorkExperience] = Field(default_factory=list)

    # Contact and links
    phone: str | None = None
    location: str | None = None
    linkedin_url: str | None = None
    portfolio_url: str | None = None
    github_url: str | None = None
    website_url: str | None = None

    education: str | None = None
    languages: list[str] = Field(default_factory=list)

    # Screening answers
    work_authorization: str | None = None
    work_authorized: bool = True
    requires_sponsorship: bool = False
    willing_to_relocate: bool = False
    remote_preference: str | None = None  # remote, hybrid, onsite, flexible
    salary_expectation: str | None = None
    available_start_date: str | None = None
    heard_about_source: str | None = None


class JobContext(BaseModel):
    """Target posting."""

    model_config = {"frozen": True}

    title: str
    company: str
    description: str = ""
    requirements: list[str] = Field(default_factory=list)


# ============================================================================
# Document Inputs
# ============================================================================


class ResumeExperience(BaseModel):
    company: str
    title: str
    location: str | None = None
    start_date: str
    end_date: str | None = None
    is_current: bool = False
    description: str | None = None
    highlights: list[str] = Field(default_factory=list)


class ResumeEducation(BaseModel):
    institution: str
    degree: str
    field_of_study: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    gpa: str | None = None


class ResumeData(BaseModel):
    """Structured resume content rendered into the uploaded resume."""

    full_name: str
    email: str
    phone: str | None = None
    location: str | None = None
    portfolio_url: str | None = None
    linkedin_url: str | None = None
    summary: str | None = None
    skills: list[str] = Field(default_factory=list)
    experiences: list[ResumeExperience] = Field(default_factory=list)
    education: list[ResumeEducation] = Field(default_factory=list)


class CoverLetterData(BaseModel):
    """Fields rendered into the uploaded cover letter."""

    full_name: str
    email: str
    phone: str | None = None
    date: str = Field(default_factory=lambda: datetime.now().strftime("%B %d, %Y"))
    company_name: str
    hiring_manager_name: str | None = None
    job_title: str
    content: str


class AutoApplyInput(BaseModel):
    """Everything one auto-apply run needs."""

    job_url: str
    job_title: str
    company_name: str
    job_description: str = ""
    applicant_profile: ApplicantProfile
    resume_data: ResumeData
    cover_letter_content: str = ""

    def job_context(self) -> JobContext:
        return JobContext(title=self.job_title, company=self.company_name, description=self.job_description)


# ============================================================================
# Session
# ============================================================================


class AutoApplyStatus(str, Enum):
    """Run state. The last four are terminal."""

    PENDING = "pending"
    NAVIGATING = "navigating"
    DETECTING = "detecting"
    FILLING = "filling"
    UPLOADING = "uploading"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"
    CAPTCHA = "captcha"
    MANUAL = "manual"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = {
    AutoApplyStatus.COMPLETED,
    AutoApplyStatus.FAILED,
    AutoApplyStatus.CAPTCHA,
    AutoApplyStatus.MANUAL,
}


class AutoApplySession(BaseModel):
    """Full record of one auto-apply run."""

    id: str
    status: AutoApplyStatus = AutoApplyStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = "Initializing"
    ats_detected: ATSType | None = None
    ats_confidence: float | None = None
    handler_name: str | None = None
    fields_total: int = 0
    fields_filled: int = 0
    custom_questions: list[CustomQuestion] = Field(default_factory=list)
    screenshots: list[ScreenshotRef] = Field(default_factory=list)
    action_log: list[ActionLogEntry] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    result: SubmitResult | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None