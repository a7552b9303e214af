"""Build the form-fillable ApplicationData for one run."""

from autoapply.handlers.models import ApplicationData, DocumentFile
from autoapply.models import AutoApplyInput


def split_name(full_name: str) -> tuple[str, str]:
    """Split on the first space; everything after it is the last name."""
    parts = full_name.strip().split(" ", 1)
    first = parts[0] if parts else ""
    last = parts[1].strip() if len(parts) > 1 else ""
    return first, last


def build_application_data(
    input: AutoApplyInput,
    resume: DocumentFile | None = None,
    cover_letter: DocumentFile | None = None,
) -> ApplicationData:
    """Flatten the applicant profile, resume data and documents.

    Profile contact details and links win over the resume's copies.

    Args:
        input: Run input
        resume: Rendered resume
        cover_letter: Rendered cover letter

    Returns:
        ApplicationData without custom responses
    """
    profile = input.applicant_profile
    resume_data = input.resume_data
    first_name, last_name = split_name(profile.full_name)

    return ApplicationData(
        first_name=first_name,
        last_name=last_name,
        full_name=profile.full_name,
        email=profile.email,
        phone=profile.phone or resume_data.phone,
        location=profile.location or resume_data.location,
        portfolio_url=profile.portfolio_url or resume_data.portfolio_url,
        linkedin_url=profile.linkedin_url or resume_data.linkedin_url,
        github_url=profile.github_url,
        website_url=profile.website_url,
        resume=resume,
        cover_letter=cover_letter,
        cover_letter_text=input.cover_letter_content or None,
        work_authorization=profile.work_authorization,
        requires_sponsorship=profile.requires_sponsorship,
        years_of_experience=profile.years_of_experience,
        current_company=profile.current_company,
        current_title=profile.current_title,
        salary=profile.salary_expectation,
        start_date=profile.available_start_date,
        heard_about=profile.heard_about_source,
    )
