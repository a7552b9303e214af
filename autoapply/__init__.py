"""Automated job application engine.

This package provides:
- ApplyController: Drives one application from job URL to submission
- Browser sessions: Logged, fail-soft browser commands (Playwright)
- ATS detection and handlers: Greenhouse, Lever and a generic fallback
- AIResponder: Answers for custom screening questions
"""

from autoapply.controller import ApplyController, run_auto_apply
from autoapply.models import (
    ApplicantProfile,
    AutoApplyInput,
    AutoApplySession,
    AutoApplyStatus,
    CoverLetterData,
    JobContext,
    ResumeData,
    WorkExperience,
)
from autoapply.session_store import SessionStore

__all__ = [
    # Controller
    "ApplyController",
    "run_auto_apply",
    # Models
    "ApplicantProfile",
    "AutoApplyInput",
    "AutoApplySession",
    "AutoApplyStatus",
    "CoverLetterData",
    "JobContext",
    "ResumeData",
    "WorkExperience",
    # Sessions
    "SessionStore",
]
