"""ATS-specific handlers for form analysis, filling and submission.

Importing this package registers every handler with HandlerRegistry.
"""

from autoapply.handlers.base import ATSHandler
from autoapply.handlers.common import FormToolkit
from autoapply.handlers.generic import GenericHandler
from autoapply.handlers.greenhouse import GreenhouseHandler
from autoapply.handlers.lever import LeverHandler
from autoapply.handlers.models import (
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
from autoapply.handlers.registry import HandlerRegistry

__all__ = [
    "ATSHandler",
    "ApplicationData",
    "CustomQuestion",
    "DocumentFile",
    "FieldInfo",
    "FieldKind",
    "FillResult",
    "FormAnalysis",
    "FormToolkit",
    "GenericHandler",
    "GreenhouseHandler",
    "HandlerRegistry",
    "LeverHandler",
    "SubmitResult",
    "UploadResult",
]
