"""Page classification: ATS vendor detection and apply-page discovery."""

from autoapply.detection.apply_page import find_apply_target, is_application_page
from autoapply.detection.ats_detector import ATSDetector, ATSSignature, ATSType, DetectionResult

__all__ = [
    "ATSDetector",
    "ATSSignature",
    "ATSType",
    "DetectionResult",
    "find_apply_target",
    "is_application_page",
]
