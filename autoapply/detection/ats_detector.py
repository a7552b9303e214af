"""ATS vendor classification from URL, DOM markers and page content."""

import logging
import re
from enum import Enum

from pydantic import BaseModel, Field

from autoapply.browser.base import BrowserSession

logger = logging.getLogger(__name__)


class ATSType(str, Enum):
    """Known applicant tracking systems."""

    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    WORKDAY = "workday"
    ASHBY = "ashby"
    BAMBOOHR = "bamboohr"
    SMARTRECRUITERS = "smartrecruiters"
    ICIMS = "icims"
    TALEO = "taleo"
    JOBVITE = "jobvite"
    GENERIC = "generic"


class ATSSignature(BaseModel):
    """Signals identifying one vendor."""

    url_patterns: list[str] = Field(default_factory=list)
    dom_markers: list[str] = Field(default_factory=list)
    content_patterns: list[str] = Field(default_factory=list)


class DetectionResult(BaseModel):
    """Best-guess vendor for the current page."""

    type: ATSType
    confidence: float = Field(ge=0.0, le=1.0)
    indicators: list[str] = Field(default_factory=list)


class ATSDetector:
    """Scores the current page against every known vendor signature.

    URL matches weigh +0.6 each, DOM markers +0.25 each and content
    matches +0.15 each, capped at 1.0. When no vendor reaches
    ``MIN_VENDOR_CONFIDENCE`` the page is classified as generic.
    """

    URL_WEIGHT = 0.6
    DOM_WEIGHT = 0.25
    CONTENT_WEIGHT = 0.15
    MIN_VENDOR_CONFIDENCE = 0.3
    GENERIC_FORM_CONFIDENCE = 0.5
    GENERIC_FALLBACK_CONFIDENCE = 0.3

    SIGNATURES: dict[ATSType, ATSSignature] = {
        ATSType.GREENHOUSE: ATSSignature(
            url_patterns=[r"greenhouse\.io", r"boards\.greenhouse\.io", r"grnh\.se"],
            dom_markers=[
                "#grnhse_app",
                "[data-greenhouse]",
                ".greenhouse-application",
                'script[src*="greenhouse"]',
            ],
            content_patterns=[r"greenhouse"],
        ),
        ATSType.LEVER: ATSSignature(
            url_patterns=[r"lever\.co", r"jobs\.lever\.co"],
            dom_markers=[".lever-application", "[data-lever]", ".posting-page", 'script[src*="lever"]'],
            content_patterns=[r"lever"],
        ),
        ATSType.WORKDAY: ATSSignature(
            url_patterns=[r"workday\.com", r"myworkdayjobs\.com", r"wd\d+\.myworkday"],
            dom_markers=["[data-automation-id]", '[class*="WD-"]', '[class*="workday"]', ".WDPO"],
            content_patterns=[r"workday"],
        ),
        ATSType.ASHBY: ATSSignature(
            url_patterns=[r"ashbyhq\.com", r"jobs\.ashbyhq\.com"],
            dom_markers=["[data-ashby]", ".ashby-application", 'script[src*="ashby"]'],
            content_patterns=[r"ashby"],
        ),
        ATSType.BAMBOOHR: ATSSignature(
            url_patterns=[r"bamboohr\.com"],
            dom_markers=['[class*="BambooHR-"]', '[class*="bamboo"]', "#BambooHR"],
            content_patterns=[r"bamboohr"],
        ),
        ATSType.SMARTRECRUITERS: ATSSignature(
            url_patterns=[r"smartrecruiters\.com", r"jobs\.smartrecruiters\.com"],
            dom_markers=["[data-smartrecruiters]", '[class*="sr-"]', 'script[src*="smartrecruiters"]'],
            content_patterns=[r"smartrecruiters"],
        ),
        ATSType.ICIMS: ATSSignature(
            url_patterns=[r"icims\.com", r"\.icims\."],
            dom_markers=['[class*="icims-"]', '[class*="icims"]', "#icims"],
            content_patterns=[r"icims"],
        ),
        ATSType.TALEO: ATSSignature(
            url_patterns=[r"taleo\.net", r"taleo\.com"],
            dom_markers=['[class*="taleo-"]', '[class*="taleo"]', "#taleo"],
            content_patterns=[r"taleo"],
        ),
        ATSType.JOBVITE: ATSSignature(
            url_patterns=[r"jobvite\.com", r"jobs\.jobvite\.com"],
            dom_markers=['[class*="jv-"]', '[class*="jobvite"]', "#jobvite-application"],
            content_patterns=[r"jobvite"],
        ),
    }

    async def detect(self, browser: BrowserSession) -> DetectionResult:
        """Classify the page currently loaded in the session.

        Args:
            browser: Initialized browser session

        Returns:
            DetectionResult with the winning vendor, or generic
        """
        url = await browser.get_current_url()
        content = await browser.get_page_content()

        best_type = ATSType.GENERIC
        best_confidence = 0.0
        best_indicators: list[str] = []

        for ats_type, signature in self.SIGNATURES.items():
            confidence, indicators = await self._score(browser, signature, url, content)
            if confidence > best_confidence:
                best_type = ats_type
                best_confidence = min(confidence, 1.0)
                best_indicators = indicators

        if best_confidence < self.MIN_VENDOR_CONFIDENCE:
            return await self._generic_result(browser)

        logger.info(f"Detected ATS {best_type.value} (confidence={best_confidence:.2f})")
        return DetectionResult(type=best_type, confidence=best_confidence, indicators=best_indicators)

    async def _score(
        self,
        browser: BrowserSession,
        signature: ATSSignature,
        url: str,
        content: str,
    ) -> tuple[float, list[str]]:
        confidence = 0.0
        indicators: list[str] = []

        for pattern in signature.url_patterns:
            if re.search(pattern, url, re.IGNORECASE):
                confidence += self.URL_WEIGHT
                indicators.append(f"URL matches: {pattern}")

        for selector in signature.dom_markers:
            if await browser.exists(selector):
                confidence += self.DOM_WEIGHT
                indicators.append(f"DOM element found: {selector}")

        for pattern in signature.content_patterns:
            if re.search(pattern, content, re.IGNORECASE):
                confidence += self.CONTENT_WEIGHT
                indicators.append(f"Content matches: {pattern}")

        return round(confidence, 4), indicators

    async def _generic_result(self, browser: BrowserSession) -> DetectionResult:
        has_form = await browser.exists("form")
        has_file_input = await browser.exists('input[type="file"]')

        if has_form and has_file_input:
            logger.info("No ATS detected, generic application form found")
            return DetectionResult(
                type=ATSType.GENERIC,
                confidence=self.GENERIC_FORM_CONFIDENCE,
                indicators=["Generic application form detected"],
            )

        logger.info("No ATS detected, using generic handler")
        return DetectionResult(
            type=ATSType.GENERIC,
            confidence=self.GENERIC_FALLBACK_CONFIDENCE,
            indicators=["No specific ATS detected, using generic handler"],
        )
