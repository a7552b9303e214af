"""Detection of blockers that stop automatic submission."""

import logging
import re
from enum import Enum

from pydantic import BaseModel

from autoapply.browser.base import BrowserSession

logger = logging.getLogger(__name__)


class CaptchaType(str, Enum):
    """CAPTCHA families recognised on a page."""

    RECAPTCHA = "recaptcha"
    HCAPTCHA = "hcaptcha"
    CLOUDFLARE = "cloudflare"
    UNKNOWN = "unknown"


class StepInfo(BaseModel):
    """Position within a multi-step form."""

    is_multi_step: bool = False
    current_step: int | None = None
    total_steps: int | None = None


class BlockerDetector:
    """Detects CAPTCHAs and multi-step form structure on the live page.

    CAPTCHAs are never solved, only surfaced so the run can stop and a
    person can take over.
    """

    # Checked in order; the generic markers last
    CAPTCHA_SELECTORS: dict[CaptchaType, list[str]] = {
        CaptchaType.RECAPTCHA: [".g-recaptcha", "[data-recaptcha]", 'iframe[src*="recaptcha"]'],
        CaptchaType.HCAPTCHA: [".h-captcha", "[data-hcaptcha]", 'iframe[src*="hcaptcha"]'],
        CaptchaType.CLOUDFLARE: [".cf-turnstile", "[data-cf-turnstile]", 'iframe[src*="turnstile"]'],
        CaptchaType.UNKNOWN: ['[class*="captcha"]', '[id*="captcha"]'],
    }

    STEP_MARKER_SELECTORS: list[str] = [
        '[class*="step"]',
        "[data-step]",
        ".progress-step",
        ".form-step",
    ]

    STEP_TEXT_PATTERNS: list[str] = [
        r"step\s+(\d+)\s+of\s+(\d+)",
        r"page\s+(\d+)\s+of\s+(\d+)",
    ]

    async def detect_captcha(self, browser: BrowserSession) -> CaptchaType | None:
        """Detect a CAPTCHA widget or challenge iframe.

        Args:
            browser: Initialized browser session

        Returns:
            CaptchaType if a CAPTCHA is present, None otherwise
        """
        for captcha_type, selectors in self.CAPTCHA_SELECTORS.items():
            for selector in selectors:
                if await browser.exists(selector):
                    logger.info(f"Detected {captcha_type.value} CAPTCHA (selector: {selector})")
                    return captcha_type
        return None

    async def has_captcha(self, browser: BrowserSession) -> bool:
        return await self.detect_captcha(browser) is not None

    async def detect_steps(self, browser: BrowserSession) -> StepInfo:
        """Detect whether the form spans multiple steps.

        "Step X of Y" text gives the position; otherwise more than one
        step marker element is enough to call the form multi-step.
        """
        page_text = (await browser.get_body_text()).lower()
        for pattern in self.STEP_TEXT_PATTERNS:
            match = re.search(pattern, page_text)
            if match:
                current, total = int(match.group(1)), int(match.group(2))
                logger.info(f"Multi-step form detected ({current} of {total})")
                return StepInfo(is_multi_step=total > 1, current_step=current, total_steps=total)

        markers = 0
        for selector in self.STEP_MARKER_SELECTORS:
            markers += len(await browser.query_all(selector))
        return StepInfo(is_multi_step=markers > 1)

