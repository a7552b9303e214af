"""Decide whether a page is an application form, or find the way to one."""

import logging
from urllib.parse import urljoin

from autoapply.browser.base import BrowserSession
from autoapply.config import settings

logger = logging.getLogger(__name__)

APPLICATION_PAGE_SELECTORS: list[str] = [
    "form",
    'input[type="file"]',
    'input[type="email"]',
    'button[type="submit"]',
    'button:has-text("Submit")',
    'button:has-text("Apply")',
    '[class*="application"]',
    '[id*="application"]',
]

APPLICATION_PAGE_PHRASES: list[str] = [
    "submit your application",
    "apply for this",
    "upload your resume",
    "personal information",
    "contact information",
]

APPLY_CONTROL_SELECTORS: list[str] = [
    'a:has-text("Apply")',
    'a:has-text("Apply Now")',
    'a:has-text("Apply for this job")',
    'button:has-text("Apply")',
    'button:has-text("Apply Now")',
    '[class*="apply-button"]',
    '[id*="apply-button"]',
    'a[href*="apply"]',
]

MIN_APPLICATION_SIGNALS = 3


async def is_application_page(browser: BrowserSession) -> bool:
    """Check whether the current page already looks like an application form.

    Each matching selector and each matching phrase counts as one signal.

    Args:
        browser: Initialized browser session

    Returns:
        True once at least ``MIN_APPLICATION_SIGNALS`` signals are present
    """
    score = 0
    for selector in APPLICATION_PAGE_SELECTORS:
        if await browser.exists(selector):
            score += 1

    page_text = (await browser.get_body_text()).lower()
    for phrase in APPLICATION_PAGE_PHRASES:
        if phrase in page_text:
            score += 1

    logger.debug(f"Application page score: {score}")
    return score >= MIN_APPLICATION_SIGNALS


async def find_apply_target(browser: BrowserSession) -> str | None:
    """Locate an "Apply" control on a job listing.

    Links return their absolute target URL without being followed. Buttons
    are clicked, and the URL reached after the click settles is returned.

    Args:
        browser: Initialized browser session

    Returns:
        URL of the application form, or None if no apply control was found
    """
    for selector in APPLY_CONTROL_SELECTORS:
        element = await browser.query(selector)
        if element is None:
            continue

        href = element.attr("href")
        if href and not href.startswith(("javascript:", "#", "mailto:")):
            current_url = await browser.get_current_url()
            target = urljoin(current_url, href)
            logger.info(f"Found apply link via {selector}: {target}")
            return target

        if element.tag == "button":
            if not await browser.click(selector):
                continue
            await browser.wait_for_timeout(settings.apply_click_wait_ms)
            target = await browser.get_current_url()
            logger.info(f"Clicked apply button via {selector}, now at {target}")
            return target

    logger.info("No apply control found on page")
    return None
