"""Browser session service."""

from autoapply.browser.base import BrowserSession
from autoapply.browser.models import (
    ActionLogEntry,
    ActionResult,
    BrowserAction,
    BrowserConfig,
    DOMControl,
    ElementInfo,
    FilePayload,
    QuestionCard,
    ScreenshotRef,
)
from autoapply.browser.playwright_session import PlaywrightSession

__all__ = [
    "ActionLogEntry",
    "ActionResult",
    "BrowserAction",
    "BrowserConfig",
    "BrowserSession",
    "DOMControl",
    "ElementInfo",
    "FilePayload",
    "PlaywrightSession",
    "QuestionCard",
    "ScreenshotRef",
]
