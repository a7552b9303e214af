"""Exceptions raised by the auto-apply engine."""


class AutoApplyError(Exception):
    """Base error for the auto-apply engine."""

    pass


class BrowserError(AutoApplyError):
    """Browser session error."""

    pass


class BrowserInitializationError(BrowserError):
    """The browser could not be launched."""

    pass


class BrowserNotInitializedError(BrowserError):
    """A browser command was issued before initialize()."""

    pass


class NavigationError(AutoApplyError):
    """The target page could not be loaded."""

    pass


class CompletionError(AutoApplyError):
    """The text-completion backend failed or is not configured."""

    pass


class DocumentGenerationError(AutoApplyError):
    """A resume or cover-letter document could not be rendered."""

    pass


class FieldFillError(AutoApplyError):
    """A single form field could not be filled."""

    pass
