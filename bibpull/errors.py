"""Custom exceptions for bibpull."""

from typing import Optional


class BibpullError(Exception):
    """Base exception for bibpull errors."""
    pass


class TranslationError(BibpullError):
    """A translator or download failed.

    Raised at the translator boundary only, already classified as either
    :class:`PermanentError` or :class:`TransientError`. The pipeline acts on
    the class and never inspects the message.
    """

    permanent = True


class PermanentError(TranslationError):
    """The input can never succeed with this source (bad syntax, not found, no access)."""

    permanent = True


class TransientError(TranslationError):
    """Retryable failure (timeout, connection error, rate limit, upstream 5xx)."""

    permanent = False

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class BibliographyError(BibpullError):
    """A bibliography file could not be read or parsed."""
    pass


class ConfigError(BibpullError):
    """Configuration file or value is invalid."""
    pass
