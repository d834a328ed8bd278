"""Custom exception hierarchy for reelcritic.

All application exceptions inherit from :class:`ReelCriticError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "sqlite_reviews") caused the failure.

The hierarchy is organized by the stage that raises it:

    ReelCriticError  (base -- catch-all for any reelcritic error)
    +-- GateRejection            (spam / rate-limit gate said no)
    +-- DuplicateReviewError     (one review per user per media)
    +-- NotFoundError            (unknown review or user id)
    +-- LLMError                 (any LLM API call failure)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- PersistenceError         (storage adapter failure)
    +-- ConfigurationError       (startup / missing config)

Each subclass declares the HTTP ``status_code`` the API layer should
answer with, so the error middleware needs no per-type mapping table.
"""

from __future__ import annotations


class ReelCriticError(Exception):
    """Base exception for all reelcritic errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Submission errors (expected, user-facing)
# ---------------------------------------------------------------------------

class GateRejection(ReelCriticError):
    """Raised when the spam/rate-limit gate refuses a submission.

    ``status_code`` is 429 for rate limits, 400 for copy-paste or
    duplicate replies, and 403 for accounts flagged for spam.
    ``wait_time`` is a human-readable hint such as ``"1 hour"`` or
    ``"12 seconds"``.
    """

    def __init__(
        self,
        message: str = "Submission rejected",
        status_code: int = 429,
        wait_time: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=None)
        self.status_code = status_code
        self._wait_time = wait_time

    @property
    def wait_time(self) -> str | None:
        return self._wait_time


class DuplicateReviewError(ReelCriticError):
    """Raised when a user tries to review the same media twice."""

    status_code = 400

    def __init__(
        self,
        message: str = "You have already reviewed this media",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(ReelCriticError):
    """Raised when a review or user id does not exist."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

class LLMError(ReelCriticError):
    """Raised when an LLM API call fails or returns an unusable response."""

    status_code = 502

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(ReelCriticError):
    """Raised when an external service is unreachable or returns 5xx."""

    status_code = 503

    def __init__(
        self,
        message: str = "Provider is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(ReelCriticError):
    """Raised when a storage adapter cannot read or write a record."""

    status_code = 500

    def __init__(
        self,
        message: str = "Persistence operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(ReelCriticError):
    """Raised at startup when required configuration is missing or invalid."""

    status_code = 500

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
