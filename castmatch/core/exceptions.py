"""
Application-level exception types.

Completion failures, parse failures and configuration gaps are modelled
separately because the casting flow recovers from each one differently.
"""

from __future__ import annotations


class AppError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        self.detail = detail or message
        super().__init__(message)


class ConfigurationError(AppError):
    """Raised when required configuration is missing or invalid."""


class CompletionError(AppError):
    """Raised when the text-completion service call fails."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        model: str | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.request_id = request_id
        self.model = model


class CompletionRateLimitError(CompletionError):
    """Raised when the provider keeps rejecting calls for rate limiting."""


class CompletionTimeoutError(CompletionError):
    """Raised when the provider does not answer in time."""


class CompletionUnavailableError(CompletionError):
    """Raised when the requested model is unavailable."""


class CompletionContentFilterError(CompletionError):
    """Raised when the provider blocks the prompt or response."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        model: str | None = None,
        blocked_categories: list[str] | None = None,
    ) -> None:
        super().__init__(message, request_id=request_id, model=model)
        self.blocked_categories = blocked_categories or []


class CompletionCircuitOpenError(CompletionError):
    """Raised when too many consecutive failures opened the circuit."""

    def __init__(self, message: str, retry_after: object | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class MatchParseError(AppError):
    """Raised when an LLM match payload cannot be parsed."""


class PersistenceError(AppError):
    """Raised when a match run cannot be stored."""


class EntityNotFoundError(AppError):
    """Raised when a database entity cannot be found."""

    def __init__(self, entity_type: str, entity_id: object) -> None:
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            detail=f"{entity_type} not found",
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
