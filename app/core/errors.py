"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what applies to it.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    limit: int
    remaining: int
    user_id: str
    backend: str
    request_id: str
    sub_errors: list[dict[str, Any]]
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class NotFoundAppError(AppError):
    """Raised when a requested record does not exist."""


class ConflictAppError(AppError):
    """Raised when a write would violate a uniqueness constraint."""


class RateLimitExceededAppError(AppError):
    """Raised by callers when the limiter denies an operation."""


class CounterStoreAppError(AppError):
    """Raised when the counter store cannot be reached or answers garbage.

    Kept apart from RateLimitExceededAppError: an outage is not a denial.
    """
