"""Application-level exception types.

This module defines domain errors used across adapters and the HTTP layer,
enabling consistent error handling, logging, and API responses.

Store failures raised by redis-py are deliberately not wrapped by the rate
limiting core; only the HTTP layer translates them, and only when it is
configured to fail closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Attributes:
        hint: How the caller can fix the request or configuration.
        error_type: Class name of the underlying store exception.
    """

    hint: str
    error_type: str


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


class RateLimitStoreAppError(AppError):
    """Raised by the HTTP layer when the rate limit store is unreachable and
    the service is configured to fail closed."""
