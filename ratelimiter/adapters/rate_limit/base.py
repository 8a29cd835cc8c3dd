"""Rate limiter interfaces.

Callers depend on this abstraction (not on a concrete algorithm) so the
algorithm can be swapped through configuration without touching the HTTP
layer. All algorithm state lives in the shared Redis store; implementations
keep nothing between calls besides their configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class RateLimitAlgorithm(str, Enum):
    """Closed set of supported rate limiting algorithms."""

    FIXED_WINDOW = "fixed-window"
    SLIDING_WINDOW = "sliding-window"
    LEAKY_BUCKET = "leaky-bucket"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        current: Requests counted against the identifier after this check.
        limit: Max requests per window (or bucket capacity).
        remaining: Remaining budget, always ``max(0, limit - current)``.
        reset_at: UNIX epoch seconds when the budget is expected to recover.
        retry_after: Seconds to wait before retrying; 0 when allowed.
    """

    allowed: bool
    current: int
    limit: int
    remaining: int
    reset_at: int
    retry_after: int

    def to_headers(self) -> dict[str, str]:
        """Render the standard rate limit response headers."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class AbstractRateLimiter(ABC):
    """Interface shared by every algorithm."""

    DEFAULT_KEY_PREFIX = "rate_limit:"

    def __init__(self, *, limit: int, window_seconds: int, key_prefix: str) -> None:
        """Validate and store the common parameters.

        Args:
            limit: Maximum number of requests per window.
            window_seconds: Size of the window in seconds.
            key_prefix: Prefix prepended to identifiers to build store keys.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._key_prefix = key_prefix

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    def build_key(self, identifier: str) -> str:
        """Derive the store key for an identifier.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        return f"{self._key_prefix}{identifier}"

    @abstractmethod
    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for the identifier and decide whether it may pass.

        Exceeding the limit is a normal ``allowed=False`` result. Store
        failures are raised unchanged.

        Args:
            identifier: Opaque caller identifier (IP, user id, API key).

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, identifier: str) -> None:
        """Drop all state for the identifier."""
        raise NotImplementedError
