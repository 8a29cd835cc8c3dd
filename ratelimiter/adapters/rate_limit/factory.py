"""Facade selecting one rate limiting algorithm at construction time."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from redis import Redis

from ratelimiter.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitAlgorithm,
    RateLimitResult,
)
from ratelimiter.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from ratelimiter.adapters.rate_limit.leaky_bucket import LeakyBucketRateLimiter
from ratelimiter.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from ratelimiter.core.errors import ValidationAppError

if TYPE_CHECKING:
    from ratelimiter.core.config import RateLimitSettings

logger = logging.getLogger(__name__)

_ALGORITHM_CLASSES: dict[RateLimitAlgorithm, type[AbstractRateLimiter]] = {
    RateLimitAlgorithm.FIXED_WINDOW: FixedWindowRateLimiter,
    RateLimitAlgorithm.SLIDING_WINDOW: SlidingWindowRateLimiter,
    RateLimitAlgorithm.LEAKY_BUCKET: LeakyBucketRateLimiter,
}


def parse_algorithm(value: RateLimitAlgorithm | str) -> RateLimitAlgorithm:
    """Resolve an algorithm selector from an enum member or its string value.

    Raises:
        ValidationAppError: If the selector names no supported algorithm.
    """
    try:
        return RateLimitAlgorithm(value)
    except ValueError as exc:
        supported = ", ".join(a.value for a in RateLimitAlgorithm)
        raise ValidationAppError(
            code="rate_limit_unknown_algorithm",
            message=f"Unknown rate limit algorithm: '{value}'. Supported algorithms: {supported}",
            details={"hint": f"Set RATE_LIMIT_ALGORITHM or the path to one of: {supported}"},
        ) from exc


class RateLimiter(AbstractRateLimiter):
    """Uniform check/reset entry point over one concrete algorithm.

    The algorithm is bound once in ``__init__``; ``check`` and ``reset``
    delegate directly. Store errors are never caught or retried here, the
    caller decides whether to fail open or closed.
    """

    def __init__(
        self,
        redis_client: Redis,
        *,
        algorithm: RateLimitAlgorithm | str,
        limit: int,
        window_seconds: int,
        key_prefix: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Build the facade and its algorithm.

        Args:
            redis_client: Shared Redis client; its lifecycle belongs to the caller.
            algorithm: Algorithm selector (enum member or its string value).
            limit: Maximum requests per window.
            window_seconds: Window size in seconds.
            key_prefix: Prefix for Redis keys. Defaults to a per-algorithm
                prefix so one identifier can be tracked under several
                algorithms at once.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValidationAppError: If the algorithm is unknown.
            ValueError: If limit or window_seconds are invalid.
        """
        selected = parse_algorithm(algorithm)
        limiter_cls = _ALGORITHM_CLASSES[selected]
        prefix = limiter_cls.DEFAULT_KEY_PREFIX if key_prefix is None else key_prefix

        super().__init__(limit=limit, window_seconds=window_seconds, key_prefix=prefix)
        self._algorithm = selected
        self._delegate: AbstractRateLimiter = limiter_cls(  # type: ignore[call-arg]
            redis_client,
            limit=limit,
            window_seconds=window_seconds,
            key_prefix=prefix,
            clock=clock,
        )

        logger.info(
            "rate_limit.configured",
            extra={
                "algorithm": selected.value,
                "limit": limit,
                "window_s": window_seconds,
                "key_prefix": prefix,
            },
        )

    @property
    def algorithm(self) -> RateLimitAlgorithm:
        return self._algorithm

    def check(self, identifier: str) -> RateLimitResult:
        return self._delegate.check(identifier)

    def reset(self, identifier: str) -> None:
        self._delegate.reset(identifier)


def create_rate_limiter(
    redis_client: Redis,
    rate_limit_settings: RateLimitSettings,
    *,
    clock: Callable[[], float] = time.time,
) -> RateLimiter:
    """Factory function building a facade from rate limit settings.

    Args:
        redis_client: Shared Redis client.
        rate_limit_settings: Resolved ``RATE_LIMIT_*`` settings.
        clock: Time source function returning UNIX time in seconds.

    Returns:
        RateLimiter: Configured facade.

    Raises:
        ValidationAppError: If the configured algorithm is unknown.
    """
    return RateLimiter(
        redis_client,
        algorithm=rate_limit_settings.algorithm,
        limit=rate_limit_settings.limit,
        window_seconds=rate_limit_settings.window_seconds,
        key_prefix=rate_limit_settings.key_prefix,
        clock=clock,
    )
