"""Fixed-window rate limiter backed by a Redis counter.

Notes:
- Windows are aligned to wall-clock boundaries (e.g. every minute at :00).
- Bursts of up to 2x the limit are possible around a window boundary.
- All instances must share a synchronized clock at second granularity;
  the window boundary is computed by the caller, not by Redis.
- A counter that INCR rejects (non-integer value or wrong Redis type) is
  dropped and recreated, so a corrupted key never blocks its identifier.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from redis import Redis
from redis.exceptions import ResponseError

from ratelimiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

# TTL replies meaning "key has no expiry" and "key does not exist"
_TTL_NO_EXPIRY = -1
_TTL_MISSING = -2


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using one counter per identifier and fixed window."""

    DEFAULT_KEY_PREFIX = "rate_limit:fixed:"

    def __init__(
        self,
        redis_client: Redis,
        *,
        limit: int,
        window_seconds: int,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(limit=limit, window_seconds=window_seconds, key_prefix=key_prefix)
        self._redis = redis_client
        self._clock = clock

    def _get_window_bounds(self, now: int) -> tuple[int, int]:
        """Compute (window_start, reset_at) in epoch seconds for ``now``."""
        window_start = (now // self._window_seconds) * self._window_seconds
        return window_start, window_start + self._window_seconds

    def _increment(self, key: str, *, raise_on_error: bool) -> list:
        """Run INCR and TTL as one MULTI/EXEC block."""
        pipe = self._redis.pipeline(transaction=True)
        pipe.incr(key)
        pipe.ttl(key)
        return pipe.execute(raise_on_error=raise_on_error)

    def check(self, identifier: str) -> RateLimitResult:
        key = self.build_key(identifier)
        now = int(self._clock())
        _, reset_at = self._get_window_bounds(now)

        current, ttl = self._increment(key, raise_on_error=False)
        if isinstance(current, ResponseError):
            logger.warning(
                "rate_limit.corrupted_state",
                extra={"algorithm": "fixed-window", "error_type": type(current).__name__},
            )
            self._redis.delete(key)
            current, ttl = self._increment(key, raise_on_error=True)
        current = int(current)

        # Only the expiry depends on this second call; a concurrent duplicate
        # sets the same value.
        if ttl in (_TTL_NO_EXPIRY, _TTL_MISSING):
            self._redis.expire(key, reset_at - now)

        allowed = current <= self._limit
        return RateLimitResult(
            allowed=allowed,
            current=current,
            limit=self._limit,
            remaining=max(0, self._limit - current),
            reset_at=reset_at,
            retry_after=0 if allowed else reset_at - now,
        )

    def reset(self, identifier: str) -> None:
        key = self.build_key(identifier)
        self._redis.delete(key)
        logger.debug("rate_limit.reset", extra={"algorithm": "fixed-window"})
