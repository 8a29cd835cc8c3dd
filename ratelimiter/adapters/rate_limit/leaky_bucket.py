"""Leaky-bucket rate limiter backed by a Redis string.

The bucket holds at most ``limit`` requests and drains continuously at
``limit / window_seconds`` requests per second. Each request adds one unit
when that unit still fits and is rejected otherwise, so the level stays
within ``[0, limit]`` between checks. Traffic is
smoothed to the drain rate while short bursts up to the capacity still pass.

State per identifier is ``"<level>:<last_leak_ms>"``, updated by one Lua
script. A corrupted value degrades to an empty bucket instead of blocking the
identifier.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

from redis import Redis

from ratelimiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from ratelimiter.adapters.rate_limit.scripts import LEAKY_BUCKET_SCRIPT

logger = logging.getLogger(__name__)


class LeakyBucketRateLimiter(AbstractRateLimiter):
    """Rate limiter draining a per-identifier bucket at a constant rate."""

    DEFAULT_KEY_PREFIX = "rate_limit:leaky:"

    def __init__(
        self,
        redis_client: Redis,
        *,
        limit: int,
        window_seconds: int,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the leaky bucket.

        Args:
            redis_client: Shared Redis client; its lifecycle belongs to the caller.
            limit: Bucket capacity.
            window_seconds: Time for a full bucket to drain completely.
            key_prefix: Prefix for Redis keys.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        super().__init__(limit=limit, window_seconds=window_seconds, key_prefix=key_prefix)
        self._redis = redis_client
        self._clock = clock
        self._leak_rate = limit / window_seconds
        self._script = redis_client.register_script(LEAKY_BUCKET_SCRIPT)

    @property
    def leak_rate(self) -> float:
        """Requests drained per second."""
        return self._leak_rate

    def _compute_timing(self, *, now_ms: int, current: int, allowed: bool) -> tuple[int, int]:
        """Return (reset_at, retry_after) for a post-update bucket level.

        Accepted requests get a plain ``now + window`` reset estimate; only
        rejections derive it from the drain rate.
        """
        if allowed:
            return now_ms // 1000 + self._window_seconds, 0

        excess = current - self._limit
        retry_after = max(1, math.ceil(excess / self._leak_rate))
        reset_at = math.ceil(now_ms / 1000) + math.ceil((excess + 1) / self._leak_rate)
        return reset_at, retry_after

    def check(self, identifier: str) -> RateLimitResult:
        key = self.build_key(identifier)
        now_ms = int(self._clock() * 1000)

        allowed_flag, raw_level = self._script(
            keys=[key],
            args=[now_ms, self._limit, repr(self._leak_rate), self._window_seconds * 2],
        )
        allowed = bool(int(allowed_flag))
        current = int(math.ceil(float(raw_level)))

        reset_at, retry_after = self._compute_timing(
            now_ms=now_ms, current=current, allowed=allowed
        )
        return RateLimitResult(
            allowed=allowed,
            current=current,
            limit=self._limit,
            remaining=max(0, self._limit - current),
            reset_at=reset_at,
            retry_after=retry_after,
        )

    def reset(self, identifier: str) -> None:
        key = self.build_key(identifier)
        self._redis.delete(key)
        logger.debug("rate_limit.reset", extra={"algorithm": "leaky-bucket"})
