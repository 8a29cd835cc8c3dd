"""Sliding-window log rate limiter backed by a Redis sorted set.

Every accepted request is stored as a member of a sorted set scored by its
timestamp in milliseconds. Each check prunes entries that fell out of the
window, counts what is left and records the new request, all inside one Lua
script. No contiguous window ever holds more than ``limit`` accepted
requests, including bursts straddling a boundary.

Memory grows with the number of accepted requests per window, so this is the
most accurate and the most expensive of the three algorithms.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Callable

from redis import Redis

from ratelimiter.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from ratelimiter.adapters.rate_limit.scripts import SLIDING_WINDOW_SCRIPT

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping a log of request timestamps per identifier."""

    DEFAULT_KEY_PREFIX = "rate_limit:sliding:"

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
        self._script = redis_client.register_script(SLIDING_WINDOW_SCRIPT)

    @staticmethod
    def _build_member(now_ms: int) -> str:
        """Build a set member unique even for requests in the same millisecond."""
        return f"{now_ms}:{uuid.uuid4().hex}"

    @staticmethod
    def _parse_score(raw: bytes | str | None) -> float | None:
        if not raw:
            return None
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None

    def _compute_reset_at(self, now_ms: int, oldest_ms: float | None) -> int:
        """Return when the oldest logged request leaves the window."""
        if oldest_ms is None:
            return now_ms // 1000 + self._window_seconds
        return int(math.ceil((oldest_ms + self._window_seconds * 1000) / 1000))

    def check(self, identifier: str) -> RateLimitResult:
        key = self.build_key(identifier)
        now_ms = int(self._clock() * 1000)

        allowed_flag, current, oldest = self._script(
            keys=[key],
            args=[
                now_ms,
                self._window_seconds * 1000,
                self._limit,
                self._window_seconds,
                self._build_member(now_ms),
            ],
        )
        allowed = bool(int(allowed_flag))
        current = int(current)

        reset_at = self._compute_reset_at(now_ms, self._parse_score(oldest))
        # A rejection always asks for at least one second, even when the
        # oldest entry leaves the window within the current second.
        retry_after = 0 if allowed else max(1, reset_at - now_ms // 1000)

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
        logger.debug("rate_limit.reset", extra={"algorithm": "sliding-window"})
