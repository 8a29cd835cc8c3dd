"""Rate limiting adapters.

Three Redis-backed algorithms (fixed window, sliding-window log, leaky
bucket) behind one check/reset contract, plus the facade that picks one of
them from configuration. State lives only in Redis, so any number of
stateless instances can enforce the same limit.
"""

from ratelimiter.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitAlgorithm,
    RateLimitResult,
)
from ratelimiter.adapters.rate_limit.factory import RateLimiter, create_rate_limiter
from ratelimiter.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from ratelimiter.adapters.rate_limit.leaky_bucket import LeakyBucketRateLimiter
from ratelimiter.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from ratelimiter.adapters.rate_limit.store import create_redis_client

__all__ = [
    "AbstractRateLimiter",
    "FixedWindowRateLimiter",
    "LeakyBucketRateLimiter",
    "RateLimitAlgorithm",
    "RateLimitResult",
    "RateLimiter",
    "SlidingWindowRateLimiter",
    "create_rate_limiter",
    "create_redis_client",
]
