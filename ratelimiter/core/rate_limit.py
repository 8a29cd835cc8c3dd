"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting facade into the HTTP layer. The core
limiters know nothing about HTTP; everything request-shaped lives here:

- identifying the caller (proxy-aware client IP by default)
- injecting ``X-RateLimit-*`` headers on allowed responses
- mapping rejections to HTTP 429 with ``Retry-After``
- the fail-open / fail-closed decision when Redis is unavailable
- an optional ``on_limit_reached`` hook for alerting

Limiters are built once in the app lifespan and read from ``app.state``.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from redis.exceptions import RedisError

from ratelimiter.adapters.rate_limit.base import RateLimitResult
from ratelimiter.adapters.rate_limit.factory import RateLimiter
from ratelimiter.core.config import settings
from ratelimiter.core.errors import RateLimitStoreAppError
from ratelimiter.core.logging import hash_identifier

logger = logging.getLogger(__name__)

IdentifierFn = Callable[[Request], str]
LimiterGetter = Callable[[Request], RateLimiter]
LimitReachedHook = Callable[[Request, RateLimitResult], None]


def resolve_identifier(request: Request, *, trust_forwarded_headers: bool | None = None) -> str:
    """Identify the caller by client IP.

    Behind a proxy the first hop of ``X-Forwarded-For`` wins, then
    ``X-Real-IP``; otherwise the socket peer address is used.

    Args:
        request: FastAPI request.
        trust_forwarded_headers: Override for ``RATE_LIMIT_TRUST_FORWARDED_HEADERS``.

    Returns:
        str: Client address, or ``"unknown"`` when none is available.
    """

    trust = (
        settings.rate_limit.trust_forwarded_headers
        if trust_forwarded_headers is None
        else trust_forwarded_headers
    )
    if trust:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    return request.client.host if request.client else "unknown"


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the default limiter built by the app lifespan."""

    return request.app.state.rate_limiter


def _handle_store_failure(exc: RedisError, *, key_hash: str) -> None:
    """Apply the configured fail-open / fail-closed policy to a store error.

    Raises:
        RateLimitStoreAppError: When configured to fail closed.
    """

    logger.error(
        "rate_limit.store_error",
        extra={
            "key_hash": key_hash,
            "error_type": type(exc).__name__,
            "fail_open": settings.rate_limit.fail_open,
        },
    )
    if settings.rate_limit.fail_open:
        return

    raise RateLimitStoreAppError(
        code="rate_limit_store_unavailable",
        message="Rate limiting is temporarily unavailable. Try again later.",
        details={"error_type": type(exc).__name__},
    ) from exc


def rate_limit_dependency(
    limiter_getter: LimiterGetter = get_rate_limiter,
    *,
    identifier_fn: IdentifierFn | None = None,
    on_limit_reached: LimitReachedHook | None = None,
) -> Callable[[Request, Response], Awaitable[RateLimitResult | None]]:
    """Build a FastAPI dependency enforcing a rate limit.

    Args:
        limiter_getter: Returns the limiter guarding the current request.
        identifier_fn: Derives the identifier; defaults to ``resolve_identifier``.
        on_limit_reached: Called with the request and result on every
            rejection, before the 429 is raised. Meant for logging/alerting.

    Returns:
        An async dependency returning the RateLimitResult, or None when rate
        limiting is disabled or the store failed open.
    """

    async def enforce(request: Request, response: Response) -> RateLimitResult | None:
        if not settings.rate_limit.enabled:
            return None

        limiter = limiter_getter(request)
        identifier = identifier_fn(request) if identifier_fn else resolve_identifier(request)
        key_hash = hash_identifier(identifier)

        try:
            # redis-py is blocking; keep it off the event loop
            result = await run_in_threadpool(limiter.check, identifier)
        except RedisError as exc:
            _handle_store_failure(exc, key_hash=key_hash)
            return None

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "algorithm": limiter.algorithm.value,
                    "key_hash": key_hash,
                    "current": result.current,
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            if settings.rate_limit.include_headers:
                response.headers.update(result.to_headers())
            return result

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "algorithm": limiter.algorithm.value,
                "key_hash": key_hash,
                "current": result.current,
                "limit": result.limit,
                "window_s": limiter.window_seconds,
                "retry_after_s": result.retry_after,
            },
        )
        if on_limit_reached is not None:
            on_limit_reached(request, result)

        headers = {"Retry-After": str(result.retry_after)}
        if settings.rate_limit.include_headers:
            headers.update(result.to_headers())

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Too Many Requests",
                "message": f"Rate limit exceeded. Try again in {result.retry_after} seconds.",
                "limit": result.limit,
                "current": result.current,
                "reset_at": result.reset_at,
                "retry_after": result.retry_after,
            },
            headers=headers,
        )

    return enforce


enforce_rate_limit = rate_limit_dependency()
