"""Demonstration endpoints guarded by each rate limiting algorithm.

``GET /limits/{algorithm}`` is protected by a dedicated limiter per
algorithm (keys under ``api:<algorithm>:``), so the three behaviours can be
compared side by side against the same Redis. ``GET /resource`` is protected
by the limiter configured through ``RATE_LIMIT_*`` settings.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from ratelimiter.adapters.rate_limit.base import RateLimitResult
from ratelimiter.adapters.rate_limit.factory import RateLimiter, parse_algorithm
from ratelimiter.core.logging import hash_identifier
from ratelimiter.core.rate_limit import enforce_rate_limit, rate_limit_dependency
from ratelimiter.schemas.limits import LimitedResourceResponse, RateLimitStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Limits"])


def get_algorithm_limiter(request: Request) -> RateLimiter:
    """Return the demo limiter named by the ``algorithm`` path parameter.

    Raises:
        ValidationAppError: If the path names no supported algorithm.
    """

    algorithm = parse_algorithm(request.path_params["algorithm"])
    return request.app.state.algorithm_limiters[algorithm]


enforce_algorithm_limit = rate_limit_dependency(get_algorithm_limiter)


def _build_response(limiter: RateLimiter, result: RateLimitResult | None) -> LimitedResourceResponse:
    return LimitedResourceResponse(
        message=f"Request passed the {limiter.algorithm.value} rate limiter",
        algorithm=limiter.algorithm.value,
        window_seconds=limiter.window_seconds,
        rate_limit=RateLimitStatus.from_result(result) if result else None,
    )


@router.get("/resource", response_model=LimitedResourceResponse)
async def get_resource(
    request: Request,
    result: RateLimitResult | None = Depends(enforce_rate_limit),
) -> LimitedResourceResponse:
    """Endpoint guarded by the configured limiter."""

    return _build_response(request.app.state.rate_limiter, result)


@router.get("/limits/{algorithm}", response_model=LimitedResourceResponse)
async def get_limited(
    algorithm: str,
    request: Request,
    result: RateLimitResult | None = Depends(enforce_algorithm_limit),
) -> LimitedResourceResponse:
    """Endpoint guarded by the limiter of the chosen algorithm.

    Args:
        algorithm: ``fixed-window``, ``sliding-window`` or ``leaky-bucket``.

    Returns:
        LimitedResourceResponse: Confirmation plus the check result.
    """

    return _build_response(get_algorithm_limiter(request), result)


@router.delete(
    "/limits/{algorithm}/{identifier}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def reset_limit(algorithm: str, identifier: str, request: Request) -> Response:
    """Drop the rate limit state of one identifier for one algorithm.

    Store errors propagate to the global exception handler.
    """

    limiter = get_algorithm_limiter(request)
    limiter.reset(identifier)
    logger.info(
        "rate_limit.reset_requested",
        extra={"algorithm": limiter.algorithm.value, "key_hash": hash_identifier(identifier)},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
