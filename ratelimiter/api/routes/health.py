from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
def readiness_check(request: Request) -> JSONResponse:
    """Readiness check: the shared rate limit store must answer PING."""

    try:
        request.app.state.redis.ping()
    except RedisError as exc:
        logger.warning("health.redis_unavailable", extra={"error_type": type(exc).__name__})
        return JSONResponse(status_code=503, content={"status": "unavailable", "redis": "down"})

    return JSONResponse(status_code=200, content={"status": "ok", "redis": "up"})
