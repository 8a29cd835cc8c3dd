"""Application factory for the FastAPI demo app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers). The Redis client is owned here: created in the lifespan unless one
is injected, handed to every limiter, and closed on shutdown.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from redis import Redis

from ratelimiter.adapters.rate_limit.base import RateLimitAlgorithm
from ratelimiter.adapters.rate_limit.factory import RateLimiter, create_rate_limiter
from ratelimiter.adapters.rate_limit.store import create_redis_client
from ratelimiter.api.routes import health_router, limits_router
from ratelimiter.core.config import settings
from ratelimiter.core.exception_handlers import setup_exception_handlers
from ratelimiter.core.logging import configure_logging
from ratelimiter.core.middleware import request_id_middleware
from ratelimiter.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


def build_algorithm_limiters(
    redis_client: Redis,
    *,
    clock: Callable[[], float] = time.time,
) -> dict[RateLimitAlgorithm, RateLimiter]:
    """One demo limiter per algorithm, sharing limit and window settings."""

    return {
        algorithm: RateLimiter(
            redis_client,
            algorithm=algorithm,
            limit=settings.rate_limit.limit,
            window_seconds=settings.rate_limit.window_seconds,
            key_prefix=f"api:{algorithm.value}:",
            clock=clock,
        )
        for algorithm in RateLimitAlgorithm
    }


def create_app(
    redis_client: Redis | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        redis_client: Optional pre-built client. When given, the caller keeps
            ownership and it is not closed on shutdown.
        clock: Time source handed to every limiter.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_client = redis_client is None
        client = create_redis_client(settings.redis) if owns_client else redis_client

        # Misconfiguration (e.g. unknown algorithm) fails here, before any request
        app.state.redis = client
        app.state.rate_limiter = create_rate_limiter(client, settings.rate_limit, clock=clock)
        app.state.algorithm_limiters = build_algorithm_limiters(client, clock=clock)
        logger.info("app.startup", extra={"app_env": settings.app_env})
        try:
            yield
        finally:
            if owns_client:
                client.close()
            logger.info("app.shutdown")

    app = FastAPI(
        title="Distributed Rate Limiter",
        description=(
            "Redis-backed rate limiting with fixed-window, sliding-window log "
            "and leaky-bucket algorithms. Every instance shares state through "
            "Redis, so limits hold across any number of replicas."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(limits_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (tags, 429 responses)
    apply_openapi_customizations(app)

    return app
