"""Redis client construction for the shared rate limit store.

The client is built once by the process owner (the app lifespan, a worker
bootstrap, a script) and handed to every limiter explicitly. Limiters never
open or close connections themselves.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis import Redis

if TYPE_CHECKING:
    from ratelimiter.core.config import RedisSettings

logger = logging.getLogger(__name__)


def create_redis_client(redis_settings: RedisSettings) -> Redis:
    """Create a synchronous Redis client from settings.

    No connection is opened here; redis-py connects lazily on the first
    command, so an unreachable server surfaces as ``redis.ConnectionError``
    from the first ``check``.

    Args:
        redis_settings: Resolved ``REDIS_*`` settings.

    Returns:
        Redis: Client backed by a connection pool.
    """
    client = Redis.from_url(
        redis_settings.url,
        socket_timeout=redis_settings.socket_timeout_seconds,
        socket_connect_timeout=redis_settings.socket_connect_timeout_seconds,
        decode_responses=redis_settings.decode_responses,
    )
    logger.info(
        "redis.client_created",
        extra={
            "socket_timeout_s": redis_settings.socket_timeout_seconds,
            "decode_responses": redis_settings.decode_responses,
        },
    )
    return client
