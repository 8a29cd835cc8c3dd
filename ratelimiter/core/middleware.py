"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a request ID: the incoming header
(``LOG_REQUEST_ID_HEADER``, default ``X-Request-ID``) is reused when present,
otherwise a UUID is generated. The ID is stored in contextvars for the
duration of the request so rate limit log events can be correlated.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from ratelimiter.core.config import settings
from ratelimiter.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a request ID and duration header to every response.

    Side Effects:
        - Sets request_id in contextvars for the request lifetime
        - Adds the request ID header and X-Request-Duration-ms to the response
        - Emits one ``http.request`` access log event
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
