"""OpenAPI customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A documented 429 response (with rate limit headers) on every rate limited
  operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_RATE_LIMIT_HEADERS = {
    "Retry-After": {
        "description": "Seconds to wait before retrying.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Limit": {
        "description": "Maximum requests per window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Reset": {
        "description": "UNIX epoch seconds when the budget recovers.",
        "schema": {"type": "integer"},
    },
}

_TOO_MANY_REQUESTS = {
    "description": "Rate limit exceeded.",
    "headers": _RATE_LIMIT_HEADERS,
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses.

    Every GET operation outside ``/health`` is rate limited and gets a
    documented 429 response.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Limits",
                "description": "Endpoints guarded by the rate limiting algorithms.",
            },
            {
                "name": "Health",
                "description": "Liveness and readiness checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path.startswith("/health"):
                continue
            operation = methods.get("get")
            if isinstance(operation, dict):
                operation.setdefault("responses", {})["429"] = _TOO_MANY_REQUESTS

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
