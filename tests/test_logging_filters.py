"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from ratelimiter.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    hash_identifier,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to an in-memory JSON handler, like production."""

    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_sensitive_filter_redacts_client_identifiers(capture):
    """Raw identifiers and client addresses never reach the output."""
    logger, stream = capture

    logger.info(
        "rate_limit.exceeded",
        extra={
            "identifier": "user-42@example.com",
            "client_ip": "203.0.113.7",
            "key_hash": hash_identifier("user-42@example.com"),
        },
    )

    output = stream.getvalue()
    assert "user-42@example.com" not in output
    assert "203.0.113.7" not in output
    assert "[REDACTED]" in output
    assert hash_identifier("user-42@example.com") in output


def test_sensitive_filter_redacts_store_credentials(capture):
    logger, stream = capture

    logger.info(
        "redis.client_created",
        extra={
            "redis_url": "redis://:hunter2@cache:6379/0",
            "headers": {"authorization": "Bearer abc", "x-forwarded-for": "198.51.100.1", "user-agent": "pytest"},
        },
    )

    output = stream.getvalue()
    assert "hunter2" not in output
    assert "Bearer abc" not in output
    assert "198.51.100.1" not in output
    assert "pytest" in output


def test_sensitive_filter_allows_safe_fields(capture):
    """Verify safe fields pass through unmodified."""
    logger, stream = capture

    logger.info(
        "rate_limit.allowed",
        extra={
            "algorithm": "sliding-window",
            "current": 2,
            "limit": 10,
            "remaining": 8,
        },
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.allowed"
    assert record["level"] == "info"
    assert record["algorithm"] == "sliding-window"
    assert record["remaining"] == 8
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context_is_attached(capture):
    logger, stream = capture
    set_request_id("req-123")

    logger.warning("rate_limit.exceeded")

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_hash_identifier_is_stable_and_short():
    digest = hash_identifier("203.0.113.7")

    assert digest == hash_identifier("203.0.113.7")
    assert digest != hash_identifier("203.0.113.8")
    assert len(digest) == 16
    assert int(digest, 16) >= 0
