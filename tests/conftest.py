"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable so no .env file is loaded, and
pins the rate limit settings the HTTP tests rely on.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_ALGORITHM", "sliding-window")
os.environ.setdefault("RATE_LIMIT_LIMIT", "3")
os.environ.setdefault("RATE_LIMIT_WINDOW_SECONDS", "3600")
os.environ.setdefault("RATE_LIMIT_FAIL_OPEN", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import fakeredis
import pytest


@pytest.fixture
def epoch() -> float:
    """UNIX time aligned to 60s (and therefore 5s and 10s) window boundaries."""
    return 1_699_999_980.0


@pytest.fixture
def fake_redis() -> fakeredis.FakeRedis:
    """Fresh in-process Redis with Lua scripting support."""
    return fakeredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture
def clock(epoch: float) -> Mock:
    """Controllable time source returning UNIX seconds."""
    return Mock(return_value=epoch)
