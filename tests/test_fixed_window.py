"""Unit tests for the Redis fixed-window rate limiter."""

from unittest.mock import MagicMock, Mock

import pytest
import redis

from ratelimiter.adapters.rate_limit.fixed_window import FixedWindowRateLimiter

KEY = "rate_limit:fixed:u1"


def test_first_checks_up_to_limit_are_allowed(fake_redis, clock) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=10, window_seconds=60, clock=clock)

    results = [limiter.check("u1") for _ in range(10)]

    assert all(r.allowed for r in results)
    assert [r.current for r in results] == list(range(1, 11))
    assert [r.remaining for r in results] == list(range(9, -1, -1))
    assert all(r.retry_after == 0 for r in results)


def test_blocks_check_over_limit_until_window_end(fake_redis, clock, epoch) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=10, window_seconds=60, clock=clock)
    for _ in range(10):
        limiter.check("u1")

    blocked = limiter.check("u1")

    assert blocked.allowed is False
    assert blocked.current == 11
    assert blocked.remaining == 0
    assert blocked.retry_after == 60
    assert blocked.reset_at == int(epoch) + 60


def test_reset_at_is_aligned_to_window_boundary(fake_redis, clock, epoch) -> None:
    clock.return_value = epoch + 42.7
    limiter = FixedWindowRateLimiter(fake_redis, limit=1, window_seconds=60, clock=clock)

    limiter.check("u1")
    blocked = limiter.check("u1")

    assert blocked.reset_at == int(epoch) + 60
    assert blocked.retry_after == 18


def test_sets_ttl_to_end_of_window_on_new_key(fake_redis, clock, epoch) -> None:
    clock.return_value = epoch + 15
    limiter = FixedWindowRateLimiter(fake_redis, limit=5, window_seconds=60, clock=clock)

    limiter.check("u1")

    assert 44 <= fake_redis.ttl("rate_limit:fixed:u1") <= 45


def test_keeps_original_ttl_on_later_checks(fake_redis, clock, epoch) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=5, window_seconds=60, clock=clock)
    limiter.check("u1")

    fake_redis.expire("rate_limit:fixed:u1", 7)
    clock.return_value = epoch + 30
    limiter.check("u1")

    assert 6 <= fake_redis.ttl("rate_limit:fixed:u1") <= 7


def test_new_window_allows_full_budget_again(fake_redis, clock, epoch) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=2, window_seconds=10, clock=clock)
    assert limiter.check("u1").allowed is True
    assert limiter.check("u1").allowed is True
    assert limiter.check("u1").allowed is False

    # the window TTL fires in the store as the clock crosses the boundary
    clock.return_value = epoch + 10
    fake_redis.delete("rate_limit:fixed:u1")

    first = limiter.check("u1")
    second = limiter.check("u1")
    assert first.allowed is True
    assert first.current == 1
    assert second.allowed is True
    assert limiter.check("u1").allowed is False


def test_isolated_by_identifier(fake_redis, clock) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=1, window_seconds=60, clock=clock)

    assert limiter.check("k1").allowed is True
    assert limiter.check("k1").allowed is False
    assert limiter.check("k2").allowed is True


def test_reset_behaves_like_unseen_identifier(fake_redis, clock) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=2, window_seconds=60, clock=clock)
    for _ in range(3):
        limiter.check("u1")

    limiter.reset("u1")
    result = limiter.check("u1")

    assert result.allowed is True
    assert result.current == 1
    assert result.remaining == 1


def test_store_errors_propagate() -> None:
    client = MagicMock()
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")
    limiter = FixedWindowRateLimiter(client, limit=1, window_seconds=60, clock=Mock(return_value=0.0))

    with pytest.raises(redis.ConnectionError):
        limiter.check("u1")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(fake_redis, kwargs: dict) -> None:
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(fake_redis, **kwargs)


def test_empty_identifier_rejected(fake_redis) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.check("")
    with pytest.raises(ValueError):
        limiter.reset("")


@pytest.mark.parametrize(
    "corrupt",
    [
        lambda r, key: r.set(key, "not-a-number"),
        lambda r, key: r.rpush(key, "stale"),
    ],
    ids=["non-integer", "wrong-type"],
)
def test_corrupted_counter_starts_fresh(fake_redis, clock, corrupt) -> None:
    limiter = FixedWindowRateLimiter(fake_redis, limit=2, window_seconds=60, clock=clock)
    corrupt(fake_redis, KEY)

    result = limiter.check("u1")

    assert result.allowed is True
    assert result.current == 1
    assert fake_redis.get(KEY) == b"1"
    assert 0 < fake_redis.ttl(KEY) <= 60
