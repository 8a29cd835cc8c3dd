"""Unit tests for the Redis sliding-window log rate limiter."""

import random
from unittest.mock import MagicMock, Mock

import pytest
import redis

from ratelimiter.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from ratelimiter.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

KEY = "rate_limit:sliding:u2"


def test_limit_then_recovers_after_window(fake_redis, clock, epoch) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=3, window_seconds=5, clock=clock)

    results = [limiter.check("u2") for _ in range(3)]
    assert all(r.allowed for r in results)
    assert [r.current for r in results] == [1, 2, 3]
    assert [r.remaining for r in results] == [2, 1, 0]

    clock.return_value = epoch + 1
    blocked = limiter.check("u2")
    assert blocked.allowed is False
    assert blocked.current == 3
    assert blocked.remaining == 0
    assert blocked.reset_at == int(epoch) + 5
    assert blocked.retry_after == 4

    clock.return_value = epoch + 6
    again = limiter.check("u2")
    assert again.allowed is True
    assert again.current == 1


def test_rejected_requests_are_not_logged(fake_redis, clock, epoch) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=2, window_seconds=10, clock=clock)
    limiter.check("u2")
    limiter.check("u2")

    for offset in range(1, 5):
        clock.return_value = epoch + offset
        assert limiter.check("u2").allowed is False

    assert fake_redis.zcard(KEY) == 2


def test_same_millisecond_requests_get_distinct_members(fake_redis, clock) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=50, window_seconds=10, clock=clock)

    for _ in range(20):
        limiter.check("u2")

    assert fake_redis.zcard(KEY) == 20


def test_entry_exactly_one_window_old_still_counts(fake_redis, clock, epoch) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=1, window_seconds=5, clock=clock)
    limiter.check("u2")

    clock.return_value = epoch + 5
    blocked = limiter.check("u2")
    assert blocked.allowed is False
    assert blocked.retry_after >= 1

    clock.return_value = epoch + 5.01
    assert limiter.check("u2").allowed is True


def test_reset_at_follows_oldest_entry(fake_redis, clock, epoch) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=5, window_seconds=10, clock=clock)
    clock.return_value = epoch + 2.5
    limiter.check("u2")
    clock.return_value = epoch + 4

    result = limiter.check("u2")

    # ceil((epoch + 2.5 + 10) s)
    assert result.reset_at == int(epoch) + 13
    assert result.retry_after == 0


def test_refreshes_ttl_to_window(fake_redis, clock) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=5, window_seconds=30, clock=clock)

    limiter.check("u2")

    assert 29 <= fake_redis.ttl(KEY) <= 30


def test_no_window_holds_more_than_limit(fake_redis, clock, epoch) -> None:
    limit, window_ms = 5, 2000
    limiter = SlidingWindowRateLimiter(fake_redis, limit=limit, window_seconds=2, clock=clock)
    rng = random.Random(1234)

    now_ms = int(epoch * 1000)
    accepted: list[int] = []
    for _ in range(300):
        now_ms += rng.choice([0, 1, 5, 50, 200, 400, 999])
        clock.return_value = now_ms / 1000
        seen_ms = int(clock.return_value * 1000)
        if limiter.check("u2").allowed:
            accepted.append(seen_ms)

    assert accepted
    for start in accepted:
        in_window = [t for t in accepted if start <= t <= start + window_ms]
        assert len(in_window) <= limit


def test_boundary_burst_is_contained_unlike_fixed_window(fake_redis, clock, epoch) -> None:
    sliding = SlidingWindowRateLimiter(fake_redis, limit=3, window_seconds=10, clock=clock)
    fixed = FixedWindowRateLimiter(fake_redis, limit=3, window_seconds=10, clock=clock)

    def burst(limiter) -> int:
        return sum(limiter.check("burst").allowed for _ in range(3))

    clock.return_value = epoch + 9.9
    assert burst(sliding) == 3
    assert burst(fixed) == 3

    clock.return_value = epoch + 10.1
    assert burst(sliding) == 0
    fake_redis.delete("rate_limit:fixed:burst")  # window TTL fired
    assert burst(fixed) == 3


def test_reset_behaves_like_unseen_identifier(fake_redis, clock) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=1, window_seconds=60, clock=clock)
    limiter.check("u2")
    assert limiter.check("u2").allowed is False

    limiter.reset("u2")
    result = limiter.check("u2")

    assert result.allowed is True
    assert result.current == 1


def test_corrupted_oldest_score_falls_back_to_window_from_now(fake_redis, clock, epoch) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=1, window_seconds=5, clock=clock)

    assert limiter._compute_reset_at(int(epoch * 1000), limiter._parse_score(b"not-a-number")) == int(epoch) + 5
    assert limiter._compute_reset_at(int(epoch * 1000), limiter._parse_score(b"")) == int(epoch) + 5


def test_wrong_type_state_starts_fresh(fake_redis, clock) -> None:
    limiter = SlidingWindowRateLimiter(fake_redis, limit=2, window_seconds=10, clock=clock)
    fake_redis.set(KEY, "corrupted")

    result = limiter.check("u2")

    assert result.allowed is True
    assert result.current == 1
    assert fake_redis.zcard(KEY) == 1


def test_store_errors_propagate() -> None:
    client = MagicMock()
    client.register_script.return_value.side_effect = redis.TimeoutError("slow")
    limiter = SlidingWindowRateLimiter(client, limit=1, window_seconds=60, clock=Mock(return_value=0.0))

    with pytest.raises(redis.TimeoutError):
        limiter.check("u2")
