"""
Unit tests for the sliding-window rate limiter.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from caja.services.rate_limit_service import SlidingWindowRateLimiter, RedisRateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestSlidingWindowRateLimiter:

    def test_sixth_request_in_window_is_rejected(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10, clock=clock)

        results = [limiter.hit('cashier-1') for _ in range(6)]

        assert results == [True, True, True, True, True, False]

    def test_window_slides(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10, clock=clock)

        for _ in range(5):
            assert limiter.hit('cashier-1')
            clock.advance(1)
        assert limiter.hit('cashier-1') is False

        # First hit (t=1000) leaves the window at t=1010
        clock.advance(5)
        assert limiter.hit('cashier-1') is True

    def test_rejected_hits_do_not_extend_the_window(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

        assert limiter.hit('k')
        clock.advance(5)
        assert limiter.hit('k') is False
        clock.advance(5)
        assert limiter.hit('k') is True

    def test_keys_are_independent(self):
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=10, clock=FakeClock())

        assert limiter.hit('cashier-1')
        assert limiter.hit('cashier-2')
        assert limiter.hit('cashier-1') is False

    def test_remaining(self):
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10, clock=FakeClock())
        limiter.hit('k')
        limiter.hit('k')

        assert limiter.remaining('k') == 3
        assert limiter.remaining('other') == 5

    def test_sweep_drops_idle_keys(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(limit=5, window_seconds=10, clock=clock)
        limiter.hit('old')
        clock.advance(8)
        limiter.hit('recent')
        clock.advance(3)

        assert limiter.sweep() == 1
        assert len(limiter) == 1
        assert limiter.remaining('recent') == 4

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(limit=0)
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(window_seconds=0)


class BrokenRedis:
    """Client whose every pipeline fails like an unreachable server."""

    def pipeline(self):
        raise RedisConnectionError('redis down')


class TestRedisRateLimiter:

    def test_falls_back_to_memory_when_redis_fails(self):
        fallback = SlidingWindowRateLimiter(limit=2, window_seconds=10, clock=FakeClock())
        limiter = RedisRateLimiter(BrokenRedis(), limit=2, window_seconds=10, fallback=fallback)

        assert limiter.hit('k') is True
        assert limiter.hit('k') is True
        assert limiter.hit('k') is False
