import pytest

from data_acquisition.providers.errors import RateLimited
from data_acquisition.providers.rate_limiter import RollingWindowRateLimiter


def test_ceiling_within_window(clock):
    limiter = RollingWindowRateLimiter(2, window_seconds=60, clock=clock, name="test")
    limiter.acquire()
    limiter.acquire()
    with pytest.raises(RateLimited):
        limiter.acquire()
    assert limiter.remaining() == 0


def test_slots_free_as_window_rolls(clock):
    limiter = RollingWindowRateLimiter(2, window_seconds=60, clock=clock)
    limiter.acquire()
    clock.advance(30)
    limiter.acquire()
    clock.advance(30)
    # first stamp is now exactly one window old
    assert limiter.try_acquire()
    assert not limiter.try_acquire()


def test_instances_are_independent(clock):
    first = RollingWindowRateLimiter(1, clock=clock)
    second = RollingWindowRateLimiter(1, clock=clock)
    first.acquire()
    assert second.try_acquire()
    first.reset()
    assert first.remaining() == 1


def test_invalid_ceiling():
    with pytest.raises(ValueError):
        RollingWindowRateLimiter(0)
