"""
Unit tests for quotedesk/services/rate_limiter.py using a hand-driven clock.
"""

import pytest

from quotedesk.services.rate_limiter import SubmissionRateLimiter


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return SubmissionRateLimiter(limit=5, window_seconds=3600, clock=clock)


def test_sixth_hit_inside_window_is_refused(limiter):
    assert all(limiter.try_consume("10.0.0.1") for _ in range(5))
    assert limiter.try_consume("10.0.0.1") is False


def test_keys_are_tracked_independently(limiter):
    for _ in range(5):
        limiter.try_consume("10.0.0.1")
    assert limiter.try_consume("10.0.0.2") is True


def test_retry_after_counts_down_to_oldest_hit_leaving(limiter, clock):
    limiter.try_consume("ip")
    clock.advance(600)
    for _ in range(4):
        limiter.try_consume("ip")

    assert limiter.retry_after("ip") == 3000
    clock.advance(2999.5)
    assert limiter.retry_after("ip") == 1


def test_retry_after_is_zero_with_free_slot(limiter):
    limiter.try_consume("ip")
    assert limiter.retry_after("ip") == 0
    assert limiter.retry_after("unknown") == 0


def test_slot_frees_once_window_passes(limiter, clock):
    for _ in range(5):
        limiter.try_consume("ip")
    clock.advance(3600)
    assert limiter.try_consume("ip") is True


def test_release_returns_the_last_slot(limiter):
    for _ in range(5):
        limiter.try_consume("ip")
    limiter.release("ip")
    assert limiter.try_consume("ip") is True


def test_cleanup_drops_idle_keys(limiter, clock):
    limiter.try_consume("old")
    clock.advance(4000)
    limiter.try_consume("new")

    assert limiter.cleanup() == 1
    assert limiter.tracked_keys() == 1


def test_key_table_is_bounded(clock):
    limiter = SubmissionRateLimiter(limit=1, window_seconds=10, clock=clock, max_tracked_keys=3)
    for ip in ("a", "b", "c"):
        limiter.try_consume(ip)
    clock.advance(11)
    limiter.try_consume("d")
    assert limiter.tracked_keys() == 1


@pytest.mark.parametrize("limit, window", [(0, 60), (5, 0)])
def test_rejects_nonsense_configuration(limit, window):
    with pytest.raises(ValueError):
        SubmissionRateLimiter(limit=limit, window_seconds=window)
