"""Unit tests for the in-memory sliding-window rate limiter."""

import random
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from mailgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter


def test_defaults_match_global_limit() -> None:
    limiter = InMemorySlidingWindowRateLimiter()

    assert limiter.window_ms == 60000
    assert limiter.max_requests == 60


def test_allows_up_to_limit_then_blocks() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=60000, max_requests=3)

    decisions = [limiter.admit("k", now=1000.0 + i).allowed for i in range(4)]

    assert decisions == [True, True, True, False]


def test_same_instant_boundary_with_max_one() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=1)

    assert limiter.admit("k", now=0).allowed is True
    assert limiter.admit("k", now=0).allowed is False


def test_window_slides_past_old_requests() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=1)

    assert limiter.admit("k", now=0).allowed is True
    assert limiter.admit("k", now=999).allowed is False
    assert limiter.admit("k", now=1001).allowed is True


def test_request_exactly_one_window_later_is_admitted() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=1)

    assert limiter.admit("k", now=0).allowed is True
    assert limiter.admit("k", now=1000).allowed is True


def test_recorded_rejections_extend_the_block() -> None:
    limiter = InMemorySlidingWindowRateLimiter(
        window_ms=1000, max_requests=1, record_rejected=True
    )

    assert limiter.admit("k", now=0).allowed is True
    assert limiter.admit("k", now=999).allowed is False
    # the rejected hit at 999 is still inside the window
    assert limiter.admit("k", now=1001).allowed is False
    assert limiter.admit("k", now=2001).allowed is True


def test_isolated_by_key() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=60000, max_requests=1)

    assert limiter.admit("10.0.0.1/api/health", now=5).allowed is True
    assert limiter.admit("10.0.0.1/api/health", now=5).allowed is False

    assert limiter.admit("10.0.0.2/api/health", now=5).allowed is True
    assert limiter.admit("10.0.0.1/api/contact", now=5).allowed is True


@pytest.mark.parametrize("record_rejected", [False, True])
def test_never_admits_more_than_max_in_any_trailing_window(record_rejected: bool) -> None:
    window_ms, max_requests = 1000, 5
    limiter = InMemorySlidingWindowRateLimiter(
        window_ms=window_ms,
        max_requests=max_requests,
        record_rejected=record_rejected,
    )
    rng = random.Random(1234)

    now = 0
    admitted: list[int] = []
    for _ in range(2000):
        now += rng.randint(0, 120)
        if limiter.admit("k", now=now).allowed:
            admitted.append(now)

    assert admitted
    for t in admitted:
        in_window = [a for a in admitted if t - window_ms < a <= t]
        assert len(in_window) <= max_requests


def test_same_configuration_gives_same_decisions() -> None:
    rng = random.Random(99)
    calls = [(rng.choice(["a", "b", "c"]), i * rng.randint(1, 50)) for i in range(300)]
    calls.sort(key=lambda call: call[1])

    def run() -> list[bool]:
        limiter = InMemorySlidingWindowRateLimiter(window_ms=500, max_requests=3)
        return [limiter.admit(key, now=now).allowed for key, now in calls]

    assert run() == run()


def test_uses_clock_when_now_omitted() -> None:
    clock = Mock(return_value=1_000_000.0)
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=1, clock=clock)

    assert limiter.admit("k").allowed is True
    assert limiter.admit("k").allowed is False

    clock.return_value = 1_001_000.0
    assert limiter.admit("k").allowed is True
    assert clock.call_count == 3


def test_result_metadata() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=60000, max_requests=2)

    first = limiter.admit("k", now=1_000_000.0)
    second = limiter.admit("k", now=1_000_500.0)
    blocked = limiter.admit("k", now=1_001_000.0)

    assert (first.limit, first.remaining) == (2, 1)
    assert first.retry_after_seconds is None
    assert first.reset_at == 1060
    assert second.remaining == 0

    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_at == 1060
    assert blocked.retry_after_seconds == 59


def test_remaining_is_read_only() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=3)
    limiter.admit("k", now=0)
    limiter.admit("k", now=100)

    assert limiter.remaining("k", now=200) == 1
    assert limiter.remaining("k", now=5000) == 3
    assert limiter.remaining("unknown", now=0) == 3
    # a read does not reclaim or create buckets
    assert len(limiter) == 1
    assert limiter.admit("k", now=300).allowed is True
    assert limiter.admit("k", now=300).allowed is False


def test_stale_buckets_are_retained_without_sweep() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=1)

    limiter.admit("a", now=0)
    limiter.admit("b", now=10_000)

    assert len(limiter) == 2


def test_pruned_key_behaves_like_new_key() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=2)
    limiter.admit("old", now=0)
    limiter.admit("old", now=0)

    later = 5000
    old = [limiter.admit("old", now=later).allowed for _ in range(3)]
    new = [limiter.admit("new", now=later).allowed for _ in range(3)]

    assert old == new == [True, True, False]


def test_sweep_evicts_empty_buckets() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=1000, max_requests=1)
    limiter.admit("a", now=0)
    limiter.admit("b", now=800)

    assert limiter.sweep(now=1500) == 1
    assert len(limiter) == 1
    assert limiter.admit("b", now=1500).allowed is False


def test_admit_sweeps_after_interval() -> None:
    limiter = InMemorySlidingWindowRateLimiter(
        window_ms=1000, max_requests=1, sweep_interval_ms=1000
    )
    limiter.admit("a", now=0)
    limiter.admit("b", now=500)
    assert len(limiter) == 2

    limiter.admit("c", now=1500)

    assert len(limiter) == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window_ms": 0, "max_requests": 60},
        {"window_ms": 1000, "max_requests": 0},
        {"window_ms": 1000, "max_requests": 1, "sweep_interval_ms": -1},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemorySlidingWindowRateLimiter(**kwargs)


def test_empty_key_rejected() -> None:
    limiter = InMemorySlidingWindowRateLimiter()

    with pytest.raises(ValueError):
        limiter.admit("")


def test_parallel_admits_do_not_lose_updates() -> None:
    limiter = InMemorySlidingWindowRateLimiter(window_ms=60000, max_requests=50)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: limiter.admit("k", now=1.0).allowed, range(1000)))

    assert sum(results) == 50
    assert limiter.remaining("k", now=1.0) == 0
