from __future__ import annotations

import pytest

from learnhub.services import rate_limiter
from learnhub.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
)
from tests.conftest import run

SMALL = RateLimitConfig(capacity=3, refill_rate=1.0)


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    now = [1000.0]
    monkeypatch.setattr(rate_limiter.time, "monotonic", lambda: now[0])
    return now


def test_in_memory_limiter_satisfies_protocol() -> None:
    assert isinstance(InMemoryRateLimiter(), RateLimiter)


def test_burst_up_to_capacity_then_rejected(clock: list[float]) -> None:
    limiter = InMemoryRateLimiter()

    results = [run(limiter.check("k", SMALL)) for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results[:3]] == [2, 1, 0]
    assert results[3].retry_after == pytest.approx(1.0)


def test_tokens_refill_over_time(clock: list[float]) -> None:
    limiter = InMemoryRateLimiter()
    for _ in range(3):
        run(limiter.check("k", SMALL))
    assert run(limiter.check("k", SMALL)).allowed is False

    clock[0] += 1.5

    assert run(limiter.check("k", SMALL)).allowed is True


def test_refill_never_exceeds_capacity(clock: list[float]) -> None:
    limiter = InMemoryRateLimiter()
    run(limiter.check("k", SMALL))
    clock[0] += 3600

    assert run(limiter.check("k", SMALL)).remaining == 2


def test_keys_are_independent_and_resettable(clock: list[float]) -> None:
    limiter = InMemoryRateLimiter()
    for _ in range(3):
        run(limiter.check("a", SMALL))

    assert run(limiter.check("a", SMALL)).allowed is False
    assert run(limiter.check("b", SMALL)).allowed is True

    run(limiter.reset("a"))
    assert run(limiter.check("a", SMALL)).allowed is True
