"""Tests for the per-provider client-side throttles."""

import pytest

from thrivelog.errors import RateLimitExceeded
from thrivelog.rate_limit_config import (
    describe_rate_limits,
    effective_rate_limits,
    load_custom_rate_limits,
    validate_rate_limits,
)
from thrivelog.rate_limiter import ProviderRateLimiters, RateLimit, RateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    """Three calls per 60 second window, no spacing."""
    return RateLimiter(RateLimit(window_seconds=60, max_requests=3), "groq", clock)


def test_allows_up_to_limit_then_raises(rate_limiter, clock):
    for _ in range(3):
        rate_limiter.acquire()
        clock.advance(1)

    with pytest.raises(RateLimitExceeded) as excinfo:
        rate_limiter.acquire()

    # First call was at t=1000, now is t=1003
    assert 0 < excinfo.value.wait_seconds <= 60
    assert excinfo.value.wait_seconds == pytest.approx(57)
    assert excinfo.value.provider == "groq"
    assert "57 seconds" in str(excinfo.value)


def test_rejected_call_is_not_recorded(rate_limiter, clock):
    for _ in range(3):
        rate_limiter.acquire()

    with pytest.raises(RateLimitExceeded):
        rate_limiter.acquire()
    assert rate_limiter.in_window == 3


def test_window_expiry_frees_capacity(rate_limiter, clock):
    for _ in range(3):
        rate_limiter.acquire()

    clock.advance(60)
    rate_limiter.acquire()
    assert rate_limiter.in_window == 1


def test_min_interval_is_enforced(clock):
    limiter = RateLimiter(
        RateLimit(window_seconds=120, max_requests=3, min_interval_seconds=20),
        "gemini",
        clock,
    )
    limiter.acquire()
    clock.advance(5)

    with pytest.raises(RateLimitExceeded) as excinfo:
        limiter.acquire()

    assert excinfo.value.reason == "interval"
    assert excinfo.value.wait_seconds == pytest.approx(15)
    assert "Please wait 15 seconds" in str(excinfo.value)

    clock.advance(15)
    limiter.acquire()


def test_get_wait_time_does_not_record(rate_limiter, clock):
    assert rate_limiter.get_wait_time() == 0.0
    for _ in range(3):
        rate_limiter.acquire()
    clock.advance(10)

    assert rate_limiter.get_wait_time() == pytest.approx(50)
    assert rate_limiter.in_window == 3


def test_reset_clears_history(rate_limiter):
    for _ in range(3):
        rate_limiter.acquire()
    rate_limiter.reset()
    rate_limiter.acquire()


def test_zero_max_requests_means_unthrottled(clock):
    limiter = RateLimiter(RateLimit(window_seconds=60, max_requests=0), "other", clock)
    for _ in range(50):
        limiter.acquire()


def test_providers_are_independent(clock):
    limiters = ProviderRateLimiters.from_config(
        {
            "groq": {"window_seconds": 60, "max_requests": 1, "min_interval_seconds": 0},
            "openai": {"window_seconds": 60, "max_requests": 1, "min_interval_seconds": 0},
        },
        clock=clock,
    )
    limiters.get("groq").acquire()
    with pytest.raises(RateLimitExceeded):
        limiters.get("groq").acquire()

    # Other provider should still work immediately
    limiters.get("openai").acquire()

    status = limiters.status()
    assert status["groq"]["requests_in_window"] == 1
    assert status["groq"]["wait_seconds"] == pytest.approx(60)
    assert sorted(limiters) == ["groq", "openai"]


def test_unknown_provider_gets_unthrottled_limiter():
    limiters = ProviderRateLimiters({})
    limiter = limiters.get("anthropic")
    for _ in range(10):
        limiter.acquire()
    assert "anthropic" in list(limiters)


def test_describe_rate_limits():
    described = describe_rate_limits(
        {"gemini": {"window_seconds": 120, "max_requests": 3, "min_interval_seconds": 20}}
    )
    assert described["gemini"]["summary"] == "3 requests per 120s, at least 20s apart"


def test_validate_rate_limits_flags_bad_values():
    warnings = validate_rate_limits(
        {
            "groq": {"window_seconds": 0, "max_requests": 0, "min_interval_seconds": -1},
            "gemini": {"window_seconds": 30, "max_requests": 3, "min_interval_seconds": 20},
        }
    )
    assert any("window must be positive" in warning for warning in warnings)
    assert any("max requests too low" in warning for warning in warnings)
    assert any("negative minimum interval" in warning for warning in warnings)
    assert any(warning.startswith("gemini:") for warning in warnings)


def test_env_overrides_are_merged(monkeypatch):
    monkeypatch.setenv("GROQ_RATE_MAX", "10")
    monkeypatch.setenv("MISTRAL_RATE_WINDOW", "30")

    custom = load_custom_rate_limits()
    assert custom["groq"]["max_requests"] == 10

    merged = effective_rate_limits(
        {"groq": {"window_seconds": 60.0, "max_requests": 3, "min_interval_seconds": 0.0}}
    )
    assert merged["groq"]["max_requests"] == 10
    assert merged["groq"]["window_seconds"] == 60.0
    assert merged["mistral"]["window_seconds"] == 30.0
    assert merged["mistral"]["max_requests"] == 0
