"""Client-side throttles guarding outbound calls to AI providers."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterator, Mapping, Optional

from .errors import RateLimitExceeded


@dataclass(frozen=True)
class RateLimit:
    window_seconds: float
    max_requests: int
    min_interval_seconds: float = 0.0

    @classmethod
    def from_dict(cls, values: Mapping[str, float]) -> "RateLimit":
        return cls(
            window_seconds=float(values.get("window_seconds", 60)),
            max_requests=int(values.get("max_requests", 0) or 0),
            min_interval_seconds=float(values.get("min_interval_seconds", 0) or 0),
        )


class RateLimiter:
    """Fixed trailing window plus minimum spacing for a single provider.

    State is process-local. A rejected call raises ``RateLimitExceeded``
    immediately instead of waiting, so callers can fall back or tell the
    user how long to wait.
    """

    def __init__(
        self,
        limit: RateLimit,
        name: str = "provider",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.name = name
        self._clock = clock
        self._requests: Deque[float] = deque()

    def _prune(self, now: float) -> None:
        window = self.limit.window_seconds
        while self._requests and now - self._requests[0] >= window:
            self._requests.popleft()

    def _check(self, now: float) -> Optional[RateLimitExceeded]:
        min_interval = self.limit.min_interval_seconds
        if min_interval and self._requests:
            since_last = now - self._requests[-1]
            if since_last < min_interval:
                return RateLimitExceeded(
                    self.name, min_interval - since_last, reason="interval"
                )

        max_requests = self.limit.max_requests
        if max_requests and len(self._requests) >= max_requests:
            wait_time = self._requests[0] + self.limit.window_seconds - now
            return RateLimitExceeded(self.name, wait_time, reason="window")

        return None

    def acquire(self) -> None:
        """Record a call, or raise ``RateLimitExceeded`` if it is not allowed."""

        now = self._clock()
        self._prune(now)
        exceeded = self._check(now)
        if exceeded is not None:
            raise exceeded
        self._requests.append(now)

    def get_wait_time(self) -> float:
        """Return the expected wait before a call is allowed, without recording one."""

        now = self._clock()
        self._prune(now)
        exceeded = self._check(now)
        return exceeded.wait_seconds if exceeded is not None else 0.0

    @property
    def in_window(self) -> int:
        self._prune(self._clock())
        return len(self._requests)

    def reset(self) -> None:
        self._requests.clear()


class ProviderRateLimiters:
    """One ``RateLimiter`` per provider, built from configuration."""

    def __init__(self, limiters: Dict[str, RateLimiter]) -> None:
        self._limiters = limiters

    @classmethod
    def from_config(
        cls,
        limits: Mapping[str, Mapping[str, float]],
        clock: Callable[[], float] = time.monotonic,
    ) -> "ProviderRateLimiters":
        return cls(
            {
                provider: RateLimiter(RateLimit.from_dict(values), provider, clock)
                for provider, values in limits.items()
            }
        )

    def get(self, provider: str) -> RateLimiter:
        if provider not in self._limiters:
            # Unknown providers are unthrottled
            self._limiters[provider] = RateLimiter(RateLimit(60, 0), provider)
        return self._limiters[provider]

    def __iter__(self) -> Iterator[str]:
        return iter(self._limiters)

    def status(self) -> Dict[str, Dict[str, float]]:
        return {
            provider: {
                "requests_in_window": limiter.in_window,
                "wait_seconds": round(limiter.get_wait_time(), 2),
            }
            for provider, limiter in self._limiters.items()
        }
