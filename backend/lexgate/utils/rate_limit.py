import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable

from lexgate.services.ai.common.registry import RateLimit

WINDOW_SECONDS = 60.0


@dataclass
class RateLimitWindow:
    """Rolling request history for a single provider."""

    window_start: float
    requests: deque[float] = field(default_factory=deque)
    tokens: int = 0
    in_flight: int = 0
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)


class ProviderRateLimiter:
    """Per-provider sliding window keyed by request timestamps.

    Admission is recomputed from the raw timestamp list on every check, so no
    background reset is needed. Each provider window has its own lock and no
    method holds more than one of them.
    """

    def __init__(
        self,
        *,
        window_seconds: float = WINDOW_SECONDS,
        enforce_token_budget: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._windows: dict[str, RateLimitWindow] = {}
        self._registry_lock = Lock()
        self._window_seconds = window_seconds
        self._enforce_token_budget = enforce_token_budget
        self._clock = clock

    def _window(self, provider: str) -> RateLimitWindow:
        with self._registry_lock:
            window = self._windows.get(provider)
            if window is None:
                window = RateLimitWindow(window_start=self._clock())
                self._windows[provider] = window
            return window

    def _roll(self, window: RateLimitWindow, now: float) -> None:
        """Purge expired timestamps and reset the token counter on rollover (called under lock)."""
        cutoff = now - self._window_seconds
        while window.requests and window.requests[0] <= cutoff:
            window.requests.popleft()
        if now - window.window_start > self._window_seconds:
            window.tokens = 0
            window.window_start = now

    def _has_headroom(self, window: RateLimitWindow, limit: RateLimit) -> bool:
        if len(window.requests) + window.in_flight >= limit.requests_per_minute:
            return False
        if self._enforce_token_budget and window.tokens >= limit.tokens_per_minute:
            return False
        return True

    def check(self, provider: str, limit: RateLimit) -> bool:
        """Return True when *provider* has headroom right now. Reserves nothing."""
        window = self._window(provider)
        with window.lock:
            self._roll(window, self._clock())
            return self._has_headroom(window, limit)

    def admit(self, provider: str, limit: RateLimit) -> bool:
        """Check and, if admitted, reserve an in-flight slot atomically."""
        window = self._window(provider)
        with window.lock:
            self._roll(window, self._clock())
            if not self._has_headroom(window, limit):
                return False
            window.in_flight += 1
            return True

    def commit(self, provider: str, tokens: int) -> None:
        """Turn a reservation into a recorded request with its token usage."""
        window = self._window(provider)
        with window.lock:
            if window.in_flight > 0:
                window.in_flight -= 1
            now = self._clock()
            self._roll(window, now)
            window.requests.append(now)
            window.tokens += max(0, int(tokens or 0))

    def release(self, provider: str) -> None:
        """Drop a reservation without recording a request."""
        window = self._window(provider)
        with window.lock:
            if window.in_flight > 0:
                window.in_flight -= 1

    def usage(self, provider: str) -> tuple[int, int]:
        """(requests in the trailing window, tokens in the current window)."""
        window = self._window(provider)
        with window.lock:
            self._roll(window, self._clock())
            return len(window.requests), window.tokens

    def reset(self) -> None:
        with self._registry_lock:
            self._windows.clear()
