import logging
import time
from collections import deque
from threading import Lock
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_FAILURE_THRESHOLD = 5


class ProviderAlertTracker:
    """Logs an ALERT when a provider keeps failing inside a sliding window."""

    def __init__(
        self,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        threshold: int = DEFAULT_FAILURE_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window_seconds = window_seconds
        self._threshold = max(1, threshold)
        self._buckets: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._clock = clock

    def record_failure(self, provider: str, metadata: Optional[dict] = None) -> int:
        """Record one failure and return the count inside the window."""
        now = self._clock()
        with self._lock:
            bucket = self._buckets.get(provider)
            if bucket is None:
                bucket = deque()
                self._buckets[provider] = bucket
            cutoff = now - self._window_seconds
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            bucket.append(now)
            count = len(bucket)
            # Alert at threshold and at every multiple of threshold
            if count % self._threshold == 0:
                logger.warning(
                    "ALERT provider_failures provider=%s count=%s window_seconds=%s metadata=%s",
                    provider,
                    count,
                    self._window_seconds,
                    metadata or {},
                )
            return count

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
