import logging
import time
from collections import deque
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_THRESHOLDS = {
    "VISION_SERVICE_FAILED": 5,
    "VISION_NOT_CONFIGURED": 1,
    "EXPENSE_STORE_FAILED": 5,
}


class AlertTracker:
    def __init__(self, window_seconds: int, thresholds: dict[str, int]) -> None:
        self._window_seconds = window_seconds
        self._thresholds = thresholds
        self._buckets: dict[str, deque[float]] = {}
        self._lock = Lock()

    def record(self, event: str, metadata: Optional[dict] = None) -> bool:
        """Count *event*; return True when this occurrence raised an alert."""
        if event not in self._thresholds:
            return False
        limit = self._thresholds[event]
        now = time.monotonic()
        alerted = False
        with self._lock:
            bucket = self._buckets.get(event)
            if bucket is None:
                bucket = deque()
                self._buckets[event] = bucket
            cutoff = now - self._window_seconds
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            bucket.append(now)
            # Alert at threshold and at every multiple of threshold
            if len(bucket) >= limit and len(bucket) % limit == 0:
                alerted = True
                logger.warning(
                    "ALERT event=%s count=%s window_seconds=%s metadata=%s",
                    event,
                    len(bucket),
                    self._window_seconds,
                    metadata or {},
                )
        return alerted

    def count(self, event: str) -> int:
        with self._lock:
            bucket = self._buckets.get(event)
            return len(bucket) if bucket else 0

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


alert_tracker = AlertTracker(DEFAULT_WINDOW_SECONDS, DEFAULT_THRESHOLDS)
