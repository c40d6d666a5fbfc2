"""
Timestamp sources for replicas.
"""

import math
import threading
import time
from typing import Callable, Optional


class MonotonicClock:
    """
    Wall-clock timestamps that never go backwards for one replica.

    Each reading is at least the wall-clock time and strictly greater than
    the previous reading, so two local events are never tied even when the
    system clock stalls or steps back.
    """

    def __init__(self, source: Optional[Callable[[], float]] = None):
        self._source = source if source is not None else time.time
        self._last = -math.inf
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            now = self._source()
            if now <= self._last:
                now = math.nextafter(self._last, math.inf)
            self._last = now
            return now

    def observe(self, timestamp: float) -> None:
        """Advance past a timestamp seen from another replica."""
        if not math.isfinite(timestamp):
            return
        with self._lock:
            if timestamp > self._last:
                self._last = timestamp
