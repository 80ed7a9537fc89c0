# adsync/rate_limit.py
"""Coarse fixed-window request limiter keyed by client address."""
import threading
import time
from dataclasses import dataclass
from typing import Dict


@dataclass
class RateWindow:
    start_ts: float
    count: int = 0


class RateLimiter:
    def __init__(self, limit: int, window_seconds: int, clock=time.monotonic):
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()
        self._last_purge = 0.0

    def allow(self, key: str) -> bool:
        if self._limit <= 0:
            return True
        now = self._clock()
        with self._lock:
            # drop expired windows once per window length
            if now - self._last_purge >= self._window:
                expired = [k for k, w in self._windows.items() if now - w.start_ts >= self._window]
                for k in expired:
                    del self._windows[k]
                self._last_purge = now

            window = self._windows.get(key)
            if window is None or now - window.start_ts >= self._window:
                self._windows[key] = RateWindow(start_ts=now, count=1)
                return True
            window.count += 1
            return window.count <= self._limit
