"""In-memory rate limiter for API protection."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Tuple


class InMemoryRateLimiter:
    """Fixed-window limiter per key.

    Each key gets a window that opens on its first request; once
    `max_requests` have been counted the key is refused until the window
    expires. `clock` is injectable so tests can advance time.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> tuple[bool, int]:
        """Count one request for `key`; return (allowed, retry_after_seconds)."""
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            if count >= self.max_requests:
                retry_after = max(1, int(self.window_seconds - (now - started)))
                return False, retry_after
            self._windows[key] = (started, count + 1)
        return True, 0

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
