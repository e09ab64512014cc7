"""
Time sources for the governance engine.

All time-sensitive checks read an injected Clock instead of calling
time.time() directly, so tests can drive the windows deterministically.
Timestamps are whole seconds, like block timestamps.
"""

import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Read-only, monotonic non-decreasing source of the current time."""

    @abstractmethod
    def now(self) -> int:
        """Return the current timestamp."""


class SystemClock(Clock):
    """Wall-clock time, clamped so it never moves backwards."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock(Clock):
    """
    Clock advanced explicitly by the caller.

    Mirrors the ``latest()`` / ``increase()`` helpers used against a
    development chain.
    """

    def __init__(self, start: int = 0):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(
                f"Clock cannot move backwards ({timestamp} < {self._now})"
            )
        self._now = int(timestamp)
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
