"""Clock sources returning the current time as integer ticks."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Monotonic clock interface."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time in ticks."""


class SystemClock(Clock):
    """Unix time in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("Clock start must be non-negative")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        """Move the clock to `timestamp`; it never goes backwards."""
        if timestamp < self._now:
            raise ValueError("Clock cannot move backwards")
        self._now = timestamp

    def advance(self, ticks: int = 1) -> int:
        """Advance the clock and return the new time."""
        if ticks < 0:
            raise ValueError("Ticks must be non-negative")
        self._now += ticks
        return self._now
