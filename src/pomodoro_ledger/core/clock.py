"""Clock sources supplying the single authoritative "now" for each operation."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int:
        """Current wall-clock time in epoch milliseconds."""
        ...


class SystemClock:
    """Wall clock backed by :func:`time.time`."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Clock that only moves when told to.

    Usage:
        clock = ManualClock(start_ms=0)
        clock.advance(1)  # one second later
    """

    def __init__(self, start_ms: int = 0):
        self._now_ms = int(start_ms)

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, seconds: float = 1.0) -> int:
        self._now_ms += int(seconds * 1000)
        return self._now_ms

    def set(self, now_ms: int) -> None:
        self._now_ms = int(now_ms)
