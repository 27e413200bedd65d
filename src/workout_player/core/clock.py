"""Millisecond clocks injected into the session player."""

import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall clock in epoch milliseconds."""

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000


class ManualClock:
    """
    Clock that only moves when told to.

    Used by tests and by replaying a session deterministically.
    """

    def __init__(self, start_ms: int = 0):
        self._now = start_ms

    def now_ms(self) -> int:
        return self._now

    def advance(self, seconds: float = 1.0) -> None:
        self._now += int(seconds * 1000)
