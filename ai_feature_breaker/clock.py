"""Clock sources for circuit timestamps (epoch milliseconds)."""

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current time in epoch milliseconds."""

    def now_ms(self) -> int:
        ...


class SystemClock:
    """Wall-clock time."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Clock that only moves when told to. Used for deterministic tests."""

    def __init__(self, start_ms: int = 0):
        self._now = start_ms

    def now_ms(self) -> int:
        return self._now

    def set(self, ms: int) -> None:
        self._now = ms

    def advance(self, ms: int) -> None:
        self._now += ms
