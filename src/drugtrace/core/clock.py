from __future__ import annotations

import threading
import time
from typing import Callable, Protocol


class Clock(Protocol):
    def __call__(self) -> float: ...


class MonotonicClock:
    """Wall-clock seconds that never go backwards between calls.

    Registration and history timestamps must follow call order even if the
    host clock is stepped back (NTP adjustments etc.).
    """

    def __init__(self, source: Callable[[], float] = time.time) -> None:
        self._source = source
        self._lock = threading.Lock()
        self._last = float("-inf")

    def __call__(self) -> float:
        with self._lock:
            now = float(self._source())
            if now < self._last:
                now = self._last
            self._last = now
            return now


class ManualClock:
    """Deterministic clock for tests and simulations."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = float(start)

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += float(seconds)
        return self._now

    def set(self, value: float) -> float:
        if float(value) < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = float(value)
        return self._now
