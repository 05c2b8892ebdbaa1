"""Deterministic clock helpers reused by limiter, crawler and runner tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

NowFn = Callable[[], datetime]


def fixed_now(moment: datetime) -> NowFn:
    """Return a clock function that always yields the same aware datetime."""
    if moment.tzinfo is None:
        raise ValueError("datetime value must include tzinfo.")

    def _now() -> datetime:
        return moment

    return _now


@dataclass
class SleepRecorder:
    """Sleep function that records requested sleeps for deterministic assertions."""

    calls: list[float] = field(default_factory=list)

    def __call__(self, seconds: float) -> None:
        self.calls.append(float(seconds))

    @property
    def total(self) -> float:
        return sum(self.calls)


@dataclass
class ManualClock:
    """Monotonic clock that only moves when ``sleep`` or ``advance`` is called.

    Pass the instance as a limiter's ``clock`` and its ``sleep`` method as the
    matching sleep function; waits then complete instantly but still move time.
    """

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("sleep duration must be >= 0.")
        self.sleeps.append(float(seconds))
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds
