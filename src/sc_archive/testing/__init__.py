"""Test-only utilities for deterministic waits."""

from .time_control import ManualClock, SleepRecorder, fixed_now

__all__ = [
    "ManualClock",
    "SleepRecorder",
    "fixed_now",
]
