"""Timers that measure how long a tracked operation took."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional


class Timer(ABC):
    """Tracks the time taken by an operation."""

    @abstractmethod
    def start(self) -> "Timer":
        """Start the timer now."""

    @abstractmethod
    def start_at(self, when: datetime) -> "Timer":
        """Start the timer at the given moment."""

    @abstractmethod
    def finish(self) -> timedelta:
        """Return the elapsed time."""


class MemoryTimer(Timer):
    """Timer that keeps its start moment in memory."""

    def __init__(self) -> None:
        self._started_at: datetime = datetime.min
        self._monotonic: Optional[float] = None

    def start(self) -> "MemoryTimer":
        self._started_at = datetime.now()
        self._monotonic = time.perf_counter()
        return self

    def start_at(self, when: datetime) -> "MemoryTimer":
        self._started_at = when
        self._monotonic = None
        return self

    def finish(self) -> timedelta:
        if self._monotonic is not None:
            return timedelta(seconds=time.perf_counter() - self._monotonic)
        return datetime.now(self._started_at.tzinfo) - self._started_at


class DurationTimer(Timer):
    """Timer that reports a duration measured elsewhere."""

    def __init__(self, duration: timedelta) -> None:
        self._duration = duration

    def start(self) -> "DurationTimer":
        return self

    def start_at(self, when: datetime) -> "DurationTimer":
        return self

    def finish(self) -> timedelta:
        return self._duration