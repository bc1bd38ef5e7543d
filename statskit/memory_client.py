"""Stats client that keeps everything in memory, mainly for tests."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .bucket import HTTPRequestBucket, MetricOperation, PlainBucket, Request
from .client_base import Client
from .incrementer import MemoryIncrementer
from .state import MemoryState
from .timer import Timer


@dataclass(frozen=True)
class TimerMetric:
    """A single recorded duration."""

    bucket: str
    elapsed: timedelta


class MemoryClient(Client):
    """Client that stores timings, counts and states in memory."""

    def __init__(self, unicode: bool = False) -> None:
        super().__init__()
        self.unicode = unicode
        self._metrics_lock = threading.Lock()
        self.timer_metrics: list[TimerMetric] = []
        self.count_metrics: Counter[str] = Counter()
        self.state_metrics: dict[str, int] = {}

    def close(self) -> None:
        """Forget all collected stats."""
        with self._metrics_lock:
            self.timer_metrics = []
            self.count_metrics = Counter()
            self.state_metrics = {}

    def _record(
        self, bucket_name: str, timer: Optional[Timer], incrementer: MemoryIncrementer
    ) -> None:
        elapsed = timer.finish() if timer is not None else None
        with self._metrics_lock:
            if elapsed is not None:
                self.timer_metrics.append(TimerMetric(bucket_name, elapsed))
            self.count_metrics.update(incrementer.metrics())

    def track_request(
        self, request: Request, timer: Optional[Timer], success: bool
    ) -> "MemoryClient":
        bucket = HTTPRequestBucket(
            self.http_request_section,
            request,
            success,
            self.http_metric_callback,
            self.unicode,
        )
        incrementer = MemoryIncrementer()
        incrementer.increment_all(bucket)
        self._record(bucket.metric(), timer, incrementer)
        return self

    def track_operation(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        success: bool,
    ) -> "MemoryClient":
        bucket = PlainBucket(section, operation, success, True)
        incrementer = MemoryIncrementer()
        incrementer.increment_all(bucket)
        self._record(bucket.metric_with_suffix(), timer, incrementer)
        return self

    def track_operation_n(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        n: int,
        success: bool,
    ) -> "MemoryClient":
        bucket = PlainBucket(section, operation, success, True)
        incrementer = MemoryIncrementer()
        incrementer.increment_all_n(bucket, n)
        self._record(bucket.metric_with_suffix(), timer, incrementer)
        return self

    def track_metric(self, section: str, operation: MetricOperation) -> "MemoryClient":
        bucket = PlainBucket(section, operation, True, True)
        incrementer = MemoryIncrementer()
        incrementer.increment(bucket.metric())
        incrementer.increment(bucket.metric_total())
        self._record(bucket.metric(), None, incrementer)
        return self

    def track_metric_n(
        self, section: str, operation: MetricOperation, n: int
    ) -> "MemoryClient":
        bucket = PlainBucket(section, operation, True, True)
        incrementer = MemoryIncrementer()
        incrementer.increment_n(bucket.metric(), n)
        incrementer.increment_n(bucket.metric_total(), n)
        self._record(bucket.metric(), None, incrementer)
        return self

    def track_state(
        self, section: str, operation: MetricOperation, value: int
    ) -> "MemoryClient":
        bucket = PlainBucket(section, operation, True, True)
        state = MemoryState()
        state.set(bucket.metric(), value)
        with self._metrics_lock:
            self.state_metrics.update(state.metrics())
        return self