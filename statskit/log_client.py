"""Stats client that writes every metric to the package log."""

from __future__ import annotations

from typing import Optional

from .bucket import HTTPRequestBucket, MetricOperation, PlainBucket, Request
from .client_base import Client
from .incrementer import LogIncrementer
from .log import log
from .state import LogState
from .timer import Timer

_TIMER_FINISHED = "Stats timer finished"


class LogClient(Client):
    """Client for debugging: metrics are logged instead of sent anywhere."""

    def __init__(self, unicode: bool = False) -> None:
        super().__init__()
        self.unicode = unicode

    def close(self) -> None:
        """Nothing to close."""
        return None

    def _log_timer(self, bucket_name: str, timer: Optional[Timer]) -> None:
        if timer is not None:
            log(_TIMER_FINISHED, {"bucket": bucket_name, "elapsed": str(timer.finish())})

    def track_request(
        self, request: Request, timer: Optional[Timer], success: bool
    ) -> "LogClient":
        bucket = HTTPRequestBucket(
            self.http_request_section,
            request,
            success,
            self.http_metric_callback,
            self.unicode,
        )
        self._log_timer(bucket.metric(), timer)
        LogIncrementer().increment_all(bucket)
        return self

    def track_operation(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        success: bool,
    ) -> "LogClient":
        bucket = PlainBucket(section, operation, success, self.unicode)
        self._log_timer(bucket.metric_with_suffix(), timer)
        LogIncrementer().increment_all(bucket)
        return self

    def track_operation_n(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        n: int,
        success: bool,
    ) -> "LogClient":
        bucket = PlainBucket(section, operation, success, self.unicode)
        self._log_timer(bucket.metric_with_suffix(), timer)
        LogIncrementer().increment_all_n(bucket, n)
        return self

    def track_metric(self, section: str, operation: MetricOperation) -> "LogClient":
        bucket = PlainBucket(section, operation, True, self.unicode)
        incrementer = LogIncrementer()
        incrementer.increment(bucket.metric())
        incrementer.increment(bucket.metric_total())
        return self

    def track_metric_n(self, section: str, operation: MetricOperation, n: int) -> "LogClient":
        bucket = PlainBucket(section, operation, True, self.unicode)
        incrementer = LogIncrementer()
        incrementer.increment_n(bucket.metric(), n)
        incrementer.increment_n(bucket.metric_total(), n)
        return self

    def track_state(self, section: str, operation: MetricOperation, value: int) -> "LogClient":
        bucket = PlainBucket(section, operation, True, self.unicode)
        LogState().set(bucket.metric(), value)
        return self