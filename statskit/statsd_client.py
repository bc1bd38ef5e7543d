"""Stats client that sends metrics to a StatsD server."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from .bucket import HTTPRequestBucket, MetricOperation, PlainBucket, Request
from .client_base import Client
from .incrementer import StatsDIncrementer
from .log import log
from .state import StatsDState
from .statsd import StatsDConnection
from .timer import Timer


def _milliseconds(timer: Timer) -> int:
    return int(timer.finish() / timedelta(milliseconds=1))


class StatsDClient(Client):
    """Client that counts, times and gauges metrics on a StatsD server."""

    def __init__(self, address: str = "", prefix: str = "", unicode: bool = False) -> None:
        super().__init__()
        fields = {"addr": address, "prefix": prefix}
        log("Trying to connect to statsd instance", fields)
        try:
            self.connection = StatsDConnection(address, prefix)
        except (OSError, ValueError) as err:
            log("An error occurred while connecting to StatsD", fields, err)
            raise
        self.unicode = unicode

    def close(self) -> None:
        """Close the StatsD connection."""
        self.connection.close()

    def _timing(self, bucket_name: str, timer: Optional[Timer]) -> None:
        if timer is not None:
            self.connection.timing(bucket_name, _milliseconds(timer))

    def track_request(
        self, request: Request, timer: Optional[Timer], success: bool
    ) -> "StatsDClient":
        bucket = HTTPRequestBucket(
            self.http_request_section,
            request,
            success,
            self.http_metric_callback,
            self.unicode,
        )
        self._timing(bucket.metric(), timer)
        StatsDIncrementer(self.connection).increment_all(bucket)
        return self

    def track_operation(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        success: bool,
    ) -> "StatsDClient":
        bucket = PlainBucket(section, operation, success, self.unicode)
        self._timing(bucket.metric_with_suffix(), timer)
        StatsDIncrementer(self.connection).increment_all(bucket)
        return self

    def track_operation_n(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        n: int,
        success: bool,
    ) -> "StatsDClient":
        bucket = PlainBucket(section, operation, success, self.unicode)
        self._timing(bucket.metric_with_suffix(), timer)
        StatsDIncrementer(self.connection).increment_all_n(bucket, n)
        return self

    def track_metric(self, section: str, operation: MetricOperation) -> "StatsDClient":
        bucket = PlainBucket(section, operation, True, self.unicode)
        incrementer = StatsDIncrementer(self.connection)
        incrementer.increment(bucket.metric())
        incrementer.increment(bucket.metric_total())
        return self

    def track_metric_n(self, section: str, operation: MetricOperation, n: int) -> "StatsDClient":
        bucket = PlainBucket(section, operation, True, self.unicode)
        incrementer = StatsDIncrementer(self.connection)
        incrementer.increment_n(bucket.metric(), n)
        incrementer.increment_n(bucket.metric_total(), n)
        return self

    def track_state(self, section: str, operation: MetricOperation, value: int) -> "StatsDClient":
        bucket = PlainBucket(section, operation, True, self.unicode)
        StatsDState(self.connection).set(bucket.metric(), value)
        return self