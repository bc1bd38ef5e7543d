"""The interface shared by all stats clients."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Mapping, Optional

from .bucket import SECTION_REQUEST, HTTPMetricNameAlterCallback, MetricOperation, Request
from .timer import MemoryTimer, Timer

WSGIApp = Callable[[Mapping[str, Any], Callable[..., Any]], Iterable[bytes]]


def method_not_allowed(environ: Mapping[str, Any], start_response: Callable[..., Any]) -> list[bytes]:
    """WSGI application that answers every request with 405."""
    start_response("405 Method Not Allowed", [("Content-Length", "0")])
    return []


class Client(ABC):
    """Gathers stats about requests, operations and states."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._http_metric_callback: Optional[HTTPMetricNameAlterCallback] = None
        self._http_request_section = SECTION_REQUEST

    @property
    def http_metric_callback(self) -> Optional[HTTPMetricNameAlterCallback]:
        """Callback that may alter the metric operation of HTTP requests."""
        with self._lock:
            return self._http_metric_callback

    @property
    def http_request_section(self) -> str:
        """Metric section used for HTTP request metrics."""
        with self._lock:
            return self._http_request_section

    def build_timer(self) -> Timer:
        """Return a timer to track metric timings."""
        return MemoryTimer()

    @abstractmethod
    def close(self) -> None:
        """Close the underlying connection, if any."""

    @abstractmethod
    def track_request(self, request: Request, timer: Optional[Timer], success: bool) -> "Client":
        """Track HTTP request stats."""

    @abstractmethod
    def track_operation(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        success: bool,
    ) -> "Client":
        """Track a custom operation."""

    @abstractmethod
    def track_operation_n(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        n: int,
        success: bool,
    ) -> "Client":
        """Track a custom operation counted ``n`` times."""

    @abstractmethod
    def track_metric(self, section: str, operation: MetricOperation) -> "Client":
        """Track a custom metric without ok/fail sections."""

    @abstractmethod
    def track_metric_n(self, section: str, operation: MetricOperation, n: int) -> "Client":
        """Track a custom metric counted ``n`` times, without ok/fail sections."""

    @abstractmethod
    def track_state(self, section: str, operation: MetricOperation, value: int) -> "Client":
        """Track the absolute value of a metric."""

    def set_http_metric_callback(
        self, callback: Optional[HTTPMetricNameAlterCallback]
    ) -> "Client":
        """Set the callback that may alter HTTP request metric operations."""
        with self._lock:
            self._http_metric_callback = callback
        return self

    def set_http_request_section(self, section: str) -> "Client":
        """Set the metric section for HTTP request metrics."""
        with self._lock:
            self._http_request_section = section
        return self

    def reset_http_request_section(self) -> "Client":
        """Restore the HTTP request metric section to ``request``."""
        return self.set_http_request_section(SECTION_REQUEST)

    def handler(self) -> WSGIApp:
        """Return the WSGI application serving the metrics endpoint."""
        return method_not_allowed