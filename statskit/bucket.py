"""Metric name building for tracked operations and HTTP requests."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qs

from unidecode import unidecode

TOTAL_BUCKET = "total"
SUFFIX_STATUS_OK = "ok"
SUFFIX_STATUS_FAIL = "fail"
PREFIX_UNICODE = "-u-"

SECTION_REQUEST = "request"
METRIC_EMPTY_PLACEHOLDER = "-"
METRIC_ID_PLACEHOLDER = "-id-"
METRIC_OPERATIONS_MAX_LENGTH = 3


def _status(success: bool) -> str:
    return SUFFIX_STATUS_OK if success else SUFFIX_STATUS_FAIL


def _transliterate(metric: str, uni_decode: bool) -> str:
    if uni_decode:
        ascii_metric = unidecode(metric)
        if ascii_metric != metric:
            return PREFIX_UNICODE + ascii_metric
    return metric


def sanitize_metric_name(metric: str, uni_decode: bool) -> str:
    """Make a metric name section safe for statsd."""
    if not metric:
        return METRIC_EMPTY_PLACEHOLDER
    metric = _transliterate(metric, uni_decode)
    return metric.replace("_", "__").replace(".", "_")


def _sanitize_prometheus_name(metric: str, uni_decode: bool) -> str:
    if not metric:
        return ""
    metric = _transliterate(metric, uni_decode)
    return metric.replace("-", "").replace("_", "").replace(".", "_")


class MetricOperation:
    """Up to three operation names of a metric, plus optional labels."""

    def __init__(self, *operations: str) -> None:
        picked = list(operations[:METRIC_OPERATIONS_MAX_LENGTH])
        padding = METRIC_OPERATIONS_MAX_LENGTH - len(picked)
        self.operations: list[str] = picked + [METRIC_EMPTY_PLACEHOLDER] * padding
        self.labels: Optional[dict[str, str]] = None
        self._lock = threading.Lock()

    def with_labels(self, labels: Mapping[str, str]) -> "MetricOperation":
        """Set labels; once set, only already known label keys get new values."""
        with self._lock:
            if self.labels is None:
                self.labels = dict(labels)
                return self
            for key in self.labels:
                self.labels[key] = ""
            for key, value in labels.items():
                if key in self.labels:
                    self.labels[key] = value
        return self

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, MetricOperation):
            return NotImplemented
        return self.operations == other.operations and self.labels == other.labels

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"MetricOperation(operations={self.operations!r}, labels={self.labels!r})"


@dataclass
class Request:
    """The parts of an HTTP request that metric names are built from."""

    method: str
    path: str = "/"
    query: str = ""

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "Request":
        """Build a request from a WSGI environ."""
        raw_path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
        try:
            path = raw_path.encode("latin-1").decode("utf-8")
        except (UnicodeEncodeError, UnicodeDecodeError):
            path = raw_path
        return cls(
            method=environ.get("REQUEST_METHOD", "GET"),
            path=path or "/",
            query=environ.get("QUERY_STRING", ""),
        )

    def query_param(self, key: str) -> str:
        """Return the first value of a query parameter, or an empty string."""
        values = parse_qs(self.query, keep_blank_values=True).get(key)
        return values[0] if values else ""


HTTPMetricNameAlterCallback = Callable[[MetricOperation, Request], MetricOperation]


class Bucket(ABC):
    """Builds metric names for an operation."""

    @abstractmethod
    def metric(self) -> str:
        """Simple metric name."""

    @abstractmethod
    def metric_with_suffix(self) -> str:
        """Metric name with the ok/fail suffix on the section."""

    @abstractmethod
    def metric_total(self) -> str:
        """Total metric name for the section."""

    @abstractmethod
    def metric_total_with_suffix(self) -> str:
        """Total metric name with the ok/fail suffix."""


class PlainBucket(Bucket):
    """Dot separated metric names: ``<section>.<op-0>.<op-1>.<op-2>``."""

    def __init__(
        self, section: str, operation: MetricOperation, success: bool, uni_decode: bool
    ) -> None:
        self.section = sanitize_metric_name(section, uni_decode)
        self.operation = ".".join(
            sanitize_metric_name(op, uni_decode) for op in operation.operations
        )
        self.success = success

    def metric(self) -> str:
        return f"{self.section}.{self.operation}"

    def metric_with_suffix(self) -> str:
        return f"{self.section}-{_status(self.success)}.{self.operation}"

    def metric_total(self) -> str:
        return f"{TOTAL_BUCKET}.{self.section}"

    def metric_total_with_suffix(self) -> str:
        return f"{TOTAL_BUCKET}.{self.section}-{_status(self.success)}"


class PrometheusBucket(Bucket):
    """Underscore separated metric names suitable for Prometheus."""

    def __init__(
        self, section: str, operation: MetricOperation, success: bool, uni_decode: bool
    ) -> None:
        sanitized = (_sanitize_prometheus_name(op, uni_decode) for op in operation.operations)
        self.section = _sanitize_prometheus_name(section, uni_decode)
        self.operation = "_".join(name for name in sanitized if name)
        self.success = success

    def metric(self) -> str:
        return f"{self.section}_{self.operation}"

    def metric_with_suffix(self) -> str:
        return f"{self.section}-{_status(self.success)}.{self.operation}"

    def metric_total(self) -> str:
        return f"{TOTAL_BUCKET}_{self.section}"

    def metric_total_with_suffix(self) -> str:
        return f"{TOTAL_BUCKET}_{self.section}-{_status(self.success)}"


def build_http_request_metric_operation(
    request: Request, callback: Optional[HTTPMetricNameAlterCallback]
) -> MetricOperation:
    """Build ``<method>.<path-level-0>.<path-level-1>`` from a request."""
    operation = MetricOperation(
        request.method.lower(), METRIC_EMPTY_PLACEHOLDER, METRIC_EMPTY_PLACEHOLDER
    )
    if request.path != "/":
        fragments = [fragment for fragment in request.path.split("/") if fragment]
        slots = len(operation.operations) - 1
        operation.operations[1 : 1 + len(fragments[:slots])] = fragments[:slots]
    if callback is not None:
        operation = callback(operation, request)
    return operation


class HTTPRequestBucket(PlainBucket):
    """Plain bucket whose operation comes from an HTTP request."""

    def __init__(
        self,
        section: str,
        request: Request,
        success: bool,
        callback: Optional[HTTPMetricNameAlterCallback],
        uni_decode: bool,
    ) -> None:
        super().__init__(
            section,
            build_http_request_metric_operation(request, callback),
            success,
            uni_decode,
        )
        self.request = request
        self.callback = callback