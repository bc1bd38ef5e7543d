"""Stats client that exposes metrics in the Prometheus format."""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional, Protocol

from .bucket import HTTPRequestBucket, MetricOperation, PrometheusBucket, Request
from .client_base import Client, WSGIApp
from .incrementer import Incrementer, PrometheusIncrementerFactory
from .registry import CONTENT_TYPE, REGISTRY, HistogramVec, Registry, RegistrationError
from .state import PrometheusStateFactory, State
from .timer import Timer


class _IncrementerFactory(Protocol):
    def create(self) -> Incrementer: ...


class _StateFactory(Protocol):
    def create(self) -> State: ...


def _flatten_request_metric(metric: str) -> str:
    for old, new in (("-.", ""), (".-", ""), ("-", ""), (".", "_")):
        metric = metric.replace(old, new)
    return metric


def _bool_label(value: bool) -> str:
    return "true" if value else "false"


class PrometheusClient(Client):
    """Client that counts metrics in Prometheus counter, gauge and histogram families."""

    def __init__(
        self,
        namespace: str,
        incrementer_factory: Optional[_IncrementerFactory] = None,
        state_factory: Optional[_StateFactory] = None,
        registry: Optional[Registry] = None,
    ) -> None:
        super().__init__()
        self.namespace = namespace
        self.registry = registry if registry is not None else REGISTRY
        self.incrementer_factory = (
            incrementer_factory
            if incrementer_factory is not None
            else PrometheusIncrementerFactory(self.registry)
        )
        self.state_factory = (
            state_factory if state_factory is not None else PrometheusStateFactory(self.registry)
        )
        self.unicode = False
        self.increments: dict[str, Incrementer] = {}
        self.states: dict[str, State] = {}
        self.histograms: dict[str, HistogramVec] = {}
        self._store_lock = threading.Lock()

    def close(self) -> None:
        """Nothing to close."""
        return None

    def _prepare_metric(self, metric: str) -> str:
        return f"{self.namespace}_{metric}"

    def _incrementer(self, name: str) -> Incrementer:
        with self._store_lock:
            incrementer = self.increments.get(name)
            if incrementer is None:
                incrementer = self.incrementer_factory.create()
                self.increments[name] = incrementer
            return incrementer

    def _state(self, name: str) -> State:
        with self._store_lock:
            state = self.states.get(name)
            if state is None:
                state = self.state_factory.create()
                self.states[name] = state
            return state

    def _histogram(self, name: str, labels: Mapping[str, str]) -> HistogramVec:
        with self._store_lock:
            histogram = self.histograms.get(name)
            if histogram is None:
                histogram = HistogramVec(f"{name}_seconds", " ", list(labels))
                try:
                    self.registry.register(histogram)
                except RegistrationError:
                    # an unregistered family still records; it is only not exposed
                    pass
                self.histograms[name] = histogram
            return histogram

    @staticmethod
    def _mark_success(operation: MetricOperation, success: bool) -> None:
        if operation.labels is None:
            operation.labels = {"success": _bool_label(success)}
        else:
            operation.labels["success"] = _bool_label(success)

    def _observe(self, metric: str, operation: MetricOperation, timer: Optional[Timer]) -> None:
        if timer is None:
            return
        labels = operation.labels or {}
        histogram = self._histogram(self._prepare_metric(metric), labels)
        milliseconds = int(timer.finish() / timedelta(milliseconds=1))
        histogram.with_label_values(*labels.values()).observe(float(milliseconds))

    def track_request(
        self, request: Request, timer: Optional[Timer], success: bool
    ) -> "PrometheusClient":
        bucket = HTTPRequestBucket(
            self.http_request_section,
            request,
            success,
            self.http_metric_callback,
            self.unicode,
        )
        metric = _flatten_request_metric(bucket.metric())
        metric_total = _flatten_request_metric(bucket.metric_total())

        metric_incrementer = self._incrementer(metric)
        total_incrementer = self._incrementer(metric_total)

        labels = {"success": _bool_label(success), "action": request.method}
        metric_incrementer.increment(self._prepare_metric(metric), labels)
        total_incrementer.increment(self._prepare_metric(metric_total), labels)
        return self

    def track_operation(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        success: bool,
    ) -> "PrometheusClient":
        bucket = PrometheusBucket(section, operation, success, self.unicode)
        self._mark_success(operation, success)
        self.track_metric(section, operation)
        self._observe(bucket.metric(), operation, timer)
        return self

    def track_operation_n(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        n: int,
        success: bool,
    ) -> "PrometheusClient":
        bucket = PrometheusBucket(section, operation, success, self.unicode)
        self._mark_success(operation, success)
        self.track_metric_n(section, operation, n)
        self._observe(bucket.metric(), operation, timer)
        return self

    def track_metric(self, section: str, operation: MetricOperation) -> "PrometheusClient":
        bucket = PrometheusBucket(section, operation, True, self.unicode)
        metric, metric_total = bucket.metric(), bucket.metric_total()
        metric_incrementer = self._incrementer(metric)
        total_incrementer = self._incrementer(metric_total)
        metric_incrementer.increment(self._prepare_metric(metric), operation.labels)
        total_incrementer.increment(self._prepare_metric(metric_total), operation.labels)
        return self

    def track_metric_n(
        self, section: str, operation: MetricOperation, n: int
    ) -> "PrometheusClient":
        bucket = PrometheusBucket(section, operation, True, self.unicode)
        metric, metric_total = bucket.metric(), bucket.metric_total()
        metric_incrementer = self._incrementer(metric)
        total_incrementer = self._incrementer(metric_total)
        metric_incrementer.increment_n(self._prepare_metric(metric), n, operation.labels)
        total_incrementer.increment_n(self._prepare_metric(metric_total), n, operation.labels)
        return self

    def track_state(
        self, section: str, operation: MetricOperation, value: int
    ) -> "PrometheusClient":
        bucket = PrometheusBucket(section, operation, True, self.unicode)
        metric = bucket.metric()
        self._state(metric).set(self._prepare_metric(metric), value, operation.labels)
        return self

    def handler(self) -> WSGIApp:
        """Return a WSGI application serving the registry in text exposition format."""
        registry = self.registry

        def metrics_app(
            environ: Mapping[str, Any], start_response: Callable[..., Any]
        ) -> list[bytes]:
            body = registry.render().encode("utf-8")
            start_response(
                "200 OK",
                [("Content-Type", CONTENT_TYPE), ("Content-Length", str(len(body)))],
            )
            return [body]

        return metrics_app