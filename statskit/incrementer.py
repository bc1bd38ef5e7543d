"""Counters that record how often tracked metrics happen."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Protocol, Sequence

from .bucket import Bucket
from .log import log
from .registry import REGISTRY, CounterVec, Registry, RegistrationError
from .statsd import StatsDConnection

Labels = Optional[Mapping[str, str]]


def _bucket_metrics(bucket: Bucket) -> tuple[str, str, str, str]:
    return (
        bucket.metric(),
        bucket.metric_with_suffix(),
        bucket.metric_total(),
        bucket.metric_total_with_suffix(),
    )


def _split_labels(labels: Labels) -> tuple[list[str], list[str]]:
    if not labels:
        return [], []
    return list(labels.keys()), list(labels.values())


class _Counter(Protocol):
    def inc(self) -> None: ...

    def add(self, amount: float) -> None: ...


class _CounterVec(Protocol):
    def with_label_values(self, *args: str) -> _Counter: ...


class _CounterFactory(Protocol):
    def create(self, metric: str, label_keys: Sequence[str]) -> _CounterVec: ...


class Incrementer(ABC):
    """Increments metrics by one or by a given amount."""

    @abstractmethod
    def increment(self, metric: str, labels: Labels = None) -> None:
        """Increment a metric by one."""

    @abstractmethod
    def increment_n(self, metric: str, n: int, labels: Labels = None) -> None:
        """Increment a metric by ``n``."""

    def increment_all(self, bucket: Bucket) -> None:
        """Increment every metric of a bucket by one."""
        for metric in _bucket_metrics(bucket):
            self.increment(metric)

    def increment_all_n(self, bucket: Bucket, n: int) -> None:
        """Increment every metric of a bucket by ``n``."""
        for metric in _bucket_metrics(bucket):
            self.increment_n(metric, n)


class LogIncrementer(Incrementer):
    """Writes every increment to the package log."""

    def increment(self, metric: str, labels: Labels = None) -> None:
        log("Stats counter incremented", {"metric": metric})

    def increment_n(self, metric: str, n: int, labels: Labels = None) -> None:
        log("Stats counter incremented by n", {"metric": metric, "n": n})


class MemoryIncrementer(Incrementer):
    """Keeps counts in memory for later inspection."""

    def __init__(self) -> None:
        self._metrics: dict[str, int] = {}

    def increment(self, metric: str, labels: Labels = None) -> None:
        self.increment_n(metric, 1, labels)

    def increment_n(self, metric: str, n: int, labels: Labels = None) -> None:
        self._metrics[metric] = self._metrics.get(metric, 0) + n

    def metrics(self) -> dict[str, int]:
        """Return all counts stored so far."""
        return self._metrics


class StatsDIncrementer(Incrementer):
    """Sends increments to a StatsD server."""

    def __init__(self, connection: StatsDConnection) -> None:
        self.connection = connection

    def increment(self, metric: str, labels: Labels = None) -> None:
        self.connection.increment(metric)

    def increment_n(self, metric: str, n: int, labels: Labels = None) -> None:
        self.connection.count(metric, n)


class PrometheusIncrementer(Incrementer):
    """Increments one Prometheus counter family, created on first use."""

    def __init__(self, counter_factory: _CounterFactory) -> None:
        self._counter_factory = counter_factory
        self._counter: Optional[_CounterVec] = None
        self._lock = threading.Lock()

    def _child(self, metric: str, labels: Labels) -> _Counter:
        names, values = _split_labels(labels)
        with self._lock:
            if self._counter is None:
                self._counter = self._counter_factory.create(metric, names)
            counter = self._counter
        return counter.with_label_values(*values)

    def increment(self, metric: str, labels: Labels = None) -> None:
        self._child(metric, labels).inc()

    def increment_n(self, metric: str, n: int, labels: Labels = None) -> None:
        self._child(metric, labels).add(n)

    def increment_all(self, bucket: Bucket) -> None:
        """Bucket-wide increments by one are not recorded by this backend."""
        return


class PrometheusCounterFactory:
    """Creates counter families and registers them with a registry."""

    def __init__(self, registry: Optional[Registry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

    def create(self, metric: str, label_keys: Sequence[str]) -> CounterVec:
        """Return a new counter family named ``metric``."""
        counter = CounterVec(metric, " ", label_keys)
        try:
            self.registry.register(counter)
        except RegistrationError:
            # a rejected family still counts; it is only left out of the exposition
            pass
        return counter


class PrometheusIncrementerFactory:
    """Creates Prometheus incrementers bound to one registry."""

    def __init__(self, registry: Optional[Registry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

    def create(self) -> PrometheusIncrementer:
        """Return a new Prometheus incrementer."""
        return PrometheusIncrementer(PrometheusCounterFactory(self.registry))