"""Recorders of absolute metric values (gauges)."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Protocol, Sequence

from .log import log
from .registry import REGISTRY, GaugeVec, Registry, RegistrationError
from .statsd import StatsDConnection

Labels = Optional[Mapping[str, str]]


class _Gauge(Protocol):
    def set(self, value: float) -> None: ...


class _GaugeVec(Protocol):
    def with_label_values(self, *args: str) -> _Gauge: ...


class _GaugeFactory(Protocol):
    def create(self, metric: str, label_keys: Sequence[str]) -> _GaugeVec: ...


class State(ABC):
    """Sets the absolute value of a metric."""

    @abstractmethod
    def set(self, metric: str, n: int, labels: Labels = None) -> None:
        """Set the metric to ``n``."""


class LogState(State):
    """Writes every state change to the package log."""

    def set(self, metric: str, n: int, labels: Labels = None) -> None:
        log("Stats state set", {"bucket": metric, "state": n})


class MemoryState(State):
    """Keeps states in memory for later inspection."""

    def __init__(self) -> None:
        self._metrics: dict[str, int] = {}

    def set(self, metric: str, n: int, labels: Labels = None) -> None:
        self._metrics[metric] = n

    def metrics(self) -> dict[str, int]:
        """Return all states stored so far."""
        return self._metrics


class StatsDState(State):
    """Sends states to a StatsD server as gauges."""

    def __init__(self, connection: StatsDConnection) -> None:
        self.connection = connection

    def set(self, metric: str, n: int, labels: Labels = None) -> None:
        self.connection.gauge(metric, n)


class PrometheusState(State):
    """Sets one Prometheus gauge family, created on first use."""

    def __init__(self, gauge_factory: _GaugeFactory) -> None:
        self._gauge_factory = gauge_factory
        self._gauge: Optional[_GaugeVec] = None
        self._lock = threading.Lock()

    def set(self, metric: str, n: int, labels: Labels = None) -> None:
        names = list(labels.keys()) if labels else []
        values = list(labels.values()) if labels else []
        with self._lock:
            if self._gauge is None:
                self._gauge = self._gauge_factory.create(metric, names)
            gauge = self._gauge
        gauge.with_label_values(*values).set(float(n))


class PrometheusGaugeFactory:
    """Creates gauge families and registers them with a registry."""

    def __init__(self, registry: Optional[Registry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

    def create(self, metric: str, label_keys: Sequence[str]) -> GaugeVec:
        """Return a new gauge family named ``metric``."""
        gauge = GaugeVec(metric, " ", label_keys)
        try:
            self.registry.register(gauge)
        except RegistrationError:
            # a rejected family still works; it is only left out of the exposition
            pass
        return gauge


class PrometheusStateFactory:
    """Creates Prometheus states bound to one registry."""

    def __init__(self, registry: Optional[Registry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

    def create(self) -> PrometheusState:
        """Return a new Prometheus state."""
        return PrometheusState(PrometheusGaugeFactory(self.registry))