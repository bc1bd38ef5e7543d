"""An in-process metrics registry with Prometheus text exposition."""

from __future__ import annotations

import bisect
import itertools
import math
import re
import threading
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Sequence, Union

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

_METRIC_NAME = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_NAME = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")

Number = Union[int, float]


class RegistrationError(ValueError):
    """A collector could not be registered."""


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _escape_help(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n")


class Counter:
    """A monotonically increasing value."""

    def __init__(self) -> None:
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def inc(self) -> None:
        """Add one."""
        self.add(1)

    def add(self, amount: Number) -> None:
        """Add a non-negative amount."""
        if amount < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += amount


class Gauge:
    """A value that can be set arbitrarily."""

    def __init__(self) -> None:
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: Number) -> None:
        """Set the current value."""
        with self._lock:
            self._value = float(value)


class Histogram:
    """Counts observations into buckets and keeps their sum."""

    def __init__(self, buckets: Sequence[float] = DEFAULT_BUCKETS) -> None:
        self._upper_bounds = tuple(buckets)
        self._counts = [0] * len(self._upper_bounds)
        self._sum = 0.0
        self._count = 0
        self._lock = threading.Lock()

    def observe(self, value: Number) -> None:
        """Record one observation."""
        slot = bisect.bisect_left(self._upper_bounds, value)
        with self._lock:
            if slot < len(self._counts):
                self._counts[slot] += 1
            self._sum += value
            self._count += 1

    @property
    def sum(self) -> float:
        with self._lock:
            return self._sum

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def bucket_counts(self) -> dict[float, int]:
        """Cumulative counts per upper bound, ending with ``+Inf``."""
        with self._lock:
            cumulative = list(itertools.accumulate(self._counts))
            total = self._count
        result = dict(zip(self._upper_bounds, cumulative))
        result[math.inf] = total
        return result


class _MetricVec(ABC):
    """A family of metrics partitioned by label values."""

    kind = "untyped"

    def __init__(self, name: str, help: str, label_names: Iterable[str]) -> None:
        self.name = name
        self.help = help
        self.label_names = tuple(label_names)
        self._children: dict[tuple[str, ...], object] = {}
        self._lock = threading.Lock()

    @abstractmethod
    def _new_child(self) -> object:
        """Create the metric held for one set of label values."""

    @abstractmethod
    def _samples(self, child) -> Iterator[tuple[str, tuple[tuple[str, str], ...], float]]:
        """Yield name suffix, extra labels and value for one child."""

    def _child(self, values: Sequence[object]):
        if len(values) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values, got {len(values)}"
            )
        key = tuple(str(value) for value in values)
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = self._new_child()
                self._children[key] = child
        return child

    def render_lines(self) -> list[str]:
        """Return the exposition lines of this family, or none if it is empty."""
        with self._lock:
            children = dict(self._children)
        if not children:
            return []
        lines = [
            f"# HELP {self.name} {_escape_help(self.help)}",
            f"# TYPE {self.name} {self.kind}",
        ]
        entries = sorted(
            (tuple(sorted(zip(self.label_names, key))), child) for key, child in children.items()
        )
        for labels, child in entries:
            for suffix, extra, value in self._samples(child):
                pairs = labels + extra
                rendered = ",".join(f'{k}="{_escape_label(v)}"' for k, v in pairs)
                braces = f"{{{rendered}}}" if rendered else ""
                lines.append(f"{self.name}{suffix}{braces} {_format_value(value)}")
        return lines


class CounterVec(_MetricVec):
    """Counters partitioned by label values."""

    kind = "counter"

    def __init__(self, name: str, help: str, label_names: Iterable[str]) -> None:
        super().__init__(name, help, label_names)

    def with_label_values(self, *args: object) -> Counter:
        """Return the counter for the given label values, creating it if needed."""
        return self._child(args)

    def _new_child(self) -> Counter:
        return Counter()

    def _samples(self, child):
        yield "", (), child.value


class GaugeVec(_MetricVec):
    """Gauges partitioned by label values."""

    kind = "gauge"

    def __init__(self, name: str, help: str, label_names: Iterable[str]) -> None:
        super().__init__(name, help, label_names)

    def with_label_values(self, *args: object) -> Gauge:
        """Return the gauge for the given label values, creating it if needed."""
        return self._child(args)

    def _new_child(self) -> Gauge:
        return Gauge()

    def _samples(self, child):
        yield "", (), child.value


class HistogramVec(_MetricVec):
    """Histograms partitioned by label values."""

    kind = "histogram"

    def __init__(
        self,
        name: str,
        help: str,
        label_names: Iterable[str],
        buckets: Sequence[float] = DEFAULT_BUCKETS,
    ) -> None:
        bounds = [bound for bound in buckets if not math.isinf(bound)]
        if any(low >= high for low, high in zip(bounds, bounds[1:])):
            raise ValueError("histogram buckets must be in strictly increasing order")
        super().__init__(name, help, label_names)
        self.buckets = tuple(bounds)

    def with_label_values(self, *args: object) -> Histogram:
        """Return the histogram for the given label values, creating it if needed."""
        return self._child(args)

    def _new_child(self) -> Histogram:
        return Histogram(self.buckets)

    def _samples(self, child):
        for bound, count in child.bucket_counts.items():
            yield "_bucket", (("le", _format_value(bound)),), count
        yield "_sum", (), child.sum
        yield "_count", (), child.count


Collector = Union[CounterVec, GaugeVec, HistogramVec]


class Registry:
    """Holds metric families by name and renders them as text."""

    def __init__(self) -> None:
        self._collectors: dict[str, _MetricVec] = {}
        self._lock = threading.Lock()

    def register(self, collector: Collector) -> None:
        """Add a collector; raise ``RegistrationError`` if it is invalid or taken."""
        if not _METRIC_NAME.fullmatch(collector.name):
            raise RegistrationError(f"invalid metric name {collector.name!r}")
        for label in collector.label_names:
            if not _LABEL_NAME.fullmatch(label) or label.startswith("__"):
                raise RegistrationError(f"invalid label name {label!r}")
            if isinstance(collector, HistogramVec) and label == "le":
                raise RegistrationError("histograms cannot use the label name 'le'")
        if len(set(collector.label_names)) != len(collector.label_names):
            raise RegistrationError(f"duplicate label names in {collector.name!r}")
        with self._lock:
            if collector.name in self._collectors:
                raise RegistrationError(f"metric {collector.name!r} is already registered")
            self._collectors[collector.name] = collector

    def unregister(self, collector: Collector) -> bool:
        """Remove a registered collector; return whether it was registered."""
        with self._lock:
            if self._collectors.get(collector.name) is collector:
                del self._collectors[collector.name]
                return True
        return False

    def render(self) -> str:
        """Render all collected metrics in the text exposition format."""
        with self._lock:
            collectors = sorted(self._collectors.items())
        lines = [line for _, collector in collectors for line in collector.render_lines()]
        return "".join(f"{line}\n" for line in lines)


REGISTRY = Registry()