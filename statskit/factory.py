"""Building stats clients from a DSN string."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from .client_base import Client
from .incrementer import PrometheusIncrementerFactory
from .log_client import LogClient
from .memory_client import MemoryClient
from .noop_client import NoopClient
from .prom_client import PrometheusClient
from .state import PrometheusStateFactory
from .statsd_client import StatsDClient

STATSD = "statsd"
PROMETHEUS = "prometheus"
LOG = "log"
MEMORY = "memory"
NOOP = "noop"

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})


class UnknownClientError(ValueError):
    """The DSN names a stats client type that does not exist."""

    def __init__(self, message: str = "unknown stats client type") -> None:
        super().__init__(message)


def new_client(dsn: str) -> Client:
    """Create a stats client from a DSN such as ``statsd://host:8125/prefix``."""
    parts = urlsplit(dsn)
    host = parts.netloc.rpartition("@")[2]
    values = parse_qs(parts.query, keep_blank_values=True).get("unicode")
    # an unparsable value simply means "off"
    unicode = bool(values) and values[0] in _TRUE_VALUES

    if parts.scheme == STATSD:
        return StatsDClient(host, parts.path.strip("/"), unicode)
    if parts.scheme == PROMETHEUS:
        return PrometheusClient(host, PrometheusIncrementerFactory(), PrometheusStateFactory())
    if parts.scheme == LOG:
        return LogClient(unicode)
    if parts.scheme == MEMORY:
        return MemoryClient(unicode)
    if parts.scheme == NOOP:
        return NoopClient()
    raise UnknownClientError()