"""Service stats collection with StatsD, Prometheus, log, memory and no-op clients, plus WSGI middleware."""

__version__ = "0.1.0"