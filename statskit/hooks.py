"""Logging integration that counts logged errors."""

from __future__ import annotations

import logging

from .bucket import MetricOperation
from .client_base import Client


class StatsLoggingHandler(logging.Handler):
    """Logging handler that tracks a metric for every error or critical record."""

    def __init__(self, stats_client: Client, section: str) -> None:
        super().__init__(level=logging.ERROR)
        self.stats_client = stats_client
        self.section = section

    def emit(self, record: logging.LogRecord) -> None:
        """Track the record's level name as a metric in the configured section."""
        try:
            operation = MetricOperation(record.levelname.lower())
            self.stats_client.track_metric(self.section, operation)
        except Exception:
            self.handleError(record)