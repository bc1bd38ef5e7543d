"""Stats client that records nothing."""

from __future__ import annotations

from typing import Optional

from .bucket import MetricOperation, Request
from .client_base import Client
from .timer import Timer


class NoopClient(Client):
    """Client that discards every tracked event.

    It only keeps a count of the events it has discarded since it was
    created or last closed.
    """

    def __init__(self) -> None:
        super().__init__()
        self.discarded = 0

    def _discard(self) -> "NoopClient":
        self.discarded += 1
        return self

    def close(self) -> None:
        """Forget the count of discarded events."""
        self.discarded = 0

    def track_request(
        self, request: Optional[Request], timer: Optional[Timer], success: bool
    ) -> "NoopClient":
        return self._discard()

    def track_operation(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        success: bool,
    ) -> "NoopClient":
        return self._discard()

    def track_operation_n(
        self,
        section: str,
        operation: MetricOperation,
        timer: Optional[Timer],
        n: int,
        success: bool,
    ) -> "NoopClient":
        return self._discard()

    def track_metric(self, section: str, operation: MetricOperation) -> "NoopClient":
        return self._discard()

    def track_metric_n(self, section: str, operation: MetricOperation, n: int) -> "NoopClient":
        return self._discard()

    def track_state(self, section: str, operation: MetricOperation, value: int) -> "NoopClient":
        return self._discard()

    def set_http_request_section(self, section: str) -> "NoopClient":
        """Ignore the section; nothing is tracked anyway."""
        return self

    def reset_http_request_section(self) -> "NoopClient":
        """Ignore the reset; nothing is tracked anyway."""
        return self