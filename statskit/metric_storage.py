"""Counting of second level path sections for ID auto-discovery."""

from __future__ import annotations

import threading


class MetricStorage:
    """Remembers distinct second sections seen under each first section."""

    def __init__(self, threshold: int) -> None:
        self.threshold = threshold
        self.metrics: dict[str, dict[str, int]] = {}
        self._lock = threading.Lock()

    def looks_like_id(self, first_section: str, second_section: str) -> bool:
        """Record the pair and tell whether the first section has too many distinct seconds."""
        with self._lock:
            seen = self.metrics.setdefault(first_section, {})
            # stop recording once the threshold is reached to bound memory use
            if len(seen) < self.threshold:
                seen[second_section] = seen.get(second_section, 0) + 1
            return len(seen) >= self.threshold