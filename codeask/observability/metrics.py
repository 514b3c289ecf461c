"""
Process-local counters: API calls by status, questions answered, ingestion outcomes.
"""

from __future__ import annotations

import time
from typing import Dict


class MetricsRegistry:
    """
    Named monotonically increasing counters plus process uptime.

    Owned by the ``AppContainer`` and handed to the components that record into it;
    there is no module-level instance.
    """

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}
        self._started = time.monotonic()

    def inc(self, name: str, delta: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + delta

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        return dict(sorted(self._counters.items()))

    def uptime_seconds(self) -> int:
        return int(time.monotonic() - self._started)

    def record_api_call(self, path: str, status_code: int) -> None:
        self.inc("api.calls.total")
        self.inc(f"api.status.{status_code}")
        if path.startswith("/api/repositories"):
            self.inc("api.calls.repositories")
        elif path.startswith("/api/meetings"):
            self.inc("api.calls.meetings")


__all__ = ["MetricsRegistry"]
