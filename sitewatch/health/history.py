"""In-memory status history — last N results per target.

Owned by a single monitor; every read and write goes through one lock so
the console, the monitor loop and any other thread can share it.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any

from .engine import CheckResult, Status


class StatusHistory:
    """Bounded per-target result history with transition detection."""

    def __init__(self, size: int = 20) -> None:
        if size < 1:
            raise ValueError(f"history size must be >= 1, got {size}")
        self.size = size
        self._lock = threading.Lock()
        self._results: dict[str, deque[CheckResult]] = {}

    def record(self, result: CheckResult) -> Status | None:
        """Append a result and return the status it replaced (None if first)."""
        with self._lock:
            series = self._results.setdefault(result.target, deque(maxlen=self.size))
            prev = series[-1].status if series else None
            series.append(result)
        return prev

    def latest(self, target: str) -> CheckResult | None:
        with self._lock:
            series = self._results.get(target)
            return series[-1] if series else None

    def history(self, target: str, limit: int | None = None) -> list[CheckResult]:
        """Results for a target, newest first."""
        with self._lock:
            items = list(reversed(self._results.get(target, ())))
        return items[:limit] if limit is not None else items

    def uptime(self, target: str) -> float:
        """Percentage of retained results that were UP."""
        with self._lock:
            series = list(self._results.get(target, ()))

        if not series:
            return 100.0  # No data = assume up

        up_count = sum(1 for r in series if r.status is Status.UP)
        return round(up_count / len(series) * 100, 1)

    def targets(self) -> list[str]:
        with self._lock:
            return list(self._results)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Latest status + uptime for every target seen so far."""
        with self._lock:
            latest = {t: s[-1] for t, s in self._results.items() if s}

        return {
            target: {
                "status": result.status.value,
                "timestamp": result.timestamp,
                "uptime": self.uptime(target),
            }
            for target, result in latest.items()
        }

    def clear(self) -> None:
        with self._lock:
            self._results.clear()
