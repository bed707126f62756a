"""Shared test fixtures."""

from __future__ import annotations

import threading
import time
from collections import defaultdict

import pytest

from sitewatch.health.engine import Status


class FakeCheck:
    """Deterministic check_fn that records per-target overlap.

    Runs on the monitor's worker threads, so all bookkeeping is locked.
    """

    def __init__(self, statuses: dict[str, Status], delay: float = 0.0) -> None:
        self.statuses = statuses
        self.delay = delay
        self.calls: dict[str, int] = defaultdict(int)
        self.overlaps: list[str] = []
        self.max_concurrent = 0
        self._active: set[str] = set()
        self._lock = threading.Lock()

    def __call__(self, target: str) -> Status:
        with self._lock:
            if target in self._active:
                self.overlaps.append(target)
            self._active.add(target)
            self.calls[target] += 1
            self.max_concurrent = max(self.max_concurrent, len(self._active))
        try:
            if self.delay:
                time.sleep(self.delay)
            return self.statuses[target]
        finally:
            with self._lock:
                self._active.discard(target)


class Recorder:
    """report_fn that keeps (target, status, monotonic time) for every call."""

    def __init__(self) -> None:
        self.reports: list[tuple[str, Status, float]] = []

    def __call__(self, target: str, status: Status) -> None:
        self.reports.append((target, status, time.monotonic()))

    def statuses(self, target: str) -> list[Status]:
        return [s for t, s, _ in self.reports if t == target]

    def times(self, target: str) -> list[float]:
        return [ts for t, _, ts in self.reports if t == target]

    def count(self, target: str) -> int:
        return len(self.statuses(target))


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def fake_check() -> FakeCheck:
    """A/B fixture: A is always up, B always errors."""
    return FakeCheck({"A": Status.UP, "B": Status.ERROR})


@pytest.fixture
def make_check() -> type[FakeCheck]:
    """Factory for FakeCheck with custom statuses / probe delay."""
    return FakeCheck
