"""Site monitor — perpetual, rate-limited reachability checks.

Every target owns exactly one checker task at a time. A checker probes its
target, reports the status, then pushes the target onto the completion
queue. The supervisor loop drains that queue and relaunches a delayed
checker for each completed target, so each target cycles forever at its own
pace until a stop is requested.

Probes run in a thread pool to avoid blocking the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Any

from .engine import CheckResult, Status
from .history import StatusHistory

logger = logging.getLogger(__name__)

CheckFn = Callable[[str], Status | CheckResult]
ReportFn = Callable[[str, Status], Any]


class MonitorConfigError(ValueError):
    """Raised when a monitor is built with an unusable configuration."""


def compute_delay(
    interval: float,
    consecutive_errors: int,
    backoff_factor: float = 1.0,
    max_interval: float | None = None,
) -> float:
    """Delay before the next check of a target.

    With the default factor of 1.0 this is always ``interval``. Otherwise
    consecutive ERRORs grow it exponentially, capped at ``max_interval``
    (never below ``interval``).
    """
    if consecutive_errors <= 0 or backoff_factor <= 1.0:
        return interval
    delay = interval * backoff_factor ** (consecutive_errors - 1)
    if max_interval is not None:
        delay = min(delay, max(max_interval, interval))
    return delay


class SiteMonitor:
    """Runs one self-replenishing checker per target.

    ``check_fn`` is called on a worker thread and must not block forever. It
    may return a bare Status or a full CheckResult (e.g. ``HttpProber.probe``),
    in which case the detail is kept in the history.
    ``report_fn`` is called on the event loop once per completed check.
    """

    def __init__(
        self,
        targets: Iterable[str],
        check_fn: CheckFn,
        report_fn: ReportFn,
        interval: float = 5.0,
        *,
        backoff_factor: float = 1.0,
        max_interval: float | None = None,
        history: StatusHistory | None = None,
        grace_period: float = 10.0,
        max_workers: int | None = None,
    ) -> None:
        requested = list(targets)
        unique = list(dict.fromkeys(requested))
        if not unique:
            raise MonitorConfigError("At least one target is required")
        if len(unique) != len(requested):
            logger.warning(
                "Ignoring %d duplicate target(s)", len(requested) - len(unique),
            )
        if interval < 0:
            raise MonitorConfigError(f"interval must be >= 0, got {interval}")
        if grace_period < 0:
            raise MonitorConfigError(f"grace_period must be >= 0, got {grace_period}")
        if backoff_factor < 1.0:
            raise MonitorConfigError(f"backoff_factor must be >= 1.0, got {backoff_factor}")

        self.targets: tuple[str, ...] = tuple(unique)
        self.check_fn = check_fn
        self.report_fn = report_fn
        self.interval = interval
        self.backoff_factor = backoff_factor
        self.max_interval = max_interval
        self.history = history
        self.grace_period = grace_period
        self._max_workers = max_workers or len(self.targets)

        # Recreated on every start() so a stopped monitor can run again
        self._executor = self._new_executor()
        self._completions: asyncio.Queue[str | None] = asyncio.Queue()
        self._stop_event = asyncio.Event()
        self._checkers: dict[str, asyncio.Task[None]] = {}
        self._failures: dict[str, int] = {}
        self._supervisor: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def in_flight(self) -> list[str]:
        """Targets whose checker is probing or waiting out its delay."""
        return [t for t, task in self._checkers.items() if not task.done()]

    # -- Lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Launch the first round of checkers and the supervisor loop.

        All first-round checkers are created before this coroutine yields.
        """
        if self._running:
            return
        self._running = True

        self._completions = asyncio.Queue()
        self._stop_event = asyncio.Event()
        self._executor.shutdown(wait=False)
        self._executor = self._new_executor()
        self._failures = {target: 0 for target in self.targets}

        for target in self.targets:
            self._launch(target, delay=0)

        self._supervisor = asyncio.create_task(self._supervise(), name="sitewatch-supervisor")
        logger.info(
            "Site monitor started: %d targets, interval=%ss",
            len(self.targets), self.interval,
        )

    async def run(self) -> None:
        """Start (if needed) and block until the monitor has fully stopped."""
        await self.start()
        try:
            if self._supervisor is not None:
                await self._supervisor
        finally:
            # supervisor cancelled before its first step never drained
            if self._running:
                await self._drain()

    def request_stop(self) -> None:
        """Stop launching checkers. Safe to call from a signal handler."""
        if not self._running or self._stop_event.is_set():
            return
        logger.info("Stop requested — draining in-flight checks")
        self._stop_event.set()
        self._completions.put_nowait(None)

    async def stop(self) -> None:
        """Request a stop and wait for in-flight checkers to drain."""
        self.request_stop()
        if self._supervisor is not None:
            await asyncio.gather(self._supervisor, return_exceptions=True)
        if self._running:
            await self._drain()

    # -- Internals ----------------------------------------------------------

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="sitewatch-probe",
        )

    def _launch(self, target: str, delay: float) -> None:
        self._checkers[target] = asyncio.create_task(
            self._checker(target, delay), name=f"checker-{target}",
        )

    def _next_delay(self, target: str) -> float:
        return compute_delay(
            self.interval,
            self._failures.get(target, 0),
            self.backoff_factor,
            self.max_interval,
        )

    async def _supervise(self) -> None:
        """Relaunch a delayed checker for every completion signal."""
        try:
            while True:
                target = await self._completions.get()
                if target is None or self._stop_event.is_set():
                    break
                self._launch(target, delay=self._next_delay(target))
        finally:
            await self._drain()

    async def _checker(self, target: str, delay: float) -> None:
        """One probe → report → signal cycle for a single target."""
        if delay > 0:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                return
            except asyncio.TimeoutError:
                pass
        if self._stop_event.is_set():
            return

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(self._executor, self._probe, target)
        self._report(result)
        self._completions.put_nowait(target)

    def _probe(self, target: str) -> CheckResult:
        try:
            outcome = self.check_fn(target)
            if isinstance(outcome, CheckResult):
                if outcome.target != target:
                    outcome = replace(outcome, target=target)
                return outcome
            return CheckResult(target=target, status=Status(outcome))
        except Exception as e:
            logger.exception("Check error: %s", target)
            return CheckResult(
                target=target, status=Status.ERROR, message=f"{type(e).__name__}: {e}",
            )

    def _report(self, result: CheckResult) -> None:
        target, status = result.target, result.status
        if status is Status.ERROR:
            self._failures[target] = self._failures.get(target, 0) + 1
        else:
            self._failures[target] = 0

        if self.history is not None:
            prev = self.history.record(result)
            if prev is not None and prev is not status:
                if status is Status.UP:
                    logger.info("%s recovered: %s → %s", target, prev.value, status.value)
                else:
                    logger.warning("%s changed: %s → %s", target, prev.value, status.value)

        try:
            self.report_fn(target, status)
        except Exception:
            logger.exception("Report callback error: %s", target)

    async def _drain(self) -> None:
        """Let in-flight checkers finish within the grace period, then clean up."""
        self._stop_event.set()

        pending = [task for task in self._checkers.values() if not task.done()]
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self.grace_period)
            if still_running:
                logger.warning(
                    "%d checker(s) still running after %ss grace period — cancelling",
                    len(still_running), self.grace_period,
                )
                for task in still_running:
                    task.cancel()
                await asyncio.gather(*still_running, return_exceptions=True)

        self._checkers.clear()
        self._executor.shutdown(wait=False)
        self._running = False
        logger.info("Site monitor stopped")


async def run_monitor(
    targets: Iterable[str],
    check_fn: CheckFn,
    report_fn: ReportFn,
    interval: float = 5.0,
    **kwargs: Any,
) -> None:
    """Monitor ``targets`` until cancelled."""
    monitor = SiteMonitor(targets, check_fn, report_fn, interval, **kwargs)
    await monitor.run()
