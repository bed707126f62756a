"""Check engine — probes a target and classifies the outcome.

A probe has three possible outcomes:
- UP: transport succeeded and the response code is in the 2xx range
- DOWN: transport succeeded but the response code is outside 2xx
- ERROR: transport failed (refused, timeout, DNS, TLS …)

ERROR is data, not an exception: probe failures never escape the engine.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


# ── Models ───────────────────────────────────────────────────────────────────


class Status(str, Enum):
    UP = "up"
    DOWN = "down"
    ERROR = "error"


@dataclass
class CheckResult:
    """Result of a single probe against a target."""

    target: str
    status: Status
    status_code: int | None = None
    latency_ms: float = 0.0
    message: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


def classify_status_code(status_code: int) -> Status:
    """Map a transport-level success to UP (2xx) or DOWN (anything else)."""
    if 200 <= status_code < 300:
        return Status.UP
    return Status.DOWN


# ── Probers ──────────────────────────────────────────────────────────────────


class Prober(Protocol):
    """Capability to check a single target."""

    def check(self, target: str) -> Status: ...


class HttpProber:
    """HTTP(S) GET prober built on httpx.

    ``transport`` lets callers (and tests) plug in an ``httpx.MockTransport``
    or a custom transport instead of the network.
    """

    def __init__(
        self,
        timeout_ms: int = 10_000,
        follow_redirects: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.follow_redirects = follow_redirects
        self._transport = transport

    def probe(self, target: str) -> CheckResult:
        """GET the target and classify on the status line alone.

        The body is never read, so a slow or malformed body cannot turn a
        2xx into an ERROR.
        """
        t0 = time.perf_counter()
        try:
            with httpx.Client(
                timeout=self.timeout_ms / 1000,
                follow_redirects=self.follow_redirects,
                transport=self._transport,
            ) as client:
                with client.stream("GET", target) as resp:
                    status_code = resp.status_code
            latency = (time.perf_counter() - t0) * 1000

            status = classify_status_code(status_code)
            if status is Status.UP:
                msg = f"{status_code} OK"
            else:
                msg = f"Unexpected status {status_code}"
            return CheckResult(
                target=target, status=status, status_code=status_code,
                latency_ms=round(latency, 1), message=msg,
            )
        except httpx.TimeoutException:
            logger.warning("Error checking %s: timed out after %dms", target, self.timeout_ms)
            return CheckResult(
                target=target, status=Status.ERROR, latency_ms=float(self.timeout_ms),
                message=f"Timed out ({self.timeout_ms}ms)",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            latency = (time.perf_counter() - t0) * 1000
            logger.warning("Error checking %s: %s", target, e)
            return CheckResult(
                target=target, status=Status.ERROR, latency_ms=round(latency, 1),
                message=f"{type(e).__name__}: {e}",
            )

    def check(self, target: str) -> Status:
        result = self.probe(target)
        logger.debug(
            "Probe %s: %s (%s, %.1fms)",
            target, result.status.value, result.message, result.latency_ms,
        )
        return result.status

    __call__ = check
