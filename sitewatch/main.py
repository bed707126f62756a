"""Entry point for the sitewatch monitor."""

from __future__ import annotations

import asyncio
import logging
import signal

from rich.console import Console
from rich.panel import Panel

from sitewatch.config import Settings, settings
from sitewatch.health.engine import HttpProber
from sitewatch.health.history import StatusHistory
from sitewatch.health.monitor import SiteMonitor
from sitewatch.reporting import ConsoleReporter

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_monitor(cfg: Settings) -> SiteMonitor:
    """Wire prober, reporter and history into a monitor from settings."""
    prober = HttpProber(
        timeout_ms=cfg.request_timeout_ms,
        follow_redirects=cfg.follow_redirects,
    )
    history = StatusHistory(cfg.history_size) if cfg.history_size else None
    return SiteMonitor(
        cfg.targets,
        prober.probe,
        ConsoleReporter(console),
        cfg.check_interval,
        backoff_factor=cfg.backoff_factor,
        max_interval=cfg.max_interval,
        history=history,
        grace_period=cfg.shutdown_grace,
    )


def _install_signal_handlers(monitor: SiteMonitor) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, monitor.request_stop)
        except NotImplementedError:
            # Windows: no loop signal handlers, bounce through the loop thread
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(monitor.request_stop))


async def serve(cfg: Settings) -> None:
    monitor = build_monitor(cfg)
    await monitor.start()
    _install_signal_handlers(monitor)
    await monitor.run()

    if monitor.history is not None:
        for target, info in monitor.history.snapshot().items():
            logger.info("%s: last=%s uptime=%.1f%%", target, info["status"], info["uptime"])


def main() -> None:
    console.print(Panel(
        f"Watching {len(settings.targets)} sites every {settings.check_interval}s (Ctrl+C to stop)",
        title="sitewatch",
        style="bold green",
    ))
    asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
