"""Console reporting for check results."""

from __future__ import annotations

import json

from rich.console import Console
from rich.text import Text

from sitewatch.health.engine import Status

_STYLES = {
    Status.UP: "bold green",
    Status.DOWN: "bold yellow",
    Status.ERROR: "bold red",
}


def quote(value: str) -> str:
    """Double-quote with escapes so a report always stays on one line."""
    return json.dumps(value, ensure_ascii=False)


class ConsoleReporter:
    """Prints one line per check: ``Site "<target>" has status "<status>"``."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def report(self, target: str, status: Status) -> None:
        line = Text(f"Site {quote(target)} has status ")
        line.append(quote(status.value), style=_STYLES.get(status, ""))
        self.console.print(line)

    __call__ = report
