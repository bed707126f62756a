"""Health subsystem — probe engine, status history, site monitor."""

from .engine import CheckResult, HttpProber, Prober, Status, classify_status_code
from .history import StatusHistory
from .monitor import MonitorConfigError, SiteMonitor, run_monitor
