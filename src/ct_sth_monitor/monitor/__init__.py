"""
STH monitoring for the CT STH Monitor.

Per Log, the monitor runs a fetch-check-store cycle on a fixed period:

- APICallRecorder: Audit record for every Log API call
- LogState: Last accepted STH (seeded from storage)
- STHPipeline: One fetch -> record -> validate -> store cycle
- Scheduler: Runs the pipeline every period until stopped
- build_log_monitor / monitor_logs: Wiring from configuration

Example:
    >>> from ct_sth_monitor.monitor import build_log_monitor, monitor_logs
    >>>
    >>> monitors = [build_log_monitor(log, storage) for log in settings.logs]
    >>> await monitor_logs(monitors, stop)
"""

from ct_sth_monitor.monitor.pipeline import STHPipeline
from ct_sth_monitor.monitor.recorder import APICallRecorder
from ct_sth_monitor.monitor.scheduler import Scheduler
from ct_sth_monitor.monitor.service import LogMonitor, build_log_monitor, monitor_logs
from ct_sth_monitor.monitor.state import LogState

__all__ = [
    "APICallRecorder",
    "LogMonitor",
    "LogState",
    "STHPipeline",
    "Scheduler",
    "build_log_monitor",
    "monitor_logs",
]
