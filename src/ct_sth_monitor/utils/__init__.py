"""
Utility functions for the CT STH Monitor.

Logging:
- setup_logging(): Configure structured logging with structlog
- get_logger(name, **bindings): Get a (bound) logger instance

Time:
- now_ms(): Current time as CT milliseconds
- ms_to_datetime(ms) / datetime_to_ms(dt): Conversions
"""

from ct_sth_monitor.utils.logging import get_logger, setup_logging
from ct_sth_monitor.utils.time import datetime_to_ms, ms_to_datetime, now_ms

__all__ = [
    "datetime_to_ms",
    "get_logger",
    "ms_to_datetime",
    "now_ms",
    "setup_logging",
]
