"""
Time helpers for CT timestamps.

CT Logs express time as milliseconds since the Unix epoch (RFC 6962
``uint64 timestamp``). These helpers convert between that representation
and timezone-aware UTC datetimes.

Example:
    >>> from ct_sth_monitor.utils.time import ms_to_datetime, now_ms
    >>>
    >>> ts = now_ms()
    >>> print(ms_to_datetime(ts).isoformat())
"""

from __future__ import annotations

import time
from datetime import UTC, datetime

MS_PER_SECOND = 1000


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def ms_to_datetime(ms: int) -> datetime:
    """Convert a CT millisecond timestamp to an aware UTC datetime.

    Args:
        ms: Milliseconds since the Unix epoch

    Returns:
        Timezone-aware datetime (UTC)

    Example:
        >>> ms_to_datetime(0).isoformat()
        '1970-01-01T00:00:00+00:00'
    """
    return datetime.fromtimestamp(ms / MS_PER_SECOND, tz=UTC)


def datetime_to_ms(dt: datetime) -> int:
    """Convert a datetime to CT milliseconds.

    Args:
        dt: Python datetime (assumes UTC if naive)

    Returns:
        Milliseconds since the Unix epoch
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return round(dt.timestamp() * MS_PER_SECOND)


def format_age(ms: int, now: int | None = None) -> str:
    """Human-readable age of a CT timestamp (e.g. "3m12s").

    Args:
        ms: Timestamp in milliseconds
        now: Reference time in milliseconds (defaults to now)
    """
    now = now_ms() if now is None else now
    seconds = max(0, (now - ms) // MS_PER_SECOND)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"
