"""
Tests for utility modules.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
import structlog
from structlog.testing import capture_logs

from ct_sth_monitor.utils.logging import get_logger, setup_logging
from ct_sth_monitor.utils.time import (
    datetime_to_ms,
    format_age,
    ms_to_datetime,
    now_ms,
    utcnow,
)


class TestTimeConversion:
    """Tests for CT millisecond timestamp helpers."""

    def test_epoch(self):
        assert ms_to_datetime(0) == datetime(1970, 1, 1, tzinfo=UTC)

    def test_known_timestamp(self):
        """Test conversion of a known timestamp."""
        dt = ms_to_datetime(1_700_000_000_000)
        assert dt == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_millisecond_precision(self):
        ms = 1_700_000_000_123
        assert datetime_to_ms(ms_to_datetime(ms)) == ms

    def test_naive_datetime_is_utc(self):
        naive = datetime(2024, 6, 15, 12, 0, 0)
        aware = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)
        assert datetime_to_ms(naive) == datetime_to_ms(aware)

    def test_now_ms(self):
        """Test now_ms agrees with utcnow."""
        assert abs(now_ms() - datetime_to_ms(utcnow())) < 1000

    def test_utcnow_is_aware(self):
        assert utcnow().tzinfo is not None


class TestFormatAge:
    """Tests for format_age."""

    @pytest.mark.parametrize(
        "age_seconds,expected",
        [(5, "5s"), (75, "1m15s"), (3725, "1h02m"), (0, "0s")],
    )
    def test_format(self, age_seconds, expected):
        now = 1_700_000_000_000
        assert format_age(now - age_seconds * 1000, now=now) == expected

    def test_future_is_zero(self):
        assert format_age(2_000, now=1_000) == "0s"


class TestLogging:
    """Tests for logging helpers."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_setup_console(self):
        setup_logging(level="DEBUG", format="console")

    def test_setup_json(self):
        setup_logging(level="INFO", format="json", include_location=True)

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown log format"):
            setup_logging(format="xml")

    def test_get_logger_bindings(self):
        """Test bound values appear on every event."""
        with capture_logs() as logs:
            logger = get_logger(__name__, log_url="https://log/", component="test")
            logger.info("first")
            logger.warning("second", extra=1)

        assert [e["event"] for e in logs] == ["first", "second"]
        assert all(e["log_url"] == "https://log/" for e in logs)
        assert logs[1]["extra"] == 1
        assert logs[1]["log_level"] == "warning"
