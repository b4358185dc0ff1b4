"""
Pytest configuration and shared fixtures for the CT STH Monitor.

This module provides:
- STH factories signed with a deterministic Log key
- Validators, fetchers and sinks for pipeline tests
- Temporary database fixtures

Example usage in tests:
    def test_something(sth_factory, temp_db):
        sth = sth_factory.create(tree_size=10)
        temp_db.insert_sth(LOG_URL, sth)
        assert temp_db.count_sths() == 1
"""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from ct_sth_monitor.client import MockLogClient
from ct_sth_monitor.monitor import APICallRecorder, LogState, STHPipeline
from ct_sth_monitor.storage import SQLiteStorage
from ct_sth_monitor.validation import STHValidator

# Import fixtures from fixtures module
from tests.fixtures.factories import FIXED_NOW_MS, STHFactory
from tests.fixtures.fakes import LOG_URL, RecordingSink


# ============================================================================
# FACTORY FIXTURES
# ============================================================================


@pytest.fixture
def sth_factory() -> type[STHFactory]:
    """Provide a fresh STHFactory with counter reset.

    Returns:
        STHFactory class with counter at 0
    """
    STHFactory.reset()
    return STHFactory


@pytest.fixture
def validator(sth_factory: type[STHFactory]) -> STHValidator:
    """Validator trusting the factory's Log key."""
    return STHValidator(sth_factory.public_key_der())


@pytest.fixture
def fixed_clock():
    """Millisecond clock frozen at FIXED_NOW_MS."""
    return lambda: FIXED_NOW_MS


# ============================================================================
# PIPELINE FIXTURES
# ============================================================================


@pytest.fixture
def sink() -> RecordingSink:
    """In-memory audit and STH sink."""
    return RecordingSink()


@pytest.fixture
def make_pipeline(validator: STHValidator, fixed_clock):
    """Build an STHPipeline around a fetcher with in-memory collaborators.

    Usage:
        pipeline = make_pipeline(FakeFetcher([sth]), sink)
    """

    def _make(fetcher, audit_sink, sth_sink=None, state=None) -> STHPipeline:
        sth_sink = audit_sink if sth_sink is None else sth_sink
        return STHPipeline(
            fetcher,
            APICallRecorder(fetcher.log_url, audit_sink),
            sth_sink,
            validator,
            state or LogState(fetcher.log_url),
            clock=fixed_clock,
        )

    return _make


@pytest.fixture
def mock_client() -> MockLogClient:
    """Mock Log starting at tree size 100."""
    return MockLogClient(tree_size=100, growth=5, seed=42)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture
def temp_db() -> Iterator[SQLiteStorage]:
    """Provide a temporary SQLite database.

    Creates a fresh database in a temp directory, initializes schema,
    and cleans up after test.

    Yields:
        Initialized SQLiteStorage instance
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        db_path = Path(temp_dir) / "test.db"
        storage = SQLiteStorage(db_path)
        storage.initialize()
        yield storage
        storage.close()


@pytest.fixture
def populated_db(temp_db: SQLiteStorage, sth_factory: type[STHFactory]) -> SQLiteStorage:
    """Provide a database with STHs for two Logs.

    Contains:
    - 5 STHs for LOG_URL
    - 2 STHs for a second Log
    """
    for sth in sth_factory.create_sequence(5):
        temp_db.insert_sth(LOG_URL, sth)
    for sth in sth_factory.create_sequence(2, start_size=500):
        temp_db.insert_sth("https://other.example.com/log/", sth)
    return temp_db


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def temp_config_dir() -> Iterator[Path]:
    """Provide a temporary configuration directory.

    Yields:
        Path to temporary config directory
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        config_dir = Path(temp_dir) / "config"
        config_dir.mkdir()
        yield config_dir


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow")
    config.addinivalue_line("markers", "integration: mark as integration test")
    config.addinivalue_line("markers", "unit: mark as unit test")
