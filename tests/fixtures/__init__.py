"""
Test fixtures for the CT STH Monitor.

This module provides:
- STHFactory: Create correctly (or deliberately badly) signed STHs
- ResponseFactory: Create RawResponses shaped like get-sth replies
- Fakes: In-memory fetchers, sinks and pipelines
"""

from tests.fixtures.factories import FIXED_NOW_MS, ResponseFactory, STHFactory
from tests.fixtures.fakes import LOG_URL, FailingSink, FakeFetcher, RecordingSink, SlowPipeline, http_error

__all__ = [
    "FIXED_NOW_MS",
    "LOG_URL",
    "FailingSink",
    "FakeFetcher",
    "RecordingSink",
    "ResponseFactory",
    "STHFactory",
    "SlowPipeline",
    "http_error",
]
