"""
Echo storage for development.

EchoStorage satisfies the writer protocols without persisting anything: it
logs every record it is handed. Handy with ``ct-sth-monitor run --dry-run``
to watch what a Log returns without touching a database.
"""

from __future__ import annotations

import structlog

from ct_sth_monitor.models import APICallRecord, SignedTreeHead
from ct_sth_monitor.utils.logging import get_logger


class EchoStorage:
    """Storage that logs instead of storing."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None):
        self._logger = logger or get_logger(__name__, component="echo_storage")
        self.api_calls_seen = 0
        self.sths_seen = 0

    async def write_api_call(self, record: APICallRecord) -> None:
        self.api_calls_seen += 1
        self._logger.info("api_call", record=str(record))

    async def write_sth(self, log_url: str, sth: SignedTreeHead) -> None:
        self.sths_seen += 1
        self._logger.info("sth", log_url=log_url, sth=str(sth))
