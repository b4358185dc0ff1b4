"""
Wiring for monitoring one or more Logs.

build_log_monitor() assembles the client, recorder, validator, state,
pipeline and scheduler for a configured Log. monitor_logs() runs several
LogMonitors side by side until the shared stop event is set.

Example:
    >>> storage = SQLiteStorage(settings.database_path)
    >>> storage.initialize()
    >>> monitors = [build_log_monitor(log, storage) for log in settings.logs]
    >>> stop = asyncio.Event()
    >>> results = await monitor_logs(monitors, stop)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import structlog

from ct_sth_monitor.client import HTTPLogClient, MockLogClient, STHFetcher
from ct_sth_monitor.config.settings import LogSettings
from ct_sth_monitor.models import SchedulerStats
from ct_sth_monitor.monitor.pipeline import STHPipeline
from ct_sth_monitor.monitor.recorder import APICallRecorder
from ct_sth_monitor.monitor.scheduler import Scheduler
from ct_sth_monitor.monitor.state import LogState
from ct_sth_monitor.storage.protocol import APICallWriter, STHReader, STHWriter
from ct_sth_monitor.utils.logging import get_logger
from ct_sth_monitor.utils.time import now_ms
from ct_sth_monitor.validation import STHValidator


@dataclass
class LogMonitor:
    """Everything needed to monitor one Log."""

    name: str
    fetcher: STHFetcher
    pipeline: STHPipeline
    scheduler: Scheduler
    state: LogState
    logger: structlog.stdlib.BoundLogger

    @property
    def log_url(self) -> str:
        return self.pipeline.log_url

    async def run(self, stop: asyncio.Event) -> SchedulerStats:
        """Resume state, run the scheduler until stopped, then close the client."""
        try:
            try:
                resumed = await self.state.load()
            except Exception as e:
                self.logger.warning("state_load_failed", error=str(e), error_type=type(e).__name__)
            else:
                if resumed is not None:
                    self.logger.info(
                        "state_resumed",
                        tree_size=resumed.tree_size,
                        timestamp=resumed.timestamp,
                    )
            return await self.scheduler.run(stop)
        finally:
            close = getattr(self.fetcher, "close", None)
            if close is not None:
                await close()


def _mock_name(log_url: str) -> str:
    return log_url[len("mock://"):].strip("/") or "mock"


def build_log_monitor(
    log: LogSettings,
    storage: STHWriter,
    *,
    fetcher: STHFetcher | None = None,
    audit_sink: APICallWriter | None = None,
    clock: Callable[[], int] = now_ms,
) -> LogMonitor:
    """Assemble a LogMonitor from configuration.

    Args:
        log: Settings of the Log to monitor
        storage: STH sink; also the audit sink and the state source when it
            implements those protocols
        fetcher: Client override (defaults to HTTPLogClient, or
            MockLogClient for ``mock://`` URLs)
        audit_sink: Audit sink override
        clock: Millisecond clock for STH validation

    Returns:
        LogMonitor ready to run

    Raises:
        ValueError: If the Log has no usable public key
    """
    logger = get_logger("ct_sth_monitor.monitor", log=log.name, log_url=log.url)

    if fetcher is None:
        if log.is_mock:
            fetcher = MockLogClient(name=_mock_name(log.url))
        else:
            fetcher = HTTPLogClient(log.url, timeout=log.request_timeout_seconds)

    public_key: bytes | str = log.public_key
    if not public_key and isinstance(fetcher, MockLogClient):
        public_key = fetcher.public_key_der
    if not public_key:
        raise ValueError(f"Log '{log.name}' has no public_key configured")

    validator = STHValidator(
        public_key,
        hash_algorithm=log.hash_algorithm,
        max_clock_skew_ms=log.max_clock_skew_ms,
    )

    if audit_sink is None:
        if not isinstance(storage, APICallWriter):
            raise TypeError(f"{type(storage).__name__} cannot record API calls")
        audit_sink = storage

    log_url = fetcher.log_url
    reader = storage if isinstance(storage, STHReader) else None
    state = LogState(log_url, reader)
    recorder = APICallRecorder(log_url, audit_sink, logger=logger.bind(component="recorder"))
    pipeline_logger = logger.bind(component="sth_getter")
    pipeline = STHPipeline(
        fetcher,
        recorder,
        storage,
        validator,
        state,
        logger=pipeline_logger,
        clock=clock,
    )
    scheduler = Scheduler(pipeline, log.period_seconds, logger=pipeline_logger)

    return LogMonitor(
        name=log.name,
        fetcher=fetcher,
        pipeline=pipeline,
        scheduler=scheduler,
        state=state,
        logger=logger,
    )


async def monitor_logs(
    monitors: Sequence[LogMonitor],
    stop: asyncio.Event,
) -> dict[str, SchedulerStats | BaseException]:
    """Run every monitor concurrently until ``stop`` is set.

    A monitor that crashes does not take the others down; its exception is
    logged and returned in place of its stats.

    Returns:
        Mapping of Log name to SchedulerStats (or the exception it died with)
    """
    logger = get_logger(__name__)
    logger.info("monitoring_started", logs=[m.name for m in monitors])

    tasks = [asyncio.create_task(m.run(stop), name=f"monitor:{m.name}") for m in monitors]
    try:
        results = await asyncio.gather(*tasks, return_exceptions=True)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    summary: dict[str, SchedulerStats | BaseException] = {}
    for monitor, result in zip(monitors, results):
        if isinstance(result, BaseException):
            logger.error(
                "monitor_failed",
                log=monitor.name,
                error=str(result),
                error_type=type(result).__name__,
            )
        summary[monitor.name] = result

    logger.info("monitoring_stopped", logs=len(monitors))
    return summary
