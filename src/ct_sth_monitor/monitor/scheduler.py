"""
Periodic scheduler for STH pipeline cycles.

The Scheduler fires one cycle per period tick until it is told to stop:

    Idle -> Waiting (tick or stop) -> Running (one cycle) -> Waiting ... -> Stopped

- Cycles never overlap. Ticks that pass while a cycle is running are
  dropped, not queued; the next cycle starts on the next tick of the
  original period grid.
- Stop wins over a pending tick: once the stop event is set no further
  cycle starts.
- A cycle in progress is never interrupted by the stop event. Cancelling
  the task also stops the Scheduler; the stop notification is still
  emitted.

Example:
    >>> stop = asyncio.Event()
    >>> scheduler = Scheduler(pipeline, period=60.0)
    >>> task = asyncio.create_task(scheduler.run(stop))
    >>> ...
    >>> stop.set()
    >>> stats = await task
"""

from __future__ import annotations

import asyncio

import structlog

from ct_sth_monitor.models import SchedulerStats
from ct_sth_monitor.monitor.pipeline import STHPipeline
from ct_sth_monitor.utils.logging import get_logger


class Scheduler:
    """Drives an STHPipeline on a fixed period.

    Attributes:
        pipeline: Pipeline run once per tick
        period: Seconds between ticks
        stats: Counters for the current/last run
    """

    def __init__(
        self,
        pipeline: STHPipeline,
        period: float,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        """Initialize the scheduler.

        Args:
            pipeline: Pipeline to run each tick
            period: Seconds between ticks (must be > 0)
            logger: Bound logger for this Log

        Raises:
            ValueError: If period is not positive
        """
        if period <= 0:
            raise ValueError(f"period must be > 0, got {period}")
        self.pipeline = pipeline
        self.period = period
        self.stats = SchedulerStats()
        self._logger = logger or get_logger(
            __name__, log_url=pipeline.log_url, component="sth_getter"
        )

    async def run(self, stop: asyncio.Event) -> SchedulerStats:
        """Run cycles until ``stop`` is set (or the task is cancelled).

        Args:
            stop: Cancellation signal shared with the caller

        Returns:
            SchedulerStats for this run
        """
        loop = asyncio.get_running_loop()
        self.stats = SchedulerStats()
        self._logger.info("sth_getter_started", period_seconds=self.period)

        next_tick = loop.time() + self.period
        try:
            while not stop.is_set():
                if await self._wait(stop, next_tick - loop.time()):
                    break

                outcome = await self.pipeline.run_cycle()
                self.stats.record(outcome)
                self._logger.info("cycle_completed", **outcome.summary_dict())

                next_tick += self.period
                now = loop.time()
                if now > next_tick:
                    skipped = int((now - next_tick) // self.period) + 1
                    next_tick += skipped * self.period
                    self.stats.ticks_skipped += skipped
                    self._logger.warning("ticks_skipped", count=skipped)
        finally:
            self._logger.info(
                "sth_getter_stopped",
                cycles_run=self.stats.cycles_run,
                sths_stored=self.stats.stored,
            )

        return self.stats

    @staticmethod
    async def _wait(stop: asyncio.Event, timeout: float) -> bool:
        """Wait for the next tick.

        Returns:
            True if the scheduler should stop instead of running a cycle
        """
        if timeout > 0:
            try:
                await asyncio.wait_for(stop.wait(), timeout)
            except TimeoutError:
                pass
        return stop.is_set()
