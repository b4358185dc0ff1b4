"""
Fetch-check-store pipeline.

One cycle runs these stages for a single Log:

1. Fetch the current STH from the Log
2. Record the API call in the audit trail (always, even on failure)
3. Validate the STH against the per-STH rules
4. Store it if it passed, and remember it as the last accepted STH

Each stage can fail on its own. A failure is logged, classified as a
CycleStatus and ends the cycle early; nothing is raised to the caller
except cancellation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from ct_sth_monitor.client.protocol import FetchError, STHFetcher
from ct_sth_monitor.models import GET_STH, CycleOutcome, CycleStatus, RawResponse, SignedTreeHead
from ct_sth_monitor.monitor.recorder import APICallRecorder
from ct_sth_monitor.monitor.state import LogState
from ct_sth_monitor.storage.protocol import STHWriter
from ct_sth_monitor.utils.logging import get_logger
from ct_sth_monitor.utils.time import now_ms, utcnow
from ct_sth_monitor.validation.validator import STHValidator


def _is_unusable(response: RawResponse | None) -> bool:
    """True if the Log answered 200 but the body could not be used."""
    return response is not None and response.status_code == 200


class STHPipeline:
    """Runs fetch -> record -> validate -> store cycles for one Log.

    Usage:
        pipeline = STHPipeline(client, recorder, storage, validator, LogState(url))
        outcome = await pipeline.run_cycle()
        print(outcome.status)
    """

    def __init__(
        self,
        fetcher: STHFetcher,
        recorder: APICallRecorder,
        sth_sink: STHWriter,
        validator: STHValidator,
        state: LogState,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize pipeline.

        Args:
            fetcher: Client used to get the Log's STH
            recorder: Records every fetch attempt
            sth_sink: Store for accepted STHs
            validator: Per-STH checks
            state: Holder of the last accepted STH
            logger: Bound logger for this Log
            clock: Millisecond clock used for the future-timestamp check
        """
        self.fetcher = fetcher
        self.recorder = recorder
        self.sth_sink = sth_sink
        self.validator = validator
        self.state = state
        self.log_url = fetcher.log_url
        self._logger = logger or get_logger(__name__, log_url=self.log_url, component="sth_getter")
        self._clock = clock

    async def run_cycle(self) -> CycleOutcome:
        """Execute one cycle end to end.

        Returns:
            CycleOutcome describing which stages ran and how the cycle ended
        """
        outcome = CycleOutcome(log_url=self.log_url, status=CycleStatus.TRANSPORT_ERROR)

        sth, response, error = await self._fetch()

        record = self.recorder.record(GET_STH, response, error)
        outcome.audit_recorded = await self.recorder.persist(record)

        if error is not None:
            outcome.error = record.error
            if _is_unusable(response):
                return self._finish(outcome, CycleStatus.UNUSABLE_RESPONSE)
            return self._finish(outcome, CycleStatus.TRANSPORT_ERROR)

        if sth is None:
            self._logger.warning("get_sth_empty_response")
            return self._finish(outcome, CycleStatus.EMPTY_RESPONSE)

        outcome.tree_size = sth.tree_size
        result = self.validator.validate(sth, self.state.last_accepted, self._clock())
        outcome.validated = True

        if not result.accepted:
            assert result.reason is not None
            outcome.reject_reason = result.reason.value
            outcome.error = result.detail
            self._logger.warning(
                "sth_rejected",
                reason=result.reason.value,
                detail=result.detail,
                tree_size=sth.tree_size,
                timestamp=sth.timestamp,
            )
            return self._finish(outcome, CycleStatus.REJECTED)

        try:
            # Shielded so a cancelled task never stores without updating state
            await asyncio.shield(self._store(sth))
        except Exception as e:
            outcome.error = str(e)
            self._logger.error(
                "sth_write_failed",
                sth=str(sth),
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._finish(outcome, CycleStatus.STH_WRITE_FAILED)

        outcome.stored = True
        self._logger.info("sth_stored", tree_size=sth.tree_size, timestamp=sth.timestamp)
        return self._finish(outcome, CycleStatus.STORED)

    async def _fetch(
        self,
    ) -> tuple[SignedTreeHead | None, RawResponse | None, Exception | None]:
        """Call the Log, folding every failure into the returned error."""
        self._logger.debug("getting_sth")
        try:
            result = await self.fetcher.get_sth()
        except FetchError as e:
            if _is_unusable(e.response):
                self._logger.warning(
                    "get_sth_unusable_response",
                    error=str(e),
                    body=e.response.body_text(),
                )
            else:
                self._log_fetch_failure(e, e.response)
            return None, e.response, e
        except Exception as e:
            # A misbehaving client is treated like a transport failure
            self._log_fetch_failure(e, None)
            return None, None, e

        if not result.response.is_empty:
            self._logger.debug("get_sth_response", body=result.response.body_text())
        return result.sth, result.response, None

    def _log_fetch_failure(self, error: Exception, response: RawResponse | None) -> None:
        self._logger.warning(
            "get_sth_failed",
            error=str(error),
            error_type=type(error).__name__,
            status_code=response.status_code if response else None,
        )

    async def _store(self, sth: SignedTreeHead) -> None:
        await self.sth_sink.write_sth(self.log_url, sth)
        self.state.accept(sth)

    def _finish(self, outcome: CycleOutcome, status: CycleStatus) -> CycleOutcome:
        outcome.status = status
        outcome.completed_at = utcnow()
        return outcome
