"""
API call recording.

Turns every attempted Log API call into exactly one immutable
APICallRecord and hands it to the audit sink. A sink failure is logged and
reported back to the caller but never raised: the audit trail must not
stop the monitor.
"""

from __future__ import annotations

import structlog

from ct_sth_monitor.models import APICallRecord, RawResponse
from ct_sth_monitor.storage.protocol import APICallWriter
from ct_sth_monitor.utils.logging import get_logger


def describe_error(error: BaseException | str | None) -> str | None:
    """Error text for an audit record."""
    if error is None or isinstance(error, str):
        return error
    return str(error) or type(error).__name__


class APICallRecorder:
    """Builds and persists API call audit records for one Log.

    Usage:
        recorder = APICallRecorder(log_url, storage)
        record = recorder.record(GET_STH, response, error)
        await recorder.persist(record)
    """

    def __init__(
        self,
        log_url: str,
        sink: APICallWriter,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self.log_url = log_url
        self.sink = sink
        self._logger = logger or get_logger(__name__, log_url=log_url, component="recorder")

    def record(
        self,
        endpoint: str,
        response: RawResponse | None,
        error: BaseException | str | None = None,
    ) -> APICallRecord:
        """Wrap one call attempt into an audit record."""
        return APICallRecord(
            log_url=self.log_url,
            endpoint=endpoint,
            response=response,
            error=describe_error(error),
        )

    async def persist(self, record: APICallRecord) -> bool:
        """Write a record to the audit sink.

        Returns:
            True if the sink accepted the record, False if it failed
        """
        self._logger.debug("writing_api_call", endpoint=record.endpoint)
        try:
            await self.sink.write_api_call(record)
        except Exception as e:
            self._logger.error(
                "api_call_write_failed",
                endpoint=record.endpoint,
                api_call=str(record),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        return True
