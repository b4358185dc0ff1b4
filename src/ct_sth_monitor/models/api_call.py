"""
API call audit models for the CT STH Monitor.

Every network interaction with a Log is captured as an APICallRecord so the
monitor keeps a complete audit trail of what the Log actually said:

- RawResponse: the HTTP-level reply (status, body, headers, timing)
- APICallRecord: one attempted call, successful or not

Example:
    >>> record = APICallRecord(
    ...     log_url="https://ct.example.com/log/",
    ...     endpoint=GET_STH,
    ...     response=response,
    ... )
    >>> record.succeeded
    True
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ct_sth_monitor.utils.time import utcnow

# RFC 6962 endpoint name for fetching the latest STH
GET_STH = "get-sth"


class RawResponse(BaseModel):
    """HTTP-level data for a single Log API response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    status_code: int | None = Field(default=None, description="HTTP status code")
    body: bytes = Field(default=b"", description="Raw response body")
    headers: dict[str, str] = Field(default_factory=dict, description="Response headers")
    started_at: datetime = Field(default_factory=utcnow, description="Request start time")
    finished_at: datetime = Field(default_factory=utcnow, description="Response end time")

    @computed_field  # type: ignore[misc]
    @property
    def duration_seconds(self) -> float:
        """Round-trip time of the request."""
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def is_empty(self) -> bool:
        """True if the Log returned no body."""
        return len(self.body) == 0

    def body_text(self) -> str:
        """Body decoded for logging; undecodable bytes are replaced."""
        return self.body.decode("utf-8", errors="replace")


class APICallRecord(BaseModel):
    """Immutable audit record of one attempted Log API call.

    Exactly one record is produced per attempt. ``response`` is None when
    the call failed before any reply was received; ``error`` is set when
    the call failed for any reason.

    Attributes:
        log_url: Log the call was made against
        endpoint: RFC 6962 endpoint name (e.g. "get-sth")
        response: Raw response, if one was received
        error: Error text, if the call failed
        recorded_at: When the record was created
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    log_url: str = Field(..., description="Log URL or identifier")
    endpoint: str = Field(..., description="Log API endpoint name")
    response: RawResponse | None = Field(default=None, description="Raw response")
    error: str | None = Field(default=None, description="Error message if the call failed")
    recorded_at: datetime = Field(default_factory=utcnow, description="Record creation time")

    @property
    def succeeded(self) -> bool:
        """True if the call completed without error."""
        return self.error is None

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for SQLite insertion."""
        response = self.response
        return {
            "log_url": self.log_url,
            "endpoint": self.endpoint,
            "status_code": response.status_code if response else None,
            "body": response.body if response else None,
            "headers": json.dumps(response.headers) if response else None,
            "started_at": response.started_at.isoformat() if response else None,
            "finished_at": response.finished_at.isoformat() if response else None,
            "error": self.error,
            "recorded_at": self.recorded_at.isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> APICallRecord:
        """Create an APICallRecord from a database row."""
        response = None
        if row.get("started_at") is not None:
            response = RawResponse(
                status_code=row["status_code"],
                body=row["body"] or b"",
                headers=json.loads(row["headers"] or "{}"),
                started_at=datetime.fromisoformat(row["started_at"]),
                finished_at=datetime.fromisoformat(row["finished_at"]),
            )
        return cls(
            log_url=row["log_url"],
            endpoint=row["endpoint"],
            response=response,
            error=row["error"],
            recorded_at=datetime.fromisoformat(row["recorded_at"]),
        )

    def __str__(self) -> str:
        parts = [f"{self.log_url} {self.endpoint}"]
        if self.response is not None:
            parts.append(f"status={self.response.status_code}")
            parts.append(f"{self.response.duration_seconds:.3f}s")
            if not self.response.is_empty:
                parts.append(f"body={self.response.body_text()}")
        if self.error is not None:
            parts.append(f"error={self.error}")
        return " ".join(parts)
