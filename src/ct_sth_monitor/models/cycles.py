"""
Cycle tracking models for the CT STH Monitor.

A cycle is one fetch -> record -> validate -> store pass. These models
summarise what happened in a cycle and across a Scheduler's lifetime:

- CycleStatus: how far a cycle got and why it stopped
- CycleOutcome: per-cycle summary for logging
- SchedulerStats: running counters for one monitored Log

Example:
    >>> outcome = await pipeline.run_cycle()
    >>> if outcome.status is CycleStatus.REJECTED:
    ...     print(f"Log misbehaved: {outcome.reject_reason}")
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ct_sth_monitor.utils.time import utcnow


class CycleStatus(str, Enum):
    """Terminal status of one cycle."""

    STORED = "stored"
    TRANSPORT_ERROR = "transport_error"
    EMPTY_RESPONSE = "empty_response"
    UNUSABLE_RESPONSE = "unusable_response"
    REJECTED = "rejected"
    STH_WRITE_FAILED = "sth_write_failed"

    @property
    def is_failure(self) -> bool:
        """True for every status except STORED."""
        return self is not CycleStatus.STORED


@dataclass
class CycleOutcome:
    """Summary of the stages a single cycle went through."""

    log_url: str
    status: CycleStatus
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    audit_recorded: bool = False
    validated: bool = False
    stored: bool = False
    tree_size: int | None = None
    reject_reason: str | None = None
    error: str | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Cycle duration, or None if the cycle has not completed."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def summary_dict(self) -> dict[str, Any]:
        """Get a summary dictionary for logging."""
        return {
            "status": self.status.value,
            "audit_recorded": self.audit_recorded,
            "validated": self.validated,
            "stored": self.stored,
            "tree_size": self.tree_size,
            "reject_reason": self.reject_reason,
            "error": self.error,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class SchedulerStats:
    """Counters accumulated by a Scheduler over its lifetime."""

    cycles_run: int = 0
    ticks_skipped: int = 0
    audit_failures: int = 0
    outcomes: Counter[CycleStatus] = field(default_factory=Counter)
    last_outcome: CycleOutcome | None = None

    def record(self, outcome: CycleOutcome) -> None:
        """Account for a finished cycle."""
        self.cycles_run += 1
        self.outcomes[outcome.status] += 1
        if not outcome.audit_recorded:
            self.audit_failures += 1
        self.last_outcome = outcome

    @property
    def stored(self) -> int:
        """Number of cycles that stored an STH."""
        return self.outcomes[CycleStatus.STORED]

    @property
    def success_rate(self) -> float:
        """Percentage of cycles that stored an STH."""
        return (self.stored / self.cycles_run * 100) if self.cycles_run > 0 else 0.0
