"""
Data models for the CT STH Monitor.

This module provides Pydantic-based data models for:
- SignedTreeHead: A Log's signed commitment to its tree state
- RawResponse / APICallRecord: Audit trail of Log API calls
- CycleOutcome / SchedulerStats: Per-cycle and per-Log summaries

All STH and audit models are frozen once created.
"""

from ct_sth_monitor.models.api_call import GET_STH, APICallRecord, RawResponse
from ct_sth_monitor.models.cycles import CycleOutcome, CycleStatus, SchedulerStats
from ct_sth_monitor.models.sth import SignedTreeHead

__all__ = [
    "GET_STH",
    "APICallRecord",
    "CycleOutcome",
    "CycleStatus",
    "RawResponse",
    "SchedulerStats",
    "SignedTreeHead",
]
