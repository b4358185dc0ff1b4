"""
CT STH Monitor

Watches Certificate Transparency Logs by periodically fetching their
Signed Tree Heads (STHs), auditing every API call, validating each STH and
storing the ones that pass.

Features:
- RFC 6962 get-sth client (httpx) plus a signed mock Log
- Signature, size, root hash and timestamp checks on every STH
- Audit trail of every Log API call, successful or not
- SQLite storage with Pydantic models
- asyncio scheduler with no overlapping cycles and prompt shutdown

Example:
    >>> from ct_sth_monitor import MockLogClient, STHValidator
    >>>
    >>> client = MockLogClient(tree_size=10)
    >>> result = await client.get_sth()
    >>> STHValidator(client.public_key_der).validate(result.sth).accepted
    True

For more information, see the README.md or run:
    $ ct-sth-monitor --help
"""

__version__ = "0.3.0"

# Clients
# Configuration
from ct_sth_monitor.client import FetchError, HTTPLogClient, MockLogClient, STHFetcher
from ct_sth_monitor.config.settings import LogSettings, Settings, get_settings

# Core models
from ct_sth_monitor.models import APICallRecord, CycleOutcome, CycleStatus, RawResponse, SignedTreeHead

# Monitoring
from ct_sth_monitor.monitor import (
    APICallRecorder,
    LogState,
    Scheduler,
    STHPipeline,
    build_log_monitor,
    monitor_logs,
)

# Storage
from ct_sth_monitor.storage import EchoStorage, SQLiteStorage

# Validation
from ct_sth_monitor.validation import RejectReason, STHValidator, ValidationResult

__all__ = [
    "APICallRecord",
    "APICallRecorder",
    "CycleOutcome",
    "CycleStatus",
    "EchoStorage",
    "FetchError",
    "HTTPLogClient",
    "LogSettings",
    "LogState",
    "MockLogClient",
    "RawResponse",
    "RejectReason",
    "SQLiteStorage",
    "STHFetcher",
    "STHPipeline",
    "STHValidator",
    "Scheduler",
    "Settings",
    "SignedTreeHead",
    "ValidationResult",
    "__version__",
    "build_log_monitor",
    "get_settings",
    "monitor_logs",
]
