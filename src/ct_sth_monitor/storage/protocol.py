"""
Storage protocols for the CT STH Monitor.

The monitor needs two append-only sinks and one read capability. Each is a
separate Protocol so a backend can implement only what it supports:

- APICallWriter: audit trail of every Log API call
- STHWriter: store of accepted STHs
- STHReader: lookup of the most recent accepted STH (for resuming)

Currently implemented:
- SQLiteStorage: Local SQLite database (all three)
- EchoStorage: Logs everything it is given (writers only)

Example:
    >>> class MyStorage:
    ...     async def write_api_call(self, record: APICallRecord) -> None:
    ...         await self.queue.put(record)
    ...
    ...     async def write_sth(self, log_url: str, sth: SignedTreeHead) -> None:
    ...         await self.table.upsert(log_url, sth.identity)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ct_sth_monitor.models import APICallRecord, SignedTreeHead


@runtime_checkable
class APICallWriter(Protocol):
    """Sink for the API call audit trail."""

    async def write_api_call(self, record: APICallRecord) -> None:
        """Append one API call record.

        Records are written in the order calls were made. The sink is used
        by a single writer per Log.

        Args:
            record: Immutable audit record

        Raises:
            Exception: Any backend failure; the caller reports it and
                carries on
        """
        ...


@runtime_checkable
class STHWriter(Protocol):
    """Sink for accepted STHs."""

    async def write_sth(self, log_url: str, sth: SignedTreeHead) -> None:
        """Store an accepted STH.

        Must be idempotent: storing the same (tree_size, timestamp,
        root_hash, signature) for the same Log twice leaves the store as if
        it had been stored once.

        Args:
            log_url: Log the STH was fetched from
            sth: Validated STH

        Raises:
            Exception: Any backend failure
        """
        ...


@runtime_checkable
class STHReader(Protocol):
    """Read access to previously accepted STHs."""

    async def latest_sth(self, log_url: str) -> SignedTreeHead | None:
        """Get the most recently accepted STH for a Log.

        Args:
            log_url: Log to look up

        Returns:
            STH with the greatest timestamp, or None if none stored
        """
        ...
