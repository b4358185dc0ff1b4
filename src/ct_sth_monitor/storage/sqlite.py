"""
SQLite storage backend for the CT STH Monitor.

Implements APICallWriter, STHWriter and STHReader on a single SQLite file:

- WAL mode for concurrent readers (e.g. ``ct-sth-monitor sths``)
- Blocking SQLite work runs in a worker thread via ``asyncio.to_thread``
- Writes are serialised with a lock, so several monitored Logs can share
  one database
- Idempotent STH storage through a UNIQUE constraint

Example:
    >>> from ct_sth_monitor.storage import SQLiteStorage
    >>>
    >>> storage = SQLiteStorage("data/ct_monitor.db")
    >>> storage.initialize()
    >>>
    >>> await storage.write_sth(log_url, sth)
    >>> latest = await storage.latest_sth(log_url)
    >>>
    >>> storage.close()
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any

from ct_sth_monitor.models import APICallRecord, SignedTreeHead
from ct_sth_monitor.storage.schema import create_schema, get_schema_version, migrate
from ct_sth_monitor.utils.time import utcnow

_API_CALL_COLUMNS = (
    "log_url", "endpoint", "status_code", "body", "headers",
    "started_at", "finished_at", "error", "recorded_at",
)


class SQLiteStorage:
    """SQLite storage backend for API calls and STHs.

    Attributes:
        db_path: Path to the SQLite database file
        connection: Active database connection

    Example:
        >>> storage = SQLiteStorage("data/ct_monitor.db")
        >>> storage.initialize()
        >>> rows = storage.recent_sths(limit=10)
        >>> storage.close()
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        timeout: float = 30.0,
        wal_mode: bool = True,
    ):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
            timeout: Connection timeout in seconds
            wal_mode: Enable write-ahead logging
        """
        self.db_path = Path(db_path)
        self._timeout = timeout
        self._wal_mode = wal_mode
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get active database connection, creating if needed."""
        if self._connection is None:
            self._connect()
        return self._connection  # type: ignore

    def _connect(self) -> None:
        """Establish database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Used from asyncio.to_thread workers; access is guarded by _lock
        self._connection = sqlite3.connect(
            self.db_path,
            timeout=self._timeout,
            check_same_thread=False,
        )
        self._connection.row_factory = sqlite3.Row

        if self._wal_mode:
            self._connection.execute("PRAGMA journal_mode=WAL")
        self._connection.execute("PRAGMA synchronous=NORMAL")

    def initialize(self) -> None:
        """Create tables/schema if needed.

        This method is idempotent - safe to call multiple times.
        """
        with self._lock:
            if get_schema_version(self.connection) is None:
                create_schema(self.connection)
            else:
                migrate(self.connection)

    # =========================================================================
    # Sinks (async)
    # =========================================================================

    async def write_api_call(self, record: APICallRecord) -> None:
        """Append an API call record to the audit trail."""
        await asyncio.to_thread(self.insert_api_call, record)

    async def write_sth(self, log_url: str, sth: SignedTreeHead) -> None:
        """Store an accepted STH; a repeat of a stored STH is ignored."""
        await asyncio.to_thread(self.insert_sth, log_url, sth)

    async def latest_sth(self, log_url: str) -> SignedTreeHead | None:
        """Most recent accepted STH for a Log, or None."""
        return await asyncio.to_thread(self.get_latest_sth, log_url)

    # =========================================================================
    # Synchronous operations
    # =========================================================================

    def insert_api_call(self, record: APICallRecord) -> int:
        """Insert an API call record.

        Returns:
            Row ID of the inserted record
        """
        db_dict = record.to_db_dict()
        placeholders = ", ".join(["?"] * len(_API_CALL_COLUMNS))
        sql = f"INSERT INTO api_calls ({', '.join(_API_CALL_COLUMNS)}) VALUES ({placeholders})"

        with self._lock:
            cursor = self.connection.execute(
                sql, tuple(db_dict[col] for col in _API_CALL_COLUMNS)
            )
            self.connection.commit()
            return cursor.lastrowid or 0

    def insert_sth(self, log_url: str, sth: SignedTreeHead) -> bool:
        """Insert an STH unless it is already stored for this Log.

        Returns:
            True if a new row was written, False if it already existed
        """
        db_dict = sth.to_db_dict()
        with self._lock:
            cursor = self.connection.execute(
                """
                INSERT OR IGNORE INTO sths
                (log_url, tree_size, timestamp, root_hash, signature, received_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    log_url,
                    db_dict["tree_size"],
                    db_dict["timestamp"],
                    db_dict["root_hash"],
                    db_dict["signature"],
                    utcnow().isoformat(),
                ),
            )
            self.connection.commit()
            return cursor.rowcount == 1

    def get_latest_sth(self, log_url: str) -> SignedTreeHead | None:
        """Get the accepted STH with the greatest timestamp for a Log."""
        results = self.query(
            """
            SELECT * FROM sths WHERE log_url = ?
            ORDER BY timestamp DESC, id DESC
            LIMIT 1
            """,
            (log_url,),
        )
        return SignedTreeHead.from_db_row(results[0]) if results else None

    def recent_sths(self, log_url: str | None = None, limit: int = 20) -> list[dict[str, Any]]:
        """Most recently received STHs, newest first.

        Args:
            log_url: Restrict to one Log (None = all Logs)
            limit: Maximum rows to return
        """
        if log_url is None:
            return self.query("SELECT * FROM sths ORDER BY id DESC LIMIT ?", (limit,))
        return self.query(
            "SELECT * FROM sths WHERE log_url = ? ORDER BY id DESC LIMIT ?",
            (log_url, limit),
        )

    def get_api_calls(self, log_url: str | None = None) -> list[APICallRecord]:
        """All API call records in insertion order."""
        if log_url is None:
            rows = self.query("SELECT * FROM api_calls ORDER BY id")
        else:
            rows = self.query("SELECT * FROM api_calls WHERE log_url = ? ORDER BY id", (log_url,))
        return [APICallRecord.from_db_row(row) for row in rows]

    def count_api_calls(self) -> int:
        """Total number of audit records."""
        result = self.query("SELECT COUNT(*) as count FROM api_calls")
        return result[0]["count"] if result else 0

    def count_sths(self) -> int:
        """Total number of stored STHs."""
        result = self.query("SELECT COUNT(*) as count FROM sths")
        return result[0]["count"] if result else 0

    def query(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        """Execute a query and return results as dictionaries.

        Args:
            sql: SQL query string (use ? for parameters)
            params: Query parameters

        Returns:
            List of dictionaries (column name -> value)
        """
        with self._lock:
            cursor = self.connection.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> int:
        """Execute a non-query SQL statement.

        Returns:
            Number of affected rows
        """
        with self._lock:
            cursor = self.connection.execute(sql, params)
            self.connection.commit()
            return cursor.rowcount

    def get_stats(self) -> dict[str, Any]:
        """Get storage statistics.

        Returns:
            Dictionary with table counts, per-Log summaries and file size
        """
        stats: dict[str, Any] = {
            "api_calls_count": self.count_api_calls(),
            "sths_count": self.count_sths(),
        }

        result = self.query("SELECT COUNT(*) as count FROM api_calls WHERE error IS NOT NULL")
        stats["failed_api_calls"] = result[0]["count"] if result else 0

        stats["logs"] = self.query(
            """
            SELECT log_url, tree_size, timestamp,
                   (SELECT COUNT(*) FROM sths s2 WHERE s2.log_url = v.log_url) AS sth_count
            FROM v_latest_sths v
            ORDER BY log_url
            """
        )

        if self.db_path.exists():
            stats["file_size_bytes"] = self.db_path.stat().st_size
            stats["file_size_mb"] = round(stats["file_size_bytes"] / (1024 * 1024), 2)

        return stats

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> SQLiteStorage:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SQLiteStorage({self.db_path!r})"
