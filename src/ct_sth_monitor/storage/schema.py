"""
Database schema for the CT STH Monitor.

This module defines the SQLite schema including:
- api_calls: Append-only audit trail of every Log API call
- sths: Append-only store of accepted STHs
- Indexes and views for common queries
- Migration support for schema updates

Schema Philosophy:
- Rows are never updated or deleted by the monitor
- An STH is stored at most once per Log (UNIQUE on its identity), so
  re-storing an STH seen in an earlier cycle is a no-op

Example:
    >>> from ct_sth_monitor.storage.schema import create_schema, get_schema_sql
    >>>
    >>> create_schema(connection)
    >>> print(get_schema_sql())
"""

from __future__ import annotations

import sqlite3

# Schema version for migration tracking
SCHEMA_VERSION = 1

# ============================================================================
# TABLE DEFINITIONS
# ============================================================================

TABLES_SQL = f"""
-- ============================================================================
-- API_CALLS: Every attempted Log API call (audit trail)
-- ============================================================================
CREATE TABLE IF NOT EXISTS api_calls (
    id INTEGER PRIMARY KEY AUTOINCREMENT,

    log_url TEXT NOT NULL,
    endpoint TEXT NOT NULL,

    -- Response (all NULL when no response was received)
    status_code INTEGER,
    body BLOB,
    headers TEXT,
    started_at TEXT,
    finished_at TEXT,

    -- Failure
    error TEXT,

    recorded_at TEXT NOT NULL
);

-- ============================================================================
-- STHS: Accepted Signed Tree Heads
-- ============================================================================
CREATE TABLE IF NOT EXISTS sths (
    id INTEGER PRIMARY KEY AUTOINCREMENT,

    log_url TEXT NOT NULL,
    tree_size INTEGER NOT NULL,
    timestamp INTEGER NOT NULL,
    root_hash TEXT NOT NULL,
    signature TEXT NOT NULL,

    received_at TEXT NOT NULL,

    UNIQUE (log_url, tree_size, timestamp, root_hash, signature)
);

-- ============================================================================
-- SCHEMA_INFO: Track schema version
-- ============================================================================
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

INSERT OR REPLACE INTO schema_info (key, value) VALUES ('version', '{SCHEMA_VERSION}');
INSERT OR IGNORE INTO schema_info (key, value) VALUES ('created_at', datetime('now'));
"""

# ============================================================================
# INDEX DEFINITIONS
# ============================================================================

INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_api_calls_log ON api_calls(log_url, recorded_at);
CREATE INDEX IF NOT EXISTS idx_api_calls_error ON api_calls(error) WHERE error IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_sths_log_timestamp ON sths(log_url, timestamp);
"""

# ============================================================================
# VIEW DEFINITIONS
# ============================================================================

VIEWS_SQL = """
-- Most recent accepted STH per Log
CREATE VIEW IF NOT EXISTS v_latest_sths AS
SELECT s.*
FROM sths s
WHERE s.id = (
    SELECT s2.id FROM sths s2
    WHERE s2.log_url = s.log_url
    ORDER BY s2.timestamp DESC, s2.id DESC
    LIMIT 1
);

-- Failed API calls, newest first
CREATE VIEW IF NOT EXISTS v_failed_api_calls AS
SELECT id, log_url, endpoint, status_code, error, recorded_at
FROM api_calls
WHERE error IS NOT NULL
ORDER BY recorded_at DESC;
"""


def get_schema_sql() -> str:
    """Get complete schema SQL for inspection.

    Returns:
        Complete SQL schema as a string
    """
    return "\n".join(
        [
            "-- CT STH Monitor Schema",
            f"-- Version: {SCHEMA_VERSION}",
            "",
            "-- TABLES",
            TABLES_SQL,
            "",
            "-- INDEXES",
            INDEXES_SQL,
            "",
            "-- VIEWS",
            VIEWS_SQL,
        ]
    )


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all database tables, indexes, and views.

    This function is idempotent - safe to call multiple times.

    Args:
        conn: SQLite connection
    """
    cursor = conn.cursor()
    cursor.executescript(TABLES_SQL)
    cursor.executescript(INDEXES_SQL)
    cursor.executescript(VIEWS_SQL)
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Get current schema version from database.

    Args:
        conn: SQLite connection

    Returns:
        Schema version number, or None if not found
    """
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM schema_info WHERE key = 'version'")
        row = cursor.fetchone()
        return int(row[0]) if row else None
    except sqlite3.OperationalError:
        return None


def migrate(conn: sqlite3.Connection) -> None:
    """Bring an existing database up to SCHEMA_VERSION.

    Args:
        conn: SQLite connection

    Raises:
        RuntimeError: If the database was written by a newer release
    """
    current_version = get_schema_version(conn)

    if current_version is None:
        create_schema(conn)
    elif current_version > SCHEMA_VERSION:
        raise RuntimeError(
            f"Database schema version {current_version} is newer than "
            f"supported version {SCHEMA_VERSION}"
        )
    elif current_version < SCHEMA_VERSION:
        # No incremental migrations exist yet; recreate missing objects
        create_schema(conn)
