"""
Storage backends for the CT STH Monitor.

Backends implement the protocols in `storage/protocol.py`:

- SQLiteStorage: Local SQLite database (default)
- EchoStorage: Logs records instead of storing them (development)

Example:
    >>> from ct_sth_monitor.storage import SQLiteStorage
    >>>
    >>> storage = SQLiteStorage("data/ct_monitor.db")
    >>> storage.initialize()
    >>> await storage.write_api_call(record)

The schema is defined in `storage/schema.py` and includes:
- api_calls: Every Log API call (audit trail)
- sths: Accepted STHs, unique per Log
"""

from ct_sth_monitor.storage.echo import EchoStorage
from ct_sth_monitor.storage.protocol import APICallWriter, STHReader, STHWriter
from ct_sth_monitor.storage.schema import SCHEMA_VERSION, create_schema, get_schema_sql
from ct_sth_monitor.storage.sqlite import SQLiteStorage

__all__ = [
    "SCHEMA_VERSION",
    "APICallWriter",
    "EchoStorage",
    "SQLiteStorage",
    "STHReader",
    "STHWriter",
    "create_schema",
    "get_schema_sql",
]
