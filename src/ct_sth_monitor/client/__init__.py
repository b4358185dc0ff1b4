"""
Log clients for the CT STH Monitor.

Clients implement the STHFetcher protocol:

- HTTPLogClient: RFC 6962 ``get-sth`` over HTTPS (httpx)
- MockLogClient: Deterministic in-process Log (demos, tests)

Example:
    >>> from ct_sth_monitor.client import HTTPLogClient
    >>>
    >>> async with HTTPLogClient(url, timeout=10.0) as client:
    ...     result = await client.get_sth()

To implement a custom client, see `client/protocol.py` for the interface.
"""

from ct_sth_monitor.client.http import HTTPLogClient
from ct_sth_monitor.client.mock import MockLogClient
from ct_sth_monitor.client.protocol import FetchError, STHFetcher, STHResponse

__all__ = [
    "FetchError",
    "HTTPLogClient",
    "MockLogClient",
    "STHFetcher",
    "STHResponse",
]
