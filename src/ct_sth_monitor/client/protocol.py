"""
Log client protocol for the CT STH Monitor.

The monitor does not care how an STH is fetched, only that a client can be
asked for the Log's current STH repeatedly. This module defines that
interface and the error type clients raise.

Example - Implementing a custom client:
    >>> class CachedLogClient:
    ...     log_url = "https://ct.example.com/log/"
    ...
    ...     async def get_sth(self) -> STHResponse:
    ...         body = await self.cache.read()
    ...         response = RawResponse(status_code=200, body=body)
    ...         return STHResponse(SignedTreeHead.from_json(body), response)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ct_sth_monitor.models import RawResponse, SignedTreeHead


class FetchError(Exception):
    """A Log API call failed.

    Raised for transport failures, non-200 statuses and bodies that cannot
    be parsed. ``response`` holds whatever the Log sent back, or None if no
    reply was received at all.
    """

    def __init__(self, message: str, response: RawResponse | None = None):
        super().__init__(message)
        self.response = response


@dataclass(frozen=True)
class STHResponse:
    """Result of a successful ``get-sth`` call.

    ``sth`` is None when the Log answered with an empty body.
    """

    sth: SignedTreeHead | None
    response: RawResponse


@runtime_checkable
class STHFetcher(Protocol):
    """Interface for fetching a Log's current STH.

    Implementations:
    - HTTPLogClient: RFC 6962 over HTTPS (httpx)
    - MockLogClient: Deterministic in-process Log for demos and tests

    ``get_sth`` must be safe to call repeatedly. The monitor applies no
    retries and no timeout of its own: a client that needs a deadline must
    enforce it and raise FetchError when it expires.
    """

    @property
    def log_url(self) -> str:
        """URL or identifier of the Log this client talks to."""
        ...

    async def get_sth(self) -> STHResponse:
        """Fetch the Log's current STH.

        Returns:
            STHResponse with the parsed STH (or None for an empty body)
            and the raw response

        Raises:
            FetchError: If the call failed or the reply is unusable
        """
        ...
