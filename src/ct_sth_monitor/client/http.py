"""
HTTP Log client for the CT STH Monitor.

Talks RFC 6962 to a Log over HTTPS using httpx:

    GET <log_url>/ct/v1/get-sth

Every call yields a RawResponse (status, body, headers, timing) so the
monitor can audit it, whether or not the call succeeded.

Example:
    >>> async with HTTPLogClient("https://ct.googleapis.com/logs/us1/argon2025h2/") as client:
    ...     result = await client.get_sth()
    ...     print(result.sth.tree_size)
"""

from __future__ import annotations

import httpx

from ct_sth_monitor import __version__
from ct_sth_monitor.client.protocol import FetchError, STHResponse
from ct_sth_monitor.models import RawResponse, SignedTreeHead
from ct_sth_monitor.utils.time import utcnow

GET_STH_PATH = "/ct/v1/get-sth"


class HTTPLogClient:
    """Async client for a classic (RFC 6962) CT Log.

    Attributes:
        log_url: Base URL of the Log
        timeout: Per-request timeout in seconds
        user_agent: User-Agent header sent with every request
    """

    DEFAULT_USER_AGENT = f"ct-sth-monitor/{__version__}"

    def __init__(
        self,
        log_url: str,
        *,
        timeout: float = 30.0,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            log_url: Base URL of the Log (e.g. "https://ct.example.com/log/")
            timeout: Per-request timeout in seconds
            user_agent: Override the default User-Agent
            transport: Custom httpx transport (used by tests)
        """
        self._log_url = log_url
        self.timeout = timeout
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT
        self._client = httpx.AsyncClient(
            base_url=log_url,
            timeout=timeout,
            headers={"User-Agent": self.user_agent},
            transport=transport,
        )

    @property
    def log_url(self) -> str:
        return self._log_url

    async def __aenter__(self) -> HTTPLogClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def get_sth(self) -> STHResponse:
        """Fetch and parse the Log's current STH.

        Raises:
            FetchError: On transport failure, non-200 status, or a body that
                is not a valid get-sth response
        """
        started_at = utcnow()
        try:
            response = await self._client.get(GET_STH_PATH)
        except httpx.HTTPError as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

        raw = RawResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
            started_at=started_at,
            finished_at=utcnow(),
        )

        if response.status_code != httpx.codes.OK:
            raise FetchError(
                f"get-sth returned HTTP {response.status_code} {response.reason_phrase}",
                response=raw,
            )

        if raw.is_empty:
            return STHResponse(sth=None, response=raw)

        try:
            sth = SignedTreeHead.from_json(raw.body)
        except ValueError as e:
            raise FetchError(f"malformed get-sth response: {e}", response=raw) from e

        return STHResponse(sth=sth, response=raw)

    def __repr__(self) -> str:
        return f"HTTPLogClient(log_url={self._log_url!r})"
