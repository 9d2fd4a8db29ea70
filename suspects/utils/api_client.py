"""Async JSON transport for the game server.

Thin wrapper around ``httpx.AsyncClient``:

* every request carries ``Content-Type: application/json``
* endpoints are query-parameter driven (``/next_round?player_uuid=...``)
* no retry and no timeout beyond ``settings.HTTP_TIMEOUT``

Status handling is left to the caller; this layer only moves bytes.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

_JSON_HEADERS: Dict[str, str] = {"Content-Type": "application/json"}


class ApiClient:
    """One connection pool per game server."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        from config import settings

        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ── lazy httpx client ─────────────────────────────────
    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=_JSON_HEADERS,
                transport=self._transport,
            )
        return self._client

    # ── public API ────────────────────────────────────────
    async def request(self, method: str, endpoint: str, **params: Any) -> httpx.Response:
        """Send ``method /endpoint?params`` and return the raw response."""
        query = {k: _query_value(v) for k, v in params.items()}
        logger.debug("%s /%s %s", method, endpoint, query)
        response = await self.client.request(method, f"/{endpoint}", params=query)
        logger.debug("%s /%s -> %d", method, endpoint, response.status_code)
        return response

    async def get(self, endpoint: str, **params: Any) -> httpx.Response:
        return await self.request("GET", endpoint, **params)

    async def post(self, endpoint: str, **params: Any) -> httpx.Response:
        return await self.request("POST", endpoint, **params)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _query_value(value: Any) -> str:
    # The server compares flags against the literal "true"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
