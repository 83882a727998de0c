"""HTTP client construction."""

from typing import Any

import httpx

from domainscope.core.config import Settings, get_settings


def create_http_client(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the shared client.

    Redirects are never followed by the transport; the safe fetcher walks
    them itself so every hop can be checked.
    """
    settings = settings or get_settings()
    return httpx.AsyncClient(
        timeout=settings.fetch_timeout,
        follow_redirects=False,
        headers={"User-Agent": settings.user_agent},
        transport=transport,
    )


class HTTPClient:
    """Async context manager owning a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> httpx.AsyncClient:
        self._client = create_http_client(self.settings, self._transport)
        return self._client

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
