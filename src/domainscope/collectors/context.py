"""Shared dependencies handed to every collector."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from domainscope.core.config import Settings, get_settings
from domainscope.core.interfaces import IProviderCatalog
from domainscope.infrastructure.cache import MemoryCache
from domainscope.infrastructure.http import HTTPClient
from domainscope.infrastructure.ratelimit import MultiRateLimiter
from domainscope.providers.catalog import StaticProviderCatalog
from domainscope.resolvers.doh import DohClient
from domainscope.safefetch.fetcher import SafeFetcher
from domainscope.safefetch.guard import HostGuard


@dataclass
class AcquisitionContext:
    settings: Settings
    client: httpx.AsyncClient
    limiter: MultiRateLimiter
    doh: DohClient
    guard: HostGuard
    fetcher: SafeFetcher
    catalog: IProviderCatalog
    cache: MemoryCache

    @classmethod
    def create(
        cls,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
        catalog: IProviderCatalog | None = None,
        cache: MemoryCache | None = None,
        limiter: MultiRateLimiter | None = None,
    ) -> "AcquisitionContext":
        """Wire the default components around an existing client."""
        settings = settings or get_settings()
        limiter = limiter or MultiRateLimiter(settings)
        doh = DohClient(client, settings=settings, limiter=limiter)
        guard = HostGuard(doh)
        return cls(
            settings=settings,
            client=client,
            limiter=limiter,
            doh=doh,
            guard=guard,
            fetcher=SafeFetcher(client, guard, settings=settings),
            catalog=catalog or StaticProviderCatalog(),
            cache=cache or MemoryCache(),
        )


@asynccontextmanager
async def open_context(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[AcquisitionContext]:
    """Own an HTTP client for the duration of a block."""
    async with HTTPClient(settings, transport) as client:
        yield AcquisitionContext.create(client, settings=settings)
