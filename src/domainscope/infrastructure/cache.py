"""In-process TTL cache."""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from domainscope.core.interfaces import ICache


class MemoryCache(ICache):
    """In-memory cache with TTL support and a bounded entry count.

    Used for long-lived reference data (RDAP bootstrap, provider tables),
    never for per-domain artifacts, which belong to the artifact store.
    """

    def __init__(
        self,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, tuple[Any, float]] = {}
        self._max_entries = max_entries
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        """Get value from cache."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expiry = entry
        if expiry and self._clock() >= expiry:
            del self._entries[key]
            return None

        return value

    async def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        """Set value in cache with TTL. ``ttl <= 0`` never expires."""
        if key not in self._entries and len(self._entries) >= self._max_entries:
            await self.cleanup_expired()
            if len(self._entries) >= self._max_entries:
                # Evict the entry closest to expiry
                oldest = min(self._entries, key=lambda k: self._entries[k][1] or float("inf"))
                del self._entries[oldest]

        expiry = self._clock() + ttl if ttl > 0 else 0
        self._entries[key] = (value, expiry)

    async def delete(self, key: str) -> None:
        """Delete value from cache."""
        self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        return await self.get(key) is not None

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: int = 3600,
    ) -> Any | None:
        """Return the cached value or load and cache it.

        ``None`` results are not cached so a failed load is retried next time.
        """
        value = await self.get(key)
        if value is not None:
            return value

        value = await loader()
        if value is not None:
            await self.set(key, value, ttl)
        return value

    async def cleanup_expired(self) -> int:
        """Remove expired entries and return count removed."""
        now = self._clock()
        expired = [
            key for key, (_, expiry) in self._entries.items()
            if expiry and now >= expiry
        ]

        for key in expired:
            del self._entries[key]

        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
