"""Coalescing of concurrent requests for the same target."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from domainscope.core.config import get_settings
from domainscope.core.logging import get_logger

T = TypeVar("T")

logger = get_logger("coalesce")


@dataclass
class _InFlight:
    task: asyncio.Future[Any]
    deadline: float
    waiters: int = 0
    evict_handle: asyncio.TimerHandle | None = field(default=None, repr=False)


class RequestCoalescer:
    """Share one in-flight operation between concurrent callers.

    Entries are keyed by target identity (``domain:kind``), removed as soon
    as the operation settles, and forcibly evicted after ``timeout`` seconds
    so a stuck operation cannot block later callers. A forced eviction does
    not cancel the stuck operation for callers already waiting on it.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout if timeout is not None else get_settings().coalesce_timeout
        self._inflight: dict[str, _InFlight] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def __contains__(self, key: str) -> bool:
        return key in self._inflight

    def waiters(self, key: str) -> int:
        entry = self._inflight.get(key)
        return entry.waiters if entry else 0

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Await the shared operation for ``key``, starting it if needed."""
        loop = asyncio.get_running_loop()
        entry = self._inflight.get(key)

        if entry is not None and loop.time() >= entry.deadline:
            logger.warning("coalesce_entry_expired", key=key)
            self._remove(key, entry)
            entry = None

        if entry is None:
            entry = _InFlight(
                task=asyncio.ensure_future(factory()),
                deadline=loop.time() + self.timeout,
            )
            entry.evict_handle = loop.call_later(self.timeout, self._evict, key, entry)
            entry.task.add_done_callback(lambda t, e=entry: self._settled(key, e))
            self._inflight[key] = entry
        else:
            logger.debug("coalesce_joined", key=key, waiters=entry.waiters)

        entry.waiters += 1
        try:
            return await asyncio.shield(entry.task)
        except asyncio.CancelledError:
            if entry.waiters == 1 and not entry.task.done():
                entry.task.cancel()
            raise
        finally:
            entry.waiters -= 1

    def _settled(self, key: str, entry: _InFlight) -> None:
        if not entry.task.cancelled():
            # Mark the exception retrieved; waiters re-raise it themselves
            entry.task.exception()
        self._remove(key, entry)

    def _evict(self, key: str, entry: _InFlight) -> None:
        if self._inflight.get(key) is entry:
            logger.warning("coalesce_entry_evicted", key=key, waiters=entry.waiters)
        self._remove(key, entry)

    def _remove(self, key: str, entry: _InFlight) -> None:
        if entry.evict_handle is not None:
            entry.evict_handle.cancel()
            entry.evict_handle = None
        # Only ever delete our own entry, never a newer one under the same key
        if self._inflight.get(key) is entry:
            del self._inflight[key]
