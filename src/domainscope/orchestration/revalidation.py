"""Stale-while-revalidate reads over the artifact store."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from domainscope.collectors.context import AcquisitionContext
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import ConfigurationError
from domainscope.core.interfaces import IArtifactStore, IRevalidationScheduler
from domainscope.core.logging import get_logger
from domainscope.infrastructure.coalesce import RequestCoalescer
from domainscope.models.artifact import CachedArtifact
from domainscope.models.base import ArtifactKind, BaseSchema
from domainscope.models.errors import ClassifiedError
from domainscope.orchestration.steps import AcquisitionStep, StepResult, step_key
from domainscope.policy.ttl import hint_for, is_stale, ttl_for

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactView(BaseSchema):
    """What a reader gets: last-known-good data, or nothing and why."""

    domain: str
    kind: ArtifactKind
    data: Any | None = None
    fetched_at: datetime | None = None
    expires_at: datetime | None = None
    stale: bool = False
    revalidating: bool = False
    error: ClassifiedError | None = None

    @property
    def available(self) -> bool:
        return self.data is not None

    @classmethod
    def from_cached(
        cls,
        domain: str,
        kind: ArtifactKind,
        cached: CachedArtifact[Any],
        now: datetime,
        revalidating: bool = False,
    ) -> "ArtifactView":
        return cls(
            domain=domain,
            kind=kind,
            data=cached.payload,
            fetched_at=cached.fetched_at,
            expires_at=cached.expires_at,
            stale=is_stale(cached.expires_at, now),
            revalidating=revalidating,
        )


class InProcessScheduler(IRevalidationScheduler):
    """Runs revalidations as background tasks in this event loop.

    ``due_at`` is ignored; work starts immediately.
    """

    def __init__(self, refresh: Callable[[str, ArtifactKind], Awaitable[Any]]) -> None:
        self._refresh = refresh
        self._tasks: set[asyncio.Task[Any]] = set()
        self.logger = get_logger("scheduler")

    async def schedule(self, domain: str, kind: ArtifactKind, due_at: datetime) -> None:
        task = asyncio.create_task(self._refresh(domain, kind))
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        self.logger.debug("revalidation_scheduled", domain=domain, kind=kind.value)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error("revalidation_crashed", error=str(error))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled revalidation to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class ArtifactService:
    """Serves stored artifacts and keeps them fresh.

    Fresh data is returned as-is. Stale data is returned immediately and a
    revalidation is requested. Missing data is acquired inline. Concurrent
    acquisitions of the same ``domain:kind`` share one in-flight run.
    """

    def __init__(
        self,
        store: IArtifactStore,
        context: AcquisitionContext,
        scheduler: IRevalidationScheduler | None = None,
        coalescer: RequestCoalescer | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.context = context
        self.scheduler = scheduler or InProcessScheduler(self.refresh)
        self.coalescer = coalescer or RequestCoalescer(context.settings.coalesce_timeout)
        self.clock = clock
        self.logger = get_logger("artifacts")
        self._steps: dict[ArtifactKind, AcquisitionStep] = {}

    def step_for(self, kind: ArtifactKind) -> AcquisitionStep:
        step = self._steps.get(kind)
        if step is None:
            collector = CollectorRegistry.get_instance(kind, self.context)
            if collector is None:
                raise ConfigurationError(f"No collector registered for {kind.value}")
            step = AcquisitionStep(collector, settings=self.context.settings)
            self._steps[kind] = step
        return step

    async def get(self, domain: str, kind: ArtifactKind) -> ArtifactView:
        """Read an artifact. Never raises for acquisition failures."""
        domain = domain.strip().lower().rstrip(".")
        domain_id = await self.store.ensure_domain_record(domain)
        cached = await self.store.get_cached(kind, domain_id)
        now = self.clock()

        if cached is not None:
            if not is_stale(cached.expires_at, now):
                return ArtifactView.from_cached(domain, kind, cached, now)

            self.logger.info("artifact_stale", domain=domain, kind=kind.value)
            await self.scheduler.schedule(domain, kind, now)
            return ArtifactView.from_cached(domain, kind, cached, now, revalidating=True)

        result = await self.refresh(domain, kind)
        if result.ok:
            cached = await self.store.get_cached(kind, domain_id)
            if cached is not None:
                return ArtifactView.from_cached(domain, kind, cached, self.clock())

        return ArtifactView(
            domain=domain,
            kind=kind,
            error=result.error.to_error() if result.error else None,
        )

    async def refresh(self, domain: str, kind: ArtifactKind) -> StepResult[Any]:
        """Acquire and persist, sharing the run with concurrent callers."""
        domain = domain.strip().lower().rstrip(".")
        return await self.coalescer.run(
            step_key(domain, kind),
            lambda: self._acquire(domain, kind),
        )

    async def _acquire(self, domain: str, kind: ArtifactKind) -> StepResult[Any]:
        result = await self.step_for(kind).execute(domain)
        if not result.ok or result.value is None:
            # Last-known-good stays in place
            return result

        fetched_at = self.clock()
        expires_at = ttl_for(kind, fetched_at, hint_for(kind, result.value))
        domain_id = await self.store.ensure_domain_record(domain)
        await self.store.replace_artifact(kind, domain_id, result.value, fetched_at, expires_at)

        self.logger.info(
            "artifact_stored",
            domain=domain,
            kind=kind.value,
            expires_at=expires_at.isoformat(),
        )
        return result
