"""Tests for stale-while-revalidate artifact reads."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeInternet
from domainscope.collectors.context import AcquisitionContext
from domainscope.collectors.dns import DnsCollector
from domainscope.models.base import ArtifactKind, RecordType
from domainscope.models.errors import ErrorKind
from domainscope.orchestration.revalidation import ArtifactService, InProcessScheduler
from domainscope.orchestration.steps import AcquisitionStep, step_key
from domainscope.policy.classifier import Disposition
from domainscope.storage.memory import InMemoryArtifactStore


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def zone(internet: FakeInternet) -> FakeInternet:
    internet.add_record("example.com", "A", "93.184.216.34", ttl=300)
    internet.add_record("example.com", "NS", "ns1.example.com.", ttl=3600)
    return internet


@pytest.fixture
def service(context: AcquisitionContext, clock: FakeClock) -> ArtifactService:
    return ArtifactService(InMemoryArtifactStore(), context, clock=clock)


def dns_queries(internet: FakeInternet) -> int:
    return len(internet.doh_requests("cloudflare")) + len(internet.doh_requests("google"))


class TestStepKey:
    def test_normalized(self) -> None:
        assert step_key(" Example.COM. ", ArtifactKind.SEO) == "example.com:seo"


class TestAcquisitionStep:
    """Tests for AcquisitionStep.execute."""

    async def test_success(self, context: AcquisitionContext, zone: FakeInternet) -> None:
        step = AcquisitionStep(DnsCollector(context), settings=context.settings)

        result = await step.execute("example.com")

        assert step.name == "acquire_dns"
        assert result.ok is True
        assert result.value is not None
        assert result.error is None

    async def test_failure_is_classified_not_raised(
        self, context: AcquisitionContext, zone: FakeInternet
    ) -> None:
        zone.failing_providers.update({"cloudflare", "google"})
        step = AcquisitionStep(DnsCollector(context), settings=context.settings)

        result = await step.execute("example.com")

        assert result.ok is False
        assert result.value is None
        assert result.error is not None
        assert result.error.disposition == Disposition.RETRYABLE
        assert result.error.kind == ErrorKind.DNS_ERROR


class TestArtifactService:
    """Tests for ArtifactService.get."""

    async def test_missing_acquired_inline(
        self, service: ArtifactService, zone: FakeInternet, clock: FakeClock
    ) -> None:
        view = await service.get("Example.com", ArtifactKind.DNS)

        assert view.available is True
        assert view.domain == "example.com"
        assert view.stale is False
        assert view.revalidating is False
        assert view.fetched_at == clock.now
        assert view.expires_at == clock.now + timedelta(seconds=300)
        assert [r.value for r in view.data.of_type(RecordType.A)] == ["93.184.216.34"]

    async def test_fresh_served_from_store(
        self, service: ArtifactService, zone: FakeInternet, clock: FakeClock
    ) -> None:
        await service.get("example.com", ArtifactKind.DNS)
        before = dns_queries(zone)

        clock.advance(seconds=299)
        view = await service.get("example.com", ArtifactKind.DNS)

        assert view.stale is False
        assert dns_queries(zone) == before

    async def test_stale_returned_then_revalidated(
        self, service: ArtifactService, zone: FakeInternet, clock: FakeClock
    ) -> None:
        first = await service.get("example.com", ArtifactKind.DNS)
        clock.advance(seconds=300)

        stale = await service.get("example.com", ArtifactKind.DNS)

        assert stale.stale is True
        assert stale.revalidating is True
        assert stale.fetched_at == first.fetched_at
        assert stale.data == first.data

        assert isinstance(service.scheduler, InProcessScheduler)
        await service.scheduler.drain()

        refreshed = await service.get("example.com", ArtifactKind.DNS)
        assert refreshed.stale is False
        assert refreshed.fetched_at == clock.now

    async def test_failed_revalidation_keeps_last_known_good(
        self, service: ArtifactService, zone: FakeInternet, clock: FakeClock
    ) -> None:
        first = await service.get("example.com", ArtifactKind.DNS)
        clock.advance(hours=1)
        zone.failing_providers.update({"cloudflare", "google"})

        await service.get("example.com", ArtifactKind.DNS)
        assert isinstance(service.scheduler, InProcessScheduler)
        await service.scheduler.drain()
        view = await service.get("example.com", ArtifactKind.DNS)

        assert view.available is True
        assert view.stale is True
        assert view.fetched_at == first.fetched_at
        await service.scheduler.drain()

    async def test_failure_without_data(self, service: ArtifactService, zone: FakeInternet) -> None:
        zone.failing_providers.update({"cloudflare", "google"})

        view = await service.get("example.com", ArtifactKind.DNS)

        assert view.available is False
        assert view.error is not None
        assert view.error.kind == ErrorKind.DNS_ERROR
        assert view.error.retry_after == 5.0

    async def test_concurrent_reads_coalesced(self, service: ArtifactService, zone: FakeInternet) -> None:
        views = await asyncio.gather(
            service.get("example.com", ArtifactKind.DNS),
            service.get("EXAMPLE.com.", ArtifactKind.DNS),
        )

        assert all(view.available for view in views)
        # One run: one query per record type
        assert dns_queries(zone) == 5

    async def test_step_for_caches_steps(self, service: ArtifactService) -> None:
        assert service.step_for(ArtifactKind.SEO) is service.step_for(ArtifactKind.SEO)
