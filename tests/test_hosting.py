"""Tests for hosting, email and DNS provider detection."""

import asyncio

import httpx
import pytest

from conftest import FakeInternet
from domainscope.collectors.context import AcquisitionContext
from domainscope.collectors.hosting import (
    HostingCollector,
    fallback_provider,
    header_map,
    registrable_domain,
)
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import DnsResolutionError
from domainscope.models.base import ArtifactKind
from domainscope.models.web import HttpHeader


class TestHelpers:
    def test_registrable_domain(self) -> None:
        assert registrable_domain("mx1.mail.example.net.") == "example.net"
        assert registrable_domain("dns1.registrar-servers.co.uk") == "registrar-servers.co.uk"
        assert registrable_domain("co.uk") is None
        assert registrable_domain("93.184.216.34") is None

    def test_header_map_joins_repeats(self) -> None:
        headers = [
            HttpHeader(name="Via", value="1.1 varnish"),
            HttpHeader(name="via", value="1.1 vegur"),
            HttpHeader(name="server", value="nginx"),
        ]

        assert header_map(headers) == {"via": "1.1 varnish, 1.1 vegur", "server": "nginx"}

    def test_fallback_provider(self) -> None:
        ref = fallback_provider("email", ["mx1.mail.example.net", "mx2.other.org"])

        assert ref is not None
        assert (ref.id, ref.name, ref.category) == ("example.net", "example.net", "email")
        assert fallback_provider("dns", []) is None

    def test_registered(self) -> None:
        assert CollectorRegistry.get(ArtifactKind.HOSTING) is HostingCollector


class TestHostingCollector:
    """Tests for HostingCollector.collect."""

    async def test_platform_from_headers(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        internet.add_host("example.com", "76.76.21.21")
        internet.add_record("example.com", "NS", "ns1.vercel-dns.com.")
        internet.route(
            "https://example.com/",
            lambda r: httpx.Response(200, headers={"Server": "Vercel", "X-Vercel-Id": "iad1::abc"}),
        )

        result = await HostingCollector(context).collect("Example.com.")

        assert result.domain == "example.com"
        assert result.hosting_provider is not None
        assert result.hosting_provider.name == "Vercel"
        assert result.hosting_provider.category == "hosting"
        assert result.dns_provider is not None
        assert result.dns_provider.name == "Vercel"
        assert result.email_provider is None
        assert result.ip_address == "76.76.21.21"
        assert result.headers_available is True

    async def test_platform_wins_over_cdn(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        """Test that a platform header beats the CDN in front of it."""
        internet.add_host("example.com", "104.16.132.229")
        internet.route(
            "https://example.com/",
            lambda r: httpx.Response(200, headers={"cf-ray": "8a1b2c3d-IAD", "x-nf-request-id": "01H"}),
        )

        result = await HostingCollector(context).collect("example.com")

        assert result.hosting_provider is not None
        assert result.hosting_provider.name == "Netlify"

    async def test_address_owner_fallback(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        internet.add_host("example.com", "104.16.132.229", "93.184.216.34")
        internet.route("https://example.com/", lambda r: httpx.Response(200, headers={"Server": "nginx"}))

        result = await HostingCollector(context).collect("example.com")

        assert result.hosting_provider is not None
        assert result.hosting_provider.name == "Cloudflare"
        assert result.ip_address == "104.16.132.229"
        assert result.headers_available is True

    async def test_ipv6_only(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        internet.add_host("example.com", "2606:50c0:8000::153")
        internet.route("https://example.com/", lambda r: httpx.Response(404))

        result = await HostingCollector(context).collect("example.com")

        assert result.ip_address == "2606:50c0:8000::153"
        assert result.hosting_provider is not None
        assert result.hosting_provider.name == "GitHub Pages"

    async def test_headers_unavailable(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        """Test that a rejected page fetch still yields DNS based providers."""
        internet.add_host("example.com", "10.0.0.5")
        internet.add_record("example.com", "MX", "10 mx1.mail.example.net.")
        internet.add_record("example.com", "NS", "dns1.registrar-servers.co.uk.")

        result = await HostingCollector(context).collect("example.com")

        assert result.headers_available is False
        assert result.hosting_provider is None
        assert result.ip_address == "10.0.0.5"
        assert result.email_provider is not None
        assert result.email_provider.id == "example.net"
        assert result.dns_provider is not None
        assert result.dns_provider.id == "registrar-servers.co.uk"
        assert internet.requested_urls() == []

    async def test_catalog_providers(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        internet.add_host("example.com", "93.184.216.34")
        internet.add_record("example.com", "MX", "10 aspmx.l.google.com.")
        internet.add_record("example.com", "NS", "kate.ns.cloudflare.com.")
        internet.route("https://example.com/", lambda r: httpx.Response(200))

        result = await HostingCollector(context).collect("example.com")

        assert result.hosting_provider is None
        assert result.email_provider is not None
        assert result.email_provider.name == "Google Workspace"
        assert result.dns_provider is not None
        assert result.dns_provider.name == "Cloudflare"

    async def test_dns_failure_raises(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        internet.failing_providers.update({"cloudflare", "google"})

        with pytest.raises(DnsResolutionError):
            await HostingCollector(context).collect("example.com")

        assert internet.requested_urls() == []

    async def test_cancelled_collect_cancels_headers(
        self, context: AcquisitionContext, internet: FakeInternet, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        internet.add_host("example.com", "93.184.216.34")
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def hanging_headers(self: HostingCollector, domain: str) -> dict[str, str] | None:
            started.set()
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return None

        monkeypatch.setattr(HostingCollector, "_headers", hanging_headers)

        task = asyncio.ensure_future(HostingCollector(context).collect("example.com"))
        await asyncio.wait_for(started.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert cancelled.is_set()
