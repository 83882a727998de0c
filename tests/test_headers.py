"""Tests for the HTTP headers collector."""

import httpx
import pytest

from conftest import FakeInternet
from domainscope.collectors.context import AcquisitionContext
from domainscope.collectors.headers import HeadersCollector, page_failure, status_message
from domainscope.core.exceptions import SafeFetchError
from domainscope.models.errors import ErrorKind


@pytest.fixture
def site(internet: FakeInternet) -> FakeInternet:
    internet.add_host("example.com", "93.184.216.34")
    internet.add_host("www.example.com", "93.184.216.34")
    return internet


class TestHelpers:
    def test_status_message(self) -> None:
        assert status_message(200) == "OK"
        assert status_message(404) == "Not Found"
        assert status_message(799) is None

    def test_page_failure_upgrades_tls(self) -> None:
        error = SafeFetchError(ErrorKind.FETCH_ERROR, "handshake failed", details={"tls": True})

        upgraded = page_failure(error)

        assert upgraded.kind == ErrorKind.TLS_ERROR
        assert upgraded.message == "handshake failed"

    def test_page_failure_keeps_other_errors(self) -> None:
        error = SafeFetchError(ErrorKind.FETCH_ERROR, details={"tls": False})

        assert page_failure(error) is error


class TestHeadersCollector:
    """Tests for HeadersCollector.collect."""

    async def test_headers_lowercased(self, context: AcquisitionContext, site: FakeInternet) -> None:
        site.route(
            "https://example.com/",
            lambda r: httpx.Response(200, headers={"Server": "ECS", "X-Frame-Options": "DENY"}),
        )

        result = await HeadersCollector(context).collect("example.com")

        assert result.status == 200
        assert result.status_message == "OK"
        assert {h.name: h.value for h in result.headers}["x-frame-options"] == "DENY"
        assert all(h.name == h.name.lower() for h in result.headers)
        assert [r.method for r in site.requests if r.url.host == "example.com"] == ["HEAD"]

    async def test_follows_www_redirect(self, context: AcquisitionContext, site: FakeInternet) -> None:
        site.route(
            "https://example.com/",
            lambda r: httpx.Response(301, headers={"location": "https://www.example.com/"}),
        )
        site.route("https://www.example.com/", lambda r: httpx.Response(200))

        result = await HeadersCollector(context).collect("example.com")

        assert result.status == 200
        assert result.final_url == "https://www.example.com/"

    async def test_stops_at_offsite_redirect(self, context: AcquisitionContext, site: FakeInternet) -> None:
        """Test that the redirect response itself is reported when it leaves the domain."""
        site.route(
            "https://example.com/",
            lambda r: httpx.Response(302, headers={"location": "https://login.example.net/"}),
        )

        result = await HeadersCollector(context).collect("example.com")

        assert result.status == 302
        assert result.status_message == "Found"
        assert {h.name: h.value for h in result.headers}["location"] == "https://login.example.net/"
        assert "https://login.example.net/" not in site.requested_urls()

    async def test_head_rejected_falls_back_to_get(
        self, context: AcquisitionContext, site: FakeInternet
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200, headers={"x-method": "GET"}, content=b"x" * 200_000)

        site.route("https://example.com/", handler)

        result = await HeadersCollector(context).collect("example.com")

        assert result.status == 200
        assert {h.name: h.value for h in result.headers}["x-method"] == "GET"

    async def test_connection_failure_retryable(
        self, context: AcquisitionContext, site: FakeInternet
    ) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        site.route("https://example.com/", refuse)

        with pytest.raises(SafeFetchError) as exc_info:
            await HeadersCollector(context).collect("example.com")

        assert exc_info.value.kind == ErrorKind.FETCH_ERROR

    async def test_unresolvable_domain(self, context: AcquisitionContext, internet: FakeInternet) -> None:
        with pytest.raises(SafeFetchError) as exc_info:
            await HeadersCollector(context).collect("nowhere.example")

        assert exc_info.value.kind == ErrorKind.DNS_ERROR
