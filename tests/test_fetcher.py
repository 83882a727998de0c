"""Tests for the remote asset fetcher."""

from collections.abc import AsyncIterator

import httpx
import pytest

from conftest import FakeInternet
from domainscope.collectors.context import AcquisitionContext
from domainscope.core.exceptions import SafeFetchError
from domainscope.models.errors import ErrorKind
from domainscope.models.fetch import FetchOptions
from domainscope.safefetch.fetcher import caused_by_tls


def redirect(location: str | None, status: int = 302):
    headers = {"location": location} if location is not None else {}
    return lambda request: httpx.Response(status, headers=headers)


def ok(body: bytes = b"hello", content_type: str = "text/plain"):
    return lambda request: httpx.Response(200, headers={"content-type": content_type}, content=body)


async def chunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


@pytest.fixture
def hosts(internet: FakeInternet) -> FakeInternet:
    internet.add_host("example.com", "93.184.216.34")
    internet.add_host("www.example.com", "93.184.216.34")
    internet.add_host("cdn.example.net", "93.184.216.40")
    internet.add_host("internal.example.com", "10.0.0.5")
    return internet


class TestFetch:
    """Tests for SafeFetcher.fetch."""

    async def test_simple_get(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", ok(b"hi there"))

        result = await context.fetcher.fetch("https://example.com/")

        assert result.status == 200
        assert result.body == b"hi there"
        assert result.content_type == "text/plain"
        assert result.final_url == "https://example.com/"
        assert result.redirects == []
        assert result.truncated is False

    async def test_sends_identity_encoding_and_user_agent(
        self, context: AcquisitionContext, hosts: FakeInternet
    ) -> None:
        hosts.route("https://example.com/", ok())

        await context.fetcher.fetch("https://example.com/", FetchOptions(user_agent="scanner/1.0"))

        request = next(r for r in hosts.requests if r.url.host == "example.com")
        assert request.headers["accept-encoding"] == "identity"
        assert request.headers["user-agent"] == "scanner/1.0"

    async def test_http_errors_are_results(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        """Test that 4xx/5xx come back as data, not exceptions."""
        hosts.route("https://example.com/missing", lambda r: httpx.Response(404, text="nope"))
        hosts.route("https://example.com/broken", lambda r: httpx.Response(503))

        missing = await context.fetcher.fetch("https://example.com/missing")
        broken = await context.fetcher.fetch("https://example.com/broken")

        assert missing.status == 404
        assert missing.ok is False
        assert missing.text() == "nope"
        assert broken.status == 503

    async def test_follows_relative_redirect(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", redirect("/home", 301))
        hosts.route("https://example.com/home", ok())

        result = await context.fetcher.fetch("https://example.com/")

        assert result.final_url == "https://example.com/home"
        assert [(h.index, h.url, h.status) for h in result.redirects] == [
            (0, "https://example.com/home", 301)
        ]

    async def test_redirect_to_private_address_blocked(
        self, context: AcquisitionContext, hosts: FakeInternet
    ) -> None:
        """Test that the guard runs on every hop and no request reaches the internal host."""
        hosts.route("https://example.com/", redirect("http://internal.example.com/admin"))
        hosts.route("http://internal.example.com/admin", ok(b"secret"))

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/", FetchOptions(allow_http=True))

        assert exc_info.value.kind == ErrorKind.PRIVATE_IP
        assert "http://internal.example.com/admin" not in hosts.requested_urls()

    async def test_redirect_to_http_needs_permission(
        self, context: AcquisitionContext, hosts: FakeInternet
    ) -> None:
        hosts.route("https://example.com/", redirect("http://example.com/"))

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/")

        assert exc_info.value.kind == ErrorKind.PROTOCOL_NOT_ALLOWED

    async def test_redirect_limit(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        """Test that exceeding the hop budget fails after exactly max_redirects hops."""
        for i in range(5):
            hosts.route(f"https://example.com/{i}", redirect(f"/{i + 1}"))

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/0", FetchOptions(max_redirects=2))

        assert exc_info.value.kind == ErrorKind.REDIRECT_LIMIT
        assert hosts.requested_urls() == [
            "https://example.com/0",
            "https://example.com/1",
            "https://example.com/2",
        ]

    async def test_zero_redirects_allowed(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", redirect("/next"))

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/", FetchOptions(max_redirects=0))

        assert exc_info.value.kind == ErrorKind.REDIRECT_LIMIT

    async def test_redirect_without_location(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", redirect(None))

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/")

        assert exc_info.value.kind == ErrorKind.INVALID_RESPONSE
        assert exc_info.value.status == 302

    async def test_return_on_disallowed_redirect(
        self, context: AcquisitionContext, hosts: FakeInternet
    ) -> None:
        """Test that a redirect off the allow-list returns the 3xx itself."""
        hosts.route("https://example.com/", redirect("https://www.example.com/"))
        hosts.route("https://www.example.com/", redirect("https://cdn.example.net/landing"))

        result = await context.fetcher.fetch(
            "https://example.com/",
            FetchOptions(
                allowed_hosts=["example.com", "www.example.com"],
                return_on_disallowed_redirect=True,
            ),
        )

        assert result.status == 302
        assert result.final_url == "https://www.example.com/"
        assert len(result.redirects) == 1
        assert "https://cdn.example.net/landing" not in hosts.requested_urls()

    async def test_disallowed_redirect_rejected_by_default(
        self, context: AcquisitionContext, hosts: FakeInternet
    ) -> None:
        hosts.route("https://example.com/", redirect("https://cdn.example.net/"))

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/", FetchOptions(allowed_hosts=["example.com"]))

        assert exc_info.value.kind == ErrorKind.HOST_NOT_ALLOWED


class TestBodyLimits:
    """Tests for the streaming byte ceiling."""

    async def test_truncates_at_limit(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", ok(b"x" * 100))

        result = await context.fetcher.fetch(
            "https://example.com/", FetchOptions(max_bytes=10, truncate_on_limit=True)
        )

        assert result.body == b"x" * 10
        assert result.truncated is True

    async def test_truncates_streamed_body(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route(
            "https://example.com/",
            lambda r: httpx.Response(200, content=chunks(b"a" * 6, b"b" * 6, b"c" * 6)),
        )

        result = await context.fetcher.fetch(
            "https://example.com/", FetchOptions(max_bytes=10, truncate_on_limit=True)
        )

        assert result.body == b"a" * 6 + b"b" * 4
        assert result.truncated is True

    async def test_exact_limit_not_truncated(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", ok(b"x" * 10))

        result = await context.fetcher.fetch("https://example.com/", FetchOptions(max_bytes=10))

        assert len(result.body) == 10
        assert result.truncated is False

    async def test_declared_length_fails_fast(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", ok(b"x" * 100))

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/", FetchOptions(max_bytes=10))

        assert exc_info.value.kind == ErrorKind.SIZE_EXCEEDED

    async def test_streamed_body_over_limit(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        """Test that bodies without Content-Length are cut off while streaming."""
        hosts.route(
            "https://example.com/",
            lambda r: httpx.Response(200, content=chunks(b"a" * 8, b"b" * 8)),
        )

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/", FetchOptions(max_bytes=10))

        assert exc_info.value.kind == ErrorKind.SIZE_EXCEEDED


class TestHeadFallback:
    """Tests for HEAD to GET fallback."""

    async def test_falls_back_on_405(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200, headers={"x-served-by": "get"}, content=b"body")

        hosts.route("https://example.com/", handler)

        result = await context.fetcher.fetch(
            "https://example.com/",
            FetchOptions(method="HEAD", fallback_to_get_on_head_failure=True),
        )

        assert result.status == 200
        assert result.headers["x-served-by"] == "get"
        methods = [r.method for r in hosts.requests if r.url.host == "example.com"]
        assert methods == ["HEAD", "GET"]

    async def test_fallback_restarts_redirect_budget(
        self, context: AcquisitionContext, hosts: FakeInternet
    ) -> None:
        def start(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"location": "/moved"})

        def moved(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200)

        hosts.route("https://example.com/", start)
        hosts.route("https://example.com/moved", moved)

        result = await context.fetcher.fetch(
            "https://example.com/",
            FetchOptions(method="HEAD", max_redirects=1, fallback_to_get_on_head_failure=True),
        )

        assert result.status == 200
        assert len(result.redirects) == 1

    async def test_no_fallback_without_option(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        hosts.route("https://example.com/", lambda r: httpx.Response(405))

        result = await context.fetcher.fetch("https://example.com/", FetchOptions(method="HEAD"))

        assert result.status == 405


class TestTransportFailures:
    """Tests for network failure mapping."""

    async def test_timeout(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        hosts.route("https://example.com/", handler)

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/")

        assert exc_info.value.kind == ErrorKind.TIMEOUT

    async def test_connection_refused(self, context: AcquisitionContext, hosts: FakeInternet) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        hosts.route("https://example.com/", handler)

        with pytest.raises(SafeFetchError) as exc_info:
            await context.fetcher.fetch("https://example.com/")

        assert exc_info.value.kind == ErrorKind.FETCH_ERROR
        assert exc_info.value.details["tls"] is False


class TestCausedByTls:
    def test_finds_ssl_error_in_chain(self) -> None:
        import ssl

        try:
            try:
                raise ssl.SSLCertVerificationError("certificate verify failed")
            except ssl.SSLError as inner:
                raise httpx.ConnectError("handshake failed") from inner
        except httpx.ConnectError as outer:
            assert caused_by_tls(outer) is True

    def test_plain_error(self) -> None:
        assert caused_by_tls(httpx.ConnectError("refused")) is False
