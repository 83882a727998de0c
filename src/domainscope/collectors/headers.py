"""HTTP response headers of a home page."""

import time
from http import HTTPStatus

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import SafeFetchError
from domainscope.models.base import ArtifactKind
from domainscope.models.errors import ErrorKind
from domainscope.models.fetch import FetchOptions
from domainscope.models.web import HeadersResult, HttpHeader

HEADERS_TIMEOUT = 5.0
HEADERS_MAX_REDIRECTS = 5
# Only reached after a GET fallback; the body is discarded
HEADERS_MAX_BYTES = 64 * 1024


def page_failure(error: SafeFetchError) -> SafeFetchError:
    """Certificate failures of a page fetch are permanent for page collectors."""
    if error.kind == ErrorKind.FETCH_ERROR and error.details.get("tls"):
        return SafeFetchError(ErrorKind.TLS_ERROR, error.message, details=error.details)
    return error


def status_message(status: int) -> str | None:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return None


@CollectorRegistry.register(ArtifactKind.HEADERS)
class HeadersCollector(BaseCollector[HeadersResult]):
    """Response headers of a domain's home page."""

    @property
    def name(self) -> str:
        return "headers"

    @property
    def kind(self) -> ArtifactKind:
        return ArtifactKind.HEADERS

    def get_capabilities(self) -> list[str]:
        return ["Response headers", "Status code", "HEAD with GET fallback"]

    async def collect(self, domain: str) -> HeadersResult:
        """Request ``https://domain/``. Redirects off the domain stop the request.

        Guard, DNS and TLS failures raise ``SafeFetchError``.
        """
        domain = domain.strip().lower().rstrip(".")
        start_time = time.time()

        options = FetchOptions(
            method="HEAD",
            allow_http=True,
            timeout=HEADERS_TIMEOUT,
            max_redirects=HEADERS_MAX_REDIRECTS,
            max_bytes=HEADERS_MAX_BYTES,
            truncate_on_limit=True,
            allowed_hosts=[domain, f"www.{domain}"],
            fallback_to_get_on_head_failure=True,
            return_on_disallowed_redirect=True,
        )

        try:
            result = await self.context.fetcher.fetch(f"https://{domain}/", options)
        except SafeFetchError as e:
            failure = page_failure(e)
            self.logger.warning("headers_fetch_failed", domain=domain, kind=failure.kind.value)
            if failure is e:
                raise
            raise failure from e

        headers = [
            HttpHeader(name=name.strip().lower(), value=value)
            for name, value in result.headers.items()
        ]

        self.logger.info(
            "headers_fetch_completed",
            domain=domain,
            status=result.status,
            header_count=len(headers),
            duration=time.time() - start_time,
        )
        return HeadersResult(
            domain=domain,
            headers=headers,
            status=result.status,
            status_message=status_message(result.status),
            final_url=result.final_url,
        )
