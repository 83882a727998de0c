"""Remote asset fetcher for attacker-influenced URLs."""

import asyncio
import ssl
from collections.abc import Awaitable
from typing import TypeVar

import httpx

from domainscope.core.config import Settings, get_settings
from domainscope.core.exceptions import SafeFetchError
from domainscope.core.logging import get_logger
from domainscope.models.errors import ErrorKind
from domainscope.models.fetch import FetchOptions, FetchResult
from domainscope.models.target import RedirectHop
from domainscope.safefetch.guard import HostGuard

T = TypeVar("T")


def is_redirect_status(status: int) -> bool:
    return 300 <= status < 400


def caused_by_tls(error: BaseException) -> bool:
    """Whether an ssl error sits anywhere in the exception chain."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


class SafeFetcher:
    """Single logical HTTP(S) fetch with per-hop SSRF checks.

    Redirects are followed by hand so the guard runs against every hop
    before anything is sent to it. Bodies are streamed under a byte
    ceiling. HTTP error statuses come back as results; only
    infrastructure failures raise ``SafeFetchError``.

    Known limitation: the guard resolves over DoH while httpx connects
    through the OS resolver, so a host that answers differently to the two
    lookups (DNS rebinding) is not fully covered.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        guard: HostGuard,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self._guard = guard
        self.logger = get_logger("fetcher")

    async def fetch(self, url: str, options: FetchOptions | None = None) -> FetchResult:
        options = options or FetchOptions()
        timeout = options.timeout or self.settings.fetch_timeout
        max_bytes = options.max_bytes or self.settings.fetch_max_bytes
        max_redirects = (
            options.max_redirects
            if options.max_redirects is not None
            else self.settings.fetch_max_redirects
        )
        allowed_hosts = (
            [h.strip().lower().rstrip(".") for h in options.allowed_hosts]
            if options.allowed_hosts
            else None
        )
        headers = {
            "User-Agent": options.user_agent or self.settings.user_agent,
            # Compressed bodies could expand past the ceiling within one chunk
            "Accept-Encoding": "identity",
            **options.headers,
        }

        method = options.method
        can_fall_back = method == "HEAD" and options.fallback_to_get_on_head_failure
        current = url
        redirects: list[RedirectHop] = []
        hop = 0

        while True:
            await self._guard.ensure_allowed(current, options.allow_http, allowed_hosts)

            response = await self._bounded(self._send(method, current, headers), timeout, current)
            try:
                status = response.status_code

                if is_redirect_status(status):
                    if hop >= max_redirects:
                        raise SafeFetchError(
                            ErrorKind.REDIRECT_LIMIT,
                            f"Too many redirects fetching {url}",
                            status=status,
                            details={"max_redirects": max_redirects},
                        )

                    next_url = self._resolve_location(response, current)

                    if allowed_hosts is not None and options.return_on_disallowed_redirect:
                        next_host = (httpx.URL(next_url).host or "").lower().rstrip(".")
                        if next_host not in allowed_hosts:
                            return await self._bounded(
                                self._build_result(response, current, redirects, max_bytes, options),
                                timeout,
                                current,
                            )

                    self.logger.debug(
                        "fetch_redirect_followed",
                        source=current,
                        to=next_url,
                        status=status,
                    )
                    redirects.append(RedirectHop(index=hop, url=next_url, status=status))
                    current = next_url
                    hop += 1
                    continue

                if status == 405 and can_fall_back:
                    self.logger.debug("fetch_head_not_allowed", url=current)
                    method = "GET"
                    can_fall_back = False
                    current = url
                    redirects = []
                    hop = 0
                    continue

                return await self._bounded(
                    self._build_result(response, current, redirects, max_bytes, options),
                    timeout,
                    current,
                )
            finally:
                await response.aclose()

    async def _send(self, method: str, url: str, headers: dict[str, str]) -> httpx.Response:
        request = self._client.build_request(method, url, headers=headers)
        return await self._client.send(request, stream=True, follow_redirects=False)

    async def _bounded(self, operation: Awaitable[T], timeout: float, url: str) -> T:
        """Apply the per-hop timeout and map transport failures."""
        try:
            return await asyncio.wait_for(operation, timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise SafeFetchError(
                ErrorKind.TIMEOUT, f"Timed out after {timeout}s fetching {url}"
            ) from e
        except httpx.TransportError as e:
            # Retryable at this layer; callers that treat bad certificates
            # as permanent look at the ``tls`` detail
            raise SafeFetchError(
                ErrorKind.FETCH_ERROR,
                f"Fetch failed for {url}: {e}",
                details={"tls": caused_by_tls(e)},
            ) from e

    def _resolve_location(self, response: httpx.Response, current: str) -> str:
        location = response.headers.get("location")
        if not location:
            raise SafeFetchError(
                ErrorKind.INVALID_RESPONSE,
                "Redirect response missing Location header",
                status=response.status_code,
            )
        try:
            return str(httpx.URL(current).join(location.strip()))
        except httpx.InvalidURL as e:
            raise SafeFetchError(
                ErrorKind.INVALID_RESPONSE,
                f"Unusable Location header: {location!r}",
                status=response.status_code,
            ) from e

    async def _build_result(
        self,
        response: httpx.Response,
        url: str,
        redirects: list[RedirectHop],
        max_bytes: int,
        options: FetchOptions,
    ) -> FetchResult:
        declared = response.headers.get("content-length")
        if declared and not options.truncate_on_limit:
            try:
                declared_length = int(declared)
            except ValueError:
                declared_length = None
            if declared_length is not None and declared_length > max_bytes:
                raise SafeFetchError(
                    ErrorKind.SIZE_EXCEEDED,
                    f"Response size {declared_length} exceeds limit {max_bytes}",
                    status=response.status_code,
                )

        body, truncated = await read_limited(response, max_bytes, options.truncate_on_limit)

        return FetchResult(
            body=body,
            content_type=response.headers.get("content-type"),
            final_url=url,
            status=response.status_code,
            headers=dict(response.headers.items()),
            redirects=list(redirects),
            truncated=truncated,
        )


async def read_limited(
    response: httpx.Response,
    max_bytes: int,
    truncate: bool,
) -> tuple[bytes, bool]:
    """Stream a body, never holding more than ``max_bytes``.

    Returns the body and whether it was cut short.
    """
    buffer = bytearray()
    async for chunk in response.aiter_bytes():
        remaining = max_bytes - len(buffer)
        if len(chunk) > remaining:
            if truncate:
                buffer.extend(chunk[:remaining])
                return bytes(buffer), True
            raise SafeFetchError(
                ErrorKind.SIZE_EXCEEDED,
                f"Response exceeded {max_bytes} bytes",
                status=response.status_code,
            )
        buffer.extend(chunk)
    return bytes(buffer), False
