"""Hosting, email and DNS provider detection."""

import asyncio
import contextlib
import time
from functools import lru_cache

import tldextract

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.dns import DnsCollector
from domainscope.collectors.headers import HeadersCollector
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import SafeFetchError
from domainscope.models.artifact import ProviderRef
from domainscope.models.base import ArtifactKind, RecordType
from domainscope.models.dns import DnsLookupResult
from domainscope.models.hosting import HostingResult
from domainscope.models.web import HttpHeader


@lru_cache(maxsize=1)
def _extractor() -> tldextract.TLDExtract:
    # Bundled public suffix snapshot only; never fetched at runtime
    return tldextract.TLDExtract(suffix_list_urls=())


def registrable_domain(hostname: str) -> str | None:
    """eTLD+1 of ``hostname``, or None for bare suffixes and IPs."""
    ext = _extractor()(hostname.strip().lower().rstrip("."))
    if not ext.domain or not ext.suffix:
        return None
    return f"{ext.domain}.{ext.suffix}"


def header_map(headers: list[HttpHeader]) -> dict[str, str]:
    """Lowercased name to value; repeated headers are joined with commas."""
    merged: dict[str, str] = {}
    for header in headers:
        name = header.name.lower()
        merged[name] = f"{merged[name]}, {header.value}" if name in merged else header.value
    return merged


def fallback_provider(category: str, hosts: list[str]) -> ProviderRef | None:
    """Provider named after the registrable domain of the first host."""
    if not hosts:
        return None
    owner = registrable_domain(hosts[0])
    if owner is None:
        return None
    return ProviderRef(id=owner, name=owner, category=category)


@CollectorRegistry.register(ArtifactKind.HOSTING)
class HostingCollector(BaseCollector[HostingResult]):
    """Web, email and DNS providers behind a domain."""

    @property
    def name(self) -> str:
        return "hosting"

    @property
    def kind(self) -> ArtifactKind:
        return ArtifactKind.HOSTING

    def get_capabilities(self) -> list[str]:
        return [
            "Web host from response headers",
            "Web host from A/AAAA address owner",
            "Email provider from MX",
            "DNS provider from NS",
        ]

    async def collect(self, domain: str) -> HostingResult:
        """Resolve DNS and read home page headers together.

        A failed headers fetch only leaves header matching out; DNS
        failures raise ``DnsResolutionError``.
        """
        domain = domain.strip().lower().rstrip(".")
        start_time = time.time()
        self.logger.info("hosting_detection_started", domain=domain)

        headers_task = asyncio.ensure_future(self._headers(domain))
        try:
            dns = await DnsCollector(self.context).resolve(domain)
            headers = await headers_task
        finally:
            if not headers_task.done():
                headers_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await headers_task

        result = self.detect(domain, dns, headers)

        self.logger.info(
            "hosting_detection_completed",
            domain=domain,
            hosting=result.hosting_provider.name if result.hosting_provider else None,
            email=result.email_provider.name if result.email_provider else None,
            dns=result.dns_provider.name if result.dns_provider else None,
            duration=time.time() - start_time,
        )
        return result

    def detect(
        self,
        domain: str,
        dns: DnsLookupResult,
        headers: dict[str, str] | None,
    ) -> HostingResult:
        """Combine DNS records and response headers into provider refs.

        ``headers`` is None when the page could not be fetched.
        """
        addresses = [r.value for r in dns.records if r.type == RecordType.A]
        addresses += [r.value for r in dns.records if r.type == RecordType.AAAA]
        mx_hosts = [r.value for r in dns.records if r.type == RecordType.MX]
        ns_hosts = [r.value for r in dns.records if r.type == RecordType.NS]

        hosting: ProviderRef | None = None
        if headers:
            hosting = self.context.catalog.match_headers("hosting", headers)
        if hosting is None:
            for address in addresses:
                hosting = self.context.catalog.match_address("hosting", address)
                if hosting:
                    break

        email: ProviderRef | None = None
        if mx_hosts:
            email = dns.email_provider or fallback_provider("email", mx_hosts)

        return HostingResult(
            domain=domain,
            hosting_provider=hosting,
            email_provider=email,
            dns_provider=dns.dns_provider or fallback_provider("dns", ns_hosts),
            ip_address=addresses[0] if addresses else None,
            headers_available=headers is not None,
        )

    async def _headers(self, domain: str) -> dict[str, str] | None:
        try:
            result = await HeadersCollector(self.context).collect(domain)
        except SafeFetchError as e:
            self.logger.debug("hosting_headers_unavailable", domain=domain, kind=e.kind.value)
            return None
        return header_map(result.headers)
