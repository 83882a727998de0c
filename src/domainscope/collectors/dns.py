"""DNS record collection over DNS-over-HTTPS."""

import asyncio
import re
import time
from collections.abc import Iterable

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import DnsResolutionError
from domainscope.models.base import ArtifactKind, RecordType
from domainscope.models.dns import DnsAnswer, DnsLookupResult
from domainscope.providers.catalog import match_first
from domainscope.providers.cloudflare import is_cloudflare_ip
from domainscope.resolvers.doh import DohProvider, DohQueryError, DohRecord, type_code

DNS_RECORD_TYPES: tuple[RecordType, ...] = (
    RecordType.A,
    RecordType.AAAA,
    RecordType.MX,
    RecordType.TXT,
    RecordType.NS,
)

_TYPE_ORDER = {record_type: index for index, record_type in enumerate(DNS_RECORD_TYPES)}

_TXT_SEGMENT = re.compile(r'"((?:[^"\\]|\\.)*)"')


def _strip_dot(value: str) -> str:
    return value.strip().rstrip(".")


def _unquote_txt(data: str) -> str:
    """Join the quoted character-strings of a TXT answer."""
    value = data.strip()
    segments = _TXT_SEGMENT.findall(value)
    if segments and value.startswith('"') and value.endswith('"'):
        return "".join(segments).replace('\\"', '"')
    return value


def normalize_answer(
    record_type: RecordType,
    raw: DohRecord,
    domain: str,
) -> DnsAnswer | None:
    """Turn a raw DoH answer into a record, or None to drop it.

    Answers whose numeric type differs from the requested one (CNAME
    chains, malformed upstreams) are dropped.
    """
    if raw.type != type_code(record_type.value):
        return None

    name = _strip_dot(raw.name).lower() or domain
    ttl = max(raw.ttl, 0)

    if record_type in (RecordType.A, RecordType.AAAA):
        value = _strip_dot(raw.data).lower()
        if not value:
            return None
        return DnsAnswer(
            type=record_type,
            name=name,
            value=value,
            ttl=ttl,
            is_cloudflare=is_cloudflare_ip(value),
        )

    if record_type == RecordType.MX:
        priority_text, _, host = raw.data.strip().partition(" ")
        host = _strip_dot(host).lower()
        if not host:
            return None
        try:
            priority = int(priority_text)
        except ValueError:
            priority = 0
        return DnsAnswer(type=record_type, name=name, value=host, ttl=ttl, priority=priority)

    if record_type == RecordType.TXT:
        return DnsAnswer(type=record_type, name=name, value=_unquote_txt(raw.data), ttl=ttl)

    value = _strip_dot(raw.data).lower()
    if not value:
        return None
    return DnsAnswer(type=record_type, name=name, value=value, ttl=ttl)


def deduplicate_records(records: Iterable[DnsAnswer]) -> list[DnsAnswer]:
    """Drop repeated (type, name, value, priority) keys, keeping the first."""
    seen: set[tuple[str, str, str, int | None]] = set()
    unique = []
    for record in records:
        if record.key in seen:
            continue
        seen.add(record.key)
        unique.append(record)
    return unique


def _sort_key(record: DnsAnswer) -> tuple[int, int, int, str]:
    if record.type == RecordType.MX:
        # Missing priority sorts last
        missing = 1 if record.priority is None else 0
        return (_TYPE_ORDER[record.type], missing, record.priority or 0, record.value)
    return (_TYPE_ORDER[record.type], 0, 0, record.value)


def sort_records(records: Iterable[DnsAnswer]) -> list[DnsAnswer]:
    """Order by type, then MX priority, then value."""
    return sorted(records, key=_sort_key)


@CollectorRegistry.register(ArtifactKind.DNS)
class DnsCollector(BaseCollector[DnsLookupResult]):
    """DNS records from the first DoH provider that answers every type."""

    @property
    def name(self) -> str:
        return "dns"

    @property
    def kind(self) -> ArtifactKind:
        return ArtifactKind.DNS

    def get_capabilities(self) -> list[str]:
        return [
            "A/AAAA record lookup",
            "MX record lookup",
            "TXT record lookup",
            "NS record lookup",
            "Cloudflare edge detection",
            "DNS and email provider detection",
        ]

    async def collect(self, domain: str) -> DnsLookupResult:
        return await self.resolve(domain)

    async def resolve(self, domain: str) -> DnsLookupResult:
        """Resolve every record type, one provider at a time.

        Results never mix providers. Raises ``DnsResolutionError`` when all
        providers fail; that is always retryable.
        """
        domain = _strip_dot(domain).lower()
        start_time = time.time()
        failures: dict[str, str] = {}

        self.logger.info("dns_lookup_started", domain=domain)

        for provider in self.context.doh.providers:
            try:
                records = await self._resolve_with(provider, domain)
            except DohQueryError as e:
                self.logger.warning(
                    "dns_provider_failed",
                    domain=domain,
                    provider=provider.key,
                    error=str(e),
                )
                failures[provider.key] = str(e)
                continue

            result = DnsLookupResult(
                domain=domain,
                records=records,
                resolver=provider.key,
                dns_provider=match_first(
                    self.context.catalog, "dns", [r.value for r in records if r.type == RecordType.NS]
                ),
                email_provider=match_first(
                    self.context.catalog, "email", [r.value for r in records if r.type == RecordType.MX]
                ),
            )

            self.logger.info(
                "dns_lookup_completed",
                domain=domain,
                resolver=provider.key,
                total_records=result.total_records,
                duration=time.time() - start_time,
            )
            return result

        self.logger.error("dns_lookup_failed", domain=domain, providers=list(failures))
        raise DnsResolutionError(
            f"All DoH providers failed for {domain}",
            retry_after=self.settings.default_retry_after,
            details={"domain": domain, "failures": failures},
        )

    async def _resolve_with(self, provider: DohProvider, domain: str) -> list[DnsAnswer]:
        results = await asyncio.gather(
            *(
                self.context.doh.query(provider, domain, record_type.value)
                for record_type in DNS_RECORD_TYPES
            ),
            return_exceptions=True,
        )

        records: list[DnsAnswer] = []
        for record_type, answers in zip(DNS_RECORD_TYPES, results):
            if isinstance(answers, BaseException):
                raise answers
            for raw in answers:
                answer = normalize_answer(record_type, raw, domain)
                if answer is not None:
                    records.append(answer)

        return sort_records(deduplicate_records(records))
