"""Domain registration lookup over RDAP with WHOIS fallback."""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

import asyncwhois
import httpx
from dateutil import parser as date_parser

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import RegistrationLookupError
from domainscope.models.base import ArtifactKind
from domainscope.models.registration import (
    RegistrationFailure,
    RegistrationLookupResult,
    RegistrationRecord,
    RegistrationResponse,
)

BOOTSTRAP_CACHE_KEY = "rdap:bootstrap:dns"

# Registry answers meaning "this TLD has no public registration service"
UNSUPPORTED_TLD_SIGNATURES = (
    "no whois server discovered",
    "no rdap server found",
    "registry may not publish public whois",
    "tld is not supported",
    "no whois server configured",
)

# Banner of every whois.iana.org answer
IANA_WHOIS_BANNER = "% iana whois server"

TIMEOUT_SIGNATURES = (
    "whois socket timeout",
    "whois timeout",
    "rdap timeout",
)

NOT_FOUND_SIGNATURES = (
    "no match for",
    "not found",
    "no data found",
    "no entries found",
    "status: free",
    "domain not found",
)


def classify_lookup_error(message: str) -> RegistrationFailure:
    """Map a lookup error message to ``unsupported_tld``, ``timeout`` or ``retry``."""
    lowered = message.lower()
    if any(s in lowered for s in UNSUPPORTED_TLD_SIGNATURES):
        return "unsupported_tld"
    if any(s in lowered for s in TIMEOUT_SIGNATURES):
        return "timeout"
    return "retry"


def is_iana_dead_end(raw_text: str) -> bool:
    """True when the answer is IANA's own TLD record with no registry to refer to.

    asyncwhois stops at whois.iana.org when the TLD record has an empty
    ``whois:`` line and no ``refer:``, and hands back that record.
    """
    lowered = raw_text.lower()
    if IANA_WHOIS_BANNER not in lowered:
        return False
    for line in lowered.splitlines():
        key, _, value = line.partition(":")
        if key.strip() in ("refer", "whois") and value.strip():
            return False
    return True


def parse_bootstrap(data: Any) -> dict[str, list[str]]:
    """IANA ``dns.json`` services to a TLD -> RDAP base URLs map."""
    mapping: dict[str, list[str]] = {}
    services = data.get("services", []) if isinstance(data, dict) else []
    for entry in services:
        if not isinstance(entry, list) or len(entry) < 2:
            continue
        tlds, urls = entry[0], entry[1]
        https_urls = [u for u in urls if isinstance(u, str) and u.startswith("https://")]
        if not https_urls:
            continue
        for tld in tlds:
            if isinstance(tld, str):
                mapping[tld.lower()] = https_urls
    return mapping


def parse_date(value: Any) -> datetime | None:
    """Parse WHOIS/RDAP dates; naive values are taken as UTC."""
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def has_transfer_lock(statuses: list[str]) -> bool:
    normalized = [s.lower().replace(" ", "") for s in statuses]
    return any("transferprohibited" in s for s in normalized)


def _vcard_value(entity: dict, prop: str) -> str | None:
    vcard = entity.get("vcardArray")
    if not isinstance(vcard, list) or len(vcard) < 2 or not isinstance(vcard[1], list):
        return None
    for item in vcard[1]:
        if isinstance(item, list) and len(item) >= 4 and item[0] == prop:
            value = item[3]
            if isinstance(value, list):
                value = " ".join(str(v) for v in value if v)
            return str(value) if value else None
    return None


def parse_rdap_record(
    domain: str,
    tld: str,
    data: dict,
    servers: list[str],
    include_raw: bool = False,
) -> RegistrationRecord:
    """Normalize an RDAP domain object."""
    registrar = None
    registrar_url = None
    for entity in data.get("entities", []):
        if not isinstance(entity, dict) or "registrar" not in entity.get("roles", []):
            continue
        registrar = _vcard_value(entity, "fn") or _vcard_value(entity, "org")
        registrar_url = _vcard_value(entity, "url") or next(
            (
                link.get("href")
                for link in entity.get("links", [])
                if isinstance(link, dict) and link.get("href")
            ),
            None,
        )
        break

    events: dict[str, datetime | None] = {}
    for event in data.get("events", []):
        if isinstance(event, dict) and event.get("eventAction"):
            events[event["eventAction"].lower()] = parse_date(event.get("eventDate"))

    nameservers = [
        ns["ldhName"].lower().rstrip(".")
        for ns in data.get("nameservers", [])
        if isinstance(ns, dict) and ns.get("ldhName")
    ]
    statuses = [s for s in data.get("status", []) if isinstance(s, str)]

    return RegistrationRecord(
        domain=domain,
        tld=tld,
        is_registered=True,
        registrar=registrar,
        registrar_url=registrar_url,
        creation_date=events.get("registration"),
        expiration_date=events.get("expiration"),
        updated_date=events.get("last changed"),
        nameservers=nameservers,
        statuses=statuses,
        transfer_lock=has_transfer_lock(statuses),
        source="rdap",
        rdap_servers=servers,
        raw=data if include_raw else None,
    )


def parse_whois_record(
    domain: str,
    tld: str,
    result: Any,
    include_raw: bool = False,
) -> RegistrationRecord:
    """Normalize the ``(raw_text, parsed_dict)`` pair from asyncwhois."""
    if isinstance(result, tuple) and len(result) >= 2:
        raw_text, parsed = result[0], result[1] if isinstance(result[1], dict) else {}
    else:
        raw_text, parsed = None, {}

    # Servers answer unknown names with free text and no parsed fields
    registered = bool(parsed.get("domain_name") or parsed.get("registrar") or parsed.get("created"))

    statuses = parsed.get("status") or []
    if isinstance(statuses, str):
        statuses = [statuses]
    # WHOIS status lines carry an ICANN URL after the code
    statuses = [str(s).split(" ", 1)[0] for s in statuses if s]

    nameservers = parsed.get("name_servers") or []
    if isinstance(nameservers, str):
        nameservers = [nameservers]

    return RegistrationRecord(
        domain=domain,
        tld=tld,
        is_registered=registered,
        registrar=parsed.get("registrar") or None,
        registrar_url=parsed.get("registrar_url") or None,
        creation_date=parse_date(parsed.get("created")),
        expiration_date=parse_date(parsed.get("expires")),
        updated_date=parse_date(parsed.get("updated")),
        nameservers=[str(ns).lower().rstrip(".") for ns in nameservers if ns],
        statuses=statuses,
        transfer_lock=has_transfer_lock(statuses),
        source="whois",
        whois_server=parsed.get("whois_server") or None,
        raw=raw_text if include_raw else None,
    )


def build_unavailable_response(domain: str, reason: RegistrationFailure) -> RegistrationResponse:
    """Collaborator-facing answer when no record could be obtained."""
    return RegistrationResponse(domain=domain, status="unknown", unavailable_reason=reason)


@CollectorRegistry.register(ArtifactKind.REGISTRATION)
class RegistrationCollector(BaseCollector[RegistrationResponse]):
    """WHOIS/RDAP registration data."""

    @property
    def name(self) -> str:
        return "registration"

    @property
    def kind(self) -> ArtifactKind:
        return ArtifactKind.REGISTRATION

    def get_capabilities(self) -> list[str]:
        return [
            "RDAP lookup via IANA bootstrap",
            "WHOIS fallback",
            "Registrar detection",
            "Registration dates",
            "Transfer lock detection",
        ]

    async def collect(self, domain: str) -> RegistrationResponse:
        """Registration state. Lookup failures raise ``RegistrationLookupError``."""
        result = await self.lookup(domain)
        if not result.success or result.record is None:
            raise RegistrationLookupError(
                result.error or "retry",
                f"Registration lookup failed for {domain}: {result.error}",
                details={"domain": domain},
            )
        record = result.record
        return RegistrationResponse(
            domain=record.domain,
            status="registered" if record.is_registered else "unregistered",
            record=record,
        )

    async def respond(self, domain: str) -> RegistrationResponse:
        """Like ``collect`` but degrades to an ``unknown`` response."""
        try:
            return await self.collect(domain)
        except RegistrationLookupError as e:
            return build_unavailable_response(domain, e.reason)

    async def lookup(
        self,
        domain: str,
        timeout: float | None = None,
        include_raw: bool = False,
    ) -> RegistrationLookupResult:
        """Look a domain up. Never raises; failures come back classified."""
        domain = domain.strip().lower().rstrip(".")
        tld = domain.rsplit(".", 1)[-1]
        timeout = timeout or self.settings.whois_timeout
        start_time = time.time()

        self.logger.info("registration_lookup_started", domain=domain)

        try:
            record = await asyncio.wait_for(self._lookup(domain, tld, timeout, include_raw), timeout)
        except asyncio.TimeoutError:
            self.logger.warning("registration_lookup_timeout", domain=domain, timeout=timeout)
            return RegistrationLookupResult(success=False, error="timeout")
        except RegistrationLookupError as e:
            level = "info" if e.reason == "unsupported_tld" else "warning"
            getattr(self.logger, level)(
                "registration_lookup_failed", domain=domain, reason=e.reason, error=e.message
            )
            return RegistrationLookupResult(success=False, error=e.reason)
        except Exception as e:
            reason = classify_lookup_error(str(e))
            self.logger.warning(
                "registration_lookup_failed", domain=domain, reason=reason, error=str(e)
            )
            return RegistrationLookupResult(success=False, error=reason)

        if record.registrar:
            record.registrar_provider = self.context.catalog.match_provider(
                "registrar", record.registrar
            )

        self.logger.info(
            "registration_lookup_completed",
            domain=domain,
            source=record.source,
            registered=record.is_registered,
            duration=time.time() - start_time,
        )
        return RegistrationLookupResult(success=True, record=record)

    async def load_bootstrap(self) -> dict[str, list[str]] | None:
        """IANA RDAP bootstrap, cached for a week. None when unavailable."""
        return await self.context.cache.get_or_load(
            BOOTSTRAP_CACHE_KEY,
            self._fetch_bootstrap,
            ttl=self.settings.rdap_bootstrap_ttl,
        )

    async def _fetch_bootstrap(self) -> dict[str, list[str]] | None:
        try:
            response = await self.context.client.get(
                self.settings.rdap_bootstrap_url,
                timeout=self.settings.whois_timeout,
            )
            response.raise_for_status()
            mapping = parse_bootstrap(response.json())
        except (httpx.HTTPError, ValueError) as e:
            self.logger.warning("rdap_bootstrap_unavailable", error=str(e))
            return None
        return mapping or None

    async def _lookup(
        self,
        domain: str,
        tld: str,
        timeout: float,
        include_raw: bool,
    ) -> RegistrationRecord:
        bootstrap = await self.load_bootstrap()
        servers = (bootstrap or {}).get(tld)

        if servers:
            try:
                return await self._rdap(domain, tld, servers, timeout, include_raw)
            except RegistrationLookupError as e:
                if e.reason == "timeout":
                    raise
                self.logger.debug("rdap_failed_trying_whois", domain=domain, error=e.message)

        return await self._whois(domain, tld, timeout, include_raw)

    async def _rdap(
        self,
        domain: str,
        tld: str,
        servers: list[str],
        timeout: float,
        include_raw: bool,
    ) -> RegistrationRecord:
        base = servers[0].rstrip("/")
        url = f"{base}/domain/{domain}"
        try:
            response = await self.context.client.get(
                url,
                headers={"Accept": "application/rdap+json"},
                timeout=timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            raise RegistrationLookupError("timeout", f"rdap timeout: {url}") from e
        except httpx.HTTPError as e:
            raise RegistrationLookupError("retry", f"rdap request failed: {e}") from e

        if response.status_code == 404:
            return RegistrationRecord(
                domain=domain, tld=tld, is_registered=False, source="rdap", rdap_servers=servers
            )
        if not response.is_success:
            raise RegistrationLookupError("retry", f"rdap HTTP {response.status_code}: {url}")

        try:
            data = response.json()
        except ValueError as e:
            raise RegistrationLookupError("retry", "rdap response is not JSON") from e
        if not isinstance(data, dict):
            raise RegistrationLookupError("retry", "rdap response is not an object")

        return parse_rdap_record(domain, tld, data, servers, include_raw)

    async def _whois(
        self,
        domain: str,
        tld: str,
        timeout: float,
        include_raw: bool,
    ) -> RegistrationRecord:
        await self.context.limiter.acquire("whois", tld)
        try:
            result = await asyncio.to_thread(
                asyncwhois.whois, domain, timeout=max(1, int(timeout))
            )
        except Exception as e:
            message = str(e)
            if any(s in message.lower() for s in NOT_FOUND_SIGNATURES):
                return RegistrationRecord(domain=domain, tld=tld, is_registered=False, source="whois")
            raise RegistrationLookupError(classify_lookup_error(message), message) from e

        raw_text = result[0] if isinstance(result, tuple) and result else None
        if isinstance(raw_text, str) and is_iana_dead_end(raw_text):
            raise RegistrationLookupError(
                "unsupported_tld", f"No WHOIS server published for .{tld}"
            )

        return parse_whois_record(domain, tld, result, include_raw)
