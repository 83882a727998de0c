"""DNS-over-HTTPS JSON client."""

import asyncio
from dataclasses import dataclass

import dns.rdatatype
import httpx
import idna
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from domainscope.core.config import Settings, get_settings
from domainscope.core.logging import get_logger
from domainscope.infrastructure.ratelimit import MultiRateLimiter
from domainscope.models.target import ResolvedAddress


@dataclass(frozen=True)
class DohProvider:
    """A trusted DoH endpoint speaking the JSON API."""

    key: str
    url: str


DOH_PROVIDERS: dict[str, DohProvider] = {
    "cloudflare": DohProvider("cloudflare", "https://cloudflare-dns.com/dns-query"),
    "google": DohProvider("google", "https://dns.google/resolve"),
    "quad9": DohProvider("quad9", "https://dns.quad9.net:5053/dns-query"),
}


class DohQueryError(Exception):
    """A single provider query failed (transport, status or payload)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class DohRecord(BaseModel):
    """Raw answer entry of a DoH JSON response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    type: int
    ttl: int = Field(default=0, alias="TTL")
    data: str = ""


def to_ascii_hostname(name: str) -> str:
    """A-label (punycode) form of a hostname, lowercased, without the root dot.

    Raises ``idna.IDNAError`` for names that are not valid IDNA 2008.
    """
    name = name.strip().rstrip(".")
    if name.isascii():
        return name.lower()
    return idna.encode(name, uts46=True).decode("ascii")


def type_code(record_type: str) -> int:
    """Numeric RR type for a mnemonic such as ``AAAA``."""
    return int(dns.rdatatype.from_text(record_type))


class DohClient:
    """Query a fixed, ordered list of DoH providers.

    Providers are the only hosts this client talks to, so it does not go
    through the safe fetcher. Retries are left to callers.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
        providers: list[DohProvider] | None = None,
        limiter: MultiRateLimiter | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self._limiter = limiter
        self.timeout = self.settings.doh_timeout
        self.providers = providers or [
            DOH_PROVIDERS[key] for key in self.settings.doh_providers if key in DOH_PROVIDERS
        ]
        self.logger = get_logger("doh")

    async def query(
        self,
        provider: DohProvider,
        name: str,
        record_type: str,
    ) -> list[DohRecord]:
        """Query one provider for one record type.

        A non-zero DNS status (NXDOMAIN and friends) is an empty answer;
        transport, HTTP and payload failures raise ``DohQueryError``.
        """
        try:
            ascii_name = to_ascii_hostname(name)
        except idna.IDNAError as e:
            raise DohQueryError(provider.key, f"invalid hostname {name!r}: {e}") from e

        if self._limiter:
            await self._limiter.acquire("doh", provider.key)

        try:
            response = await self._client.get(
                provider.url,
                params={"name": ascii_name, "type": record_type},
                headers={
                    "Accept": "application/dns-json",
                    "User-Agent": self.settings.user_agent,
                },
                timeout=self.timeout,
                follow_redirects=False,
            )
        except httpx.TimeoutException as e:
            raise DohQueryError(provider.key, f"timeout querying {record_type}") from e
        except httpx.HTTPError as e:
            raise DohQueryError(provider.key, f"transport error: {e}") from e

        if not response.is_success:
            raise DohQueryError(provider.key, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise DohQueryError(provider.key, "malformed JSON response") from e

        if not isinstance(payload, dict):
            raise DohQueryError(provider.key, "unexpected response shape")

        answers = payload.get("Answer")
        if payload.get("Status") != 0 or not isinstance(answers, list):
            return []

        records = []
        for answer in answers:
            if not isinstance(answer, dict):
                continue
            try:
                records.append(DohRecord.model_validate(answer))
            except ValidationError:
                self.logger.debug("doh_answer_skipped", provider=provider.key, name=name)
        return records

    async def resolve_host_ips(self, hostname: str) -> list[ResolvedAddress]:
        """Resolve every A and AAAA address of ``hostname``.

        Both queries must succeed on the same provider; a partial answer
        could hide a private address, so it moves on to the next provider.
        Raises ``DohQueryError`` when no provider yields any address.
        """
        last_error: DohQueryError | None = None

        for provider in self.providers:
            results = await asyncio.gather(
                self.query(provider, hostname, "A"),
                self.query(provider, hostname, "AAAA"),
                return_exceptions=True,
            )

            failure = next((r for r in results if isinstance(r, BaseException)), None)
            if failure is not None:
                if not isinstance(failure, DohQueryError):
                    raise failure
                self.logger.warning(
                    "guard_dns_provider_failed",
                    provider=provider.key,
                    host=hostname,
                    error=str(failure),
                )
                last_error = failure
                continue

            a_records, aaaa_records = results
            addresses = [
                ResolvedAddress(address=r.data.strip(), family=4)
                for r in a_records
                if r.type == type_code("A") and r.data.strip()
            ]
            addresses += [
                ResolvedAddress(address=r.data.strip(), family=6)
                for r in aaaa_records
                if r.type == type_code("AAAA") and r.data.strip()
            ]

            if addresses:
                return addresses

            last_error = DohQueryError(provider.key, f"no A/AAAA records for {hostname}")

        raise last_error or DohQueryError("none", "no DoH providers configured")
