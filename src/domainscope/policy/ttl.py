"""Per-kind artifact expiry."""

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from domainscope.models.base import ArtifactKind
from domainscope.models.certificates import CertificateChainResult
from domainscope.models.dns import DnsLookupResult
from domainscope.models.registration import RegistrationResponse

DNS_MIN_TTL = timedelta(seconds=60)
DNS_MAX_TTL = timedelta(hours=24)
DNS_DEFAULT_TTL = timedelta(hours=1)

REGISTRATION_TTL = timedelta(hours=24)
REGISTRATION_MIN_TTL = timedelta(hours=1)

CERTIFICATES_TTL = timedelta(hours=24)
CERTIFICATES_MIN_TTL = timedelta(minutes=15)

HEADERS_TTL = timedelta(hours=12)
SEO_TTL = timedelta(hours=24)
HOSTING_TTL = timedelta(hours=24)


def _dns_expiry(fetched_at: datetime, record_ttls: Iterable[int] | None) -> datetime:
    ttls = list(record_ttls or [])
    if not ttls:
        return fetched_at + DNS_DEFAULT_TTL
    shortest = min(
        min(max(timedelta(seconds=ttl), DNS_MIN_TTL), DNS_MAX_TTL) for ttl in ttls
    )
    return fetched_at + shortest


def _registration_expiry(fetched_at: datetime, expiration: datetime | None) -> datetime:
    expires_at = fetched_at + REGISTRATION_TTL
    if expiration is not None and expiration < expires_at:
        # Recheck around the expiry date, but not in a tight loop once past it
        expires_at = max(expiration, fetched_at + REGISTRATION_MIN_TTL)
    return expires_at


def _certificates_expiry(fetched_at: datetime, earliest_valid_to: datetime | None) -> datetime:
    expires_at = fetched_at + CERTIFICATES_TTL
    if earliest_valid_to is not None:
        expires_at = min(expires_at, earliest_valid_to)
    return max(expires_at, fetched_at + CERTIFICATES_MIN_TTL)


def ttl_for(kind: ArtifactKind, fetched_at: datetime, hint: Any = None) -> datetime:
    """Compute ``expires_at`` for an artifact fetched at ``fetched_at``.

    ``hint`` depends on the kind: record TTLs in seconds for DNS, the
    domain's expiration date for registration, the earliest certificate
    ``valid_to`` for certificates. Headers, SEO and hosting ignore it.
    """
    if kind == ArtifactKind.DNS:
        return _dns_expiry(fetched_at, hint)
    if kind == ArtifactKind.REGISTRATION:
        return _registration_expiry(fetched_at, hint)
    if kind == ArtifactKind.CERTIFICATES:
        return _certificates_expiry(fetched_at, hint)
    if kind == ArtifactKind.HEADERS:
        return fetched_at + HEADERS_TTL
    if kind == ArtifactKind.SEO:
        return fetched_at + SEO_TTL
    if kind == ArtifactKind.HOSTING:
        return fetched_at + HOSTING_TTL
    raise ValueError(f"Unknown artifact kind: {kind}")


def hint_for(kind: ArtifactKind, payload: Any) -> Any:
    """Pull the ``ttl_for`` hint out of a collector result."""
    if kind == ArtifactKind.DNS and isinstance(payload, DnsLookupResult):
        return [record.ttl for record in payload.records]
    if kind == ArtifactKind.REGISTRATION and isinstance(payload, RegistrationResponse):
        return payload.record.expiration_date if payload.record else None
    if kind == ArtifactKind.CERTIFICATES and isinstance(payload, CertificateChainResult):
        return payload.earliest_valid_to
    return None


def is_stale(expires_at: datetime, now: datetime) -> bool:
    return now >= expires_at
