"""DNS lookup result models."""

from datetime import datetime, timezone

from pydantic import Field

from domainscope.models.artifact import ProviderRef
from domainscope.models.base import BaseSchema, RecordType


class DnsAnswer(BaseSchema):
    """Single normalized DNS record."""

    type: RecordType
    name: str
    value: str
    ttl: int = 0
    priority: int | None = None  # MX only
    is_cloudflare: bool | None = None  # A/AAAA only

    @property
    def key(self) -> tuple[str, str, str, int | None]:
        """Uniqueness key. TXT values keep their case."""
        value = self.value if self.type == RecordType.TXT else self.value.lower()
        return (self.type.value, self.name.lower(), value, self.priority)


class DnsLookupResult(BaseSchema):
    """Records for one domain, all from a single resolver."""

    domain: str
    records: list[DnsAnswer] = Field(default_factory=list)
    resolver: str
    dns_provider: ProviderRef | None = None
    email_provider: ProviderRef | None = None
    resolved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def of_type(self, record_type: RecordType) -> list[DnsAnswer]:
        return [r for r in self.records if r.type == record_type]

    @property
    def total_records(self) -> int:
        return len(self.records)
