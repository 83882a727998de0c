"""Domain registration models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from domainscope.models.artifact import ProviderRef
from domainscope.models.base import BaseSchema

RegistrationFailure = Literal["unsupported_tld", "timeout", "retry"]


class RegistrationRecord(BaseSchema):
    """Normalized WHOIS/RDAP data. Replaced wholesale on every lookup."""

    domain: str
    tld: str
    is_registered: bool
    registrar: str | None = None
    registrar_url: str | None = None
    creation_date: datetime | None = None
    expiration_date: datetime | None = None
    updated_date: datetime | None = None
    nameservers: list[str] = Field(default_factory=list)
    statuses: list[str] = Field(default_factory=list)
    transfer_lock: bool = False
    source: Literal["rdap", "whois"]
    rdap_servers: list[str] = Field(default_factory=list)
    whois_server: str | None = None
    registrar_provider: ProviderRef | None = None
    raw: dict[str, Any] | str | None = None


class RegistrationLookupResult(BaseSchema):
    """Either a record or a failure classification."""

    success: bool
    record: RegistrationRecord | None = None
    error: RegistrationFailure | None = None


class RegistrationResponse(BaseSchema):
    """Registration state exposed to collaborators."""

    domain: str
    status: Literal["registered", "unregistered", "unknown"]
    record: RegistrationRecord | None = None
    unavailable_reason: RegistrationFailure | None = None
