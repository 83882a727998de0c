"""TLS certificate chain models."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from domainscope.models.artifact import ProviderRef
from domainscope.models.base import BaseSchema

TlsFailure = Literal["dns_error", "tls_error", "fetch_error", "timeout"]


class CertificateNode(BaseSchema):
    """One certificate of a presented chain, leaf first."""

    issuer: str
    subject: str
    alt_names: list[str] = Field(default_factory=list)
    valid_from: datetime
    valid_to: datetime
    ca_provider: ProviderRef | None = None


class TlsFetchResult(BaseSchema):
    """Outcome of a chain walk: a chain or a failure kind, never both."""

    chain: list[CertificateNode] | None = None
    error: TlsFailure | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.chain is not None


class CertificateChainResult(BaseSchema):
    """Certificate chain with its earliest expiry."""

    domain: str
    chain: list[CertificateNode] = Field(default_factory=list)
    earliest_valid_to: datetime
