"""Data models."""

from domainscope.models.artifact import CachedArtifact, ProviderRef
from domainscope.models.base import ArtifactKind, BaseSchema, RecordType
from domainscope.models.certificates import (
    CertificateChainResult,
    CertificateNode,
    TlsFetchResult,
)
from domainscope.models.dns import DnsAnswer, DnsLookupResult
from domainscope.models.errors import ClassifiedError, ErrorKind
from domainscope.models.fetch import FetchOptions, FetchResult
from domainscope.models.hosting import HostingResult
from domainscope.models.registration import (
    RegistrationLookupResult,
    RegistrationRecord,
    RegistrationResponse,
)
from domainscope.models.target import RedirectHop, ResolvedAddress, TargetURL
from domainscope.models.web import (
    HeadersResult,
    HttpHeader,
    RobotsTxt,
    SeoMeta,
    SeoResult,
)

__all__ = [
    "ArtifactKind",
    "BaseSchema",
    "CachedArtifact",
    "CertificateChainResult",
    "CertificateNode",
    "ClassifiedError",
    "DnsAnswer",
    "DnsLookupResult",
    "ErrorKind",
    "FetchOptions",
    "FetchResult",
    "HeadersResult",
    "HostingResult",
    "HttpHeader",
    "ProviderRef",
    "RecordType",
    "RedirectHop",
    "RegistrationLookupResult",
    "RegistrationRecord",
    "RegistrationResponse",
    "ResolvedAddress",
    "RobotsTxt",
    "SeoMeta",
    "SeoResult",
    "TargetURL",
    "TlsFetchResult",
]
