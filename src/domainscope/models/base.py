"""Base models and enums."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )


class ArtifactKind(str, Enum):
    """Kinds of cached domain artifact."""

    DNS = "dns"
    REGISTRATION = "registration"
    CERTIFICATES = "certificates"
    HEADERS = "headers"
    SEO = "seo"
    HOSTING = "hosting"


class RecordType(str, Enum):
    """DNS record types collected for a domain, in display order."""

    A = "A"
    AAAA = "AAAA"
    MX = "MX"
    TXT = "TXT"
    NS = "NS"
