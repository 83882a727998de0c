"""Fetch target, redirect hop and resolved address models."""

from typing import Literal
from urllib.parse import urlsplit

from pydantic import Field, field_validator

from domainscope.models.base import BaseSchema

# Hostnames that never leave the machine or the local network
BLOCKED_HOSTNAMES = frozenset({"localhost", "localhost.localdomain"})

BLOCKED_HOSTNAME_SUFFIXES = (
    ".local",
    ".internal",
    ".localhost",
)


class TargetURL(BaseSchema):
    """A parsed URL the fetcher may request."""

    scheme: Literal["http", "https"]
    hostname: str = Field(min_length=1)
    port: int | None = Field(default=None, ge=1, le=65535)
    path: str = "/"

    @field_validator("hostname")
    @classmethod
    def normalize_hostname(cls, v: str) -> str:
        return v.lower().rstrip(".")

    @classmethod
    def from_url(cls, url: str) -> "TargetURL":
        """Parse an absolute URL. Raises ValueError when it cannot be used."""
        parts = urlsplit(url.strip())
        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"
        return cls(
            scheme=parts.scheme.lower(),
            hostname=parts.hostname or "",
            port=parts.port,
            path=path,
        )

    @property
    def is_ip_literal(self) -> bool:
        from ipaddress import ip_address

        try:
            ip_address(self.hostname.strip("[]"))
        except ValueError:
            return False
        return True


class RedirectHop(BaseSchema):
    """One followed 3xx response."""

    index: int = Field(ge=0)
    url: str
    status: int


class ResolvedAddress(BaseSchema):
    """An address the guard resolved for a hostname."""

    address: str
    family: Literal[4, 6]
