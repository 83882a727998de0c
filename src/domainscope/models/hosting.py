"""Hosting, email and DNS provider summary."""

from domainscope.models.artifact import ProviderRef
from domainscope.models.base import BaseSchema


class HostingResult(BaseSchema):
    """Who serves a domain's web site, mail and zone.

    Providers outside the catalog are reported under the registrable
    domain of the first MX or NS host.
    """

    domain: str
    hosting_provider: ProviderRef | None = None
    email_provider: ProviderRef | None = None
    dns_provider: ProviderRef | None = None
    ip_address: str | None = None
    headers_available: bool = False
