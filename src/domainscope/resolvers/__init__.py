"""DNS-over-HTTPS resolution."""

from domainscope.resolvers.doh import (
    DOH_PROVIDERS,
    DohClient,
    DohProvider,
    DohQueryError,
    DohRecord,
    to_ascii_hostname,
    type_code,
)

__all__ = [
    "DOH_PROVIDERS",
    "DohClient",
    "DohProvider",
    "DohQueryError",
    "DohRecord",
    "to_ascii_hostname",
    "type_code",
]
