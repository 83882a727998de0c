"""Core module - configuration, logging, and interfaces."""

from domainscope.core.config import Settings, get_settings
from domainscope.core.exceptions import (
    AcquisitionError,
    DnsResolutionError,
    DomainscopeError,
    RateLimitError,
    RegistrationLookupError,
    SafeFetchError,
    ValidationError,
)

__all__ = [
    "Settings",
    "get_settings",
    "DomainscopeError",
    "AcquisitionError",
    "SafeFetchError",
    "DnsResolutionError",
    "RegistrationLookupError",
    "ValidationError",
    "RateLimitError",
]
