"""SSRF-hardened fetching."""

from domainscope.safefetch.fetcher import SafeFetcher, caused_by_tls, read_limited
from domainscope.safefetch.guard import HostGuard, is_blocked_hostname
from domainscope.safefetch.ip import is_private_ip

__all__ = [
    "HostGuard",
    "SafeFetcher",
    "caused_by_tls",
    "is_blocked_hostname",
    "is_private_ip",
    "read_limited",
]
