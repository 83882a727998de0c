"""Cloudflare edge address ranges, used to flag CDN-fronted A/AAAA records."""

from functools import lru_cache
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network

# https://www.cloudflare.com/ips/
CLOUDFLARE_RANGES = (
    "173.245.48.0/20",
    "103.21.244.0/22",
    "103.22.200.0/22",
    "103.31.4.0/22",
    "141.101.64.0/18",
    "108.162.192.0/18",
    "190.93.240.0/20",
    "188.114.96.0/20",
    "197.234.240.0/22",
    "198.41.128.0/17",
    "162.158.0.0/15",
    "104.16.0.0/13",
    "104.24.0.0/14",
    "172.64.0.0/13",
    "131.0.72.0/22",
    "2400:cb00::/32",
    "2606:4700::/32",
    "2803:f800::/32",
    "2405:b500::/32",
    "2405:8100::/32",
    "2a06:98c0::/29",
    "2c0f:f248::/32",
)


@lru_cache(maxsize=1)
def _networks() -> tuple[IPv4Network | IPv6Network, ...]:
    return tuple(ip_network(cidr) for cidr in CLOUDFLARE_RANGES)


def is_cloudflare_ip(value: str) -> bool:
    """Return True when ``value`` is an address inside a Cloudflare range."""
    try:
        address = ip_address(value)
    except ValueError:
        return False
    return any(
        address.version == network.version and address in network
        for network in _networks()
    )
