"""Classification of IP addresses as publicly routable or not."""

from ipaddress import (
    IPv4Address,
    IPv4Network,
    IPv6Address,
    IPv6Network,
    ip_address,
)

# Ranges the stdlib flags do not fully cover on every Python version
BLOCKED_IPV4_RANGES = (
    IPv4Network("0.0.0.0/8"),        # Current network
    IPv4Network("10.0.0.0/8"),       # Private (Class A)
    IPv4Network("100.64.0.0/10"),    # Carrier-grade NAT shared space
    IPv4Network("127.0.0.0/8"),      # Loopback
    IPv4Network("169.254.0.0/16"),   # Link-local (includes cloud metadata)
    IPv4Network("172.16.0.0/12"),    # Private (Class B)
    IPv4Network("192.0.0.0/24"),     # IETF protocol assignments
    IPv4Network("192.0.2.0/24"),     # TEST-NET-1
    IPv4Network("192.88.99.0/24"),   # 6to4 relay anycast
    IPv4Network("192.168.0.0/16"),   # Private (Class C)
    IPv4Network("198.18.0.0/15"),    # Benchmarking
    IPv4Network("198.51.100.0/24"),  # TEST-NET-2
    IPv4Network("203.0.113.0/24"),   # TEST-NET-3
    IPv4Network("224.0.0.0/4"),      # Multicast
    IPv4Network("240.0.0.0/4"),      # Reserved, includes broadcast
)

BLOCKED_IPV6_RANGES = (
    IPv6Network("::/128"),           # Unspecified
    IPv6Network("::1/128"),          # Loopback
    IPv6Network("64:ff9b:1::/48"),   # Local-use NAT64
    IPv6Network("100::/64"),         # Discard-only
    IPv6Network("2001::/23"),        # IETF protocol assignments
    IPv6Network("2001:db8::/32"),    # Documentation
    IPv6Network("fc00::/7"),         # Unique local
    IPv6Network("fe80::/10"),        # Link-local
    IPv6Network("fec0::/10"),        # Site-local (deprecated)
    IPv6Network("ff00::/8"),         # Multicast
)

# Cloud metadata endpoints (explicit block)
CLOUD_METADATA_IPS = frozenset({
    "169.254.169.254",  # AWS, GCP, Azure metadata
    "169.254.170.2",    # AWS ECS metadata
    "100.100.100.200",  # Alibaba Cloud metadata
    "fd00:ec2::254",    # AWS IMDS over IPv6
})


def _embedded_ipv4(address: IPv6Address) -> IPv4Address | None:
    """IPv4 address carried inside an IPv6 one (mapped, 6to4, NAT64)."""
    if address.ipv4_mapped is not None:
        return address.ipv4_mapped
    if address.sixtofour is not None:
        return address.sixtofour
    if address in IPv6Network("64:ff9b::/96"):
        return IPv4Address(int(address) & 0xFFFFFFFF)
    # IPv4-compatible (deprecated) ::a.b.c.d
    if address in IPv6Network("::/96") and int(address) > 1:
        return IPv4Address(int(address))
    return None


def is_private_ip(value: str) -> bool:
    """Return True unless ``value`` is a public unicast address.

    Unparseable input counts as private.
    """
    try:
        address = ip_address(value.strip().strip("[]").split("%", 1)[0])
    except ValueError:
        return True

    if str(address) in CLOUD_METADATA_IPS:
        return True

    if isinstance(address, IPv6Address):
        embedded = _embedded_ipv4(address)
        if embedded is not None:
            return is_private_ip(str(embedded))
        if any(address in network for network in BLOCKED_IPV6_RANGES):
            return True
    elif any(address in network for network in BLOCKED_IPV4_RANGES):
        return True

    return (
        not address.is_global
        or address.is_multicast
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
    )


def address_family(value: str) -> int:
    """Return 4 or 6."""
    return ip_address(value).version
