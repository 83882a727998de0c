"""Tests for IP classification and hostname blocking."""

import pytest

from domainscope.safefetch.guard import is_blocked_hostname
from domainscope.safefetch.ip import address_family, is_private_ip


class TestIsPrivateIp:
    """Tests for is_private_ip."""

    @pytest.mark.parametrize(
        "address",
        [
            "10.1.2.3",
            "172.16.0.1",
            "192.168.1.1",
            "127.0.0.1",
            "169.254.169.254",
            "100.64.0.1",
            "0.0.0.0",
            "224.0.0.1",
            "255.255.255.255",
            "198.18.0.1",
            "::1",
            "fe80::1",
            "fd00::1",
            "ff02::1",
            "::",
        ],
    )
    def test_non_public_addresses(self, address: str) -> None:
        """Test that reserved and internal ranges are rejected."""
        assert is_private_ip(address) is True

    @pytest.mark.parametrize("address", ["93.184.216.34", "1.1.1.1", "8.8.8.8", "2606:4700::1111"])
    def test_public_addresses(self, address: str) -> None:
        """Test that public unicast addresses pass."""
        assert is_private_ip(address) is False

    @pytest.mark.parametrize(
        "address",
        [
            "::ffff:127.0.0.1",
            "::ffff:10.0.0.1",
            "2002:0a00:0001::1",
            "64:ff9b::a00:1",
        ],
    )
    def test_embedded_private_ipv4(self, address: str) -> None:
        """Test that IPv6 forms carrying a private IPv4 are rejected."""
        assert is_private_ip(address) is True

    def test_mapped_public_ipv4(self) -> None:
        """Test that a mapped public IPv4 address is allowed."""
        assert is_private_ip("::ffff:93.184.216.34") is False

    def test_unparseable_counts_as_private(self) -> None:
        """Test that garbage fails closed."""
        assert is_private_ip("not-an-ip") is True
        assert is_private_ip("") is True

    def test_bracketed_ipv6(self) -> None:
        """Test that URL-style brackets are tolerated."""
        assert is_private_ip("[::1]") is True


class TestAddressFamily:
    def test_families(self) -> None:
        assert address_family("1.1.1.1") == 4
        assert address_family("2606:4700::1111") == 6


class TestBlockedHostnames:
    """Tests for hardcoded hostname blocking."""

    @pytest.mark.parametrize(
        "hostname",
        ["localhost", "LOCALHOST", "localhost.", "printer.local", "db.internal", "app.localhost"],
    )
    def test_blocked(self, hostname: str) -> None:
        assert is_blocked_hostname(hostname) is True

    @pytest.mark.parametrize("hostname", ["example.com", "localhost.example.com", "internal.example.com"])
    def test_allowed(self, hostname: str) -> None:
        assert is_blocked_hostname(hostname) is False
