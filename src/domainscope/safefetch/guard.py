"""Host/IP guard: decides whether a URL may be requested at all."""

from collections.abc import Iterable
from typing import NoReturn
from urllib.parse import urlsplit

import idna
from pydantic import ValidationError as PydanticValidationError

from domainscope.core.exceptions import SafeFetchError
from domainscope.core.logging import get_logger
from domainscope.models.errors import ErrorKind
from domainscope.models.target import (
    BLOCKED_HOSTNAME_SUFFIXES,
    BLOCKED_HOSTNAMES,
    ResolvedAddress,
    TargetURL,
)
from domainscope.resolvers.doh import DohClient, DohQueryError, to_ascii_hostname
from domainscope.safefetch.ip import address_family, is_private_ip


def is_blocked_hostname(hostname: str) -> bool:
    host = hostname.lower().rstrip(".")
    return host in BLOCKED_HOSTNAMES or host.endswith(BLOCKED_HOSTNAME_SUFFIXES)


class HostGuard:
    """Validate scheme and hostname, then resolve and reject non-public hosts.

    Resolution goes through DoH only; the OS resolver is never consulted.
    Every resolved address must be public or the whole URL is rejected.
    """

    def __init__(self, resolver: DohClient) -> None:
        self._resolver = resolver
        self.logger = get_logger("guard")

    async def ensure_allowed(
        self,
        url: str,
        allow_http: bool = False,
        allowed_hosts: Iterable[str] | None = None,
    ) -> TargetURL:
        """Return the parsed target or raise ``SafeFetchError``."""
        target = self._parse(url, allow_http)
        hostname = target.hostname

        # Checks and lookups run on the A-label form
        if not target.is_ip_literal:
            try:
                hostname = to_ascii_hostname(hostname)
            except idna.IDNAError:
                self._reject(ErrorKind.INVALID_URL, url, f"Invalid hostname: {hostname}")

        if is_blocked_hostname(hostname):
            self._reject(ErrorKind.HOST_BLOCKED, url, f"Blocked hostname: {hostname}")

        if allowed_hosts is not None:
            allowed = {h.lower().rstrip(".") for h in allowed_hosts}
            if hostname not in allowed and target.hostname not in allowed:
                self._reject(
                    ErrorKind.HOST_NOT_ALLOWED, url, f"Host not in allow-list: {hostname}"
                )

        if target.is_ip_literal:
            addresses = [
                ResolvedAddress(
                    address=hostname.strip("[]"),
                    family=address_family(hostname.strip("[]")),
                )
            ]
        else:
            try:
                addresses = await self._resolver.resolve_host_ips(hostname)
            except DohQueryError as e:
                self._reject(ErrorKind.DNS_ERROR, url, f"DNS lookup failed for {hostname}: {e}")

        private = [a.address for a in addresses if is_private_ip(a.address)]
        if private:
            self._reject(
                ErrorKind.PRIVATE_IP,
                url,
                f"{hostname} resolves to a non-public address",
                addresses=private,
            )

        return target

    def _parse(self, url: str, allow_http: bool) -> TargetURL:
        try:
            parts = urlsplit(url.strip())
        except ValueError:
            self._reject(ErrorKind.INVALID_URL, url, "Unparseable URL")

        scheme = parts.scheme.lower()
        allowed_schemes = {"https", "http"} if allow_http else {"https"}
        if scheme not in allowed_schemes:
            self._reject(
                ErrorKind.PROTOCOL_NOT_ALLOWED, url, f"Protocol not allowed: {scheme or 'none'}"
            )

        try:
            return TargetURL.from_url(url)
        except (PydanticValidationError, ValueError):
            self._reject(ErrorKind.INVALID_URL, url, "Missing or invalid hostname")

    def _reject(
        self, kind: ErrorKind, url: str, message: str, **details: object
    ) -> NoReturn:
        self.logger.warning("guard_rejected", kind=kind.value, url=url, **details)
        raise SafeFetchError(kind, message, details={"url": url, **details})
