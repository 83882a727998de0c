"""TLS certificate chain collection."""

import asyncio
import contextlib
import select
import socket
import ssl
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import ExtensionOID, NameOID
from OpenSSL import SSL

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import AcquisitionError
from domainscope.models.base import ArtifactKind
from domainscope.models.certificates import (
    CertificateChainResult,
    CertificateNode,
    TlsFailure,
    TlsFetchResult,
)
from domainscope.models.errors import ErrorKind

# Last-resort message signatures, used only when the exception type says nothing
_DNS_SIGNATURES = ("enotfound", "eai_again", "getaddrinfo", "name or service not known", "nodename nor servname")
_TLS_SIGNATURES = ("certificate", "self signed", "self-signed", "unable to verify", "hostname mismatch")
_TIMEOUT_SIGNATURES = ("timed out", "timeout")


@dataclass(eq=False)
class PeerCertificate:
    """A presented certificate linked to the certificate that issued it."""

    der: bytes
    certificate: x509.Certificate
    issuer_certificate: "PeerCertificate | None" = field(default=None, repr=False)

    @classmethod
    def from_der(cls, der: bytes) -> "PeerCertificate":
        return cls(der=der, certificate=x509.load_der_x509_certificate(der))

    @property
    def is_self_signed(self) -> bool:
        return self.certificate.subject == self.certificate.issuer


def display_name(name: x509.Name) -> str:
    """CN, else O, else the full RFC 4514 string."""
    for oid in (NameOID.COMMON_NAME, NameOID.ORGANIZATION_NAME):
        attributes = name.get_attributes_for_oid(oid)
        if attributes:
            value = attributes[0].value
            return value if isinstance(value, str) else value.decode(errors="replace")
    return name.rfc4514_string()


def dns_alt_names(certificate: x509.Certificate) -> list[str]:
    try:
        extension = certificate.extensions.get_extension_for_oid(
            ExtensionOID.SUBJECT_ALTERNATIVE_NAME
        )
    except x509.ExtensionNotFound:
        return []
    return [name.lower() for name in extension.value.get_values_for_type(x509.DNSName)]


def link_chain(ders: list[bytes]) -> PeerCertificate | None:
    """Parse a presented chain (leaf first) and link each node to its issuer."""
    nodes = [PeerCertificate.from_der(der) for der in ders]
    for index, node in enumerate(nodes):
        if node.is_self_signed:
            node.issuer_certificate = node
            continue
        # Prefer the next certificate in presentation order
        candidates = nodes[index + 1:] + nodes[:index]
        node.issuer_certificate = next(
            (c for c in candidates if c.certificate.subject == node.certificate.issuer),
            None,
        )
    return nodes[0] if nodes else None


def walk_chain(leaf: PeerCertificate | None, max_depth: int = 10) -> list[PeerCertificate]:
    """Follow issuer links from the leaf.

    Stops at a self-signed certificate, at a certificate already seen
    (self-reference or longer cycle) and after ``max_depth`` nodes.
    """
    chain: list[PeerCertificate] = []
    seen: set[bytes] = set()
    node = leaf

    while node is not None and len(chain) < max_depth:
        if node.der in seen:
            break
        seen.add(node.der)
        chain.append(node)
        if node.is_self_signed:
            break
        node = node.issuer_certificate

    return chain


def to_node(peer: PeerCertificate) -> CertificateNode:
    certificate = peer.certificate
    return CertificateNode(
        issuer=display_name(certificate.issuer),
        subject=display_name(certificate.subject),
        alt_names=dns_alt_names(certificate),
        valid_from=certificate.not_valid_before_utc,
        valid_to=certificate.not_valid_after_utc,
    )


def classify_tls_failure(error: BaseException) -> TlsFailure:
    """Map a connect/handshake exception to a failure kind.

    Exception types decide first; message matching is the fallback for
    errors wrapped without a useful type.
    """
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, socket.timeout)):
        return "timeout"
    if isinstance(error, socket.gaierror):
        return "dns_error"
    if isinstance(error, (ssl.SSLCertVerificationError, ssl.SSLError)):
        return "tls_error"

    message = str(error).lower()
    if any(s in message for s in _DNS_SIGNATURES):
        return "dns_error"
    if any(s in message for s in _TLS_SIGNATURES):
        return "tls_error"
    if any(s in message for s in _TIMEOUT_SIGNATURES):
        return "timeout"
    return "fetch_error"


def _session_chain(ssl_object: ssl.SSLObject) -> list[bytes] | None:
    """DER chain of the verified session, leaf first. None before Python 3.13."""
    for getter in ("get_verified_chain", "get_unverified_chain"):
        method = getattr(ssl_object, getter, None)
        if method is None:
            continue
        chain = method()
        if chain:
            return list(chain)
    return None


def read_presented_chain(hostname: str, port: int, timeout: float) -> list[bytes]:
    """Chain exactly as the server sends it, leaf first, read with pyOpenSSL.

    Blocking, so run it in a thread. Verification is off: the result is
    only used when its leaf matches a leaf already verified by ``ssl``.
    """
    context = SSL.Context(SSL.TLS_CLIENT_METHOD)
    context.set_verify(SSL.VERIFY_NONE)
    deadline = time.monotonic() + timeout

    with socket.create_connection((hostname, port), timeout=timeout) as sock:
        connection = SSL.Connection(context, sock)
        connection.set_tlsext_host_name(hostname.encode("idna"))
        connection.set_connect_state()
        while True:
            try:
                connection.do_handshake()
                break
            except (SSL.WantReadError, SSL.WantWriteError) as e:
                remaining = deadline - time.monotonic()
                if isinstance(e, SSL.WantWriteError):
                    ready = remaining > 0 and select.select([], [sock], [], remaining)[1]
                else:
                    ready = remaining > 0 and select.select([sock], [], [], remaining)[0]
                if not ready:
                    raise TimeoutError(f"TLS handshake with {hostname}:{port} timed out") from e

        chain = connection.get_peer_cert_chain() or []
        with contextlib.suppress(SSL.Error):
            connection.shutdown()
        return [
            certificate.to_cryptography().public_bytes(serialization.Encoding.DER)
            for certificate in chain
        ]


@CollectorRegistry.register(ArtifactKind.CERTIFICATES)
class CertificateCollector(BaseCollector[CertificateChainResult]):
    """Certificate chain presented on the TLS port."""

    @property
    def name(self) -> str:
        return "certificates"

    @property
    def kind(self) -> ArtifactKind:
        return ArtifactKind.CERTIFICATES

    def get_capabilities(self) -> list[str]:
        return [
            "Certificate chain extraction",
            "Subject alternative names",
            "Validity windows",
            "Certificate authority detection",
        ]

    async def fetch_chain(self, hostname: str, port: int = 443) -> TlsFetchResult:
        """Connect, verify and read the chain. Never raises for network failures."""
        timeout = self.settings.tls_timeout
        context = ssl.create_default_context(cafile=self.settings.tls_ca_file)
        context.check_hostname = True
        context.verify_mode = ssl.CERT_REQUIRED

        writer: asyncio.StreamWriter | None = None
        try:
            # The outer timeout bounds connect and handshake together
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(hostname, port, ssl=context, server_hostname=hostname),
                timeout,
            )
            ssl_object = writer.get_extra_info("ssl_object")
            if ssl_object is None:
                return TlsFetchResult(error="tls_error", message="No TLS session established")

            ders = _session_chain(ssl_object)
            if ders is None:
                ders = await self._read_chain(hostname, port, ssl_object.getpeercert(binary_form=True))
            leaf = link_chain(ders)
            chain = [to_node(peer) for peer in walk_chain(leaf, self.settings.tls_max_chain_depth)]
            return TlsFetchResult(chain=chain)
        except (OSError, asyncio.TimeoutError) as e:
            kind = classify_tls_failure(e)
            self.logger.warning("tls_fetch_failed", host=hostname, port=port, kind=kind, error=str(e))
            return TlsFetchResult(error=kind, message=str(e))
        except ValueError as e:
            # Presented certificate that cryptography cannot parse
            self.logger.warning("tls_certificate_unparseable", host=hostname, error=str(e))
            return TlsFetchResult(error="tls_error", message=str(e))
        finally:
            if writer is not None:
                writer.close()
                with contextlib.suppress(OSError, asyncio.TimeoutError, ssl.SSLError):
                    await asyncio.wait_for(writer.wait_closed(), 1.0)

    async def _read_chain(self, hostname: str, port: int, leaf: bytes | None) -> list[bytes]:
        """Presented chain for a verified leaf when the session cannot expose it."""
        if not leaf:
            return []
        timeout = self.settings.tls_timeout
        try:
            ders = await asyncio.wait_for(
                asyncio.to_thread(read_presented_chain, hostname, port, timeout),
                timeout,
            )
        except (OSError, SSL.Error, asyncio.TimeoutError) as e:
            self.logger.warning("tls_chain_read_failed", host=hostname, port=port, error=str(e))
            return [leaf]

        # A second connection can land on a different backend
        if not ders or ders[0] != leaf:
            self.logger.warning("tls_chain_leaf_mismatch", host=hostname, port=port)
            return [leaf]
        return ders

    async def collect(self, domain: str) -> CertificateChainResult:
        """Chain with CA annotations. Failures raise ``AcquisitionError``."""
        start_time = time.time()
        self.logger.info("tls_fetch_started", domain=domain)

        result = await self.fetch_chain(domain, self.settings.tls_port)
        if result.chain is None:
            kind = ErrorKind(result.error or "fetch_error")
            retry_after = (
                self.settings.default_retry_after
                if kind in (ErrorKind.TIMEOUT, ErrorKind.FETCH_ERROR)
                else None
            )
            raise AcquisitionError(
                kind,
                result.message or f"TLS fetch failed for {domain}",
                retry_after=retry_after,
                details={"domain": domain},
            )

        chain = [
            node.model_copy(
                update={"ca_provider": self.context.catalog.match_provider("ca", node.issuer)}
            )
            for node in result.chain
        ]
        earliest = (
            min(node.valid_to for node in chain)
            if chain
            else datetime.now(timezone.utc) + timedelta(hours=1)
        )

        self.logger.info(
            "tls_fetch_completed",
            domain=domain,
            chain_length=len(chain),
            earliest_valid_to=earliest.isoformat(),
            duration=time.time() - start_time,
        )
        return CertificateChainResult(domain=domain, chain=chain, earliest_valid_to=earliest)
