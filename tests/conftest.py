"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from domainscope.collectors.context import AcquisitionContext
from domainscope.core.config import Settings
from domainscope.infrastructure.cache import MemoryCache

DOH_HOSTS = {
    "cloudflare-dns.com": "cloudflare",
    "dns.google": "google",
    "dns.quad9.net": "quad9",
}

TYPE_CODES = {"A": 1, "NS": 2, "MX": 15, "TXT": 16, "AAAA": 28}

Route = Callable[[httpx.Request], httpx.Response]


class FakeInternet:
    """Serves DoH JSON answers and canned responses for registered URLs."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, str], list[dict]] = {}
        self.routes: dict[str, Route] = {}
        self.failing_providers: set[str] = set()
        self.timing_out_providers: set[str] = set()
        self.requests: list[httpx.Request] = []

    def add_record(
        self,
        name: str,
        record_type: str,
        data: str,
        ttl: int = 300,
        type_code: int | None = None,
    ) -> None:
        self.records.setdefault((name.lower(), record_type), []).append(
            {
                "name": f"{name}.",
                "type": type_code if type_code is not None else TYPE_CODES[record_type],
                "TTL": ttl,
                "data": data,
            }
        )

    def add_host(self, name: str, *addresses: str) -> None:
        for address in addresses:
            self.add_record(name, "AAAA" if ":" in address else "A", address)

    def route(self, url: str, handler: Route) -> None:
        self.routes[url] = handler

    def requested_urls(self) -> list[str]:
        """Non-DoH URLs requested so far."""
        return [str(r.url) for r in self.requests if r.url.host not in DOH_HOSTS]

    def doh_requests(self, provider: str) -> list[httpx.Request]:
        return [r for r in self.requests if DOH_HOSTS.get(r.url.host) == provider]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        provider = DOH_HOSTS.get(request.url.host)
        if provider is not None:
            return self._doh(provider, request)

        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)

    def _doh(self, provider: str, request: httpx.Request) -> httpx.Response:
        if provider in self.timing_out_providers:
            raise httpx.ReadTimeout("timed out", request=request)
        if provider in self.failing_providers:
            return httpx.Response(503)

        name = request.url.params["name"].lower().rstrip(".")
        record_type = request.url.params["type"]
        known = any(key[0] == name for key in self.records)
        if not known:
            return httpx.Response(200, json={"Status": 3})

        answers = self.records.get((name, record_type), [])
        payload: dict = {"Status": 0}
        if answers:
            payload["Answer"] = answers
        return httpx.Response(200, json=payload)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        doh_providers=["cloudflare", "google"],
        doh_queries_per_second=500,
        fetch_timeout=2.0,
        default_retry_after=5.0,
        log_format="text",
    )


@pytest.fixture
def internet() -> FakeInternet:
    return FakeInternet()


@pytest.fixture
async def client(internet: FakeInternet) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(internet.handler),
        follow_redirects=False,
    ) as client:
        yield client


@pytest.fixture
def context(client: httpx.AsyncClient, settings: Settings) -> AcquisitionContext:
    """Acquisition context wired to the fake internet."""
    return AcquisitionContext.create(client, settings=settings, cache=MemoryCache())


def make_certificate(
    subject: str,
    issuer: str | None = None,
    alt_names: list[str] | None = None,
    valid_for: timedelta = timedelta(days=90),
    organization: str | None = None,
) -> bytes:
    """DER certificate with the given names. Signatures are not meaningful."""
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)

    def name(common_name: str) -> x509.Name:
        attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
        if organization:
            attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
        return x509.Name(attributes)

    builder = (
        x509.CertificateBuilder()
        .subject_name(name(subject))
        .issuer_name(name(issuer or subject))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + valid_for)
    )
    if alt_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in alt_names]),
            critical=False,
        )
    return builder.sign(key, hashes.SHA256()).public_bytes(serialization.Encoding.DER)


@dataclass
class IssuedCertificate:
    """A properly signed certificate with its private key."""

    certificate: x509.Certificate
    key: ec.EllipticCurvePrivateKey

    @property
    def pem(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.PEM)

    @property
    def key_pem(self) -> bytes:
        return self.key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )


def issue_certificate(
    common_name: str,
    issuer: IssuedCertificate | None = None,
    ca: bool = False,
    alt_names: list[str] | None = None,
    valid_for: timedelta = timedelta(days=90),
    expired: bool = False,
) -> IssuedCertificate:
    """Certificate that passes strict OpenSSL verification when its root is trusted.

    Without ``issuer`` the certificate is self-signed.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    if expired:
        not_before, not_after = now - timedelta(days=30), now - timedelta(days=1)
    else:
        not_before, not_after = now - timedelta(days=1), now + valid_for
    signing_key = issuer.key if issuer else key

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer.certificate.subject if issuer else subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=ca,
                crl_sign=ca,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(signing_key.public_key()),
            critical=False,
        )
    )
    if not ca:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
    if alt_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in alt_names]),
            critical=False,
        )
    return IssuedCertificate(builder.sign(signing_key, hashes.SHA256()), key)
