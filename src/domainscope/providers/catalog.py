"""Static catalog of well-known certificate authorities, registrars, DNS, email and web hosts."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from ipaddress import IPv4Network, IPv6Network, ip_address, ip_network

from domainscope.core.interfaces import IProviderCatalog
from domainscope.models.artifact import ProviderRef
from domainscope.providers.cloudflare import CLOUDFLARE_RANGES


@dataclass(frozen=True)
class CatalogEntry:
    """A provider and the name patterns that identify it.

    ``suffixes`` match a hostname equal to the suffix or ending in
    ``.<suffix>``; ``includes`` and ``equals`` match free-form names
    such as certificate issuers and registrar names.

    Web hosts are recognised by response headers and addresses instead.
    Each ``headers`` rule is a lowercased header name and either None
    (header present) or a substring of the lowercased value. ``networks``
    are the CIDR blocks the host answers apex A/AAAA records from.
    """

    id: str
    name: str
    category: str
    includes: tuple[str, ...] = ()
    equals: tuple[str, ...] = ()
    suffixes: tuple[str, ...] = ()
    patterns: tuple[str, ...] = ()
    headers: tuple[tuple[str, str | None], ...] = ()
    networks: tuple[str, ...] = ()
    _compiled: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)
    _networks: tuple[IPv4Network | IPv6Network, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        compiled = tuple(re.compile(p, re.IGNORECASE) for p in self.patterns)
        object.__setattr__(self, "_compiled", compiled)
        object.__setattr__(self, "_networks", tuple(ip_network(n) for n in self.networks))

    def matches(self, observed: str) -> bool:
        value = observed.strip().lower().rstrip(".")
        if not value:
            return False
        if value in self.equals:
            return True
        if any(substr in value for substr in self.includes):
            return True
        if any(value == s or value.endswith(f".{s}") for s in self.suffixes):
            return True
        return any(p.search(value) for p in self._compiled)

    def matches_headers(self, headers: Mapping[str, str]) -> bool:
        for name, needle in self.headers:
            value = headers.get(name)
            if value is None:
                continue
            if needle is None or needle in value.lower():
                return True
        return False

    def matches_address(self, value: str) -> bool:
        try:
            address = ip_address(value.strip())
        except ValueError:
            return False
        return any(
            address.version == network.version and address in network
            for network in self._networks
        )

    def to_ref(self) -> ProviderRef:
        return ProviderRef(id=self.id, name=self.name, category=self.category)


DEFAULT_CATALOG: tuple[CatalogEntry, ...] = (
    # Certificate authorities
    CatalogEntry(
        "letsencrypt.org", "Let's Encrypt", "ca",
        includes=("let's encrypt", "lets encrypt", "isrg"),
        equals=("r3", "r10", "r11", "e1", "e5", "e6"),
    ),
    CatalogEntry("digicert.com", "DigiCert", "ca", includes=("digicert",)),
    CatalogEntry("sectigo.com", "Sectigo", "ca", includes=("sectigo", "comodo")),
    CatalogEntry("globalsign.com", "GlobalSign", "ca", includes=("globalsign",)),
    CatalogEntry(
        "godaddy.com", "GoDaddy", "ca",
        includes=("godaddy", "go daddy", "starfield"),
    ),
    CatalogEntry("pki.goog", "Google Trust Services", "ca", includes=("google trust services", "gts ")),
    # DNS hosts
    CatalogEntry("cloudflare.com", "Cloudflare", "dns", suffixes=("ns.cloudflare.com",)),
    CatalogEntry(
        "aws.amazon.com", "Amazon Route 53", "dns",
        patterns=(
            r"^ns-\d+\.awsdns-\d+\.(com|net|org|co\.uk)$",
            r"^ns\d+\.amzndns\.(com|net|org|co\.uk)$",
        ),
    ),
    CatalogEntry("cloud.google.com", "Google Cloud DNS", "dns", suffixes=("googledomains.com",)),
    CatalogEntry("vercel.com", "Vercel", "dns", suffixes=("vercel-dns.com",)),
    CatalogEntry("dnsimple.com", "DNSimple", "dns", suffixes=("dnsimple.com",)),
    # Email hosts
    CatalogEntry(
        "google.com", "Google Workspace", "email",
        suffixes=("smtp.google.com", "aspmx.l.google.com", "googlemail.com"),
        patterns=(r"^alt\d+\.aspmx\.l\.google\.com$", r"^aspmx\d*\.googlemail\.com$"),
    ),
    CatalogEntry(
        "microsoft.com", "Microsoft 365", "email",
        suffixes=("mail.protection.outlook.com", "outlook.com"),
    ),
    CatalogEntry("fastmail.com", "Fastmail", "email", suffixes=("fastmail.com", "messagingengine.com")),
    CatalogEntry("proton.me", "Proton Mail", "email", suffixes=("protonmail.ch", "proton.me")),
    CatalogEntry("zoho.com", "Zoho Mail", "email", suffixes=("zoho.com",)),
    # Registrars
    CatalogEntry(
        "godaddy.com", "GoDaddy", "registrar",
        includes=("godaddy", "go daddy", "wild west domains"),
    ),
    CatalogEntry("namecheap.com", "Namecheap", "registrar", includes=("namecheap",)),
    CatalogEntry("cloudflare.com", "Cloudflare Registrar", "registrar", includes=("cloudflare",)),
    CatalogEntry(
        "domains.google", "Google Domains", "registrar",
        includes=("google domains", "google llc"),
    ),
    CatalogEntry(
        "aws.amazon.com", "Amazon Registrar", "registrar",
        includes=("amazon registrar", "amazon.com"),
    ),
    CatalogEntry("markmonitor.com", "MarkMonitor", "registrar", includes=("markmonitor",)),
    # Web hosts; platforms come before the CDNs that may front them
    CatalogEntry(
        "vercel.com", "Vercel", "hosting",
        headers=(("x-vercel-id", None), ("server", "vercel")),
        networks=("76.76.21.0/24",),
    ),
    CatalogEntry(
        "netlify.com", "Netlify", "hosting",
        headers=(("x-nf-request-id", None), ("server", "netlify")),
        networks=("75.2.60.5/32",),
    ),
    CatalogEntry(
        "pages.github.com", "GitHub Pages", "hosting",
        headers=(("server", "github.com"),),
        networks=("185.199.108.0/22", "2606:50c0:8000::/46"),
    ),
    CatalogEntry(
        "fly.io", "Fly.io", "hosting",
        headers=(("fly-request-id", None), ("server", "fly/")),
    ),
    CatalogEntry(
        "render.com", "Render", "hosting",
        headers=(("rndr-id", None), ("x-render-origin-server", None)),
    ),
    CatalogEntry("heroku.com", "Heroku", "hosting", headers=(("via", "vegur"),)),
    CatalogEntry(
        "shopify.com", "Shopify", "hosting",
        headers=(("x-shopid", None), ("x-shopify-stage", None)),
    ),
    CatalogEntry(
        "cloudflare.com", "Cloudflare", "hosting",
        headers=(("cf-ray", None), ("server", "cloudflare")),
        networks=CLOUDFLARE_RANGES,
    ),
    CatalogEntry(
        "aws.amazon.com", "Amazon CloudFront", "hosting",
        headers=(("x-amz-cf-id", None), ("via", "cloudfront")),
    ),
    CatalogEntry(
        "fastly.com", "Fastly", "hosting",
        headers=(("x-fastly-request-id", None), ("x-served-by", "cache-")),
    ),
    CatalogEntry(
        "akamai.com", "Akamai", "hosting",
        headers=(("x-akamai-transformed", None), ("server", "akamaighost")),
    ),
    CatalogEntry("google.com", "Google", "hosting", headers=(("server", "gws"),)),
)


class StaticProviderCatalog(IProviderCatalog):
    """Provider catalog backed by an in-process table. First match wins."""

    def __init__(self, entries: tuple[CatalogEntry, ...] = DEFAULT_CATALOG) -> None:
        self._by_category: dict[str, list[CatalogEntry]] = {}
        for entry in entries:
            self._by_category.setdefault(entry.category, []).append(entry)

    def match_provider(self, category: str, observed_name: str) -> ProviderRef | None:
        for entry in self._by_category.get(category, []):
            if entry.matches(observed_name):
                return entry.to_ref()
        return None

    def match_headers(self, category: str, headers: Mapping[str, str]) -> ProviderRef | None:
        for entry in self._by_category.get(category, []):
            if entry.matches_headers(headers):
                return entry.to_ref()
        return None

    def match_address(self, category: str, address: str) -> ProviderRef | None:
        for entry in self._by_category.get(category, []):
            if entry.matches_address(address):
                return entry.to_ref()
        return None


def match_first(
    catalog: IProviderCatalog,
    category: str,
    observed_names: list[str],
) -> ProviderRef | None:
    """Match the first of several observed names (NS or MX hosts)."""
    for name in observed_names:
        ref = catalog.match_provider(category, name)
        if ref:
            return ref
    return None
