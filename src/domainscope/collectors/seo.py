"""Page metadata and robots.txt collection."""

import asyncio
import contextlib
import re
import time
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.headers import page_failure
from domainscope.collectors.registry import CollectorRegistry
from domainscope.core.exceptions import SafeFetchError
from domainscope.models.base import ArtifactKind
from domainscope.models.fetch import FetchOptions
from domainscope.models.web import (
    GeneralMeta,
    OpenGraphMeta,
    RobotsGroup,
    RobotsRule,
    RobotsTxt,
    SeoMeta,
    SeoPreview,
    SeoResult,
    TwitterMeta,
)

HTML_MAX_BYTES = 512 * 1024
HTML_TIMEOUT = 10.0
ROBOTS_MAX_BYTES = 256 * 1024
ROBOTS_TIMEOUT = 8.0
SEO_MAX_REDIRECTS = 5
# Google stops reading robots.txt at 500 KiB
ROBOTS_SIZE_CAP = 500 * 1024

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

_HTML_CONTENT_TYPE = re.compile(r"^(text/html|application/xhtml\+xml)\b", re.IGNORECASE)
_ROBOTS_CONTENT_TYPE = re.compile(r"^text/(plain|html|xml)?($|;|,)", re.IGNORECASE)
_INVISIBLE = re.compile("[\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff]")
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")

_ROBOTS_RULES = {
    "allow": "allow",
    "disallow": "disallow",
    "crawl-delay": "crawl_delay",
    "content-signal": "content_signal",
}


def sanitize_text(value: str | None) -> str:
    """Drop control characters and collapse whitespace."""
    if not value:
        return ""
    value = _CONTROL.sub("", _INVISIBLE.sub("", value))
    return _WHITESPACE.sub(" ", value).strip()


def resolve_url(value: str | None, base_url: str) -> str | None:
    """Absolute http(s) URL for ``value`` relative to ``base_url``, else None."""
    if not value:
        return None
    try:
        absolute = urljoin(base_url, value)
    except ValueError:
        return None
    if urlsplit(absolute).scheme not in ("http", "https"):
        return None
    return absolute


def _meta_values(soup: BeautifulSoup, attr: str, key: str) -> list[str]:
    values = []
    for tag in soup.find_all("meta", attrs={attr: key}):
        if isinstance(tag, Tag):
            content = sanitize_text(tag.get("content"))  # type: ignore[arg-type]
            if content:
                values.append(content)
    return values


def _meta_value(soup: BeautifulSoup, attr: str, key: str) -> str | None:
    values = _meta_values(soup, attr, key)
    return values[0] if values else None


def parse_html_meta(html: str, final_url: str) -> SeoMeta:
    """Extract general, OpenGraph and Twitter tags.

    Canonical, ``og:url`` and image URLs are resolved against ``final_url``.
    """
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    canonical_tag = soup.find("link", rel="canonical")
    canonical = (
        sanitize_text(canonical_tag.get("href"))  # type: ignore[arg-type]
        if isinstance(canonical_tag, Tag)
        else ""
    )

    general = GeneralMeta(
        title=(sanitize_text(title_tag.get_text()) if title_tag else "") or None,
        description=_meta_value(soup, "name", "description"),
        keywords=_meta_value(soup, "name", "keywords"),
        author=_meta_value(soup, "name", "author"),
        canonical=resolve_url(canonical, final_url) or canonical or None,
        generator=_meta_value(soup, "name", "generator"),
        robots=_meta_value(soup, "name", "robots"),
    )

    images: list[str] = []
    for key in ("og:image", "og:image:url", "og:image:secure_url"):
        for value in _meta_values(soup, "property", key):
            resolved = resolve_url(value, final_url)
            if resolved and resolved not in images:
                images.append(resolved)

    og_url = _meta_value(soup, "property", "og:url")
    open_graph = OpenGraphMeta(
        title=_meta_value(soup, "property", "og:title"),
        description=_meta_value(soup, "property", "og:description"),
        type=_meta_value(soup, "property", "og:type"),
        url=resolve_url(og_url, final_url) or og_url,
        site_name=_meta_value(soup, "property", "og:site_name"),
        images=images,
    )

    twitter_image = _meta_value(soup, "name", "twitter:image") or _meta_value(
        soup, "name", "twitter:image:src"
    )
    twitter = TwitterMeta(
        card=_meta_value(soup, "name", "twitter:card"),
        title=_meta_value(soup, "name", "twitter:title"),
        description=_meta_value(soup, "name", "twitter:description"),
        image=resolve_url(twitter_image, final_url) or twitter_image,
    )

    return SeoMeta(general=general, open_graph=open_graph, twitter=twitter)


def select_preview(meta: SeoMeta | None, final_url: str) -> SeoPreview:
    """OpenGraph first, then Twitter, then general tags."""
    if meta is None:
        return SeoPreview(canonical_url=final_url)

    og, tw, general = meta.open_graph, meta.twitter, meta.general
    return SeoPreview(
        title=og.title or tw.title or general.title,
        description=og.description or tw.description or general.description,
        image=(og.images[0] if og.images else None) or tw.image,
        canonical_url=general.canonical or og.url or final_url,
    )


def _agents_key(agents: list[str]) -> tuple[str, ...]:
    return tuple(sorted(a.lower() for a in agents))


def _merge_groups(groups: list[RobotsGroup]) -> list[RobotsGroup]:
    """Merge groups naming the same agents and drop repeated rules."""
    merged: dict[tuple[str, ...], RobotsGroup] = {}
    for group in groups:
        key = _agents_key(group.user_agents)
        existing = merged.get(key)
        if existing is None:
            merged[key] = group.model_copy(deep=True)
            continue
        known = {a.lower() for a in existing.user_agents}
        existing.user_agents = existing.user_agents + [
            a for a in group.user_agents if a.lower() not in known
        ]
        existing.rules = existing.rules + list(group.rules)

    result = []
    for group in merged.values():
        seen: set[tuple[str, str]] = set()
        rules = []
        for rule in group.rules:
            if (rule.type, rule.value) in seen:
                continue
            seen.add((rule.type, rule.value))
            rules.append(rule)
        group.rules = rules
        result.append(group)
    return result


def parse_robots_txt(
    text: str,
    base_url: str | None = None,
    size_cap: int = ROBOTS_SIZE_CAP,
) -> RobotsTxt:
    """Parse robots.txt into user-agent groups and sitemaps.

    Consecutive ``User-agent`` lines share a group; a ``User-agent`` after
    rules starts a new one. Rules outside any group are ignored. Blank
    lines do not end a group. Sitemaps are global and, with ``base_url``,
    resolved and limited to http(s).
    """
    groups: list[RobotsGroup] = []
    sitemaps: list[str] = []
    agents: list[str] = []
    rules: list[RobotsRule] = []

    def flush() -> None:
        nonlocal agents, rules
        if agents:
            groups.append(RobotsGroup(user_agents=agents, rules=rules))
        agents, rules = [], []

    for raw_line in text[:size_cap].splitlines():
        line = _INVISIBLE.sub("", raw_line).split("#", 1)[0].strip()
        if not line:
            continue
        directive, sep, raw_value = line.partition(":")
        directive = directive.strip().lower()
        if not sep or not directive:
            continue
        value = sanitize_text(raw_value)

        if directive == "user-agent":
            if agents and rules:
                flush()
            if value:
                agents.append(value)
        elif directive in _ROBOTS_RULES:
            if agents:
                rules.append(RobotsRule(type=_ROBOTS_RULES[directive], value=value))  # type: ignore[arg-type]
        elif directive == "sitemap" and value:
            url: str | None = value
            if base_url:
                url = resolve_url(value, base_url)
            if url and url not in sitemaps:
                sitemaps.append(url)

    flush()

    if len(groups) > 1:
        groups = _merge_groups(groups)

    return RobotsTxt(fetched=True, groups=groups, sitemaps=sitemaps)


@CollectorRegistry.register(ArtifactKind.SEO)
class SeoCollector(BaseCollector[SeoResult]):
    """Home page meta tags and robots.txt."""

    @property
    def name(self) -> str:
        return "seo"

    @property
    def kind(self) -> ArtifactKind:
        return ArtifactKind.SEO

    def get_capabilities(self) -> list[str]:
        return [
            "Title and description",
            "Canonical URL",
            "OpenGraph and Twitter tags",
            "Social preview selection",
            "robots.txt groups and sitemaps",
        ]

    async def collect(self, domain: str) -> SeoResult:
        """Fetch the page and robots.txt together.

        HTML fetch failures raise ``SafeFetchError``; robots.txt failures
        only leave ``robots`` empty. HTTP errors and non-HTML pages come
        back as a result with ``error`` set.
        """
        domain = domain.strip().lower().rstrip(".")
        start_time = time.time()
        self.logger.info("seo_fetch_started", domain=domain)

        robots_task = asyncio.ensure_future(self.fetch_robots(domain))
        try:
            result = await self._fetch_page(domain)
            result.robots = await robots_task
        except SafeFetchError as e:
            failure = page_failure(e)
            self.logger.warning("seo_fetch_failed", domain=domain, kind=failure.kind.value)
            if failure is e:
                raise
            raise failure from e
        finally:
            # Never leave the robots fetch running past collect
            if not robots_task.done():
                robots_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await robots_task

        self.logger.info(
            "seo_fetch_completed",
            domain=domain,
            status=result.status,
            has_meta=result.meta is not None,
            has_robots=result.robots is not None,
            duration=time.time() - start_time,
        )
        return result

    async def _fetch_page(self, domain: str) -> SeoResult:
        options = FetchOptions(
            headers={"Accept": HTML_ACCEPT, "Accept-Language": "en"},
            allow_http=True,
            timeout=HTML_TIMEOUT,
            max_bytes=HTML_MAX_BYTES,
            max_redirects=SEO_MAX_REDIRECTS,
            truncate_on_limit=True,
        )
        page = await self.context.fetcher.fetch(f"https://{domain}/", options)

        if not page.ok:
            return SeoResult(
                domain=domain, status=page.status, final_url=page.final_url, error=f"HTTP {page.status}"
            )

        content_type = page.content_type or ""
        if not _HTML_CONTENT_TYPE.match(content_type):
            return SeoResult(
                domain=domain,
                status=page.status,
                final_url=page.final_url,
                error=f"Non-HTML content-type: {content_type}",
            )

        meta = parse_html_meta(page.text(), page.final_url)
        return SeoResult(
            domain=domain,
            meta=meta,
            preview=select_preview(meta, page.final_url),
            status=page.status,
            final_url=page.final_url,
        )

    async def fetch_robots(self, domain: str) -> RobotsTxt | None:
        """Parsed robots.txt, or None when it is missing or unusable."""
        robots_url = f"https://{domain}/robots.txt"
        options = FetchOptions(
            headers={"Accept": "text/plain"},
            allow_http=True,
            timeout=ROBOTS_TIMEOUT,
            max_bytes=ROBOTS_MAX_BYTES,
            max_redirects=SEO_MAX_REDIRECTS,
        )
        try:
            response = await self.context.fetcher.fetch(robots_url, options)
        except SafeFetchError as e:
            self.logger.debug("robots_fetch_failed", domain=domain, kind=e.kind.value)
            return None

        if not response.ok:
            self.logger.debug("robots_unavailable", domain=domain, status=response.status)
            return None
        content_type = response.content_type or ""
        if content_type and not _ROBOTS_CONTENT_TYPE.match(content_type):
            self.logger.debug("robots_unexpected_content_type", domain=domain, content_type=content_type)
            return None

        return parse_robots_txt(response.text(), base_url=robots_url)
