"""HTTP header and SEO models."""

from typing import Literal

from pydantic import Field

from domainscope.models.base import BaseSchema
from domainscope.models.errors import ErrorKind


class HttpHeader(BaseSchema):
    """Response header, name lowercased."""

    name: str
    value: str


class HeadersResult(BaseSchema):
    """Response headers of a domain's home page."""

    domain: str
    headers: list[HttpHeader] = Field(default_factory=list)
    status: int
    status_message: str | None = None
    final_url: str | None = None


class GeneralMeta(BaseSchema):
    title: str | None = None
    description: str | None = None
    keywords: str | None = None
    author: str | None = None
    canonical: str | None = None
    generator: str | None = None
    robots: str | None = None


class OpenGraphMeta(BaseSchema):
    title: str | None = None
    description: str | None = None
    type: str | None = None
    url: str | None = None
    site_name: str | None = None
    images: list[str] = Field(default_factory=list)


class TwitterMeta(BaseSchema):
    card: str | None = None
    title: str | None = None
    description: str | None = None
    image: str | None = None


class SeoMeta(BaseSchema):
    """Meta tags extracted from a page."""

    general: GeneralMeta = Field(default_factory=GeneralMeta)
    open_graph: OpenGraphMeta = Field(default_factory=OpenGraphMeta)
    twitter: TwitterMeta = Field(default_factory=TwitterMeta)


class SeoPreview(BaseSchema):
    """Best-effort social preview: OpenGraph, then Twitter, then general tags."""

    title: str | None = None
    description: str | None = None
    image: str | None = None
    canonical_url: str


class RobotsRule(BaseSchema):
    type: Literal["allow", "disallow", "crawl_delay", "content_signal"]
    value: str


class RobotsGroup(BaseSchema):
    user_agents: list[str]
    rules: list[RobotsRule] = Field(default_factory=list)


class RobotsTxt(BaseSchema):
    """Parsed robots.txt."""

    fetched: bool = False
    groups: list[RobotsGroup] = Field(default_factory=list)
    sitemaps: list[str] = Field(default_factory=list)


class SeoResult(BaseSchema):
    """Page metadata and robots.txt for a domain."""

    domain: str
    meta: SeoMeta | None = None
    preview: SeoPreview | None = None
    robots: RobotsTxt | None = None
    status: int | None = None
    final_url: str | None = None
    error: ErrorKind | str | None = None
