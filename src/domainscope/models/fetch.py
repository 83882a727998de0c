"""Remote asset fetch options and results."""

from typing import Literal

from pydantic import Field

from domainscope.models.base import BaseSchema
from domainscope.models.target import RedirectHop


class FetchOptions(BaseSchema):
    """Per-call fetch options. ``None`` falls back to settings."""

    method: Literal["GET", "HEAD"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    user_agent: str | None = None
    timeout: float | None = Field(default=None, gt=0)
    max_bytes: int | None = Field(default=None, ge=1)
    max_redirects: int | None = Field(default=None, ge=0)
    allow_http: bool = False
    allowed_hosts: list[str] | None = None
    truncate_on_limit: bool = False
    fallback_to_get_on_head_failure: bool = False
    return_on_disallowed_redirect: bool = False


class FetchResult(BaseSchema):
    """A completed fetch. Any HTTP status is a result, not an error."""

    body: bytes = b""
    content_type: str | None = None
    final_url: str
    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    redirects: list[RedirectHop] = Field(default_factory=list)
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")
