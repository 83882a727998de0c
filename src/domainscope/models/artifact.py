"""Cached artifact and provider reference models."""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import computed_field

from domainscope.models.base import BaseSchema

TPayload = TypeVar("TPayload")


class ProviderRef(BaseSchema):
    """A known provider (CA, registrar, DNS or email host)."""

    id: str
    name: str
    category: str


class CachedArtifact(BaseSchema, Generic[TPayload]):
    """Last-known-good payload with its freshness window."""

    payload: TPayload
    fetched_at: datetime
    expires_at: datetime

    def is_stale_at(self, now: datetime) -> bool:
        return now >= self.expires_at

    @computed_field  # type: ignore[prop-decorator]
    @property
    def stale(self) -> bool:
        return self.is_stale_at(datetime.now(timezone.utc))
