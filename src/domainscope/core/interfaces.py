"""Abstract interfaces for collectors and external collaborators."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from domainscope.models.artifact import CachedArtifact, ProviderRef
from domainscope.models.base import ArtifactKind

TResult = TypeVar("TResult", bound=BaseModel)


class ICollector(ABC, Generic[TResult]):
    """Base interface for all artifact collectors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Collector name."""
        ...

    @property
    @abstractmethod
    def kind(self) -> ArtifactKind:
        """Artifact kind produced."""
        ...

    @abstractmethod
    async def collect(self, domain: str) -> TResult:
        """Acquire the artifact for a domain.

        Infrastructure failures raise; HTTP statuses are part of the result.
        """
        ...


class ICache(ABC):
    """Caching interface."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Get value from cache."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        """Set value in cache with TTL."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete value from cache."""
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists in cache."""
        ...


class IArtifactStore(ABC):
    """Persistence collaborator. Owns the schema."""

    @abstractmethod
    async def ensure_domain_record(self, name: str) -> str:
        """Return the id of the domain row, creating it if needed."""
        ...

    @abstractmethod
    async def replace_artifact(
        self,
        kind: ArtifactKind,
        domain_id: str,
        payload: BaseModel,
        fetched_at: datetime,
        expires_at: datetime,
    ) -> None:
        """Replace the stored artifact wholesale."""
        ...

    @abstractmethod
    async def get_cached(
        self,
        kind: ArtifactKind,
        domain_id: str,
    ) -> CachedArtifact[Any] | None:
        """Return the last stored artifact, stale or not."""
        ...


class IProviderCatalog(ABC):
    """Known provider lookup."""

    @abstractmethod
    def match_provider(self, category: str, observed_name: str) -> ProviderRef | None:
        """Match an observed name (CA, registrar, hostname) to a provider."""
        ...

    @abstractmethod
    def match_headers(self, category: str, headers: Mapping[str, str]) -> ProviderRef | None:
        """Match lowercased response headers to a provider."""
        ...

    @abstractmethod
    def match_address(self, category: str, address: str) -> ProviderRef | None:
        """Match an IP address to the provider announcing it."""
        ...


class IRevalidationScheduler(ABC):
    """Out-of-band revalidation trigger."""

    @abstractmethod
    async def schedule(self, domain: str, kind: ArtifactKind, due_at: datetime) -> None:
        """Request that an artifact be refreshed."""
        ...
