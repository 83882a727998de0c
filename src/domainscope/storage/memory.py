"""In-memory artifact store."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel

from domainscope.core.interfaces import IArtifactStore
from domainscope.models.artifact import CachedArtifact
from domainscope.models.base import ArtifactKind


class InMemoryArtifactStore(IArtifactStore):
    """Process-local store for the CLI and tests.

    Artifacts are replaced wholesale; nothing is merged.
    """

    def __init__(self) -> None:
        self._domains: dict[str, str] = {}
        self._artifacts: dict[tuple[ArtifactKind, str], CachedArtifact[Any]] = {}

    async def ensure_domain_record(self, name: str) -> str:
        """Get or create the id for a domain."""
        key = name.strip().lower().rstrip(".")
        if key not in self._domains:
            self._domains[key] = uuid4().hex
        return self._domains[key]

    async def replace_artifact(
        self,
        kind: ArtifactKind,
        domain_id: str,
        payload: BaseModel,
        fetched_at: datetime,
        expires_at: datetime,
    ) -> None:
        """Replace the stored artifact."""
        self._artifacts[(kind, domain_id)] = CachedArtifact[Any](
            payload=payload,
            fetched_at=fetched_at,
            expires_at=expires_at,
        )

    async def get_cached(
        self,
        kind: ArtifactKind,
        domain_id: str,
    ) -> CachedArtifact[Any] | None:
        """Get the last stored artifact."""
        return self._artifacts.get((kind, domain_id))

    def __len__(self) -> int:
        return len(self._artifacts)
