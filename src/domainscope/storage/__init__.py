"""Artifact storage."""

from domainscope.storage.memory import InMemoryArtifactStore

__all__ = ["InMemoryArtifactStore"]
