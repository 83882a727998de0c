"""Collector registry keyed by artifact kind."""

from collections.abc import Callable
from typing import Any

from domainscope.collectors.base import BaseCollector
from domainscope.collectors.context import AcquisitionContext
from domainscope.models.base import ArtifactKind

CollectorClass = type[BaseCollector[Any]]


class CollectorRegistry:
    """Registry for collector classes."""

    _collectors: dict[ArtifactKind, CollectorClass] = {}

    @classmethod
    def register(cls, kind: ArtifactKind) -> Callable[[CollectorClass], CollectorClass]:
        """Register a collector class for an artifact kind."""

        def decorator(collector_class: CollectorClass) -> CollectorClass:
            cls._collectors[kind] = collector_class
            return collector_class

        return decorator

    @classmethod
    def get(cls, kind: ArtifactKind) -> CollectorClass | None:
        """Get a collector class by kind."""
        return cls._collectors.get(kind)

    @classmethod
    def get_instance(
        cls,
        kind: ArtifactKind,
        context: AcquisitionContext,
    ) -> BaseCollector[Any] | None:
        """Get a collector bound to a context."""
        collector_class = cls.get(kind)
        if collector_class:
            return collector_class(context)
        return None

    @classmethod
    def list_all(cls) -> list[ArtifactKind]:
        """List all registered kinds."""
        return list(cls._collectors.keys())
