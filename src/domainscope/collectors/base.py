"""Base collector class."""

from abc import abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from pydantic import BaseModel

from domainscope.core.interfaces import ICollector
from domainscope.core.logging import get_logger
from domainscope.models.base import ArtifactKind

if TYPE_CHECKING:
    from domainscope.collectors.context import AcquisitionContext

TResult = TypeVar("TResult", bound=BaseModel)


class BaseCollector(ICollector[TResult], Generic[TResult]):
    """Base class for all collector implementations."""

    def __init__(self, context: "AcquisitionContext") -> None:
        self.context = context
        self.settings = context.settings
        self.logger = get_logger(self.name)

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
        """Acquire the artifact for a domain."""
        ...

    def get_capabilities(self) -> list[str]:
        """List of facts this collector provides."""
        return []
