"""Idempotent acquisition steps for a durable step runtime."""

import time
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from domainscope.collectors.base import BaseCollector
from domainscope.core.config import Settings, get_settings
from domainscope.core.logging import bind_domain_context, clear_domain_context, get_logger
from domainscope.models.base import ArtifactKind, BaseSchema
from domainscope.policy.classifier import Classification, classify

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")


class StepResult(BaseSchema, Generic[TOutput]):
    """Either a value or a classified failure."""

    ok: bool
    value: TOutput | None = None
    error: Classification | None = None
    duration: float = 0.0


def step_key(domain: str, kind: ArtifactKind) -> str:
    """Stable identity of an acquisition target."""
    return f"{domain.strip().lower().rstrip('.')}:{kind.value}"


class Step(ABC, Generic[TInput, TOutput]):
    """A single attempt. Retrying is the runtime's job, never the step's."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Step name."""
        ...

    @abstractmethod
    def key(self, input: TInput) -> str:
        """Stable key identifying the work for ``input``."""
        ...

    @abstractmethod
    async def execute(self, input: TInput) -> StepResult[TOutput]:
        """Run once and report the outcome. Does not raise for failures."""
        ...


class AcquisitionStep(Step[str, Any]):
    """Runs one collector for one domain."""

    def __init__(self, collector: BaseCollector[Any], settings: Settings | None = None) -> None:
        self.collector = collector
        self.settings = settings or get_settings()
        self.logger = get_logger(f"step.{collector.name}")

    @property
    def name(self) -> str:
        return f"acquire_{self.collector.kind.value}"

    @property
    def kind(self) -> ArtifactKind:
        return self.collector.kind

    def key(self, input: str) -> str:
        return step_key(input, self.collector.kind)

    async def execute(self, input: str) -> StepResult[Any]:
        start_time = time.time()
        bind_domain_context(input, self.collector.kind.value)
        try:
            value = await self.collector.collect(input)
        except Exception as e:
            classification = classify(e, settings=self.settings)
            self.logger.warning(
                "step_failed",
                key=self.key(input),
                disposition=classification.disposition.value,
                reason=classification.reason,
                retry_after=classification.retry_after,
                error=str(e),
            )
            return StepResult(ok=False, error=classification, duration=time.time() - start_time)
        finally:
            clear_domain_context()

        duration = time.time() - start_time
        self.logger.debug("step_completed", key=self.key(input), duration=duration)
        return StepResult(ok=True, value=value, duration=duration)
