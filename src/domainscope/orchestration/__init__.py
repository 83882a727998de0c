"""Acquisition steps and stale-while-revalidate reads."""

from domainscope.orchestration.revalidation import (
    ArtifactService,
    ArtifactView,
    InProcessScheduler,
)
from domainscope.orchestration.steps import AcquisitionStep, Step, StepResult, step_key

__all__ = [
    "AcquisitionStep",
    "ArtifactService",
    "ArtifactView",
    "InProcessScheduler",
    "Step",
    "StepResult",
    "step_key",
]
