"""Stage pipeline framework.

- base: context, status and stage abstractions
- executor: sequential runner with per-stage error isolation
"""

from pullwise.pipeline.base import (
    AutomationStatus,
    BasePipelineStage,
    PipelineContext,
    PipelineError,
    PipelineMetadata,
    PipelineStrategy,
    StatusInfo,
)
from pullwise.pipeline.executor import PipelineExecutor

__all__ = [
    "AutomationStatus",
    "BasePipelineStage",
    "PipelineContext",
    "PipelineError",
    "PipelineExecutor",
    "PipelineMetadata",
    "PipelineStrategy",
    "StatusInfo",
]
