"""Pipeline building blocks.

A pipeline is an ordered list of stages sharing one context object. Each
stage receives the context and returns a new one; the input context is never
mutated, so a failing stage leaves the previous state intact.
"""

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from pullwise.pipeline.executor import PipelineExecutor

logger = logging.getLogger(__name__)


class AutomationStatus(Enum):
    """Status of an automated pipeline run."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class StatusInfo:
    """Current status of a pipeline context.

    Attributes:
        status: Automation status
        message: Reason for the status (see review.messages)
    """

    status: AutomationStatus = AutomationStatus.IN_PROGRESS
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"status": self.status.value, "message": self.message}


@dataclass
class PipelineMetadata:
    """Identity of a pipeline run.

    Sub-pipelines point at their parent and share the root id of the
    top-level run.
    """

    pipeline_id: str | None = None
    parent_pipeline_id: str | None = None
    root_pipeline_id: str | None = None
    pipeline_name: str | None = None


@dataclass
class PipelineError:
    """Error captured while a stage or sub-pipeline was running.

    Attributes:
        pipeline_id: Pipeline in which the error happened
        stage: Stage name
        substage: Sub-pipeline or inner step name, if any
        error: Error description
    """

    pipeline_id: str | None
    stage: str
    error: str
    substage: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "pipeline_id": self.pipeline_id,
            "stage": self.stage,
            "substage": self.substage,
            "error": self.error,
        }


@dataclass
class PipelineContext:
    """Base context shared by all pipelines.

    Attributes:
        status_info: Current status, a skipped status stops the pipeline
        pipeline_metadata: Identity of the current run
        errors: Errors captured by stages and sub-pipelines
    """

    status_info: StatusInfo = field(default_factory=StatusInfo)
    pipeline_metadata: PipelineMetadata = field(default_factory=PipelineMetadata)
    errors: list[PipelineError] = field(default_factory=list)

    @property
    def is_skipped(self) -> bool:
        """Return True if a stage marked this run as skipped."""
        return self.status_info.status == AutomationStatus.SKIPPED


TContext = TypeVar("TContext", bound=PipelineContext)


class BasePipelineStage(ABC, Generic[TContext]):
    """Abstract pipeline stage.

    Subclasses implement ``_execute_stage`` and build their result through
    ``update_context`` so that earlier contexts stay untouched.

    Type Parameters:
        TContext: The pipeline context type the stage operates on
    """

    stage_name: str = "BaseStage"

    def execute(self, context: TContext) -> TContext:
        """Run the stage.

        Args:
            context: Context produced by the previous stage

        Returns:
            Updated context
        """
        return self._execute_stage(context)

    @abstractmethod
    def _execute_stage(self, context: TContext) -> TContext:
        """Stage body."""

    def update_context(self, context: TContext, updater: Callable[[TContext], None]) -> TContext:
        """Apply an in-place updater to a copy of the context.

        Args:
            context: Current context, left untouched
            updater: Callable mutating the draft copy

        Returns:
            The updated copy
        """
        draft = copy.deepcopy(context)
        updater(draft)
        return draft

    def skip(self, context: TContext, message: str) -> TContext:
        """Return a copy of the context marked as skipped."""

        def _mark(draft: TContext) -> None:
            draft.status_info = StatusInfo(status=AutomationStatus.SKIPPED, message=message)

        return self.update_context(context, _mark)

    def execute_sub_pipeline(
        self,
        sub_context: TContext,
        stages: Sequence["BasePipelineStage[TContext]"],
        pipeline_name: str,
        executor: "PipelineExecutor[TContext]",
    ) -> TContext:
        """Run a nested pipeline linked to the current one.

        Args:
            sub_context: Context for the nested run
            stages: Stages of the nested pipeline
            pipeline_name: Name of the nested pipeline
            executor: Executor used to run it

        Returns:
            Context returned by the nested pipeline

        Raises:
            Exception: Re-raises the nested failure after recording it
        """
        metadata = sub_context.pipeline_metadata
        try:
            return executor.execute(
                sub_context,
                stages,
                pipeline_name=pipeline_name,
                parent_pipeline_id=metadata.pipeline_id,
                root_pipeline_id=metadata.root_pipeline_id,
            )
        except Exception as e:
            logger.error(
                "Sub-pipeline '%s' failed in stage '%s': %s",
                pipeline_name,
                self.stage_name,
                e,
            )
            sub_context.errors.append(
                PipelineError(
                    pipeline_id=metadata.pipeline_id,
                    stage=self.stage_name,
                    substage=pipeline_name,
                    error=str(e),
                )
            )
            raise


class PipelineStrategy(ABC, Generic[TContext]):
    """Provides the ordered stages and name of a pipeline."""

    @abstractmethod
    def configure_stages(self) -> list[BasePipelineStage[TContext]]:
        """Return the stages in execution order."""

    @abstractmethod
    def get_pipeline_name(self) -> str:
        """Return the pipeline name used in logs and metadata."""
