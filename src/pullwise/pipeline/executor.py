"""Sequential pipeline executor."""

import logging
import time
import uuid
from collections.abc import Sequence
from dataclasses import replace
from typing import Generic

from pullwise.pipeline.base import BasePipelineStage, PipelineError, TContext

logger = logging.getLogger(__name__)


class PipelineExecutor(Generic[TContext]):
    """Runs stages one after another over a shared context.

    A stage that raises is logged and recorded in ``context.errors``; the
    pipeline then continues from the context as it was before that stage.
    A stage that marks the context as skipped stops the run, and so does
    running past the optional timeout. The timeout is checked between stages.
    """

    def execute(
        self,
        context: TContext,
        stages: Sequence[BasePipelineStage[TContext]],
        pipeline_name: str = "UnnamedPipeline",
        parent_pipeline_id: str | None = None,
        root_pipeline_id: str | None = None,
        timeout: float | None = None,
    ) -> TContext:
        """Execute a pipeline.

        Args:
            context: Initial context
            stages: Stages in execution order
            pipeline_name: Name used in logs and metadata
            parent_pipeline_id: Id of the calling pipeline, for sub-pipelines
            root_pipeline_id: Id of the top-level pipeline
            timeout: Seconds the whole run may take (None for no limit)

        Returns:
            Final context
        """
        pipeline_id = str(uuid.uuid4())
        context.pipeline_metadata = replace(
            context.pipeline_metadata,
            pipeline_id=pipeline_id,
            parent_pipeline_id=parent_pipeline_id,
            root_pipeline_id=root_pipeline_id or pipeline_id,
            pipeline_name=pipeline_name,
        )

        logger.info("Starting pipeline '%s' (%s)", pipeline_name, pipeline_id)

        run_started = time.perf_counter()
        for stage in stages:
            if context.is_skipped:
                logger.info(
                    "Pipeline '%s' skipped before stage '%s': %s",
                    pipeline_name,
                    stage.stage_name,
                    context.status_info.message,
                )
                break

            started = time.perf_counter()
            if timeout is not None and started - run_started > timeout:
                logger.error(
                    "Pipeline '%s' timed out after %ss before stage '%s'",
                    pipeline_name,
                    timeout,
                    stage.stage_name,
                )
                context.errors.append(
                    PipelineError(
                        pipeline_id=pipeline_id,
                        stage=stage.stage_name,
                        error=f"Pipeline timed out after {timeout}s",
                    )
                )
                break

            try:
                context = stage.execute(context)
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.debug("Stage '%s' completed in %dms", stage.stage_name, elapsed_ms)
            except Exception as e:
                logger.error(
                    "Error in stage '%s' of pipeline '%s': %s",
                    stage.stage_name,
                    pipeline_name,
                    e,
                )
                context.errors.append(
                    PipelineError(
                        pipeline_id=pipeline_id,
                        stage=stage.stage_name,
                        error=str(e),
                    )
                )
                logger.warning(
                    "Pipeline '%s' continuing despite error in stage '%s'",
                    pipeline_name,
                    stage.stage_name,
                )

        logger.info("Finished pipeline '%s' (%s)", pipeline_name, pipeline_id)
        return context
