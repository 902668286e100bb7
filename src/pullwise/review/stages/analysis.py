"""File review stages: batched concurrent analysis and aggregation."""

import logging
import math
from concurrent.futures import ThreadPoolExecutor

from pullwise.config import PipelineConfig
from pullwise.models.pull_request import FileChange
from pullwise.models.suggestion import FileAnalysisResult
from pullwise.pipeline.base import BasePipelineStage
from pullwise.review.analyzer import FileReviewAnalyzer
from pullwise.review.context import CodeReviewPipelineContext

logger = logging.getLogger(__name__)


def create_batches(files: list[FileChange], min_size: int, max_size: int) -> list[list[FileChange]]:
    """Split files into evenly sized batches.

    All files go in one batch when they fit in ``max_size``. Otherwise the
    smallest number of batches is used, each holding at least ``min_size``
    files except possibly the last.

    Args:
        files: Files to batch
        min_size: Minimum batch size
        max_size: Maximum batch size

    Returns:
        Batches in file order
    """
    if not files:
        return []
    if len(files) <= max_size:
        return [list(files)]
    count = math.ceil(len(files) / max_size)
    size = max(min_size, math.ceil(len(files) / count))
    return [files[i : i + size] for i in range(0, len(files), size)]


class ProcessFilesReviewStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Reviews every changed file with the LLM analyzer.

    Files of a batch are reviewed concurrently; batches run one after the
    other. A file whose review fails contributes an empty result.
    """

    stage_name = "ProcessFilesReviewStage"

    def __init__(self, analyzer: FileReviewAnalyzer, pipeline_config: PipelineConfig | None = None) -> None:
        self.analyzer = analyzer
        self.pipeline_config = pipeline_config or PipelineConfig()

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        if not context.changed_files:
            logger.warning("No files to review for PR#%d", context.pull_request.number)
            return context

        batches = create_batches(
            context.changed_files,
            self.pipeline_config.min_batch_size,
            self.pipeline_config.max_batch_size,
        )
        logger.info(
            "Reviewing %d files of PR#%d in %d batches",
            len(context.changed_files),
            context.pull_request.number,
            len(batches),
        )

        results: list[FileAnalysisResult] = []
        for index, batch in enumerate(batches, start=1):
            results.extend(self._review_batch(context, batch))
            logger.debug("Batch %d/%d done", index, len(batches))

        def _apply(draft: CodeReviewPipelineContext) -> None:
            draft.batches = batches
            draft.file_analysis_results = results

        return self.update_context(context, _apply)

    def _review_batch(
        self,
        context: CodeReviewPipelineContext,
        batch: list[FileChange],
    ) -> list[FileAnalysisResult]:
        workers = min(self.pipeline_config.max_concurrency, len(batch))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.analyzer.analyze_file, file, context.pull_request, context.code_review_config)
                for file in batch
            ]
            results = []
            for file, future in zip(batch, futures, strict=True):
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error("Error reviewing %s: %s", file.filename, e)
                    results.append(FileAnalysisResult.empty(file.filename))
        return results


class AggregateResultsStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Flattens per-file results into PR-wide suggestion lists."""

    stage_name = "AggregateResultsStage"

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        def _apply(draft: CodeReviewPipelineContext) -> None:
            for result in draft.file_analysis_results:
                draft.valid_suggestions.extend(result.valid_suggestions)
                draft.discarded_suggestions.extend(result.discarded_suggestions)
                if result.overall_comment:
                    draft.overall_comments.append(result.overall_comment)

        updated = self.update_context(context, _apply)
        logger.info(
            "Aggregated %d valid and %d discarded suggestions for PR#%d",
            len(updated.valid_suggestions),
            len(updated.discarded_suggestions),
            context.pull_request.number,
        )
        return updated
