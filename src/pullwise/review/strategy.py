"""Stage composition of the code review pipeline."""

from pullwise.config import PullwiseConfig
from pullwise.pipeline.base import BasePipelineStage, PipelineStrategy
from pullwise.platforms.base import CodeManagementAdapter
from pullwise.review.analyzer import FileReviewAnalyzer
from pullwise.review.config_resolver import ReviewConfigResolver
from pullwise.review.context import CodeReviewPipelineContext
from pullwise.review.stages import (
    AggregateResultsStage,
    CreateFileCommentsStage,
    FetchChangedFilesStage,
    InitialCommentStage,
    ProcessFilesReviewStage,
    RequestChangesOrApproveStage,
    ResolveConfigStage,
    UpdateCommentsAndGenerateSummaryStage,
    ValidateConfigStage,
)
from pullwise.store.executions import ExecutionStore
from pullwise.templates.renderer import CommentRenderer


class CodeReviewPipelineStrategy(PipelineStrategy[CodeReviewPipelineContext]):
    """Builds the stages of a file-level code review."""

    def __init__(
        self,
        config: PullwiseConfig,
        platform: CodeManagementAdapter,
        analyzer: FileReviewAnalyzer,
        store: ExecutionStore,
        renderer: CommentRenderer | None = None,
    ) -> None:
        self.config = config
        self.platform = platform
        self.analyzer = analyzer
        self.store = store
        self.renderer = renderer or CommentRenderer()

    def configure_stages(self) -> list[BasePipelineStage[CodeReviewPipelineContext]]:
        """Stages in execution order."""
        return [
            ResolveConfigStage(self.platform, ReviewConfigResolver(self.config)),
            ValidateConfigStage(self.platform, self.store, self.renderer),
            FetchChangedFilesStage(self.platform, max_files=self.config.pipeline.max_files),
            InitialCommentStage(self.platform, self.renderer),
            ProcessFilesReviewStage(self.analyzer, self.config.pipeline),
            AggregateResultsStage(),
            CreateFileCommentsStage(self.platform, self.renderer),
            UpdateCommentsAndGenerateSummaryStage(self.platform, self.analyzer, self.renderer),
            RequestChangesOrApproveStage(self.platform),
        ]

    def get_pipeline_name(self) -> str:
        """Pipeline name used in logs and metadata."""
        return "CodeReviewPipeline"
