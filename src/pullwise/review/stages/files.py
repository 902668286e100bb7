"""Stages that collect the changed files and announce the review."""

import fnmatch
import logging
from dataclasses import replace

from pullwise.models.pull_request import FileChange, PullRequestStats
from pullwise.pipeline.base import BasePipelineStage
from pullwise.platforms.base import CodeManagementAdapter, PlatformError
from pullwise.review import messages
from pullwise.review.context import CodeReviewPipelineContext
from pullwise.review.patch import convert_to_hunks_with_line_numbers
from pullwise.templates.renderer import CommentRenderer

logger = logging.getLogger(__name__)

MAX_FILES_TO_ANALYZE = 500


def is_ignored(filename: str, ignore_paths: list[str]) -> bool:
    """Return True if a file matches any ignore glob."""
    return any(fnmatch.fnmatch(filename, pattern) for pattern in ignore_paths)


class FetchChangedFilesStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Fetches the files to review and annotates their patches."""

    stage_name = "FetchChangedFilesStage"

    def __init__(self, platform: CodeManagementAdapter, max_files: int = MAX_FILES_TO_ANALYZE) -> None:
        self.platform = platform
        self.max_files = max_files

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        config = context.code_review_config
        if config is None:
            logger.error("No config found in context for PR#%d", context.pull_request.number)
            return self.skip(context, messages.NO_CONFIG_IN_CONTEXT)

        since = context.last_execution.last_analyzed_commit if context.last_execution else None
        files = [
            f
            for f in self.platform.get_files_by_pull_request(
                context.repository, context.pull_request, since_commit=since
            )
            if not is_ignored(f.filename, config.ignore_paths)
        ]

        if not files or len(files) > self.max_files:
            message = messages.NO_FILES_AFTER_IGNORE if not files else messages.TOO_MANY_FILES
            logger.warning(
                "Skipping code review for PR#%d - %s (%d files)",
                context.pull_request.number,
                message,
                len(files),
            )
            return self.skip(context, message)

        logger.info("Found %d files to analyze for PR#%d", len(files), context.pull_request.number)

        annotated = [self._with_line_numbers(f) for f in files]

        def _apply(draft: CodeReviewPipelineContext) -> None:
            draft.changed_files = annotated
            draft.pr_stats = PullRequestStats.from_files(annotated)

        return self.update_context(context, _apply)

    @staticmethod
    def _with_line_numbers(file: FileChange) -> FileChange:
        return replace(file, patch_with_lines_str=convert_to_hunks_with_line_numbers(file))


class InitialCommentStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Hides the previous review comment and posts the "review started" comment."""

    stage_name = "InitialCommentStage"

    def __init__(self, platform: CodeManagementAdapter, renderer: CommentRenderer | None = None) -> None:
        self.platform = platform
        self.renderer = renderer or CommentRenderer()

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        previous = context.last_execution.comment_id if context.last_execution else None
        if previous:
            try:
                if self.platform.minimize_comment(context.repository, context.pull_request, previous):
                    logger.info("Minimized previous review comment on PR#%d", context.pull_request.number)
            except PlatformError as e:
                logger.warning(
                    "Failed to minimize previous review comment for PR#%d, continuing: %s",
                    context.pull_request.number,
                    e,
                )

        if not context.code_review_config.start_review_message:
            logger.info("Start review message disabled for PR#%d", context.pull_request.number)
            return context

        initial = self.platform.create_issue_comment(
            context.repository,
            context.pull_request,
            self.renderer.render_initial_comment(context.pull_request, context.changed_files),
        )

        def _apply(draft: CodeReviewPipelineContext) -> None:
            draft.initial_comment = initial

        return self.update_context(context, _apply)
