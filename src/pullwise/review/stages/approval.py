"""Final stage: request changes or approve."""

import logging

from pullwise.models.pull_request import PullRequestReviewStatus
from pullwise.models.review_config import SeverityLevel
from pullwise.pipeline.base import BasePipelineStage
from pullwise.platforms.base import CodeManagementAdapter, PlatformError
from pullwise.review.context import CodeReviewPipelineContext
from pullwise.review.suggestions import has_critical

logger = logging.getLogger(__name__)


class RequestChangesOrApproveStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Requests changes on critical comments, approves clean pull requests."""

    stage_name = "RequestChangesOrApproveStage"

    def __init__(self, platform: CodeManagementAdapter) -> None:
        self.platform = platform

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        config = context.code_review_config
        commented = [c.comment.suggestion for c in context.line_comments if c.comment.suggestion]

        if config.is_request_changes_active and has_critical(commented):
            critical = sum(1 for s in commented if s.severity == SeverityLevel.CRITICAL)
            logger.info(
                "Requesting changes for PR#%d due to %d critical comments",
                context.pull_request.number,
                critical,
            )
            try:
                self.platform.request_changes(
                    context.repository,
                    context.pull_request,
                    f"Found {critical} critical issue{'' if critical == 1 else 's'} that should be fixed before merging.",
                )
            except PlatformError as e:
                logger.error("Error requesting changes for PR#%d: %s", context.pull_request.number, e)

        if config.pull_request_approval_active and not context.line_comments:
            self._approve(context)

        logger.info(
            "Finished processing PR#%d with %d line comments",
            context.pull_request.number,
            len(context.line_comments),
        )
        return context

    def _approve(self, context: CodeReviewPipelineContext) -> None:
        try:
            status = self.platform.get_review_status(context.repository, context.pull_request)
            if status in (PullRequestReviewStatus.APPROVED, PullRequestReviewStatus.CHANGES_REQUESTED):
                logger.info("PR#%d already %s, not approving", context.pull_request.number, status.value)
                return
            self.platform.approve(context.repository, context.pull_request)
            logger.info("Approved PR#%d", context.pull_request.number)
        except PlatformError as e:
            logger.error("Error approving PR#%d: %s", context.pull_request.number, e)
