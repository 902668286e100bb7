"""Stages that publish the review: line comments, finished comment, PR summary."""

import logging
from dataclasses import replace

from pullwise.llm.client import LLMError
from pullwise.models.review_config import (
    BehaviourForExistingDescription,
    BehaviourForNewCommits,
)
from pullwise.models.suggestion import CodeSuggestion, CommentResult, DeliveryStatus, LineComment
from pullwise.pipeline.base import BasePipelineStage
from pullwise.platforms.base import CodeManagementAdapter, PlatformError
from pullwise.review.analyzer import FileReviewAnalyzer
from pullwise.review.context import CodeReviewPipelineContext
from pullwise.review.suggestions import comment_line_range, prioritize_suggestions
from pullwise.templates.renderer import CommentRenderer

logger = logging.getLogger(__name__)


class CreateFileCommentsStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Prioritizes the valid suggestions and posts them as line comments."""

    stage_name = "CreateFileCommentsStage"

    def __init__(self, platform: CodeManagementAdapter, renderer: CommentRenderer | None = None) -> None:
        self.platform = platform
        self.renderer = renderer or CommentRenderer()

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        last_commit = context.pull_request.last_commit_sha

        if not context.valid_suggestions:
            logger.info(
                "No file-level suggestions to comment on PR#%d (%d discarded)",
                context.pull_request.number,
                len(context.discarded_suggestions),
            )

            def _none(draft: CodeReviewPipelineContext) -> None:
                draft.line_comments = []
                draft.last_analyzed_commit = last_commit

            return self.update_context(context, _none)

        prioritized, discarded = prioritize_suggestions(
            context.valid_suggestions,
            context.code_review_config.suggestion_control,
        )
        results = [self._post(context, suggestion) for suggestion in prioritized]
        sent = sum(1 for r in results if r.delivery_status == DeliveryStatus.SENT)
        logger.info(
            "Posted %d of %d line comments on PR#%d",
            sent,
            len(results),
            context.pull_request.number,
        )

        def _apply(draft: CodeReviewPipelineContext) -> None:
            draft.valid_suggestions = [r.comment.suggestion for r in results if r.comment.suggestion]
            draft.discarded_suggestions = draft.discarded_suggestions + discarded
            draft.line_comments = results
            draft.last_analyzed_commit = last_commit

        return self.update_context(context, _apply)

    def _post(self, context: CodeReviewPipelineContext, suggestion: CodeSuggestion) -> CommentResult:
        start_line, line = comment_line_range(suggestion)
        comment = LineComment(
            path=suggestion.relevant_file,
            body=self.renderer.render_line_comment(suggestion, context.repository.language),
            line=line if line is not None else 1,
            start_line=start_line,
        )
        try:
            comment_id = self.platform.create_review_comment(context.repository, context.pull_request, comment)
        except PlatformError as e:
            logger.error("Failed to comment on %s:%d: %s", comment.path, comment.line, e)
            comment.suggestion = replace(suggestion, delivery_status=DeliveryStatus.FAILED)
            return CommentResult(comment=comment, delivery_status=DeliveryStatus.FAILED)

        comment.suggestion = replace(suggestion, delivery_status=DeliveryStatus.SENT)
        return CommentResult(comment=comment, delivery_status=DeliveryStatus.SENT, comment_id=comment_id)


class UpdateCommentsAndGenerateSummaryStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Marks the initial comment as finished and writes the PR summary."""

    stage_name = "UpdateCommentsAndGenerateSummaryStage"

    def __init__(
        self,
        platform: CodeManagementAdapter,
        analyzer: FileReviewAnalyzer,
        renderer: CommentRenderer | None = None,
    ) -> None:
        self.platform = platform
        self.analyzer = analyzer
        self.renderer = renderer or CommentRenderer()

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        if context.initial_comment is not None:
            self._finish_initial_comment(context)

        summary_config = context.code_review_config.summary
        if not summary_config.generate_pr_summary:
            return context
        if (
            context.is_new_commit_review
            and summary_config.behaviour_for_new_commits == BehaviourForNewCommits.NONE
        ):
            logger.info("Keeping PR#%d summary for new commits", context.pull_request.number)
            return context

        try:
            summary = self.analyzer.generate_pr_summary(
                context.pull_request,
                context.changed_files,
                summary_config.custom_instructions,
            )
            self.platform.update_description(
                context.repository,
                context.pull_request,
                self.compose_description(context, summary),
            )
        except (LLMError, PlatformError) as e:
            logger.warning("Failed to update summary of PR#%d: %s", context.pull_request.number, e)
            return context

        def _apply(draft: CodeReviewPipelineContext) -> None:
            draft.pr_summary = summary

        return self.update_context(context, _apply)

    def _finish_initial_comment(self, context: CodeReviewPipelineContext) -> None:
        body = self.renderer.render_finished_comment(
            context.pull_request,
            context.changed_files,
            context.line_comments,
            context.overall_comments,
            discarded_count=len(context.discarded_suggestions),
        )
        try:
            self.platform.update_issue_comment(
                context.repository,
                context.pull_request,
                context.initial_comment.comment_id,
                body,
            )
        except PlatformError as e:
            logger.warning("Failed to update initial comment of PR#%d: %s", context.pull_request.number, e)

    @staticmethod
    def compose_description(context: CodeReviewPipelineContext, summary: str) -> str:
        """Combine the existing description with a generated summary.

        Re-reviews follow ``behaviour_for_new_commits``; first reviews follow
        ``behaviour_for_existing_description``. The complement behaviour
        already fed the existing description to the model, so its output
        replaces the description.
        """
        existing = context.pull_request.body.strip()
        summary_config = context.code_review_config.summary

        if context.is_new_commit_review:
            append = summary_config.behaviour_for_new_commits == BehaviourForNewCommits.CONCATENATE
        else:
            append = (
                summary_config.behaviour_for_existing_description
                == BehaviourForExistingDescription.CONCATENATE
            )

        if append and existing:
            return f"{existing}\n\n---\n\n{summary}"
        return summary
