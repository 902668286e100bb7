"""Entry point for pull request events.

Turns a platform event into a pipeline context, runs the code review
pipeline and records the execution.
"""

import logging
from typing import Any

from pullwise.config import PullwiseConfig
from pullwise.llm.client import LLMClient
from pullwise.models.pull_request import PullRequest, Repository
from pullwise.pipeline.base import AutomationStatus, StatusInfo
from pullwise.pipeline.executor import PipelineExecutor
from pullwise.platforms.base import CodeManagementAdapter
from pullwise.review.analyzer import FileReviewAnalyzer
from pullwise.review.context import CodeReviewPipelineContext, LastExecution, ReviewOrigin
from pullwise.review.strategy import CodeReviewPipelineStrategy
from pullwise.store.executions import ExecutionRecord, ExecutionStore
from pullwise.templates.renderer import CommentRenderer

logger = logging.getLogger(__name__)

# Pull request actions that start a review
TRIGGER_ACTIONS = frozenset({"opened", "synchronize", "reopened", "ready_for_review"})


class CodeReviewHandler:
    """Runs the code review pipeline for pull request events.

    Usage:
        handler = CodeReviewHandler(config, platform, llm, store)
        context = handler.handle(event)
    """

    def __init__(
        self,
        config: PullwiseConfig,
        platform: CodeManagementAdapter,
        llm: LLMClient,
        store: ExecutionStore,
        renderer: CommentRenderer | None = None,
    ) -> None:
        self.config = config
        self.platform = platform
        self.store = store
        self.strategy = CodeReviewPipelineStrategy(
            config,
            platform,
            FileReviewAnalyzer(llm),
            store,
            renderer,
        )
        self.executor: PipelineExecutor[CodeReviewPipelineContext] = PipelineExecutor()

    @staticmethod
    def should_handle(event: dict[str, Any]) -> bool:
        """Return True if the event starts a review."""
        if event.get("origin") == ReviewOrigin.COMMAND.value:
            return True
        return event.get("action", "opened") in TRIGGER_ACTIONS

    def build_context(self, event: dict[str, Any]) -> CodeReviewPipelineContext:
        """Create the initial pipeline context for an event.

        Args:
            event: Pull request event

        Returns:
            Initial context

        Raises:
            ValueError: If the event lacks a repository or pull request
        """
        if not event.get("repository") or not event.get("pull_request"):
            raise ValueError("Event must contain 'repository' and 'pull_request'")

        try:
            repository = Repository.from_dict({"platform": self.platform.name, **event["repository"]})
            pull_request = PullRequest.from_dict(event["pull_request"])
        except KeyError as e:
            raise ValueError(f"Event is missing field {e}") from e

        team_automation_id = str(event.get("team_automation_id", "default"))
        previous = self.store.find_latest(
            team_automation_id,
            pull_request.number,
            repository.id,
            status=AutomationStatus.SUCCESS,
        )

        return CodeReviewPipelineContext(
            status_info=StatusInfo(status=AutomationStatus.IN_PROGRESS),
            organization_id=str(event.get("organization_id", "local")),
            repository=repository,
            pull_request=pull_request,
            origin=ReviewOrigin(event.get("origin", ReviewOrigin.WEBHOOK.value)),
            action=str(event.get("action", "opened")),
            platform=self.platform.name,
            team_automation_id=team_automation_id,
            last_execution=LastExecution(
                last_analyzed_commit=previous.last_analyzed_commit,
                comment_id=previous.comment_id,
            )
            if previous
            else None,
        )

    def handle(self, event: dict[str, Any]) -> CodeReviewPipelineContext | None:
        """Review the pull request of an event.

        Args:
            event: Pull request event

        Returns:
            Final pipeline context, or None if the event does not start a review

        Raises:
            ValueError: If the event is malformed
        """
        if not self.should_handle(event):
            logger.info("Ignoring pull request action '%s'", event.get("action"))
            return None

        context = self.build_context(event)
        logger.info(
            "Reviewing PR#%d of %s (%s, %s)",
            context.pull_request.number,
            context.repository.name,
            context.origin.value,
            context.action,
        )

        context = self.executor.execute(
            context,
            self.strategy.configure_stages(),
            pipeline_name=self.strategy.get_pipeline_name(),
            timeout=self.config.ci.timeout or None,
        )

        if not context.is_skipped:
            if context.errors:
                context.status_info = StatusInfo(
                    status=AutomationStatus.ERROR,
                    message=f"{len(context.errors)} stage(s) failed",
                )
            else:
                context.status_info = StatusInfo(status=AutomationStatus.SUCCESS)

        self._record(context)
        return context

    def _record(self, context: CodeReviewPipelineContext) -> None:
        status = context.automatic_review_status
        record = ExecutionRecord(
            team_automation_id=context.team_automation_id,
            repository_id=context.repository.id,
            pull_request_number=context.pull_request.number,
            status=context.status_info.status,
            message=context.status_info.message,
            automatic_review_status=status.current_status if status else None,
            previous_review_status=status.previous_status if status else None,
            last_analyzed_commit=context.last_analyzed_commit,
            comment_id=context.initial_comment.comment_id if context.initial_comment else None,
            origin=context.origin.value,
        )
        try:
            self.store.save(record)
        except OSError as e:
            logger.error("Failed to record execution of PR#%d: %s", context.pull_request.number, e)
