"""Configuration stages: resolve the review config, then decide whether to review."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pullwise.branches import merge_base_branches, process_expression, should_review_branches
from pullwise.models.review_config import CodeReviewConfig, ReviewCadenceState, ReviewCadenceType
from pullwise.pipeline.base import AutomationStatus, BasePipelineStage, StatusInfo
from pullwise.platforms.base import CodeManagementAdapter, PlatformError
from pullwise.review import messages
from pullwise.review.config_resolver import ReviewConfigResolver
from pullwise.review.context import AutomaticReviewStatus, CodeReviewPipelineContext
from pullwise.store.executions import ExecutionStore
from pullwise.templates.renderer import CommentRenderer

logger = logging.getLogger(__name__)


# =============================================================================
# Resolve
# =============================================================================


class ResolveConfigStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Resolves the review configuration of the pull request.

    When the repository has directory overrides, the changed files are
    fetched first to find the directory the PR touches.
    """

    stage_name = "ResolveConfigStage"

    def __init__(self, platform: CodeManagementAdapter, resolver: ReviewConfigResolver) -> None:
        self.platform = platform
        self.resolver = resolver

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        try:
            if not self.resolver.directory_configs(context.repository):
                logger.debug("No directory configs for %s", context.repository.name)
                return self._with_config(context, self.resolver.repository_config(context.repository))

            since = context.last_execution.last_analyzed_commit if context.last_execution else None
            files = self.platform.get_files_by_pull_request(
                context.repository, context.pull_request, since_commit=since
            )
            if not files:
                logger.warning(
                    "No files found in PR#%d of %s",
                    context.pull_request.number,
                    context.repository.name,
                )
                return self.skip(context, messages.NO_FILES_IN_PR)

            return self._with_config(context, self.resolver.resolve(context.repository, files))

        except (ValueError, TypeError, PlatformError) as e:
            logger.error("Error resolving config for PR#%d: %s", context.pull_request.number, e)
            try:
                return self._with_config(context, self.resolver.repository_config(context.repository))
            except (ValueError, TypeError) as fallback_error:
                logger.error(
                    "Fallback config also failed for PR#%d: %s",
                    context.pull_request.number,
                    fallback_error,
                )
                return self.skip(context, messages.FAILED_RESOLVE_CONFIG)

    def _with_config(
        self,
        context: CodeReviewPipelineContext,
        config: CodeReviewConfig,
    ) -> CodeReviewPipelineContext:
        def _apply(draft: CodeReviewPipelineContext) -> None:
            draft.code_review_config = config

        return self.update_context(context, _apply)


# =============================================================================
# Validate
# =============================================================================


@dataclass
class CadenceDecision:
    """Outcome of the cadence evaluation.

    Attributes:
        should_process: Whether the review continues
        reason: Status message explaining the decision
        automatic_review_status: Cadence transition to record
        save_when_skipped: Record the transition even though the review stops
    """

    should_process: bool
    reason: str
    automatic_review_status: AutomaticReviewStatus | None = None
    save_when_skipped: bool = False


def _unchanged(state: ReviewCadenceState = ReviewCadenceState.AUTOMATIC) -> AutomaticReviewStatus:
    return AutomaticReviewStatus(previous_status=state, current_status=state)


def passes_basic_rules(context: CodeReviewPipelineContext) -> bool:
    """Check automation, title, draft and branch rules.

    Commands always pass.

    Args:
        context: Context with a resolved config

    Returns:
        True if the pull request may be reviewed
    """
    if context.is_command:
        return True

    config = context.code_review_config
    pull_request = context.pull_request

    if not config.automated_review_active:
        return False

    title = pull_request.title.lower()
    if any(keyword.lower() in title for keyword in config.ignored_titles if keyword):
        return False

    if pull_request.is_draft and not config.run_on_draft:
        return False

    merged = merge_base_branches(
        config.base_branches or [],
        context.repository.default_branch or pull_request.target_branch,
    )
    expression = ", ".join(merged)
    result = should_review_branches(
        pull_request.source_branch,
        pull_request.target_branch,
        process_expression(expression),
    )
    logger.info(
        "Branch review validation: %s -> %s with '%s': %s",
        pull_request.source_branch,
        pull_request.target_branch,
        expression,
        "REVIEW" if result else "NO_REVIEW",
    )
    return result


class ValidateConfigStage(BasePipelineStage[CodeReviewPipelineContext]):
    """Applies the basic review rules and the review cadence."""

    stage_name = "ValidateConfigStage"

    def __init__(
        self,
        platform: CodeManagementAdapter,
        store: ExecutionStore,
        renderer: CommentRenderer | None = None,
    ) -> None:
        self.platform = platform
        self.store = store
        self.renderer = renderer or CommentRenderer()

    def _execute_stage(self, context: CodeReviewPipelineContext) -> CodeReviewPipelineContext:
        if context.code_review_config is None:
            logger.error("No config found in context for PR#%d", context.pull_request.number)
            return self.skip(context, messages.NO_CONFIG_IN_CONTEXT)

        try:
            decision = self.evaluate_cadence(context)
        except Exception as e:
            logger.error("Error validating config for PR#%d: %s", context.pull_request.number, e)
            return self.skip(context, messages.CONFIG_VALIDATION_ERROR)

        if not decision.should_process:
            logger.warning("Skipping PR#%d: %s", context.pull_request.number, decision.reason)

            def _skip(draft: CodeReviewPipelineContext) -> None:
                draft.status_info = StatusInfo(status=AutomationStatus.SKIPPED, message=decision.reason)
                if decision.save_when_skipped:
                    draft.automatic_review_status = decision.automatic_review_status

            return self.update_context(context, _skip)

        logger.info("PR#%d: %s", context.pull_request.number, decision.reason)

        def _apply(draft: CodeReviewPipelineContext) -> None:
            draft.automatic_review_status = decision.automatic_review_status

        return self.update_context(context, _apply)

    def evaluate_cadence(self, context: CodeReviewPipelineContext) -> CadenceDecision:
        """Decide whether this run reviews the pull request.

        Args:
            context: Context with a resolved config

        Returns:
            CadenceDecision
        """
        if not passes_basic_rules(context):
            return CadenceDecision(should_process=False, reason=messages.SKIPPED_BY_BASIC_RULES)

        if context.is_command:
            return CadenceDecision(
                should_process=True,
                reason=messages.PROCESSING_MANUAL,
                automatic_review_status=AutomaticReviewStatus(
                    previous_status=self._current_state(context),
                    current_status=ReviewCadenceState.COMMAND,
                    reason_for_change="Review triggered by start-review command",
                ),
            )

        cadence = context.code_review_config.review_cadence
        if cadence.type == ReviewCadenceType.MANUAL:
            return self._manual(context)
        if cadence.type == ReviewCadenceType.AUTO_PAUSE:
            return self._auto_pause(context)
        return CadenceDecision(
            should_process=True,
            reason=messages.PROCESSING_AUTOMATIC,
            automatic_review_status=_unchanged(),
        )

    def _manual(self, context: CodeReviewPipelineContext) -> CadenceDecision:
        if not self._has_successful_review(context):
            return CadenceDecision(
                should_process=True,
                reason=messages.FIRST_REVIEW_MANUAL,
                automatic_review_status=_unchanged(),
            )
        return CadenceDecision(
            should_process=False,
            reason=messages.MANUAL_REQUIRED_TO_START,
            automatic_review_status=AutomaticReviewStatus(
                previous_status=self._current_state(context),
                current_status=ReviewCadenceState.PAUSED,
            ),
            save_when_skipped=True,
        )

    def _auto_pause(self, context: CodeReviewPipelineContext) -> CadenceDecision:
        if not self._has_successful_review(context):
            return CadenceDecision(
                should_process=True,
                reason=messages.FIRST_REVIEW_AUTO_PAUSE,
                automatic_review_status=_unchanged(),
            )

        if self._current_state(context) == ReviewCadenceState.PAUSED:
            return CadenceDecision(
                should_process=False,
                reason=messages.PR_PAUSED_NEED_RESUME,
                automatic_review_status=_unchanged(ReviewCadenceState.PAUSED),
                save_when_skipped=True,
            )

        if self._is_burst(context):
            pause_comment_id = self._post_pause_comment(context)
            return CadenceDecision(
                should_process=False,
                reason=messages.PR_PAUSED_BURST_PUSHES,
                automatic_review_status=AutomaticReviewStatus(
                    previous_status=ReviewCadenceState.AUTOMATIC,
                    current_status=ReviewCadenceState.PAUSED,
                    reason_for_change="Multiple pushes detected in short time window",
                    pause_comment_id=pause_comment_id,
                ),
                save_when_skipped=True,
            )

        return CadenceDecision(
            should_process=True,
            reason=messages.PROCESSING_AUTO_PAUSE,
            automatic_review_status=_unchanged(),
        )

    def _has_successful_review(self, context: CodeReviewPipelineContext) -> bool:
        latest = self.store.find_latest(
            context.team_automation_id,
            context.pull_request.number,
            context.repository.id,
            status=AutomationStatus.SUCCESS,
        )
        return latest is not None

    def _current_state(self, context: CodeReviewPipelineContext) -> ReviewCadenceState:
        latest = self.store.find_latest(
            context.team_automation_id,
            context.pull_request.number,
            context.repository.id,
            with_review_status=True,
        )
        if latest is None or latest.automatic_review_status is None:
            return ReviewCadenceState.AUTOMATIC
        return latest.automatic_review_status

    def _is_burst(self, context: CodeReviewPipelineContext) -> bool:
        cadence = context.code_review_config.review_cadence
        pushes_to_trigger = cadence.pushes_to_trigger or 3
        window = cadence.time_window or 15

        now = datetime.now(UTC)
        recent = self.store.find_by_period(
            now - timedelta(minutes=window),
            now,
            context.team_automation_id,
            context.pull_request.number,
            context.repository.id,
            status=AutomationStatus.SUCCESS,
        )
        logger.debug(
            "%d successful reviews of PR#%d in the last %d minutes",
            len(recent),
            context.pull_request.number,
            window,
        )
        return len(recent) >= pushes_to_trigger

    def _post_pause_comment(self, context: CodeReviewPipelineContext) -> str | None:
        try:
            comment = self.platform.create_issue_comment(
                context.repository,
                context.pull_request,
                self.renderer.render_pause_comment(messages.START_REVIEW_COMMAND),
            )
            return comment.comment_id
        except PlatformError as e:
            logger.error("Failed to create pause comment for PR#%d: %s", context.pull_request.number, e)
            return None
