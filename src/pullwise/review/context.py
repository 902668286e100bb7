"""Context carried through the code review pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pullwise.models.pull_request import FileChange, PullRequest, PullRequestStats, Repository
from pullwise.models.review_config import CodeReviewConfig, ReviewCadenceState
from pullwise.models.suggestion import (
    CodeSuggestion,
    CommentResult,
    FileAnalysisResult,
    InitialComment,
    OverallComment,
)
from pullwise.pipeline.base import PipelineContext


class ReviewOrigin(Enum):
    """What triggered the review."""

    WEBHOOK = "webhook"
    COMMAND = "command"


@dataclass
class AutomaticReviewStatus:
    """Cadence state before and after this run."""

    previous_status: ReviewCadenceState
    current_status: ReviewCadenceState
    reason_for_change: str | None = None
    pause_comment_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "previous_status": self.previous_status.value,
            "current_status": self.current_status.value,
            "reason_for_change": self.reason_for_change,
            "pause_comment_id": self.pause_comment_id,
        }


@dataclass
class LastExecution:
    """What the previous successful review of this PR left behind."""

    last_analyzed_commit: str | None = None
    comment_id: str | None = None


@dataclass
class CodeReviewPipelineContext(PipelineContext):
    """State shared by the code review stages.

    Attributes:
        organization_id: Organization owning the repository
        repository: Repository of the pull request
        pull_request: Pull request under review
        origin: What triggered the review
        action: Platform event action (opened, synchronize, ...)
        platform: Platform adapter name
        team_automation_id: Id under which executions are recorded
        code_review_config: Resolved review configuration
        automatic_review_status: Cadence transition decided for this run
        last_execution: Previous successful review, if any
        changed_files: Files selected for review
        pr_stats: Line statistics of the selected files
        initial_comment: Comment posted when the review started
        batches: Files grouped for review
        file_analysis_results: Per-file review results
        valid_suggestions: Suggestions kept across all files
        discarded_suggestions: Suggestions dropped across all files
        overall_comments: Per-file summaries
        line_comments: Comments posted on changed lines
        last_analyzed_commit: Head commit this review covered
        pr_summary: Generated PR summary
    """

    organization_id: str = "local"
    repository: Repository | None = None
    pull_request: PullRequest | None = None
    origin: ReviewOrigin = ReviewOrigin.WEBHOOK
    action: str = "opened"
    platform: str = "local"
    team_automation_id: str = "default"
    code_review_config: CodeReviewConfig | None = None
    automatic_review_status: AutomaticReviewStatus | None = None
    last_execution: LastExecution | None = None
    changed_files: list[FileChange] = field(default_factory=list)
    pr_stats: PullRequestStats = field(default_factory=PullRequestStats)
    initial_comment: InitialComment | None = None
    batches: list[list[FileChange]] = field(default_factory=list)
    file_analysis_results: list[FileAnalysisResult] = field(default_factory=list)
    valid_suggestions: list[CodeSuggestion] = field(default_factory=list)
    discarded_suggestions: list[CodeSuggestion] = field(default_factory=list)
    overall_comments: list[OverallComment] = field(default_factory=list)
    line_comments: list[CommentResult] = field(default_factory=list)
    last_analyzed_commit: str | None = None
    pr_summary: str | None = None

    @property
    def is_command(self) -> bool:
        """Return True if a user command triggered this review."""
        return self.origin == ReviewOrigin.COMMAND

    @property
    def is_new_commit_review(self) -> bool:
        """Return True if this run reviews new commits of an already reviewed PR."""
        return self.last_execution is not None and self.last_execution.last_analyzed_commit is not None
