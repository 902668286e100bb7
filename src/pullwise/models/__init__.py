"""Pullwise data models.

This module exports the core entities used throughout the application:
- CodeReviewConfig: Resolved review configuration
- PullRequest, Repository, FileChange: The pull request under review
- CodeSuggestion, FileAnalysisResult: Review output
- ReviewRule, CategorizedComment: Rule generation input and output
"""

from pullwise.models.llm_config import VALID_PROVIDERS, LLMConfig
from pullwise.models.pull_request import (
    Commit,
    FileChange,
    FileStatus,
    PullRequest,
    PullRequestReviewStatus,
    PullRequestStats,
    PullRequestUser,
    Repository,
)
from pullwise.models.review_config import (
    REVIEW_CATEGORIES,
    BehaviourForExistingDescription,
    BehaviourForNewCommits,
    CodeReviewConfig,
    LimitationType,
    ReviewCadence,
    ReviewCadenceState,
    ReviewCadenceType,
    ReviewOptions,
    SeverityLevel,
    SuggestionControlConfig,
    SummaryConfig,
)
from pullwise.models.rules import (
    AlignmentLevel,
    CategorizedComment,
    CommentFrequency,
    ReviewRule,
    RuleOrigin,
    RuleStatus,
    UncategorizedComment,
)
from pullwise.models.suggestion import (
    CodeSuggestion,
    CommentResult,
    DeliveryStatus,
    FileAnalysisResult,
    InitialComment,
    LineComment,
    OverallComment,
    PriorityStatus,
)

__all__ = [
    "AlignmentLevel",
    "BehaviourForExistingDescription",
    "BehaviourForNewCommits",
    "CategorizedComment",
    "CodeReviewConfig",
    "CodeSuggestion",
    "CommentFrequency",
    "CommentResult",
    "Commit",
    "DeliveryStatus",
    "FileAnalysisResult",
    "FileChange",
    "FileStatus",
    "InitialComment",
    "LLMConfig",
    "LimitationType",
    "LineComment",
    "OverallComment",
    "PriorityStatus",
    "PullRequest",
    "PullRequestReviewStatus",
    "PullRequestStats",
    "PullRequestUser",
    "REVIEW_CATEGORIES",
    "Repository",
    "ReviewCadence",
    "ReviewCadenceState",
    "ReviewCadenceType",
    "ReviewOptions",
    "ReviewRule",
    "RuleOrigin",
    "RuleStatus",
    "SeverityLevel",
    "SuggestionControlConfig",
    "SummaryConfig",
    "UncategorizedComment",
    "VALID_PROVIDERS",
]
