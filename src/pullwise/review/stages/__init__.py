"""Stages of the code review pipeline, in execution order."""

from pullwise.review.stages.analysis import (
    AggregateResultsStage,
    ProcessFilesReviewStage,
    create_batches,
)
from pullwise.review.stages.approval import RequestChangesOrApproveStage
from pullwise.review.stages.comments import (
    CreateFileCommentsStage,
    UpdateCommentsAndGenerateSummaryStage,
)
from pullwise.review.stages.config import (
    CadenceDecision,
    ResolveConfigStage,
    ValidateConfigStage,
    passes_basic_rules,
)
from pullwise.review.stages.files import FetchChangedFilesStage, InitialCommentStage, is_ignored

__all__ = [
    "AggregateResultsStage",
    "CadenceDecision",
    "CreateFileCommentsStage",
    "FetchChangedFilesStage",
    "InitialCommentStage",
    "ProcessFilesReviewStage",
    "RequestChangesOrApproveStage",
    "ResolveConfigStage",
    "UpdateCommentsAndGenerateSummaryStage",
    "ValidateConfigStage",
    "create_batches",
    "is_ignored",
    "passes_basic_rules",
]
