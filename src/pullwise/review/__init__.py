"""Code review pipeline.

- context: state shared by the stages
- stages: the nine review stages
- strategy: stage composition
- handler: event entry point and execution recording
"""

from pullwise.review.analyzer import FileReviewAnalyzer
from pullwise.review.config_resolver import ReviewConfigResolver
from pullwise.review.context import (
    AutomaticReviewStatus,
    CodeReviewPipelineContext,
    LastExecution,
    ReviewOrigin,
)
from pullwise.review.handler import TRIGGER_ACTIONS, CodeReviewHandler
from pullwise.review.strategy import CodeReviewPipelineStrategy

__all__ = [
    "AutomaticReviewStatus",
    "CodeReviewHandler",
    "CodeReviewPipelineContext",
    "CodeReviewPipelineStrategy",
    "FileReviewAnalyzer",
    "LastExecution",
    "ReviewConfigResolver",
    "ReviewOrigin",
    "TRIGGER_ACTIONS",
]
