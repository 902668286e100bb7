"""Learning review preferences from past review comments."""

from pullwise.comments.analysis import (
    CodeReviewParameters,
    CommentAnalysisService,
    frequency_analysis,
    get_thresholds,
)
from pullwise.comments.library import LIBRARY_RULES

__all__ = [
    "CodeReviewParameters",
    "CommentAnalysisService",
    "LIBRARY_RULES",
    "frequency_analysis",
    "get_thresholds",
]
