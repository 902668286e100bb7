"""Review suggestion entities.

This module contains entities produced while reviewing files:
- CodeSuggestion: A single improvement proposed for a changed file
- FileAnalysisResult: Suggestions and summary for one file
- LineComment / CommentResult: Comments posted on the pull request
- InitialComment: The "review started" comment that is later updated
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pullwise.models.review_config import SeverityLevel


class PriorityStatus(Enum):
    """Outcome of filtering and prioritizing a suggestion."""

    PRIORITIZED = "prioritized"
    DISCARDED_BY_CODE_DIFF = "discarded_by_code_diff"
    DISCARDED_BY_CATEGORY = "discarded_by_category"
    DISCARDED_BY_SEVERITY = "discarded_by_severity"
    DISCARDED_BY_QUANTITY = "discarded_by_quantity"


class DeliveryStatus(Enum):
    """Whether a suggestion was posted as a comment."""

    NOT_SENT = "not_sent"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class CodeSuggestion:
    """Improvement proposed for a changed file.

    Attributes:
        relevant_file: File the suggestion applies to
        suggestion_content: Explanation of the problem and fix
        improved_code: Proposed replacement code
        label: Review category (see REVIEW_CATEGORIES)
        severity: Severity level
        existing_code: Code being replaced
        one_sentence_summary: Short summary used in comment titles
        relevant_lines_start: First line in the new file
        relevant_lines_end: Last line in the new file
        language: Language of the file
        rank_score: Ranking within the same severity, higher first
        id: Unique id
        priority_status: Filtering outcome
        delivery_status: Whether the suggestion was posted
    """

    relevant_file: str
    suggestion_content: str
    improved_code: str = ""
    label: str = "potential_issues"
    severity: SeverityLevel = SeverityLevel.MEDIUM
    existing_code: str = ""
    one_sentence_summary: str = ""
    relevant_lines_start: int | None = None
    relevant_lines_end: int | None = None
    language: str | None = None
    rank_score: float = 0.0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    priority_status: PriorityStatus | None = None
    delivery_status: DeliveryStatus = DeliveryStatus.NOT_SENT

    @classmethod
    def from_dict(cls, data: dict[str, Any], relevant_file: str | None = None) -> "CodeSuggestion":
        """Create a suggestion from an LLM or JSON payload.

        Both snake_case and camelCase keys are accepted.

        Args:
            data: Suggestion payload
            relevant_file: File to use when the payload does not name one

        Returns:
            CodeSuggestion instance
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        start = pick("relevant_lines_start", "relevantLinesStart")
        end = pick("relevant_lines_end", "relevantLinesEnd")
        suggestion_id = pick("id")

        return cls(
            relevant_file=str(pick("relevant_file", "relevantFile", default=relevant_file or "")),
            suggestion_content=str(pick("suggestion_content", "suggestionContent", default="")),
            improved_code=str(pick("improved_code", "improvedCode", default="")),
            label=str(pick("label", "category", default="potential_issues")).lower(),
            severity=SeverityLevel.parse(pick("severity"), default=SeverityLevel.MEDIUM),
            existing_code=str(pick("existing_code", "existingCode", default="")),
            one_sentence_summary=str(pick("one_sentence_summary", "oneSentenceSummary", default="")),
            relevant_lines_start=int(start) if start is not None else None,
            relevant_lines_end=int(end) if end is not None else None,
            language=pick("language"),
            rank_score=float(pick("rank_score", "rankScore", default=0.0)),
            id=str(suggestion_id) if suggestion_id else str(uuid.uuid4()),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "relevant_file": self.relevant_file,
            "language": self.language,
            "suggestion_content": self.suggestion_content,
            "existing_code": self.existing_code,
            "improved_code": self.improved_code,
            "one_sentence_summary": self.one_sentence_summary,
            "relevant_lines_start": self.relevant_lines_start,
            "relevant_lines_end": self.relevant_lines_end,
            "label": self.label,
            "severity": self.severity.value,
            "rank_score": self.rank_score,
            "priority_status": self.priority_status.value if self.priority_status else None,
            "delivery_status": self.delivery_status.value,
        }


@dataclass
class OverallComment:
    """Summary of the changes in one file."""

    filepath: str
    summary: str


@dataclass
class FileAnalysisResult:
    """Result of reviewing one file.

    Attributes:
        file: Path of the reviewed file
        valid_suggestions: Suggestions kept after filtering
        discarded_suggestions: Suggestions removed by filtering
        overall_comment: Summary of the file changes, if any
    """

    file: str
    valid_suggestions: list[CodeSuggestion] = field(default_factory=list)
    discarded_suggestions: list[CodeSuggestion] = field(default_factory=list)
    overall_comment: OverallComment | None = None

    @classmethod
    def empty(cls, file: str) -> "FileAnalysisResult":
        """Result for a file whose review failed."""
        return cls(file=file)


@dataclass
class LineComment:
    """Comment anchored to lines of a changed file.

    ``start_line`` is only set for multi-line ranges.
    """

    path: str
    body: str
    line: int
    start_line: int | None = None
    side: str = "RIGHT"
    suggestion: CodeSuggestion | None = None


@dataclass
class CommentResult:
    """Outcome of posting a line comment."""

    comment: LineComment
    delivery_status: DeliveryStatus
    comment_id: str | None = None


@dataclass
class InitialComment:
    """Reference to the comment posted when the review starts."""

    comment_id: str
    thread_id: str | None = None
