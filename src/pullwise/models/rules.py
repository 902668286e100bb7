"""Review rule and comment analysis entities.

Rules are coding guidelines learned from past review comments or taken
from the built-in library. Comments are the raw material they are learned
from.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pullwise.models.review_config import SeverityLevel

# Repository id used for rules that apply to every repository
GLOBAL_REPOSITORY_ID = "global"


class RuleOrigin(Enum):
    """Where a review rule came from."""

    USER = "user"
    LIBRARY = "library"
    GENERATED = "generated"


class RuleStatus(Enum):
    """Lifecycle status of a review rule."""

    ACTIVE = "active"
    REJECTED = "rejected"
    PENDING = "pending"
    DELETED = "deleted"


class AlignmentLevel(Enum):
    """How closely generated parameters follow observed comment frequencies."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class RuleExample:
    """Code example illustrating a rule."""

    snippet: str
    is_correct: bool


@dataclass
class ReviewRule:
    """Coding guideline enforced during review.

    Attributes:
        title: Short rule title
        rule: Rule description
        severity: Severity of violations
        uuid: Stable id (library rules keep theirs)
        examples: Good and bad examples
        origin: Where the rule came from
        status: Lifecycle status
        repository_id: Repository the rule applies to, "global" for all
        why_is_this_important: Rationale shown to reviewers
    """

    title: str
    rule: str
    severity: SeverityLevel = SeverityLevel.LOW
    uuid: str = ""
    examples: list[RuleExample] = field(default_factory=list)
    origin: RuleOrigin = RuleOrigin.GENERATED
    status: RuleStatus = RuleStatus.PENDING
    repository_id: str = GLOBAL_REPOSITORY_ID
    why_is_this_important: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewRule":
        """Create a rule from a dictionary (LLM output or stored rule)."""
        examples = [
            RuleExample(
                snippet=str(example.get("snippet", "")),
                is_correct=bool(example.get("is_correct", example.get("isCorrect", False))),
            )
            for example in data.get("examples") or []
            if isinstance(example, dict)
        ]
        return cls(
            title=str(data.get("title", "")),
            rule=str(data.get("rule", "")),
            severity=SeverityLevel.parse(data.get("severity")),
            uuid=str(data.get("uuid") or ""),
            examples=examples,
            origin=RuleOrigin(data.get("origin", "generated")),
            status=RuleStatus(data.get("status", "pending")),
            repository_id=str(data.get("repository_id") or GLOBAL_REPOSITORY_ID),
            why_is_this_important=str(
                data.get("why_is_this_important", data.get("whyIsThisImportant", "")) or ""
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "uuid": self.uuid,
            "title": self.title,
            "rule": self.rule,
            "severity": self.severity.value,
            "examples": [
                {"snippet": e.snippet, "is_correct": e.is_correct} for e in self.examples
            ],
            "origin": self.origin.value,
            "status": self.status.value,
            "repository_id": self.repository_id,
            "why_is_this_important": self.why_is_this_important,
        }

    def ensure_uuid(self) -> "ReviewRule":
        """Assign a fresh uuid when the rule has none."""
        if not self.uuid:
            self.uuid = str(uuid.uuid4())
        return self


@dataclass
class UncategorizedComment:
    """Review comment left by a human, before categorization."""

    id: str
    body: str
    language: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"id": self.id, "body": self.body}
        if self.language:
            data["language"] = self.language
        return data


@dataclass
class CategorizedComment:
    """Review comment with its category and severity."""

    id: str
    body: str
    category: str
    severity: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "body": self.body,
            "category": self.category,
            "severity": self.severity,
        }


@dataclass
class CommentFrequency:
    """Share of comments per category and per severity (0..1)."""

    categories: dict[str, float] = field(default_factory=dict)
    severity: dict[str, float] = field(default_factory=dict)
