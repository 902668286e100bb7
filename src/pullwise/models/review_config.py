"""Code review configuration entities.

``CodeReviewConfig`` is the resolved per-repository review configuration
that drives every stage of the review pipeline. It is built from plain
dictionaries (YAML) through ``from_dict`` so that global defaults,
repository overrides and directory overrides can be deep-merged first.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class SeverityLevel(Enum):
    """Severity of a review suggestion."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe."""
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: "str | SeverityLevel | None", default: "SeverityLevel | None" = None) -> "SeverityLevel":
        """Parse a severity from free text, falling back to ``default`` or LOW."""
        if isinstance(value, SeverityLevel):
            return value
        if value:
            try:
                return cls(str(value).strip().lower())
            except ValueError:
                pass
        return default or cls.LOW


_SEVERITY_RANK = {
    SeverityLevel.LOW: 1,
    SeverityLevel.MEDIUM: 2,
    SeverityLevel.HIGH: 3,
    SeverityLevel.CRITICAL: 4,
}


class LimitationType(Enum):
    """Scope of ``max_suggestions``."""

    FILE = "file"
    PR = "pr"
    SEVERITY = "severity"


class BehaviourForExistingDescription(Enum):
    """What to do with an existing PR description when writing a summary."""

    REPLACE = "replace"
    CONCATENATE = "concatenate"
    COMPLEMENT = "complement"


class BehaviourForNewCommits(Enum):
    """What to do with the PR summary when new commits arrive."""

    NONE = "none"
    REPLACE = "replace"
    CONCATENATE = "concatenate"


class ReviewCadenceType(Enum):
    """How often automated reviews run on a pull request."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    AUTO_PAUSE = "auto_pause"


class ReviewCadenceState(Enum):
    """Review state of a pull request under a cadence."""

    AUTOMATIC = "automatic"
    COMMAND = "command"
    PAUSED = "paused"


# Review categories known to the analyzer, in display order
REVIEW_CATEGORIES: tuple[str, ...] = (
    "breaking_changes",
    "bug",
    "code_style",
    "cross_file",
    "documentation_and_comments",
    "error_handling",
    "custom_rules",
    "maintainability",
    "performance",
    "performance_and_optimization",
    "potential_issues",
    "refactoring",
    "security",
)


def _section(section_cls: type, values: Any, name: str) -> Any:
    """Build a settings dataclass from a mapping, rejecting unknown keys."""
    if not isinstance(values, dict):
        raise ValueError(f"'{name}' must be a mapping, got {type(values).__name__}")
    unknown = sorted(set(values) - {f.name for f in fields(section_cls)})
    if unknown:
        raise ValueError(f"Unknown {name} option(s): {', '.join(unknown)}")
    return section_cls(**values)


@dataclass
class ReviewOptions:
    """Enabled review categories."""

    security: bool = True
    code_style: bool = True
    refactoring: bool = True
    error_handling: bool = True
    maintainability: bool = True
    potential_issues: bool = True
    documentation_and_comments: bool = True
    performance_and_optimization: bool = True
    custom_rules: bool = True
    breaking_changes: bool = True
    bug: bool = True
    performance: bool = True
    cross_file: bool = True

    def is_enabled(self, category: str | None) -> bool:
        """Return True if a category is enabled. Unknown categories pass."""
        if not category:
            return True
        return bool(getattr(self, category, True))

    def to_dict(self) -> dict[str, bool]:
        """Convert to dictionary for serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class SeverityLimits:
    """Per-severity suggestion limits. Zero means unlimited."""

    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0

    def for_level(self, level: SeverityLevel) -> int:
        """Get the limit for a severity level."""
        return int(getattr(self, level.value))


@dataclass
class SuggestionControlConfig:
    """Filtering and limiting of suggestions before they are commented.

    Attributes:
        limitation_type: Whether max_suggestions applies per file, per PR or per severity
        max_suggestions: Maximum number of suggestions (0 means unlimited)
        severity_level_filter: Minimum severity that is commented
        apply_filters_to_custom_rules: Whether custom rule violations are filtered too
        severity_limits: Per-severity limits for the severity limitation type
    """

    limitation_type: LimitationType = LimitationType.PR
    max_suggestions: int = 9
    severity_level_filter: SeverityLevel = SeverityLevel.MEDIUM
    apply_filters_to_custom_rules: bool = False
    severity_limits: SeverityLimits = field(default_factory=SeverityLimits)

    def __post_init__(self) -> None:
        """Validate suggestion control settings."""
        if self.max_suggestions < 0:
            raise ValueError(f"max_suggestions must not be negative. Got: {self.max_suggestions}")


@dataclass
class SummaryConfig:
    """PR summary generation settings."""

    generate_pr_summary: bool = False
    custom_instructions: str = ""
    behaviour_for_existing_description: BehaviourForExistingDescription = (
        BehaviourForExistingDescription.CONCATENATE
    )
    behaviour_for_new_commits: BehaviourForNewCommits = BehaviourForNewCommits.NONE


@dataclass
class ReviewCadence:
    """Review cadence settings.

    Attributes:
        type: Cadence type
        time_window: Window in minutes used to detect bursts of pushes
        pushes_to_trigger: Successful reviews within the window that pause reviews
    """

    type: ReviewCadenceType = ReviewCadenceType.AUTOMATIC
    time_window: int = 15
    pushes_to_trigger: int = 3


@dataclass
class CodeReviewConfig:
    """Resolved code review configuration for one repository.

    Attributes:
        automated_review_active: Whether webhook-triggered reviews run at all
        base_branches: Branch expression rules; the default branch is always added
        ignore_paths: Glob patterns of files excluded from review
        ignored_titles: Title keywords that disable review (case-insensitive)
        run_on_draft: Whether draft pull requests are reviewed
        review_options: Enabled review categories
        suggestion_control: Suggestion filtering and limits
        summary: PR summary settings
        review_cadence: Review cadence settings
        start_review_message: Whether the "review started" comment is posted
        pull_request_approval_active: Approve PRs without comments
        is_request_changes_active: Request changes on critical comments
        language: Language used for generated comments
    """

    automated_review_active: bool = True
    base_branches: list[str] | None = None
    ignore_paths: list[str] = field(default_factory=list)
    ignored_titles: list[str] = field(default_factory=list)
    run_on_draft: bool = False
    review_options: ReviewOptions = field(default_factory=ReviewOptions)
    suggestion_control: SuggestionControlConfig = field(default_factory=SuggestionControlConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    review_cadence: ReviewCadence = field(default_factory=ReviewCadence)
    start_review_message: bool = True
    pull_request_approval_active: bool = False
    is_request_changes_active: bool = False
    language: str = "en-US"

    # =========================================================================
    # Serialization
    # =========================================================================

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CodeReviewConfig":
        """Create a CodeReviewConfig from a (possibly partial) dictionary.

        Args:
            data: Configuration dictionary, missing keys use defaults

        Returns:
            CodeReviewConfig instance

        Raises:
            ValueError: If an enum value or a category option is invalid
        """
        data = data or {}
        control = data.get("suggestion_control") or {}
        summary = data.get("summary") or {}
        cadence = data.get("review_cadence") or {}
        base_branches = data.get("base_branches")
        if isinstance(base_branches, str):
            base_branches = [b.strip() for b in base_branches.split(",") if b.strip()]

        return cls(
            automated_review_active=bool(data.get("automated_review_active", True)),
            base_branches=list(base_branches) if base_branches is not None else None,
            ignore_paths=list(data.get("ignore_paths") or []),
            ignored_titles=list(data.get("ignored_titles") or []),
            run_on_draft=bool(data.get("run_on_draft", False)),
            review_options=_section(ReviewOptions, data.get("review_options") or {}, "review_options"),
            suggestion_control=SuggestionControlConfig(
                limitation_type=LimitationType(control.get("limitation_type", "pr")),
                max_suggestions=int(control.get("max_suggestions", 9)),
                severity_level_filter=SeverityLevel(control.get("severity_level_filter", "medium")),
                apply_filters_to_custom_rules=bool(
                    control.get("apply_filters_to_custom_rules", False)
                ),
                severity_limits=_section(
                    SeverityLimits, control.get("severity_limits") or {}, "severity_limits"
                ),
            ),
            summary=SummaryConfig(
                generate_pr_summary=bool(summary.get("generate_pr_summary", False)),
                custom_instructions=summary.get("custom_instructions", "") or "",
                behaviour_for_existing_description=BehaviourForExistingDescription(
                    summary.get("behaviour_for_existing_description", "concatenate")
                ),
                behaviour_for_new_commits=BehaviourForNewCommits(
                    summary.get("behaviour_for_new_commits", "none")
                ),
            ),
            review_cadence=ReviewCadence(
                type=ReviewCadenceType(cadence.get("type", "automatic")),
                time_window=int(cadence.get("time_window", 15)),
                pushes_to_trigger=int(cadence.get("pushes_to_trigger", 3)),
            ),
            start_review_message=bool(data.get("start_review_message", True)),
            pull_request_approval_active=bool(data.get("pull_request_approval_active", False)),
            is_request_changes_active=bool(data.get("is_request_changes_active", False)),
            language=data.get("language", "en-US") or "en-US",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary (inverse of ``from_dict``)."""
        control = self.suggestion_control
        return {
            "automated_review_active": self.automated_review_active,
            "base_branches": list(self.base_branches) if self.base_branches is not None else None,
            "ignore_paths": list(self.ignore_paths),
            "ignored_titles": list(self.ignored_titles),
            "run_on_draft": self.run_on_draft,
            "review_options": self.review_options.to_dict(),
            "suggestion_control": {
                "limitation_type": control.limitation_type.value,
                "max_suggestions": control.max_suggestions,
                "severity_level_filter": control.severity_level_filter.value,
                "apply_filters_to_custom_rules": control.apply_filters_to_custom_rules,
                "severity_limits": {
                    level.value: control.severity_limits.for_level(level)
                    for level in SeverityLevel
                },
            },
            "summary": {
                "generate_pr_summary": self.summary.generate_pr_summary,
                "custom_instructions": self.summary.custom_instructions,
                "behaviour_for_existing_description": (
                    self.summary.behaviour_for_existing_description.value
                ),
                "behaviour_for_new_commits": self.summary.behaviour_for_new_commits.value,
            },
            "review_cadence": {
                "type": self.review_cadence.type.value,
                "time_window": self.review_cadence.time_window,
                "pushes_to_trigger": self.review_cadence.pushes_to_trigger,
            },
            "start_review_message": self.start_review_message,
            "pull_request_approval_active": self.pull_request_approval_active,
            "is_request_changes_active": self.is_request_changes_active,
            "language": self.language,
        }


def deep_merge(base: dict[str, Any], overrides: dict[str, Any] | None) -> dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Nested dictionaries are merged key by key; any other value (including
    lists) replaces the base value.

    Args:
        base: Base dictionary
        overrides: Values taking precedence

    Returns:
        New merged dictionary
    """
    merged = dict(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
