"""Comment analysis and rule generation.

Learns a team's review preferences from the comments humans left on past
pull requests:

1. ``process_comments`` cleans raw platform comments (dedup, drop bots and
   short remarks, tag language)
2. ``categorize_comments`` drops irrelevant comments and labels the rest with
   a category and severity using the LLM
3. ``generate_code_review_parameters`` turns category and severity
   frequencies into a review configuration
4. ``generate_rules`` distills comments into coding rules, deduplicated
   against existing rules and filtered for quality
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from pullwise.comments.library import LIBRARY_RULES
from pullwise.llm.client import LLMClient, LLMError
from pullwise.llm.prompts import (
    build_comments_prompt,
    build_duplicate_filter_prompt,
    build_quality_filter_prompt,
    build_rules_generation_prompt,
    get_system_prompt,
)
from pullwise.models.review_config import (
    REVIEW_CATEGORIES,
    BehaviourForExistingDescription,
    CodeReviewConfig,
    ReviewOptions,
    SeverityLevel,
)
from pullwise.models.rules import (
    GLOBAL_REPOSITORY_ID,
    AlignmentLevel,
    CategorizedComment,
    CommentFrequency,
    ReviewRule,
    RuleOrigin,
    RuleStatus,
    UncategorizedComment,
)

logger = logging.getLogger(__name__)

MIN_COMMENT_LENGTH = 100
MAX_COMMENTS = 100
LOW_QUALITY_THRESHOLD = 20

# Comments containing this marker were written by pullwise itself
BOT_MARKER = "pullwise-review"

# Categories that are always enabled in generated parameters
FORCED_CATEGORIES = (
    "bug",
    "cross_file",
    "performance",
    "custom_rules",
    "security",
    "breaking_changes",
)

# Language detection by file extension, checked in this order
SUPPORTED_LANGUAGES: dict[str, tuple[str, ...]] = {
    "typescript": (".ts", ".tsx"),
    "javascript": (".js", ".jsx", ".mjs", ".cjs"),
    "python": (".py",),
    "java": (".java",),
    "go": (".go",),
    "ruby": (".rb",),
    "php": (".php",),
    "csharp": (".cs",),
    "rust": (".rs",),
    "kotlin": (".kt", ".kts"),
    "dart": (".dart",),
    "elixir": (".ex", ".exs"),
}

_SEVERITY_ORDER = (
    SeverityLevel.LOW,
    SeverityLevel.MEDIUM,
    SeverityLevel.HIGH,
    SeverityLevel.CRITICAL,
)

_ALIGNMENT_WEIGHTS = {
    AlignmentLevel.LOW: 0.0,
    AlignmentLevel.MEDIUM: 0.5,
    AlignmentLevel.HIGH: 1.0,
}


@dataclass
class CodeReviewParameters:
    """Review configuration derived from past comments.

    Attributes:
        config: Generated review configuration
        frequency: Observed category and severity shares
        detected_severity: Lowest severity whose share lies inside the thresholds
    """

    config: CodeReviewConfig
    frequency: CommentFrequency
    detected_severity: SeverityLevel = SeverityLevel.HIGH
    enabled_categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "config": self.config.to_dict(),
            "frequency": {
                "categories": dict(self.frequency.categories),
                "severity": dict(self.frequency.severity),
            },
            "detected_severity": self.detected_severity.value,
            "enabled_categories": list(self.enabled_categories),
        }


# =============================================================================
# Pure helpers
# =============================================================================


def interpolate(low: float, high: float, weight: float) -> float:
    """Linear interpolation between two values."""
    return low + (high - low) * weight


def get_thresholds(
    values: list[float],
    alignment_level: AlignmentLevel | None = None,
) -> tuple[float, float]:
    """Compute the band of frequencies considered representative.

    The band is derived from the observed range widened by 0.1 on each side.
    Its midpoint is skewed towards the lower end; the alignment level then
    slides both bounds between the lower end and the upper end.

    Args:
        values: Observed frequencies (0..1)
        alignment_level: How closely to follow the observed frequencies

    Returns:
        (lower_threshold, upper_threshold)
    """
    if not values:
        return 0.0, 1.0

    lower_bound = max(0.0, min(values) - 0.1)
    upper_bound = min(1.0, max(values) + 0.1)
    mid = interpolate(lower_bound, upper_bound, 0.25)

    weight = _ALIGNMENT_WEIGHTS.get(alignment_level, 1.0) if alignment_level else 1.0

    lower = interpolate(lower_bound, mid, weight)
    upper = interpolate(mid, upper_bound, weight) if alignment_level else 1.0
    return lower, upper


def _percentages(counts: dict[str, int], total: int) -> dict[str, float]:
    return {key: (value / total if total > 0 else 0.0) for key, value in counts.items()}


def frequency_analysis(comments: list[CategorizedComment]) -> CommentFrequency:
    """Compute category and severity shares of categorized comments.

    Every known category and severity is present, unknown ones are added.
    """
    category_counts = {category: 0 for category in REVIEW_CATEGORIES}
    severity_counts = {level.value: 0 for level in reversed(_SEVERITY_ORDER)}

    for comment in comments:
        category_counts[comment.category] = category_counts.get(comment.category, 0) + 1
        severity_counts[comment.severity] = severity_counts.get(comment.severity, 0) + 1

    total = len(comments)
    return CommentFrequency(
        categories=_percentages(category_counts, total),
        severity=_percentages(severity_counts, total),
    )


def file_extension_frequency(files: list[dict[str, Any]]) -> dict[str, float]:
    """Share of files per extension (without the leading dot).

    Args:
        files: Items with a ``filename`` key

    Returns:
        Mapping of extension to share of files
    """
    counts = Counter(str(f.get("filename", "")).rsplit(".", 1)[-1] for f in files)
    return _percentages(dict(counts), len(files))


def detect_language(files: list[dict[str, Any]]) -> str | None:
    """Pick the first supported language whose extension appears in the files."""
    extensions = set(file_extension_frequency(files))
    for language, language_extensions in SUPPORTED_LANGUAGES.items():
        if any(ext[1:] in extensions for ext in language_extensions):
            return language
    return None


def _flatten_comment(comment: dict[str, Any]) -> list[dict[str, Any]]:
    """Normalize one platform comment into id/body items.

    Discussion threads without a body of their own are flattened into their
    notes. Comments carrying a thread id get a composite id so they stay
    unique across threads.
    """
    if "body" not in comment:
        return [
            {"id": note.get("id"), "body": note.get("body"), "user": note.get("user")}
            for note in comment.get("notes") or []
        ]

    thread_id = comment.get("thread_id", comment.get("threadId"))
    if thread_id and comment.get("id") is not None:
        return [{**comment, "id": f"{thread_id}-{comment['id']}"}]
    return [comment]


def _is_bot(comment: dict[str, Any]) -> bool:
    user = comment.get("user") or {}
    return str(user.get("type") or "").lower() == "bot"


# =============================================================================
# Service
# =============================================================================


class CommentAnalysisService:
    """Derives review parameters and rules from past review comments."""

    def __init__(
        self,
        llm: LLMClient | None = None,
        library_rules: list[ReviewRule] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            llm: LLM client (required for categorization and rule generation)
            library_rules: Known rules that generation may reuse
        """
        self.llm = llm
        self.library_rules = library_rules if library_rules is not None else LIBRARY_RULES

    # =========================================================================
    # Comment cleanup
    # =========================================================================

    def process_comments(self, pull_requests: list[dict[str, Any]]) -> list[UncategorizedComment]:
        """Clean raw comments of several pull requests.

        Comments without an id are skipped.

        Args:
            pull_requests: Items with ``general_comments``, ``review_comments``
                and optionally ``files``

        Returns:
            At most 100 cleaned comments, in pull request order
        """
        processed: list[UncategorizedComment] = []

        for pr in pull_requests:
            raw = list(pr.get("general_comments", pr.get("generalComments")) or [])
            raw += list(pr.get("review_comments", pr.get("reviewComments")) or [])

            seen: set[str] = set()
            comments: list[UncategorizedComment] = []
            for item in (c for comment in raw for c in _flatten_comment(comment)):
                if item.get("id") is None:
                    logger.debug("Skipping comment without an id")
                    continue
                comment_id = str(item["id"])
                if comment_id in seen:
                    continue
                seen.add(comment_id)

                body = item.get("body") or ""
                if _is_bot(item) or BOT_MARKER in body.lower() or len(body) <= MIN_COMMENT_LENGTH:
                    continue
                comments.append(UncategorizedComment(id=comment_id, body=body))

            files = pr.get("files") or []
            if files:
                language = detect_language(files)
                if language:
                    for comment in comments:
                        comment.language = language

            processed.extend(comments)

        processed = processed[:MAX_COMMENTS]

        if not processed:
            logger.info("No valid comments found after processing")
        elif len(processed) < LOW_QUALITY_THRESHOLD:
            logger.warning(
                "Only %d valid comments found after processing, results quality may be affected",
                len(processed),
            )

        return processed

    # =========================================================================
    # LLM steps
    # =========================================================================

    def _require_llm(self) -> LLMClient:
        if self.llm is None:
            raise LLMError("LLM client is not configured")
        return self.llm

    def _ask(self, prompt_name: str, prompt: str, key: str) -> list[Any]:
        """Run a JSON prompt and return the list stored under ``key``."""
        result = self._require_llm().complete_json(prompt, system_prompt=get_system_prompt(prompt_name))
        if not isinstance(result, dict):
            return []
        values = result.get(key)
        return values if isinstance(values, list) else []

    def filter_comments(self, comments: list[UncategorizedComment]) -> list[UncategorizedComment]:
        """Keep only the comments the LLM considers relevant.

        Raises:
            LLMError: If the LLM call fails
        """
        keep_ids = {str(i) for i in self._ask("irrelevance_filter", build_comments_prompt(comments), "ids")}
        return [c for c in comments if c.id in keep_ids]

    def categorize_comments(self, comments: list[UncategorizedComment]) -> list[CategorizedComment]:
        """Label relevant comments with a category and severity.

        Args:
            comments: Cleaned comments

        Returns:
            Categorized comments with their original bodies, empty on failure
        """
        try:
            relevant = self.filter_comments(comments)
            if not relevant:
                logger.info("No comments after filtering")
                return []

            labels = self._ask("categorize", build_comments_prompt(relevant), "suggestions")
        except LLMError as e:
            logger.error("Error categorizing comments: %s", e)
            return []

        if not labels:
            logger.info("No comments after categorization")
            return []

        by_id = {c.id: c for c in comments}
        categorized: list[CategorizedComment] = []
        for label in labels:
            if not isinstance(label, dict):
                continue
            original = by_id.get(str(label.get("id")))
            if original is None:
                logger.debug("Categorizer returned unknown comment id %s", label.get("id"))
                continue
            categorized.append(
                CategorizedComment(
                    id=original.id,
                    body=original.body,
                    category=str(label.get("category", "")),
                    severity=str(label.get("severity", "")).lower(),
                )
            )
        return categorized

    def generate_rules(
        self,
        comments: list[UncategorizedComment],
        existing_rules: list[ReviewRule] | None = None,
    ) -> list[ReviewRule]:
        """Generate coding rules from review comments.

        Args:
            comments: Cleaned comments
            existing_rules: Rules the team already has

        Returns:
            Standardized pending rules, empty when any step yields nothing
        """
        existing_rules = existing_rules or []
        try:
            relevant = self.filter_comments(comments)
            if not relevant:
                logger.info("No comments to generate rules from after filtering")
                return []

            raw_rules = self._ask(
                "rules_generation",
                build_rules_generation_prompt(relevant, self.library_rules),
                "rules",
            )
            generated = [
                ReviewRule.from_dict({k: v for k, v in r.items() if k not in ("origin", "status")}).ensure_uuid()
                for r in raw_rules
                if isinstance(r, dict)
            ]
            if not generated:
                logger.info("No rules generated")
                return []

            if existing_rules:
                keep = {
                    str(u)
                    for u in self._ask(
                        "duplicate_filter",
                        build_duplicate_filter_prompt(generated, existing_rules),
                        "uuids",
                    )
                }
                generated = [r for r in generated if r.uuid in keep]
                if not generated:
                    logger.info("No rules after deduplication")
                    return []

            keep = {
                str(u)
                for u in self._ask("quality_filter", build_quality_filter_prompt(generated), "uuids")
            }
            generated = [r for r in generated if r.uuid in keep]
            if not generated:
                logger.info("No rules after quality filter")
                return []
        except LLMError as e:
            logger.error("Error generating rules: %s", e)
            return []

        return self.standardize_rules(generated)

    def standardize_rules(self, rules: list[ReviewRule]) -> list[ReviewRule]:
        """Normalize generated rules before they are proposed.

        Only library uuids survive; everything else becomes a new generated
        rule without uuid. All rules start as pending global rules.
        """
        library_uuids = {r.uuid for r in self.library_rules}
        standardized: list[ReviewRule] = []
        for rule in rules:
            uuid = rule.uuid if rule.uuid in library_uuids else ""
            standardized.append(
                ReviewRule(
                    uuid=uuid,
                    title=rule.title,
                    rule=rule.rule,
                    severity=rule.severity,
                    examples=list(rule.examples),
                    origin=RuleOrigin.LIBRARY if uuid else RuleOrigin.GENERATED,
                    status=RuleStatus.PENDING,
                    repository_id=GLOBAL_REPOSITORY_ID,
                    why_is_this_important=rule.why_is_this_important,
                )
            )
        return standardized

    # =========================================================================
    # Review parameters
    # =========================================================================

    def generate_code_review_parameters(
        self,
        comments: list[CategorizedComment],
        alignment_level: AlignmentLevel | None = None,
        defaults: CodeReviewConfig | None = None,
    ) -> CodeReviewParameters:
        """Derive a review configuration from categorized comments.

        Categories are enabled when their share lies inside the thresholds;
        a fixed set of high-impact categories is always enabled.

        Args:
            comments: Categorized comments
            alignment_level: How closely to follow the observed frequencies
            defaults: Configuration the result is based on

        Returns:
            CodeReviewParameters with the generated configuration
        """
        frequency = frequency_analysis(comments)

        lower, upper = get_thresholds(list(frequency.categories.values()), alignment_level)
        enabled = {
            category: lower <= share <= upper
            for category, share in frequency.categories.items()
            if category in REVIEW_CATEGORIES
        }
        for category in FORCED_CATEGORIES:
            enabled[category] = True

        lower, upper = get_thresholds(list(frequency.severity.values()), alignment_level)
        detected = next(
            (
                level
                for level in _SEVERITY_ORDER
                if lower <= frequency.severity.get(level.value, 0.0) <= upper
            ),
            SeverityLevel.HIGH,
        )

        base = (defaults or CodeReviewConfig()).to_dict()
        base["review_options"] = ReviewOptions(**enabled).to_dict()
        base["suggestion_control"]["severity_level_filter"] = SeverityLevel.HIGH.value
        base["summary"]["behaviour_for_existing_description"] = (
            BehaviourForExistingDescription.CONCATENATE.value
        )

        logger.debug(
            "Generated review parameters from %d comments (thresholds %.2f-%.2f)",
            len(comments),
            lower,
            upper,
        )

        return CodeReviewParameters(
            config=CodeReviewConfig.from_dict(base),
            frequency=frequency,
            detected_severity=detected,
            enabled_categories=[c for c in REVIEW_CATEGORIES if enabled.get(c)],
        )
