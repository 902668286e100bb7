"""Branch review rule engine.

Decides whether a pull request from a source (head) branch into a target
(base) branch should be reviewed. Rules are written as a comma separated
expression, for example::

    feature/aggregation, !develop, !main, !release/*, contains:hotfix

Expressions are compiled into a two-level mapping of
``source pattern -> target pattern -> should review``. When several rules
match a branch pair, the one with the highest specificity wins.

Pattern syntax:
- ``name``: review PRs targeting ``name`` (exact, or glob when it contains ``*``)
- ``=name``: same as ``name``, explicit inclusion
- ``!name``: never review PRs targeting ``name``
- ``contains:text``: review PRs whose source branch contains ``text``
"""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAX_RULE_LENGTH = 100

# Allowed characters in a single rule
_VALID_RULE_RE = re.compile(r"^[a-zA-Z0-9/*\-_!=:]+$")

# Rules that would be empty once their prefix is removed
_EMPTY_PREFIX_RULES = frozenset({"!", "=", "contains:"})

WILDCARD = "*"
EXCLUDE_PREFIX = "!"
INCLUDE_PREFIX = "="
EXACT_PREFIX = "=="
CONTAINS_PREFIX = "contains:"


@dataclass
class BranchReviewConfig:
    """Compiled branch review rules.

    Attributes:
        review_rules: Mapping of source pattern to target pattern to decision
    """

    review_rules: dict[str, dict[str, bool]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, dict[str, dict[str, bool]]]:
        """Convert to dictionary for serialization."""
        return {"review_rules": {k: dict(v) for k, v in self.review_rules.items()}}


@dataclass
class ExpressionValidation:
    """Result of validating a branch expression."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


# =============================================================================
# Expression Parsing
# =============================================================================


def _split_expression(expression: str) -> list[str]:
    """Split an expression into trimmed, non-empty rules."""
    return [rule.strip() for rule in expression.split(",") if rule.strip()]


def process_expression(expression: str | None) -> BranchReviewConfig:
    """Compile a branch expression into review rules.

    Args:
        expression: Comma separated branch rules

    Returns:
        BranchReviewConfig with the compiled rules (empty for blank input)
    """
    config = BranchReviewConfig()
    if not expression or not expression.strip():
        return config

    rules = config.review_rules

    for rule in _split_expression(expression):
        if rule.startswith(EXCLUDE_PREFIX):
            rules.setdefault(WILDCARD, {})[rule] = False
        elif rule.startswith(INCLUDE_PREFIX):
            rules.setdefault(WILDCARD, {})[rule[1:]] = True
        elif rule.startswith(CONTAINS_PREFIX):
            rules[rule] = {WILDCARD: True}
        else:
            rules.setdefault(WILDCARD, {})[rule] = True

    return config


def validate_expression(expression: str | None) -> ExpressionValidation:
    """Validate a branch expression.

    Only the first problem of each rule is reported.

    Args:
        expression: Comma separated branch rules

    Returns:
        ExpressionValidation with human-readable errors
    """
    if not expression or not expression.strip():
        return ExpressionValidation(is_valid=True)

    rules = _split_expression(expression)
    errors: list[str] = []

    if len(set(rules)) != len(rules):
        errors.append("Duplicate rules found")

    for index, rule in enumerate(rules, start=1):
        if len(rule) > MAX_RULE_LENGTH:
            errors.append(f"Rule {index} exceeds {MAX_RULE_LENGTH} characters")
        elif rule in _EMPTY_PREFIX_RULES:
            errors.append(f'Rule {index} is invalid: "{rule}" cannot be empty')
        elif not _VALID_RULE_RE.match(rule):
            errors.append(f'Rule {index} contains invalid characters: "{rule}"')
        elif "**" in rule:
            errors.append(f'Rule {index} is invalid: "**" is not allowed')

    return ExpressionValidation(is_valid=not errors, errors=errors)


def convert_config_to_expression(config: BranchReviewConfig | None) -> str:
    """Render compiled review rules back into an expression.

    Args:
        config: Compiled review rules

    Returns:
        Comma separated expression, empty string when there are no rules
    """
    if config is None or not config.review_rules:
        return ""

    parts: list[str] = []
    for source, targets in config.review_rules.items():
        for target, should_review in targets.items():
            if source == WILDCARD:
                if target.startswith(EXCLUDE_PREFIX):
                    parts.append(target)
                elif should_review:
                    parts.append(f"{INCLUDE_PREFIX}{target}")
                else:
                    parts.append(f"{EXCLUDE_PREFIX}{EXACT_PREFIX}{target[1:]}")
            else:
                parts.append(source)

    return ", ".join(parts)


# =============================================================================
# Matching
# =============================================================================


def matches_pattern(branch: str, pattern: str) -> bool:
    """Check whether a branch name matches a single rule pattern.

    Exclusion patterns (``!x``) match the branches that ``x`` matches; the
    caller decides what a match means through the rule value.

    Args:
        branch: Branch name
        pattern: Rule pattern

    Returns:
        True if the branch matches the pattern
    """
    if pattern.startswith(EXCLUDE_PREFIX):
        return matches_pattern(branch, pattern[1:])

    if pattern.startswith(EXACT_PREFIX):
        return branch == pattern[len(EXACT_PREFIX):]

    if pattern.startswith(CONTAINS_PREFIX):
        return pattern[len(CONTAINS_PREFIX):] in branch

    if WILDCARD in pattern:
        regex = "^" + re.escape(pattern).replace(r"\*", ".*") + "$"
        return re.match(regex, branch) is not None

    return branch == pattern


def source_specificity(pattern: str) -> int:
    """Score how specific a source pattern is."""
    if pattern == WILDCARD:
        return 1
    if pattern.startswith(EXCLUDE_PREFIX):
        return 15
    if pattern.startswith(CONTAINS_PREFIX):
        return 5
    if WILDCARD in pattern:
        return 8
    return 10


def target_specificity(pattern: str) -> int:
    """Score how specific a target pattern is.

    Exclusions always outrank inclusions.
    """
    if pattern.startswith(EXCLUDE_PREFIX):
        return 100
    if pattern == WILDCARD:
        return 1
    if WILDCARD in pattern:
        return 3
    return 8


def should_review_branches(
    source_branch: str | None,
    target_branch: str | None,
    config: BranchReviewConfig | None,
) -> bool:
    """Decide whether a PR between two branches should be reviewed.

    Args:
        source_branch: Head branch of the pull request
        target_branch: Base branch the pull request merges into
        config: Compiled review rules

    Returns:
        The decision of the most specific matching rule, False if none match
    """
    if not source_branch or not target_branch:
        return False
    if config is None or not config.review_rules:
        return False

    best: tuple[int, bool] | None = None

    for source_pattern, targets in config.review_rules.items():
        if not matches_pattern(source_branch, source_pattern):
            continue
        for target_pattern, should_review in targets.items():
            if not matches_pattern(target_branch, target_pattern):
                continue
            score = source_specificity(source_pattern) + target_specificity(target_pattern)
            if best is None or score > best[0]:
                best = (score, should_review)

    if best is None:
        logger.debug("No branch rule matched %s -> %s", source_branch, target_branch)
        return False

    return best[1]


def merge_base_branches(configured: list[str], api_base_branch: str | None) -> list[str]:
    """Merge configured branch rules with the repository default branch.

    The default branch is added as an inclusion unless it is already included
    or explicitly excluded. Inclusions and exclusions naming the same branch
    cancel each other out. Repeated rules are kept once, in first-seen order.

    Args:
        configured: Configured branch rules
        api_base_branch: Repository default branch reported by the platform

    Returns:
        Inclusions followed by exclusions
    """
    unique = list(dict.fromkeys(configured))
    inclusions = [b for b in unique if not b.startswith(EXCLUDE_PREFIX)]
    exclusions = [b for b in unique if b.startswith(EXCLUDE_PREFIX)]

    if (
        api_base_branch
        and api_base_branch not in inclusions
        and f"{EXCLUDE_PREFIX}{api_base_branch}" not in exclusions
    ):
        inclusions.append(api_base_branch)

    excluded_names = {b[1:] for b in exclusions}
    included_names = set(inclusions)

    merged = [b for b in inclusions if b not in excluded_names]
    merged.extend(b for b in exclusions if b[1:] not in included_names)
    return merged
