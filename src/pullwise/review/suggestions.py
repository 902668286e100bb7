"""Suggestion filtering, limiting and prioritization.

Suggestions that survive the per-file checks (changed lines, enabled
categories) go through three more steps before they are commented:

1. Severity filter: below ``severity_level_filter`` is discarded
2. Ordering: severity first, then rank score
3. Quantity limits: per PR, per file, or per severity level
"""

import logging
from collections import Counter
from dataclasses import replace

from pullwise.models.review_config import (
    LimitationType,
    SeverityLevel,
    SuggestionControlConfig,
)
from pullwise.models.suggestion import CodeSuggestion, PriorityStatus

logger = logging.getLogger(__name__)

CUSTOM_RULES_LABEL = "custom_rules"

# Ranges spanning this many lines or more are anchored on their first line only
MAX_MULTILINE_SPAN = 15


def _mark(suggestions: list[CodeSuggestion], status: PriorityStatus) -> list[CodeSuggestion]:
    return [replace(s, priority_status=status) for s in suggestions]


def filter_by_severity(
    suggestions: list[CodeSuggestion],
    control: SuggestionControlConfig,
) -> tuple[list[CodeSuggestion], list[CodeSuggestion]]:
    """Split suggestions by the minimum severity.

    Custom rule violations bypass the filter unless
    ``apply_filters_to_custom_rules`` is set.

    Args:
        suggestions: Candidate suggestions
        control: Suggestion control settings

    Returns:
        Tuple of (kept, discarded)
    """
    minimum = control.severity_level_filter.rank
    kept: list[CodeSuggestion] = []
    discarded: list[CodeSuggestion] = []
    for suggestion in suggestions:
        exempt = suggestion.label == CUSTOM_RULES_LABEL and not control.apply_filters_to_custom_rules
        if exempt or suggestion.severity.rank >= minimum:
            kept.append(suggestion)
        else:
            discarded.append(suggestion)
    return kept, _mark(discarded, PriorityStatus.DISCARDED_BY_SEVERITY)


def sort_suggestions(suggestions: list[CodeSuggestion]) -> list[CodeSuggestion]:
    """Order by severity (most severe first), then rank score."""
    return sorted(suggestions, key=lambda s: (-s.severity.rank, -s.rank_score))


def apply_quantity_limits(
    suggestions: list[CodeSuggestion],
    control: SuggestionControlConfig,
) -> tuple[list[CodeSuggestion], list[CodeSuggestion]]:
    """Apply ``max_suggestions`` or the per-severity limits.

    Expects suggestions already sorted. A limit of zero means unlimited.

    Args:
        suggestions: Sorted suggestions
        control: Suggestion control settings

    Returns:
        Tuple of (kept, discarded)
    """
    kept: list[CodeSuggestion] = []
    discarded: list[CodeSuggestion] = []
    counts: Counter[str] = Counter()

    for suggestion in suggestions:
        if control.limitation_type == LimitationType.SEVERITY:
            key = suggestion.severity.value
            limit = control.severity_limits.for_level(suggestion.severity)
        elif control.limitation_type == LimitationType.FILE:
            key = suggestion.relevant_file
            limit = control.max_suggestions
        else:
            key = "pr"
            limit = control.max_suggestions

        if limit and counts[key] >= limit:
            discarded.append(suggestion)
            continue
        counts[key] += 1
        kept.append(suggestion)

    return kept, _mark(discarded, PriorityStatus.DISCARDED_BY_QUANTITY)


def prioritize_suggestions(
    suggestions: list[CodeSuggestion],
    control: SuggestionControlConfig,
) -> tuple[list[CodeSuggestion], list[CodeSuggestion]]:
    """Run the severity filter, ordering and quantity limits.

    Args:
        suggestions: Valid suggestions of the whole PR
        control: Suggestion control settings

    Returns:
        Tuple of (prioritized, discarded); prioritized suggestions are in
        comment order
    """
    by_severity, discarded_severity = filter_by_severity(suggestions, control)
    prioritized, discarded_quantity = apply_quantity_limits(sort_suggestions(by_severity), control)

    logger.debug(
        "Prioritized %d of %d suggestions (%d below severity, %d over limit)",
        len(prioritized),
        len(suggestions),
        len(discarded_severity),
        len(discarded_quantity),
    )
    return (
        _mark(prioritized, PriorityStatus.PRIORITIZED),
        discarded_severity + discarded_quantity,
    )


def comment_line_range(suggestion: CodeSuggestion) -> tuple[int | None, int | None]:
    """Lines a suggestion's comment is anchored to.

    Single-line and unknown ranges anchor on the end line. Ranges of
    ``MAX_MULTILINE_SPAN`` lines or more anchor on the start line only.

    Returns:
        Tuple of (start_line, line); start_line is None for single-line comments
    """
    start = suggestion.relevant_lines_start
    end = suggestion.relevant_lines_end
    if start is None or end is None or start == end:
        return None, end if end is not None else start
    if start + MAX_MULTILINE_SPAN > end:
        return start, end
    return None, start


def has_critical(suggestions: list[CodeSuggestion]) -> bool:
    """Return True if any suggestion is critical."""
    return any(s.severity == SeverityLevel.CRITICAL for s in suggestions)
