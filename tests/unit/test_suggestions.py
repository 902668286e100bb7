"""Unit tests for suggestion filtering, limiting and prioritization."""

from pullwise.models.review_config import (
    LimitationType,
    SeverityLevel,
    SeverityLimits,
    SuggestionControlConfig,
)
from pullwise.models.suggestion import CodeSuggestion, PriorityStatus
from pullwise.review.suggestions import (
    apply_quantity_limits,
    comment_line_range,
    filter_by_severity,
    has_critical,
    prioritize_suggestions,
    sort_suggestions,
)


def make_suggestion(
    severity: SeverityLevel,
    file: str = "app.py",
    rank: float = 0.0,
    label: str = "bug",
    start: int | None = 1,
    end: int | None = 1,
) -> CodeSuggestion:
    return CodeSuggestion(
        relevant_file=file,
        suggestion_content=f"{severity.value} issue",
        label=label,
        severity=severity,
        rank_score=rank,
        relevant_lines_start=start,
        relevant_lines_end=end,
    )


class TestFilterBySeverity:
    """Tests for the minimum severity filter."""

    def test_discards_below_minimum(self) -> None:
        """Test that lower severities are discarded and marked."""
        control = SuggestionControlConfig(severity_level_filter=SeverityLevel.HIGH)
        suggestions = [make_suggestion(SeverityLevel.LOW), make_suggestion(SeverityLevel.CRITICAL)]

        kept, discarded = filter_by_severity(suggestions, control)

        assert [s.severity for s in kept] == [SeverityLevel.CRITICAL]
        assert [s.priority_status for s in discarded] == [PriorityStatus.DISCARDED_BY_SEVERITY]

    def test_custom_rules_are_exempt(self) -> None:
        """Test that custom rule violations bypass the filter by default."""
        control = SuggestionControlConfig(severity_level_filter=SeverityLevel.CRITICAL)
        suggestion = make_suggestion(SeverityLevel.LOW, label="custom_rules")

        kept, discarded = filter_by_severity([suggestion], control)

        assert kept == [suggestion]
        assert discarded == []

    def test_custom_rules_filtered_when_configured(self) -> None:
        """Test apply_filters_to_custom_rules."""
        control = SuggestionControlConfig(
            severity_level_filter=SeverityLevel.CRITICAL,
            apply_filters_to_custom_rules=True,
        )

        kept, discarded = filter_by_severity([make_suggestion(SeverityLevel.LOW, label="custom_rules")], control)

        assert kept == []
        assert len(discarded) == 1


class TestSortSuggestions:
    """Tests for suggestion ordering."""

    def test_severity_then_rank(self) -> None:
        """Test that severity wins over rank score."""
        low_ranked_high = make_suggestion(SeverityLevel.HIGH, rank=1)
        top_ranked_high = make_suggestion(SeverityLevel.HIGH, rank=9)
        critical = make_suggestion(SeverityLevel.CRITICAL, rank=0)
        medium = make_suggestion(SeverityLevel.MEDIUM, rank=100)

        ordered = sort_suggestions([medium, low_ranked_high, critical, top_ranked_high])

        assert ordered == [critical, top_ranked_high, low_ranked_high, medium]


class TestApplyQuantityLimits:
    """Tests for suggestion limits."""

    def test_pr_limit(self) -> None:
        """Test max_suggestions across the whole PR."""
        control = SuggestionControlConfig(limitation_type=LimitationType.PR, max_suggestions=2)
        suggestions = [make_suggestion(SeverityLevel.HIGH, file=f"f{i}.py") for i in range(4)]

        kept, discarded = apply_quantity_limits(suggestions, control)

        assert kept == suggestions[:2]
        assert len(discarded) == 2
        assert all(s.priority_status == PriorityStatus.DISCARDED_BY_QUANTITY for s in discarded)

    def test_file_limit(self) -> None:
        """Test max_suggestions per file."""
        control = SuggestionControlConfig(limitation_type=LimitationType.FILE, max_suggestions=1)
        suggestions = [
            make_suggestion(SeverityLevel.HIGH, file="a.py"),
            make_suggestion(SeverityLevel.HIGH, file="a.py"),
            make_suggestion(SeverityLevel.HIGH, file="b.py"),
        ]

        kept, discarded = apply_quantity_limits(suggestions, control)

        assert [s.relevant_file for s in kept] == ["a.py", "b.py"]
        assert len(discarded) == 1

    def test_severity_limits(self) -> None:
        """Test per-severity limits; zero means unlimited."""
        control = SuggestionControlConfig(
            limitation_type=LimitationType.SEVERITY,
            severity_limits=SeverityLimits(high=1, low=0),
        )
        suggestions = [
            make_suggestion(SeverityLevel.HIGH),
            make_suggestion(SeverityLevel.HIGH),
            make_suggestion(SeverityLevel.LOW),
            make_suggestion(SeverityLevel.LOW),
        ]

        kept, discarded = apply_quantity_limits(suggestions, control)

        assert [s.severity for s in kept] == [SeverityLevel.HIGH, SeverityLevel.LOW, SeverityLevel.LOW]
        assert [s.severity for s in discarded] == [SeverityLevel.HIGH]

    def test_zero_max_is_unlimited(self) -> None:
        """Test that max_suggestions=0 keeps everything."""
        control = SuggestionControlConfig(max_suggestions=0)
        suggestions = [make_suggestion(SeverityLevel.HIGH) for _ in range(20)]

        kept, discarded = apply_quantity_limits(suggestions, control)

        assert len(kept) == 20
        assert discarded == []


class TestPrioritizeSuggestions:
    """Tests for the full prioritization."""

    def test_prioritized_in_comment_order(self) -> None:
        """Test filter, order and limit together."""
        control = SuggestionControlConfig(
            severity_level_filter=SeverityLevel.MEDIUM,
            max_suggestions=2,
        )
        suggestions = [
            make_suggestion(SeverityLevel.LOW),
            make_suggestion(SeverityLevel.MEDIUM),
            make_suggestion(SeverityLevel.CRITICAL),
            make_suggestion(SeverityLevel.HIGH),
        ]

        prioritized, discarded = prioritize_suggestions(suggestions, control)

        assert [s.severity for s in prioritized] == [SeverityLevel.CRITICAL, SeverityLevel.HIGH]
        assert all(s.priority_status == PriorityStatus.PRIORITIZED for s in prioritized)
        assert {s.priority_status for s in discarded} == {
            PriorityStatus.DISCARDED_BY_SEVERITY,
            PriorityStatus.DISCARDED_BY_QUANTITY,
        }

    def test_does_not_mutate_input(self) -> None:
        """Test that statuses are set on copies."""
        suggestion = make_suggestion(SeverityLevel.HIGH)

        prioritize_suggestions([suggestion], SuggestionControlConfig())

        assert suggestion.priority_status is None


class TestCommentLineRange:
    """Tests for comment anchoring."""

    def test_single_line(self) -> None:
        """Test that a single line has no start line."""
        assert comment_line_range(make_suggestion(SeverityLevel.LOW, start=7, end=7)) == (None, 7)

    def test_short_range(self) -> None:
        """Test that short ranges keep both ends."""
        assert comment_line_range(make_suggestion(SeverityLevel.LOW, start=10, end=20)) == (10, 20)

    def test_long_range_anchors_on_start(self) -> None:
        """Test that ranges of 15 lines or more anchor on the first line."""
        assert comment_line_range(make_suggestion(SeverityLevel.LOW, start=10, end=25)) == (None, 10)

    def test_missing_lines(self) -> None:
        """Test ranges with a missing end."""
        assert comment_line_range(make_suggestion(SeverityLevel.LOW, start=4, end=None)) == (None, 4)
        assert comment_line_range(make_suggestion(SeverityLevel.LOW, start=None, end=None)) == (None, None)


def test_has_critical() -> None:
    """Test detection of critical suggestions."""
    assert has_critical([make_suggestion(SeverityLevel.CRITICAL)]) is True
    assert has_critical([make_suggestion(SeverityLevel.HIGH)]) is False
    assert has_critical([]) is False
