"""Unit tests for the branch review rule engine."""

import pytest

from pullwise.branches import (
    BranchReviewConfig,
    convert_config_to_expression,
    matches_pattern,
    merge_base_branches,
    process_expression,
    should_review_branches,
    validate_expression,
)


class TestProcessExpression:
    """Tests for compiling expressions into review rules."""

    def test_blank_expression_has_no_rules(self) -> None:
        """Test that empty and whitespace expressions compile to nothing."""
        assert process_expression("").review_rules == {}
        assert process_expression("   ").review_rules == {}
        assert process_expression(None).review_rules == {}

    def test_compiles_all_rule_kinds(self) -> None:
        """Test inclusion, exclusion, explicit inclusion and contains rules."""
        config = process_expression("main, !release/*, =develop, contains:hotfix")

        assert config.review_rules == {
            "*": {"main": True, "!release/*": False, "develop": True},
            "contains:hotfix": {"*": True},
        }

    def test_trims_whitespace_and_empty_rules(self) -> None:
        """Test that blank entries between commas are ignored."""
        config = process_expression(" main ,, feature/* ,")

        assert config.review_rules == {"*": {"main": True, "feature/*": True}}

    def test_to_dict(self) -> None:
        """Test serialization of compiled rules."""
        config = process_expression("main")

        assert config.to_dict() == {"review_rules": {"*": {"main": True}}}


class TestMatchesPattern:
    """Tests for single pattern matching."""

    @pytest.mark.parametrize(
        ("branch", "pattern", "expected"),
        [
            ("main", "main", True),
            ("main", "develop", False),
            ("feature/login", "feature/*", True),
            ("feature", "feature/*", False),
            ("anything", "*", True),
            ("release/1.0", "!release/*", True),
            ("main", "==main", True),
            ("main-2", "==main", False),
            ("fix/hotfix-12", "contains:hotfix", True),
            ("fix/bug", "contains:hotfix", False),
        ],
    )
    def test_patterns(self, branch: str, pattern: str, expected: bool) -> None:
        """Test exact, glob, exclusion and contains patterns."""
        assert matches_pattern(branch, pattern) is expected

    def test_glob_escapes_regex_characters(self) -> None:
        """Test that dots in patterns are literal."""
        assert matches_pattern("v1x0", "v1.0*") is False
        assert matches_pattern("v1.0.3", "v1.0*") is True


class TestShouldReviewBranches:
    """Tests for the review decision."""

    @pytest.fixture
    def config(self) -> BranchReviewConfig:
        return process_expression("main, develop, !release/*, contains:hotfix")

    def test_included_target_is_reviewed(self, config: BranchReviewConfig) -> None:
        """Test that a PR into an included branch is reviewed."""
        assert should_review_branches("feature/x", "main", config) is True

    def test_unknown_target_is_not_reviewed(self, config: BranchReviewConfig) -> None:
        """Test that no matching rule means no review."""
        assert should_review_branches("feature/x", "staging", config) is False

    def test_exclusion_wins(self, config: BranchReviewConfig) -> None:
        """Test that exclusions outrank every inclusion."""
        assert should_review_branches("feature/x", "release/2.0", config) is False
        assert should_review_branches("hotfix/urgent", "release/2.0", config) is False

    def test_contains_source_rule(self, config: BranchReviewConfig) -> None:
        """Test that a contains rule reviews PRs into any branch."""
        assert should_review_branches("bugfix/hotfix-1", "staging", config) is True

    def test_missing_branches(self, config: BranchReviewConfig) -> None:
        """Test that missing branch names are never reviewed."""
        assert should_review_branches(None, "main", config) is False
        assert should_review_branches("feature/x", "", config) is False

    def test_empty_config(self) -> None:
        """Test that no rules means no review."""
        assert should_review_branches("feature/x", "main", BranchReviewConfig()) is False
        assert should_review_branches("feature/x", "main", None) is False

    def test_exact_exclusion(self) -> None:
        """Test that !==name excludes only that exact branch."""
        config = process_expression("*, !==main")

        assert should_review_branches("feature/x", "main", config) is False
        assert should_review_branches("feature/x", "main-old", config) is True

    def test_specific_target_beats_wildcard(self) -> None:
        """Test that a glob target outranks the catch-all rule."""
        config = BranchReviewConfig(review_rules={"*": {"*": False, "feature/*": True}})

        assert should_review_branches("a", "feature/b", config) is True
        assert should_review_branches("a", "main", config) is False

    @pytest.mark.parametrize(
        ("targets", "expected"),
        [
            ({"release/*": True, "*-rc": False}, True),
            ({"*-rc": False, "release/*": True}, False),
        ],
    )
    def test_equal_specificity_first_rule_wins(self, targets: dict[str, bool], expected: bool) -> None:
        """Test that among equally specific matches the first inserted rule decides."""
        config = BranchReviewConfig(review_rules={"*": targets})

        assert should_review_branches("feature/x", "release/2.0-rc", config) is expected


class TestValidateExpression:
    """Tests for expression validation."""

    def test_valid_expression(self) -> None:
        """Test that a well-formed expression passes."""
        result = validate_expression("main, !release/*, contains:hotfix, =develop")

        assert result.is_valid is True
        assert result.errors == []

    def test_blank_expression_is_valid(self) -> None:
        """Test that an empty expression is valid."""
        assert validate_expression("").is_valid is True
        assert validate_expression(None).is_valid is True

    def test_duplicate_rules(self) -> None:
        """Test that duplicate rules are reported."""
        result = validate_expression("main, main")

        assert result.is_valid is False
        assert "Duplicate rules found" in result.errors

    def test_empty_prefix_rules(self) -> None:
        """Test that bare prefixes are rejected."""
        result = validate_expression("!, contains:")

        assert result.is_valid is False
        assert 'Rule 1 is invalid: "!" cannot be empty' in result.errors
        assert 'Rule 2 is invalid: "contains:" cannot be empty' in result.errors

    def test_invalid_characters(self) -> None:
        """Test that characters outside the allowed set are rejected."""
        result = validate_expression("feat ure")

        assert result.is_valid is False
        assert "invalid characters" in result.errors[0]

    def test_double_star(self) -> None:
        """Test that ** is rejected."""
        result = validate_expression("release/**")

        assert result.errors == ['Rule 1 is invalid: "**" is not allowed']

    def test_too_long(self) -> None:
        """Test that rules over 100 characters are rejected."""
        result = validate_expression("a" * 101)

        assert result.errors == ["Rule 1 exceeds 100 characters"]


class TestConvertConfigToExpression:
    """Tests for rendering compiled rules back into an expression."""

    def test_empty_config(self) -> None:
        """Test that no rules render as an empty string."""
        assert convert_config_to_expression(None) == ""
        assert convert_config_to_expression(BranchReviewConfig()) == ""

    def test_renders_rules(self) -> None:
        """Test rendering of each rule kind."""
        config = process_expression("main, !release/*, contains:hotfix")

        assert convert_config_to_expression(config) == "=main, !release/*, contains:hotfix"

    def test_rendered_expression_compiles_to_same_rules(self) -> None:
        """Test that rendering then compiling keeps the rules."""
        config = process_expression("main, feature/*, !release/*, contains:hotfix")

        assert process_expression(convert_config_to_expression(config)) == config


class TestMergeBaseBranches:
    """Tests for merging configured rules with the default branch."""

    def test_adds_default_branch(self) -> None:
        """Test that the default branch is included."""
        assert merge_base_branches(["develop"], "main") == ["develop", "main"]

    def test_does_not_duplicate_default_branch(self) -> None:
        """Test that an included default branch is not added twice."""
        assert merge_base_branches(["main"], "main") == ["main"]

    def test_respects_exclusion_of_default_branch(self) -> None:
        """Test that an excluded default branch stays excluded."""
        assert merge_base_branches(["develop", "!main"], "main") == ["develop", "!main"]

    def test_conflicting_rules_cancel_out(self) -> None:
        """Test that including and excluding the same branch drops both."""
        assert merge_base_branches(["main", "!main", "develop"], None) == ["develop"]

    def test_exclusions_follow_inclusions(self) -> None:
        """Test output ordering."""
        assert merge_base_branches(["!release/*", "develop"], None) == ["develop", "!release/*"]

    def test_repeated_rules_kept_once(self) -> None:
        """Test that duplicates are dropped in first-seen order."""
        assert merge_base_branches(["dev", "!old", "dev", "feature/*", "!old"], "main") == [
            "dev",
            "feature/*",
            "main",
            "!old",
        ]
        assert merge_base_branches(["dev", "dev"], "dev") == ["dev"]
