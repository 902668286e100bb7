"""Unit tests for comment analysis and rule generation."""

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest

from pullwise.comments import LIBRARY_RULES, CommentAnalysisService, frequency_analysis, get_thresholds
from pullwise.comments.analysis import detect_language, file_extension_frequency
from pullwise.llm.client import LLMClient, LLMError
from pullwise.models.review_config import BehaviourForExistingDescription, SeverityLevel
from pullwise.models.rules import (
    AlignmentLevel,
    CategorizedComment,
    ReviewRule,
    RuleOrigin,
    RuleStatus,
    UncategorizedComment,
)

LIBRARY_UUID = LIBRARY_RULES[0].uuid


def long_body(text: str) -> str:
    """Pad a comment so it passes the minimum length."""
    return text + " " + "x" * 100


def make_llm(*responses: Any) -> MagicMock:
    """Return a mocked client whose complete_json yields the given values in order."""
    llm = MagicMock(spec=LLMClient)
    llm.complete_json.side_effect = list(responses)
    return llm


# =============================================================================
# Comment cleanup
# =============================================================================


class TestProcessComments:
    """Tests for CommentAnalysisService.process_comments."""

    def test_filters_and_tags_language(self) -> None:
        """Test dedup, bot, marker and length filters plus language tagging."""
        pull_requests = [
            {
                "general_comments": [
                    {"id": 1, "body": long_body("Please handle the timeout here")},
                    {"id": 1, "body": long_body("Duplicate id")},
                    {"id": 2, "body": "Too short"},
                    {"id": 3, "body": long_body("Automated"), "user": {"type": "Bot"}},
                    {"id": 4, "body": long_body("<!-- pullwise-review -->")},
                ],
                "review_comments": [
                    {"id": 5, "body": long_body("Use a context manager"), "thread_id": "t9"},
                ],
                "files": [{"filename": "app.py"}, {"filename": "README.md"}],
            }
        ]

        comments = CommentAnalysisService().process_comments(pull_requests)

        assert [c.id for c in comments] == ["1", "t9-5"]
        assert all(c.language == "python" for c in comments)

    def test_flattens_discussions(self) -> None:
        """Test that notes of threads without a body are used."""
        pull_requests = [
            {
                "reviewComments": [
                    {"notes": [{"id": "n1", "body": long_body("First note")}, {"id": "n2", "body": "ok"}]}
                ]
            }
        ]

        comments = CommentAnalysisService().process_comments(pull_requests)

        assert [c.id for c in comments] == ["n1"]
        assert comments[0].language is None

    def test_caps_at_one_hundred(self) -> None:
        """Test the comment limit."""
        pull_requests = [{"general_comments": [{"id": i, "body": long_body(str(i))} for i in range(150)]}]

        assert len(CommentAnalysisService().process_comments(pull_requests)) == 100

    def test_empty(self) -> None:
        """Test that no comments yield an empty list."""
        assert CommentAnalysisService().process_comments([{}]) == []

    def test_comments_without_id_are_skipped(self) -> None:
        """Test that id-less comments neither collide nor survive."""
        pull_requests = [
            {
                "general_comments": [
                    {"body": long_body("No id at all")},
                    {"id": None, "body": long_body("Null id")},
                    {"id": 7, "body": long_body("Check the return value")},
                    {"body": long_body("Threaded, no id"), "thread_id": "t1"},
                ],
                "review_comments": [{"notes": [{"body": long_body("Note without id")}]}],
            }
        ]

        comments = CommentAnalysisService().process_comments(pull_requests)

        assert [c.id for c in comments] == ["7"]

    def test_warns_below_twenty_comments(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test the low-quality warning when fewer than 20 comments remain."""
        pull_requests = [{"general_comments": [{"id": i, "body": long_body(str(i))} for i in range(19)]}]

        with caplog.at_level(logging.WARNING, logger="pullwise.comments.analysis"):
            comments = CommentAnalysisService().process_comments(pull_requests)

        assert len(comments) == 19
        assert "Only 19 valid comments found" in caplog.text

    def test_no_warning_at_twenty_comments(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that 20 comments are enough."""
        pull_requests = [{"general_comments": [{"id": i, "body": long_body(str(i))} for i in range(20)]}]

        with caplog.at_level(logging.WARNING, logger="pullwise.comments.analysis"):
            CommentAnalysisService().process_comments(pull_requests)

        assert "valid comments found" not in caplog.text


class TestLanguageDetection:
    """Tests for language detection from file extensions."""

    def test_extension_frequency(self) -> None:
        """Test extension shares."""
        files = [{"filename": "a.py"}, {"filename": "b.py"}, {"filename": "c.ts"}, {"filename": "d.ts"}]

        assert file_extension_frequency(files) == {"py": 0.5, "ts": 0.5}

    def test_first_supported_language_wins(self) -> None:
        """Test that the language order decides ties."""
        assert detect_language([{"filename": "a.py"}, {"filename": "b.ts"}]) == "typescript"

    def test_unsupported(self) -> None:
        """Test files with no supported language."""
        assert detect_language([{"filename": "notes.txt"}]) is None


# =============================================================================
# Frequencies and thresholds
# =============================================================================


class TestThresholds:
    """Tests for get_thresholds."""

    def test_empty(self) -> None:
        """Test the full band when nothing was observed."""
        assert get_thresholds([]) == (0.0, 1.0)

    def test_without_alignment(self) -> None:
        """Test that the upper bound stays open without an alignment level."""
        lower, upper = get_thresholds([0.2, 0.5])

        assert lower == pytest.approx(0.225)
        assert upper == 1.0

    def test_high_alignment(self) -> None:
        """Test the band at high alignment."""
        lower, upper = get_thresholds([0.2, 0.5], AlignmentLevel.HIGH)

        assert lower == pytest.approx(0.225)
        assert upper == pytest.approx(0.6)

    def test_medium_alignment(self) -> None:
        """Test that medium alignment sits halfway between low and high."""
        lower, upper = get_thresholds([0.2, 0.5], AlignmentLevel.MEDIUM)

        assert lower == pytest.approx(0.1625)
        assert upper == pytest.approx(0.4125)

    def test_low_alignment(self) -> None:
        """Test the band at low alignment."""
        lower, upper = get_thresholds([0.2, 0.5], AlignmentLevel.LOW)

        assert lower == pytest.approx(0.1)
        assert upper == pytest.approx(0.225)


class TestFrequencyAnalysis:
    """Tests for frequency_analysis."""

    def test_shares(self) -> None:
        """Test category and severity shares."""
        comments = [
            CategorizedComment(id="1", body="a", category="bug", severity="high"),
            CategorizedComment(id="2", body="b", category="bug", severity="low"),
            CategorizedComment(id="3", body="c", category="security", severity="high"),
            CategorizedComment(id="4", body="d", category="naming", severity="high"),
        ]

        frequency = frequency_analysis(comments)

        assert frequency.categories["bug"] == 0.5
        assert frequency.categories["security"] == 0.25
        assert frequency.categories["naming"] == 0.25
        assert frequency.categories["code_style"] == 0.0
        assert frequency.severity == {"critical": 0.0, "high": 0.75, "medium": 0.0, "low": 0.25}

    def test_no_comments(self) -> None:
        """Test that all shares are zero without comments."""
        frequency = frequency_analysis([])

        assert set(frequency.severity.values()) == {0.0}


# =============================================================================
# LLM steps
# =============================================================================


class TestCategorizeComments:
    """Tests for CommentAnalysisService.categorize_comments."""

    def test_categorizes_relevant_comments(self) -> None:
        """Test filter then categorize, keeping original bodies."""
        comments = [UncategorizedComment(id="1", body="Handle errors"), UncategorizedComment(id="2", body="Thanks!")]
        llm = make_llm(
            {"ids": ["1"]},
            {
                "suggestions": [
                    {"id": "1", "category": "error_handling", "severity": "HIGH"},
                    {"id": "99", "category": "bug", "severity": "low"},
                ]
            },
        )

        categorized = CommentAnalysisService(llm).categorize_comments(comments)

        assert categorized == [
            CategorizedComment(id="1", body="Handle errors", category="error_handling", severity="high")
        ]
        assert llm.complete_json.call_count == 2

    def test_nothing_relevant(self) -> None:
        """Test that categorization is skipped when everything is filtered."""
        llm = make_llm({"ids": []})

        result = CommentAnalysisService(llm).categorize_comments([UncategorizedComment(id="1", body="x")])

        assert result == []
        assert llm.complete_json.call_count == 1

    def test_llm_error_yields_empty(self) -> None:
        """Test that LLM failures are logged, not raised."""
        llm = make_llm(LLMError("down"))

        assert CommentAnalysisService(llm).categorize_comments([UncategorizedComment(id="1", body="x")]) == []

    def test_requires_llm(self) -> None:
        """Test that filtering without an LLM raises."""
        with pytest.raises(LLMError, match="not configured"):
            CommentAnalysisService().filter_comments([UncategorizedComment(id="1", body="x")])


class TestGenerateRules:
    """Tests for CommentAnalysisService.generate_rules."""

    def test_generates_standardized_rules(self) -> None:
        """Test generation, quality filter and standardization."""
        llm = make_llm(
            {"ids": ["1"]},
            {
                "rules": [
                    {"uuid": LIBRARY_UUID, "title": "Do not swallow exceptions", "rule": "r", "severity": "high"},
                    {"uuid": "gen-1", "title": "Log with context", "rule": "r2", "severity": "medium"},
                    {"uuid": "gen-2", "title": "Vague", "rule": "be good"},
                ]
            },
            {"uuids": [LIBRARY_UUID, "gen-1"]},
        )

        rules = CommentAnalysisService(llm).generate_rules([UncategorizedComment(id="1", body="x")])

        assert [r.title for r in rules] == ["Do not swallow exceptions", "Log with context"]
        assert rules[0].uuid == LIBRARY_UUID
        assert rules[0].origin == RuleOrigin.LIBRARY
        assert rules[1].uuid == ""
        assert rules[1].origin == RuleOrigin.GENERATED
        assert rules[1].severity == SeverityLevel.MEDIUM
        assert all(r.status == RuleStatus.PENDING for r in rules)

    def test_deduplicates_against_existing(self) -> None:
        """Test the duplicate filter when the team already has rules."""
        existing = [ReviewRule(title="Log with context", rule="r2")]
        llm = make_llm(
            {"ids": ["1"]},
            {"rules": [{"uuid": "gen-1", "title": "Log with context", "rule": "r2"}]},
            {"uuids": []},
        )

        rules = CommentAnalysisService(llm).generate_rules([UncategorizedComment(id="1", body="x")], existing)

        assert rules == []
        assert llm.complete_json.call_count == 3

    def test_no_rules_generated(self) -> None:
        """Test that an empty generation stops early."""
        llm = make_llm({"ids": ["1"]}, {"rules": []})

        assert CommentAnalysisService(llm).generate_rules([UncategorizedComment(id="1", body="x")]) == []
        assert llm.complete_json.call_count == 2

    def test_non_dict_response(self) -> None:
        """Test that unexpected JSON shapes are treated as empty."""
        llm = make_llm(["1"])

        assert CommentAnalysisService(llm).generate_rules([UncategorizedComment(id="1", body="x")]) == []


class TestStandardizeRules:
    """Tests for rule standardization."""

    def test_unknown_uuid_dropped(self) -> None:
        """Test that only library uuids are kept."""
        rule = ReviewRule(title="t", rule="r", uuid="random", status=RuleStatus.ACTIVE, repository_id="repo-1")

        [standardized] = CommentAnalysisService().standardize_rules([rule])

        assert standardized.uuid == ""
        assert standardized.status == RuleStatus.PENDING
        assert standardized.repository_id == "global"


# =============================================================================
# Review parameters
# =============================================================================


class TestCodeReviewParameters:
    """Tests for generate_code_review_parameters."""

    def test_parameters(self) -> None:
        """Test enabled categories, detected severity and fixed settings."""
        comments = [
            CategorizedComment(id="1", body="a", category="error_handling", severity="high"),
            CategorizedComment(id="2", body="b", category="error_handling", severity="high"),
        ]

        parameters = CommentAnalysisService().generate_code_review_parameters(comments)
        options = parameters.config.review_options

        assert options.error_handling is True
        assert options.code_style is False
        assert options.security is True
        assert options.bug is True
        assert parameters.detected_severity == SeverityLevel.HIGH
        assert parameters.config.suggestion_control.severity_level_filter == SeverityLevel.HIGH
        assert (
            parameters.config.summary.behaviour_for_existing_description
            == BehaviourForExistingDescription.CONCATENATE
        )
        assert "error_handling" in parameters.enabled_categories
        assert "code_style" not in parameters.enabled_categories

    def test_to_dict(self) -> None:
        """Test the JSON shape."""
        comments = [CategorizedComment(id="1", body="a", category="bug", severity="low")]

        data = CommentAnalysisService().generate_code_review_parameters(comments).to_dict()

        assert set(data) == {"config", "frequency", "detected_severity", "enabled_categories"}
        assert data["frequency"]["categories"]["bug"] == 1.0
        assert data["detected_severity"] == "low"
