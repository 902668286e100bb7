"""Integration tests for Pullwise CLI commands.

These tests run the commands through typer's CliRunner in a temporary
working directory. Only ``litellm.completion`` is mocked.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from pullwise import __version__
from pullwise.cli import app

runner = CliRunner()

SUGGESTION_RESPONSE = {
    "code_suggestions": [
        {
            "relevant_file": "app.py",
            "suggestion_content": "Passing shell=True with user input allows command injection.",
            "one_sentence_summary": "Avoid shell=True",
            "relevant_lines_start": 5,
            "relevant_lines_end": 5,
            "label": "security",
            "severity": "high",
        }
    ],
    "overall_summary": "Reviewed.",
}


@pytest.fixture(autouse=True)
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def long_body(text: str) -> str:
    """Pad a comment so it passes the minimum length."""
    return text + " " + "x" * 100


@pytest.fixture
def pull_requests_file(workdir: Path) -> Path:
    """Write past pull requests with review comments."""
    path = workdir / "pull_requests.json"
    path.write_text(
        json.dumps(
            {
                "pull_requests": [
                    {
                        "general_comments": [{"id": 1, "body": long_body("Handle the timeout here")}],
                        "review_comments": [{"id": 2, "body": long_body("Log the exception with context")}],
                        "files": [{"filename": "app.py"}],
                    }
                ]
            }
        )
    )
    return path


class TestGlobalOptions:
    """Tests for the app callback."""

    def test_version(self) -> None:
        """Test --version output."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"pullwise {__version__}" in result.stdout

    def test_missing_config_file(self, workdir: Path) -> None:
        """Test that --config must point to an existing file."""
        result = runner.invoke(app, ["--config", str(workdir / "nope.yaml"), "branches", "validate", "main"])

        assert result.exit_code != 0

    def test_invalid_config(self, workdir: Path) -> None:
        """Test that an invalid config file fails fast."""
        config = workdir / "pullwise.yaml"
        config.write_text("llm:\n  provider: unknown\n  model: x\n")

        result = runner.invoke(app, ["branches", "validate", "main"])

        assert result.exit_code == 1


class TestInit:
    """Tests for `pullwise init`."""

    def test_creates_config(self, workdir: Path) -> None:
        """Test that init writes the default config."""
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        config_file = workdir / ".pullwise" / "config.yaml"
        assert config_file.exists()
        assert "provider: \"ollama\"" in config_file.read_text()

    def test_refuses_to_overwrite(self, workdir: Path) -> None:
        """Test that an existing config needs --force."""
        runner.invoke(app, ["init"])
        config_file = workdir / ".pullwise" / "config.yaml"
        config_file.write_text("review:\n  run_on_draft: true\n")

        assert runner.invoke(app, ["init"]).exit_code == 1
        assert "run_on_draft: true" in config_file.read_text()

        assert runner.invoke(app, ["init", "--force"]).exit_code == 0
        assert "run_on_draft: true" not in config_file.read_text()


class TestBranches:
    """Tests for `pullwise branches`."""

    def test_check_reviewed(self) -> None:
        """Test that the default branch is always included."""
        result = runner.invoke(app, ["branches", "check", "feature/x", "main", "-e", "develop", "-d", "main"])

        assert result.exit_code == 0
        assert "✅ feature/x -> main is reviewed" in result.stdout

    def test_check_not_reviewed(self) -> None:
        """Test an excluded target branch."""
        result = runner.invoke(app, ["branches", "check", "feature/x", "release/1", "-e", "main, !release/*"])

        assert result.exit_code == 1
        assert "is not reviewed" in result.stdout

    def test_check_invalid_expression(self) -> None:
        """Test that invalid expressions are rejected before checking."""
        result = runner.invoke(app, ["branches", "check", "feature/x", "main", "-e", "main, main"])

        assert result.exit_code == 1
        assert "❌ Duplicate rules found" in result.stdout

    def test_validate(self) -> None:
        """Test a valid expression."""
        result = runner.invoke(app, ["branches", "validate", "main, !release/*, contains:hotfix"])

        assert result.exit_code == 0
        assert "✅ Expression is valid" in result.stdout

    def test_validate_invalid(self) -> None:
        """Test that errors are listed."""
        result = runner.invoke(app, ["branches", "validate", "!, main"])

        assert result.exit_code == 1
        assert "❌ Expression is invalid" in result.stdout
        assert 'Rule 1 is invalid: "!" cannot be empty' in result.stdout

    def test_convert(self) -> None:
        """Test compiled rules and the rendered expression."""
        result = runner.invoke(app, ["branches", "convert", "main, !release/*, contains:hotfix"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["review_rules"]["*"] == {"main": True, "!release/*": False}
        assert data["expression"] == "=main, !release/*, contains:hotfix"


class TestReview:
    """Tests for `pullwise review`."""

    def test_review_json(
        self,
        event_file: Path,
        workdir: Path,
        make_llm_response: Callable[..., MagicMock],
    ) -> None:
        """Test a full review with JSON output and a report."""
        report = workdir / "report.json"

        with patch("litellm.completion", return_value=make_llm_response(SUGGESTION_RESPONSE)):
            result = runner.invoke(
                app,
                ["-q", "review", str(event_file), "--skip-preflight", "--json", "--report", str(report)],
            )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["status"] == "success"
        assert data["files_reviewed"] == 2
        # lib/utils.py gets the same suggestion, outside its hunk
        assert data["comments"] == 1
        assert data["discarded"] == 1
        assert data["last_analyzed_commit"] == "abc123"
        assert data["errors"] == []

        actions = json.loads(report.read_text())["actions"]
        assert [a["action"] for a in actions] == [
            "create_issue_comment",
            "create_review_comment",
            "update_issue_comment",
        ]
        assert (workdir / ".pullwise" / "executions.json").exists()

    def test_review_text(self, event_file: Path, make_llm_response: Callable[..., MagicMock]) -> None:
        """Test the human-readable outcome."""
        with patch("litellm.completion", return_value=make_llm_response({"code_suggestions": []})):
            result = runner.invoke(app, ["-q", "review", str(event_file), "--skip-preflight"])

        assert result.exit_code == 0, result.output
        assert "📝 PR #42: success" in result.stdout
        assert "Files reviewed: 2" in result.stdout
        assert "Comments posted: 0" in result.stdout

    def test_ignored_action(self, workdir: Path, pull_request_event: dict[str, Any]) -> None:
        """Test that non-trigger actions exit cleanly."""
        pull_request_event["action"] = "closed"
        event_file = workdir / "closed.json"
        event_file.write_text(json.dumps(pull_request_event))

        with patch("litellm.completion") as mock_completion:
            result = runner.invoke(app, ["-q", "review", str(event_file), "--skip-preflight", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"status": "ignored", "action": "closed"}
        mock_completion.assert_not_called()

    def test_skipped_review_warns(self, workdir: Path, pull_request_event: dict[str, Any]) -> None:
        """Test that skipped reviews exit with the warning code."""
        pull_request_event["pull_request"]["draft"] = True
        event_file = workdir / "draft.json"
        event_file.write_text(json.dumps(pull_request_event))

        result = runner.invoke(app, ["-q", "review", str(event_file), "--skip-preflight", "--json"])

        assert result.exit_code == 2
        assert json.loads(result.stdout)["status"] == "skipped"

    def test_skipped_review_fails_on_warning(self, workdir: Path, pull_request_event: dict[str, Any]) -> None:
        """Test that fail_on_warning turns a skipped review into an error."""
        (workdir / "pullwise.yaml").write_text("ci:\n  fail_on_warning: true\n")
        pull_request_event["pull_request"]["draft"] = True
        event_file = workdir / "draft.json"
        event_file.write_text(json.dumps(pull_request_event))

        result = runner.invoke(app, ["-q", "review", str(event_file), "--skip-preflight"])

        assert result.exit_code == 1

    def test_json_output_from_config(self, workdir: Path, pull_request_event: dict[str, Any]) -> None:
        """Test that ci.json_output selects JSON output without --json."""
        (workdir / "pullwise.yaml").write_text("ci:\n  json_output: true\n")
        pull_request_event["pull_request"]["draft"] = True
        event_file = workdir / "draft.json"
        event_file.write_text(json.dumps(pull_request_event))

        result = runner.invoke(app, ["-q", "review", str(event_file), "--skip-preflight"])

        assert result.exit_code == 2
        assert json.loads(result.stdout)["status"] == "skipped"

    def test_invalid_event(self, workdir: Path) -> None:
        """Test that malformed event files exit with an error."""
        event_file = workdir / "bad.json"
        event_file.write_text("[]")

        result = runner.invoke(app, ["-q", "review", str(event_file), "--skip-preflight"])

        assert result.exit_code == 1

    def test_unknown_platform(self, event_file: Path) -> None:
        """Test that unregistered platforms exit with an error."""
        result = runner.invoke(app, ["-q", "review", str(event_file), "--platform", "bitbucket", "--skip-preflight"])

        assert result.exit_code == 1


class TestComments:
    """Tests for `pullwise comments`."""

    def test_categorize(self, pull_requests_file: Path, make_llm_response: Callable[..., MagicMock]) -> None:
        """Test categorized comments output."""
        responses = [
            make_llm_response({"ids": ["1", "2"]}),
            make_llm_response(
                {
                    "suggestions": [
                        {"id": "1", "category": "error_handling", "severity": "high"},
                        {"id": "2", "category": "maintainability", "severity": "low"},
                    ]
                }
            ),
        ]

        with patch("litellm.completion", side_effect=responses):
            result = runner.invoke(app, ["-q", "comments", "categorize", str(pull_requests_file)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [(c["id"], c["category"], c["severity"]) for c in data] == [
            ("1", "error_handling", "high"),
            ("2", "maintainability", "low"),
        ]

    def test_categorize_without_comments(self, workdir: Path) -> None:
        """Test that no usable comments exit with the warning code."""
        path = workdir / "empty.json"
        path.write_text("[]")

        result = runner.invoke(app, ["-q", "comments", "categorize", str(path)])

        assert result.exit_code == 2
        assert json.loads(result.stdout) == []

    def test_parameters(self, pull_requests_file: Path, make_llm_response: Callable[..., MagicMock]) -> None:
        """Test review parameters learned from comments."""
        responses = [
            make_llm_response({"ids": ["1", "2"]}),
            make_llm_response(
                {
                    "suggestions": [
                        {"id": "1", "category": "error_handling", "severity": "high"},
                        {"id": "2", "category": "error_handling", "severity": "high"},
                    ]
                }
            ),
        ]

        with patch("litellm.completion", side_effect=responses):
            result = runner.invoke(app, ["-q", "comments", "parameters", str(pull_requests_file)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["config"]["review_options"]["error_handling"] is True
        assert data["config"]["suggestion_control"]["severity_level_filter"] == "high"

    def test_parameters_invalid_alignment(self, pull_requests_file: Path) -> None:
        """Test that unknown alignment levels are rejected."""
        result = runner.invoke(app, ["-q", "comments", "parameters", str(pull_requests_file), "-a", "extreme"])

        assert result.exit_code == 1

    def test_rules(self, pull_requests_file: Path, make_llm_response: Callable[..., MagicMock]) -> None:
        """Test generated rules with deduplication against existing rules."""
        existing = pull_requests_file.parent / "rules.json"
        existing.write_text(json.dumps([{"title": "Log with context", "rule": "Include ids in log messages"}]))
        responses = [
            make_llm_response({"ids": ["1", "2"]}),
            make_llm_response(
                {
                    "rules": [
                        {"uuid": "gen-1", "title": "Set timeouts", "rule": "Pass a timeout to network calls"},
                        {"uuid": "gen-2", "title": "Log with context", "rule": "Include ids in log messages"},
                    ]
                }
            ),
            make_llm_response({"uuids": ["gen-1"]}),
            make_llm_response({"uuids": ["gen-1"]}),
        ]

        with patch("litellm.completion", side_effect=responses) as mock_completion:
            result = runner.invoke(
                app,
                ["-q", "comments", "rules", str(pull_requests_file), "--existing", str(existing)],
            )

        assert result.exit_code == 0, result.output
        assert mock_completion.call_count == 4
        data = json.loads(result.stdout)
        assert [r["title"] for r in data] == ["Set timeouts"]
        assert data[0]["uuid"] == ""
        assert data[0]["origin"] == "generated"
        assert data[0]["status"] == "pending"

    def test_rules_without_results(self, pull_requests_file: Path, make_llm_response: Callable[..., MagicMock]) -> None:
        """Test that an empty generation exits with the warning code."""
        responses = [make_llm_response({"ids": []})]

        with patch("litellm.completion", side_effect=responses):
            result = runner.invoke(app, ["-q", "comments", "rules", str(pull_requests_file)])

        assert result.exit_code == 2
        assert json.loads(result.stdout) == []
