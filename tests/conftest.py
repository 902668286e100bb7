"""Shared pytest fixtures for Pullwise tests.

Fixtures are organized by category:
- Event fixtures: Pull request events as the local platform reads them
- Model fixtures: Repositories, pull requests and changed files
- LLM fixtures: Fake litellm responses
- Pipeline fixtures: Review contexts and adapters
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from pullwise.models.llm_config import LLMConfig
from pullwise.models.pull_request import FileChange, PullRequest, Repository
from pullwise.models.review_config import CodeReviewConfig
from pullwise.pipeline.base import AutomationStatus, StatusInfo
from pullwise.platforms.local import LocalCodeManagementAdapter
from pullwise.platforms.registry import reset_registry
from pullwise.review.context import CodeReviewPipelineContext
from pullwise.store.executions import ExecutionStore

# =============================================================================
# Patch Fixtures
# =============================================================================

APP_PATCH = """@@ -1,4 +1,6 @@
 import os
+import subprocess

 def run(cmd):
-    os.system(cmd)
+    subprocess.call(cmd, shell=True)
+    return True
"""

UTILS_PATCH = """@@ -10,2 +10,3 @@ def helper():
     value = compute()
+    cache[value] = value
     return value
"""


@pytest.fixture
def app_patch() -> str:
    """Return a unified diff with additions and a removal (new lines 1-6)."""
    return APP_PATCH


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def pull_request_event() -> dict[str, Any]:
    """Return a pull request event for the local platform."""
    return {
        "action": "opened",
        "team_automation_id": "team-1",
        "organization_id": "org-1",
        "repository": {
            "id": "repo-1",
            "name": "api",
            "full_name": "acme/api",
            "default_branch": "main",
        },
        "pull_request": {
            "number": 42,
            "title": "Run commands through subprocess",
            "body": "Replaces os.system.",
            "head": {"ref": "feature/subprocess", "sha": "abc123"},
            "base": {"ref": "main"},
            "user": {"id": "7", "login": "dev"},
        },
        "files": [
            {
                "filename": "app.py",
                "status": "modified",
                "additions": 3,
                "deletions": 1,
                "patch": APP_PATCH,
            },
            {
                "filename": "lib/utils.py",
                "status": "modified",
                "additions": 1,
                "deletions": 0,
                "patch": UTILS_PATCH,
            },
        ],
        "review_status": "none",
    }


@pytest.fixture
def event_file(tmp_path: Path, pull_request_event: dict[str, Any]) -> Path:
    """Write the pull request event to a JSON file."""
    path = tmp_path / "event.json"
    path.write_text(json.dumps(pull_request_event))
    return path


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def repository() -> Repository:
    """Return the repository of the sample event."""
    return Repository(id="repo-1", name="api", full_name="acme/api", default_branch="main")


@pytest.fixture
def pull_request() -> PullRequest:
    """Return the pull request of the sample event."""
    return PullRequest(
        number=42,
        title="Run commands through subprocess",
        source_branch="feature/subprocess",
        target_branch="main",
        body="Replaces os.system.",
        head_sha="abc123",
    )


@pytest.fixture
def changed_files() -> list[FileChange]:
    """Return the changed files of the sample event."""
    return [
        FileChange(filename="app.py", additions=3, deletions=1, patch=APP_PATCH),
        FileChange(filename="lib/utils.py", additions=1, patch=UTILS_PATCH),
    ]


# =============================================================================
# LLM Fixtures
# =============================================================================


@pytest.fixture
def llm_config() -> LLMConfig:
    """Return an Ollama LLM configuration (no API key needed)."""
    return LLMConfig(provider="ollama", model="llama3.2", api_base="http://localhost:11434")


@pytest.fixture
def make_llm_response() -> Callable[..., MagicMock]:
    """Return a factory for fake ``litellm.completion`` responses."""

    def _make(content: str | dict[str, Any] | list[Any], finish_reason: str = "stop") -> MagicMock:
        if not isinstance(content, str):
            content = json.dumps(content)
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = content
        response.choices[0].finish_reason = finish_reason
        response.model = "ollama/llama3.2"
        response.usage.prompt_tokens = 100
        response.usage.completion_tokens = 50
        response.usage.total_tokens = 150
        return response

    return _make


# =============================================================================
# Pipeline Fixtures
# =============================================================================


@pytest.fixture
def review_context(repository: Repository, pull_request: PullRequest) -> CodeReviewPipelineContext:
    """Return a review context with the default review configuration."""
    return CodeReviewPipelineContext(
        status_info=StatusInfo(status=AutomationStatus.IN_PROGRESS),
        repository=repository,
        pull_request=pull_request,
        team_automation_id="team-1",
        code_review_config=CodeReviewConfig(),
    )


@pytest.fixture
def local_adapter(pull_request_event: dict[str, Any]) -> LocalCodeManagementAdapter:
    """Return a local adapter over the sample event."""
    return LocalCodeManagementAdapter(event=pull_request_event)


@pytest.fixture
def execution_store(tmp_path: Path) -> ExecutionStore:
    """Return an execution store in a temporary directory."""
    return ExecutionStore(tmp_path / ".pullwise" / "executions.json")


@pytest.fixture(autouse=True)
def _reset_platform_registry() -> None:
    """Give every test a fresh platform registry."""
    reset_registry()
