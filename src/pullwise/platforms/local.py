"""File-backed platform adapter.

Reads a pull request event from a JSON document and records every action
the review would have taken on a real platform (comments, approvals,
description updates). Used by ``pullwise review`` for dry runs and CI jobs
that publish results themselves, and by the tests.

Event layout::

    {
      "action": "opened",
      "repository": {"id": "1", "name": "api", "default_branch": "main"},
      "pull_request": {"number": 7, "title": "...", "head": {"ref": "feature/x", "sha": "abc"},
                       "base": {"ref": "main"}},
      "files": [{"filename": "app.py", "status": "modified", "patch": "@@ ..."}],
      "files_since": {"<commit sha>": [...]},
      "review_status": "none"
    }
"""

import itertools
import json
import logging
from pathlib import Path
from typing import Any

from pullwise.models.pull_request import (
    FileChange,
    PullRequest,
    PullRequestReviewStatus,
    Repository,
)
from pullwise.models.suggestion import InitialComment, LineComment
from pullwise.platforms.base import CodeManagementAdapter, PlatformError

logger = logging.getLogger(__name__)


class LocalCodeManagementAdapter(CodeManagementAdapter):
    """Platform adapter backed by an event document.

    Attributes:
        event: Parsed event document
        actions: Every outbound action, in order
        comments: Current body of each general comment by id
    """

    def __init__(
        self,
        name: str = "local",
        event: dict[str, Any] | None = None,
        event_path: Path | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            name: Platform identifier
            event: Event document
            event_path: JSON file to read the event from when ``event`` is None

        Raises:
            PlatformError: If the event file cannot be read
        """
        super().__init__(name)
        if event is None and event_path is not None:
            event = load_event(event_path)
        self.event: dict[str, Any] = event or {}
        self.actions: list[dict[str, Any]] = []
        self.comments: dict[str, str] = {}
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _record(self, action: str, **data: Any) -> None:
        self.actions.append({"action": action, **data})
        logger.debug("Recorded %s on %s", action, self.name)

    def check_available(self) -> bool:
        """The local adapter is available once it has a pull request."""
        return "pull_request" in self.event

    # =========================================================================
    # Reading
    # =========================================================================

    def get_files_by_pull_request(
        self,
        repository: Repository,
        pull_request: PullRequest,
        since_commit: str | None = None,
    ) -> list[FileChange]:
        """Files from the event, narrowed to ``files_since[since_commit]`` when present."""
        files = self.event.get("files") or []
        if since_commit:
            files_since = self.event.get("files_since") or {}
            if since_commit in files_since:
                files = files_since[since_commit]
        try:
            return [FileChange.from_dict(f) for f in files]
        except (KeyError, ValueError) as e:
            raise PlatformError(self.name, f"invalid file entry: {e}", "get_files") from e

    def get_review_status(
        self,
        repository: Repository,
        pull_request: PullRequest,
    ) -> PullRequestReviewStatus:
        """Review status from the event, updated by approve and request_changes."""
        return PullRequestReviewStatus(self.event.get("review_status", pull_request.review_status.value))

    # =========================================================================
    # Writing
    # =========================================================================

    def create_issue_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        body: str,
    ) -> InitialComment:
        """Record a general comment."""
        comment_id = self._next_id("comment")
        self.comments[comment_id] = body
        self._record("create_issue_comment", id=comment_id, body=body)
        return InitialComment(comment_id=comment_id)

    def update_issue_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        comment_id: str,
        body: str,
    ) -> None:
        """Record a comment update."""
        self.comments[comment_id] = body
        self._record("update_issue_comment", id=comment_id, body=body)

    def create_review_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        comment: LineComment,
    ) -> str:
        """Record a line comment."""
        comment_id = self._next_id("review-comment")
        self._record(
            "create_review_comment",
            id=comment_id,
            path=comment.path,
            line=comment.line,
            start_line=comment.start_line,
            body=comment.body,
        )
        return comment_id

    def update_description(
        self,
        repository: Repository,
        pull_request: PullRequest,
        body: str,
    ) -> None:
        """Record a description update."""
        self._record("update_description", body=body)

    def request_changes(
        self,
        repository: Repository,
        pull_request: PullRequest,
        reason: str,
    ) -> None:
        """Record a change request."""
        self.event["review_status"] = PullRequestReviewStatus.CHANGES_REQUESTED.value
        self._record("request_changes", body=reason)

    def approve(self, repository: Repository, pull_request: PullRequest) -> None:
        """Record an approval."""
        self.event["review_status"] = PullRequestReviewStatus.APPROVED.value
        self._record("approve")

    def minimize_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        comment_id: str,
    ) -> bool:
        """Record that a previous comment was hidden."""
        self._record("minimize_comment", id=comment_id)
        return True

    # =========================================================================
    # Reporting
    # =========================================================================

    def write_report(self, output_path: Path) -> Path:
        """Write the recorded actions to a JSON file.

        Args:
            output_path: Report file

        Returns:
            Path to the written report
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps({"actions": self.actions}, indent=2), encoding="utf-8")
        logger.info("Wrote %d recorded actions to %s", len(self.actions), output_path)
        return output_path


def load_event(path: Path) -> dict[str, Any]:
    """Load a pull request event document.

    Args:
        path: JSON file

    Returns:
        Parsed event

    Raises:
        PlatformError: If the file is missing or not a JSON object
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PlatformError("local", f"cannot read event file {path}: {e}", "load_event") from e
    except json.JSONDecodeError as e:
        raise PlatformError("local", f"event file {path} is not valid JSON: {e}", "load_event") from e
    if not isinstance(data, dict):
        raise PlatformError("local", f"event file {path} must contain a JSON object", "load_event")
    return data
