"""Pull request entities as seen by the review pipeline.

These are platform-neutral shapes. Platform adapters translate their
payloads into them with ``from_dict``.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class PullRequestReviewStatus(Enum):
    """Aggregate review state of a pull request."""

    NONE = "none"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    COMMENTED = "commented"


@dataclass
class Repository:
    """Repository hosting the pull request.

    Attributes:
        id: Platform repository id
        name: Short repository name
        full_name: Owner-qualified name (owner/name)
        default_branch: Default branch reported by the platform
        language: Primary language if known
        platform: Platform identifier (github, gitlab, local, ...)
    """

    id: str
    name: str
    full_name: str | None = None
    default_branch: str | None = None
    language: str | None = None
    platform: str = "local"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Repository":
        """Create a Repository from a dictionary."""
        name = str(data.get("name", ""))
        return cls(
            id=str(data.get("id", name)),
            name=name,
            full_name=data.get("full_name"),
            default_branch=data.get("default_branch"),
            language=data.get("language"),
            platform=str(data.get("platform", "local")),
        )


@dataclass
class PullRequestUser:
    """Author of a pull request or comment."""

    id: str
    login: str
    type: str = "user"

    @property
    def is_bot(self) -> bool:
        """Return True if the account is a bot."""
        return self.type.lower() == "bot"


@dataclass
class Commit:
    """Commit on the pull request head branch."""

    sha: str
    message: str = ""
    created_at: datetime | None = None


@dataclass
class PullRequest:
    """Pull request under review.

    Attributes:
        number: Pull request number
        title: Title
        body: Description
        source_branch: Head branch the changes come from
        target_branch: Base branch the changes merge into
        is_draft: Whether the PR is a draft
        user: Author
        head_sha: Latest commit on the head branch
        commits: Commits on the PR, oldest first
        review_status: Aggregate review state
    """

    number: int
    title: str
    source_branch: str
    target_branch: str
    body: str = ""
    is_draft: bool = False
    user: PullRequestUser | None = None
    head_sha: str | None = None
    commits: list[Commit] = field(default_factory=list)
    review_status: PullRequestReviewStatus = PullRequestReviewStatus.NONE

    @property
    def last_commit_sha(self) -> str | None:
        """Head commit, falling back to the newest listed commit."""
        if self.head_sha:
            return self.head_sha
        return self.commits[-1].sha if self.commits else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PullRequest":
        """Create a PullRequest from a dictionary.

        Accepts either flat ``source_branch``/``target_branch`` keys or the
        GitHub-style ``head.ref``/``base.ref`` layout.
        """
        head = data.get("head") or {}
        base = data.get("base") or {}
        user_data = data.get("user")

        commits = []
        for commit_data in data.get("commits") or []:
            created = commit_data.get("created_at")
            commits.append(
                Commit(
                    sha=str(commit_data["sha"]),
                    message=commit_data.get("message", ""),
                    created_at=_parse_datetime(created) if created else None,
                )
            )

        return cls(
            number=int(data["number"]),
            title=str(data.get("title", "")),
            source_branch=str(data.get("source_branch") or head.get("ref", "")),
            target_branch=str(data.get("target_branch") or base.get("ref", "")),
            body=data.get("body") or "",
            is_draft=bool(data.get("is_draft", data.get("draft", False))),
            user=PullRequestUser(
                id=str(user_data.get("id", user_data.get("login", ""))),
                login=str(user_data.get("login", "")),
                type=str(user_data.get("type", "user")),
            )
            if user_data
            else None,
            head_sha=data.get("head_sha") or head.get("sha"),
            commits=commits,
            review_status=PullRequestReviewStatus(data.get("review_status", "none")),
        )


class FileStatus(Enum):
    """Change status of a file in a pull request."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    RENAMED = "renamed"
    COPIED = "copied"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass
class FileChange:
    """Single changed file in a pull request.

    Attributes:
        filename: Path of the file in the head branch
        status: Change status
        additions: Added lines
        deletions: Deleted lines
        changes: Total changed lines
        patch: Unified diff of the file
        previous_filename: Former path for renames
        content: Full file content in the head branch, if fetched
        patch_with_lines_str: Patch annotated with new-file line numbers
    """

    filename: str
    status: FileStatus = FileStatus.MODIFIED
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None
    previous_filename: str | None = None
    content: str | None = None
    patch_with_lines_str: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileChange":
        """Create a FileChange from a dictionary."""
        additions = int(data.get("additions", 0))
        deletions = int(data.get("deletions", 0))
        return cls(
            filename=str(data["filename"]),
            status=FileStatus(data.get("status", "modified")),
            additions=additions,
            deletions=deletions,
            changes=int(data.get("changes", additions + deletions)),
            patch=data.get("patch"),
            previous_filename=data.get("previous_filename"),
            content=data.get("content"),
        )


@dataclass
class PullRequestStats:
    """Line statistics of the reviewed changes."""

    total_additions: int = 0
    total_deletions: int = 0
    total_files: int = 0
    total_lines_changed: int = 0

    @classmethod
    def from_files(cls, files: list[FileChange]) -> "PullRequestStats":
        """Compute statistics for a list of changed files."""
        additions = sum(f.additions for f in files)
        deletions = sum(f.deletions for f in files)
        return cls(
            total_additions=additions,
            total_deletions=deletions,
            total_files=len(files),
            total_lines_changed=additions + deletions,
        )


def _parse_datetime(value: str | datetime) -> datetime:
    """Parse an ISO timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
