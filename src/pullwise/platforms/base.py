"""Abstract interface for code hosting platforms.

Every platform adapter (GitHub, GitLab, local event files, ...) implements
this interface. Review stages only talk to a ``CodeManagementAdapter``, so
adding a platform does not require changes outside its adapter module.
"""

from abc import ABC, abstractmethod
from typing import Any

from pullwise.models.pull_request import (
    FileChange,
    PullRequest,
    PullRequestReviewStatus,
    Repository,
)
from pullwise.models.suggestion import InitialComment, LineComment


class CodeManagementAdapter(ABC):
    """Operations the review pipeline needs from a code hosting platform.

    Attributes:
        name: Platform identifier (e.g., "local", "github")
    """

    def __init__(self, name: str) -> None:
        """Initialize the adapter.

        Args:
            name: Platform identifier
        """
        self.name = name

    @abstractmethod
    def check_available(self) -> bool:
        """Verify the platform is reachable with the configured credentials."""

    # =========================================================================
    # Reading
    # =========================================================================

    @abstractmethod
    def get_files_by_pull_request(
        self,
        repository: Repository,
        pull_request: PullRequest,
        since_commit: str | None = None,
    ) -> list[FileChange]:
        """Get the files changed by a pull request.

        Args:
            repository: Repository of the pull request
            pull_request: Pull request
            since_commit: Only return changes after this commit, if supported

        Returns:
            Changed files with their patches
        """

    @abstractmethod
    def get_review_status(
        self,
        repository: Repository,
        pull_request: PullRequest,
    ) -> PullRequestReviewStatus:
        """Get the aggregate review status of a pull request."""

    # =========================================================================
    # Writing
    # =========================================================================

    @abstractmethod
    def create_issue_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        body: str,
    ) -> InitialComment:
        """Post a general comment on a pull request.

        Raises:
            PlatformError: If the comment cannot be posted
        """

    @abstractmethod
    def update_issue_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        comment_id: str,
        body: str,
    ) -> None:
        """Replace the body of a general comment."""

    @abstractmethod
    def create_review_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        comment: LineComment,
    ) -> str:
        """Post a comment on changed lines.

        Returns:
            Id of the created comment

        Raises:
            PlatformError: If the comment cannot be posted
        """

    @abstractmethod
    def update_description(
        self,
        repository: Repository,
        pull_request: PullRequest,
        body: str,
    ) -> None:
        """Replace the pull request description."""

    @abstractmethod
    def request_changes(
        self,
        repository: Repository,
        pull_request: PullRequest,
        reason: str,
    ) -> None:
        """Submit a review requesting changes."""

    @abstractmethod
    def approve(self, repository: Repository, pull_request: PullRequest) -> None:
        """Submit an approving review."""

    def minimize_comment(
        self,
        repository: Repository,
        pull_request: PullRequest,
        comment_id: str,
    ) -> bool:
        """Hide an outdated comment.

        Platforms without the concept return False.
        """
        return False

    def get_metadata(self) -> dict[str, Any]:
        """Get adapter metadata for logging and debugging."""
        return {"name": self.name, "available": self.check_available()}


class PlatformError(Exception):
    """Raised when a platform operation fails."""

    def __init__(self, platform: str, message: str, operation: str | None = None) -> None:
        self.platform = platform
        self.operation = operation
        full_message = f"{platform}: {message}"
        if operation:
            full_message = f"{platform} {operation} failed: {message}"
        super().__init__(full_message)


class PlatformNotAvailableError(PlatformError):
    """Raised when a platform adapter is not registered or not reachable."""
