"""Review execution history.

Every review run is recorded so that later runs can:
- Review only the commits pushed since the last successful review
- Count recent reviews to detect bursts of pushes (auto pause cadence)
- Find the comment of the previous review to hide it

Records are kept newest first in a single JSON file.
"""

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pullwise.models.review_config import ReviewCadenceState
from pullwise.pipeline.base import AutomationStatus

logger = logging.getLogger(__name__)


@dataclass
class ExecutionRecord:
    """One recorded review run.

    Attributes:
        team_automation_id: Automation the run belongs to
        repository_id: Repository id
        pull_request_number: Pull request number
        status: Final status of the run
        message: Status message
        automatic_review_status: Cadence state after the run
        previous_review_status: Cadence state before the run
        last_analyzed_commit: Head commit covered by the run
        comment_id: Initial comment posted by the run
        origin: What triggered the run
        created_at: When the run finished
        id: Unique id
    """

    team_automation_id: str
    repository_id: str
    pull_request_number: int
    status: AutomationStatus
    message: str | None = None
    automatic_review_status: ReviewCadenceState | None = None
    previous_review_status: ReviewCadenceState | None = None
    last_analyzed_commit: str | None = None
    comment_id: str | None = None
    origin: str = "webhook"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(
        self,
        team_automation_id: str,
        pull_request_number: int,
        repository_id: str,
    ) -> bool:
        """Return True if the record belongs to the given pull request."""
        return (
            self.team_automation_id == team_automation_id
            and self.pull_request_number == pull_request_number
            and self.repository_id == repository_id
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "team_automation_id": self.team_automation_id,
            "repository_id": self.repository_id,
            "pull_request_number": self.pull_request_number,
            "status": self.status.value,
            "message": self.message,
            "automatic_review_status": (
                self.automatic_review_status.value if self.automatic_review_status else None
            ),
            "previous_review_status": (
                self.previous_review_status.value if self.previous_review_status else None
            ),
            "last_analyzed_commit": self.last_analyzed_commit,
            "comment_id": self.comment_id,
            "origin": self.origin,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionRecord":
        """Create a record from a dictionary."""
        automatic = data.get("automatic_review_status")
        previous = data.get("previous_review_status")
        created_at = datetime.fromisoformat(data["created_at"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            team_automation_id=str(data["team_automation_id"]),
            repository_id=str(data["repository_id"]),
            pull_request_number=int(data["pull_request_number"]),
            status=AutomationStatus(data["status"]),
            message=data.get("message"),
            automatic_review_status=ReviewCadenceState(automatic) if automatic else None,
            previous_review_status=ReviewCadenceState(previous) if previous else None,
            last_analyzed_commit=data.get("last_analyzed_commit"),
            comment_id=data.get("comment_id"),
            origin=data.get("origin", "webhook"),
            created_at=created_at,
        )


class ExecutionStore:
    """JSON file store of review executions."""

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: JSON file holding the records (created on first save)
        """
        self.path = path

    def _read_entries(self) -> list[Any]:
        """Read the raw entries of the history file.

        Raises:
            ValueError: If the file is not a JSON object with an ``executions`` list
            OSError: If the file cannot be read
        """
        if not self.path.exists():
            return []

        data = json.loads(self.path.read_text(encoding="utf-8"))
        entries = data.get("executions", []) if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise ValueError("expected an object with an 'executions' list")
        return entries

    def load(self) -> list[ExecutionRecord]:
        """Load all records.

        Entries that cannot be parsed are skipped. An unreadable file yields
        no records.

        Returns:
            Records, newest first
        """
        try:
            entries = self._read_entries()
        except (OSError, ValueError) as e:
            logger.warning("Failed to load execution history from %s: %s", self.path, e)
            return []

        records: list[ExecutionRecord] = []
        for index, entry in enumerate(entries):
            try:
                records.append(ExecutionRecord.from_dict(entry))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping execution entry %d in %s: %s", index, self.path, e)
        return records

    def save(self, record: ExecutionRecord) -> None:
        """Prepend a record to the history.

        Entries are kept as stored, including ones :meth:`load` skips. A
        history file that cannot be parsed is moved aside to
        ``<name>.corrupt-<timestamp>`` before a new one is started. The file
        is replaced atomically.

        Args:
            record: Record to save

        Raises:
            OSError: If the history cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        try:
            entries = self._read_entries()
        except ValueError as e:
            backup = self.path.with_name(
                f"{self.path.name}.corrupt-{datetime.now(UTC).strftime('%Y%m%dT%H%M%S%f')}"
            )
            os.replace(self.path, backup)
            logger.error("Execution history %s is unreadable (%s), moved it to %s", self.path, e, backup)
            entries = []

        entries.insert(0, record.to_dict())

        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(json.dumps({"executions": entries}, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
        logger.debug(
            "Saved execution %s (PR #%d, %s) to %s",
            record.id,
            record.pull_request_number,
            record.status.value,
            self.path,
        )

    def find_latest(
        self,
        team_automation_id: str,
        pull_request_number: int,
        repository_id: str,
        status: AutomationStatus | None = None,
        with_review_status: bool = False,
    ) -> ExecutionRecord | None:
        """Find the most recent execution of a pull request.

        Args:
            team_automation_id: Automation id
            pull_request_number: Pull request number
            repository_id: Repository id
            status: Only consider executions with this status
            with_review_status: Only consider executions that recorded a cadence state

        Returns:
            Most recent matching record, or None
        """
        candidates = [
            r
            for r in self.load()
            if r.matches(team_automation_id, pull_request_number, repository_id)
            and (status is None or r.status == status)
            and (not with_review_status or r.automatic_review_status is not None)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.created_at)

    def find_by_period(
        self,
        since: datetime,
        until: datetime,
        team_automation_id: str,
        pull_request_number: int,
        repository_id: str,
        status: AutomationStatus | None = None,
    ) -> list[ExecutionRecord]:
        """Find executions of a pull request created within a time range.

        Args:
            since: Start of the range (inclusive)
            until: End of the range (inclusive)
            team_automation_id: Automation id
            pull_request_number: Pull request number
            repository_id: Repository id
            status: Only consider executions with this status

        Returns:
            Matching records, newest first
        """
        records = [
            r
            for r in self.load()
            if r.matches(team_automation_id, pull_request_number, repository_id)
            and since <= r.created_at <= until
            and (status is None or r.status == status)
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)
