"""
Data models for GitHub Mirror Sync.

Defines the repository descriptor returned by the GitHub API and the
per-repository outcomes that make up a run summary.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class Repository(BaseModel):
    """A remote repository as described by the GitHub API."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str
    full_name: str
    clone_url: str
    default_branch: str

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]


class MirrorAction(str, Enum):
    """What the mirror synchronizer did to a local path."""

    CLONED = "cloned"
    UPDATED = "updated"
    FETCHED = "fetched"  # fetch completed but no reference to reset to
    EMPTY = "empty"  # remote has no content on the default branch yet


class SyncStatus(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncOutcome(BaseModel):
    """Result of one unit of sync work."""

    model_config = ConfigDict(frozen=True)

    full_name: str
    status: SyncStatus
    action: Optional[MirrorAction] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def synced(cls, full_name: str, action: MirrorAction) -> "SyncOutcome":
        return cls(full_name=full_name, status=SyncStatus.SYNCED, action=action)

    @classmethod
    def skipped(cls, full_name: str, reason: str) -> "SyncOutcome":
        return cls(full_name=full_name, status=SyncStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, full_name: str, error: str) -> "SyncOutcome":
        return cls(full_name=full_name, status=SyncStatus.FAILED, error=error)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "full_name": self.full_name,
            "status": self.status.value,
            "action": self.action.value if self.action else None,
            "reason": self.reason,
            "error": self.error,
        }


class Failure(BaseModel):
    """A failed unit of work recorded in a run summary."""

    model_config = ConfigDict(frozen=True)

    full_name: str
    error: str


class RunSummary:
    """Aggregate of all outcomes of one sync run.

    Only the collecting thread calls ``record``; workers hand their outcomes
    back through futures instead of writing here.
    """

    def __init__(self):
        self.processed = 0
        self.synced = 0
        self.skipped = 0
        self.failures: List[Failure] = []

    def record(self, outcome: SyncOutcome) -> None:
        """Fold one outcome into the summary.

        Skipped outcomes do not count as processed.
        """
        if outcome.status is SyncStatus.SKIPPED:
            self.skipped += 1
            return

        self.processed += 1
        if outcome.status is SyncStatus.SYNCED:
            self.synced += 1
        else:
            self.failures.append(
                Failure(full_name=outcome.full_name, error=outcome.error or "unknown error")
            )

    def record_listing_failure(self, label: str, error: str) -> None:
        """Record a failed owner listing; it is not a repository, so not processed."""
        self.failures.append(Failure(full_name=label, error=error))

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "processed": self.processed,
            "synced": self.synced,
            "skipped": self.skipped,
            "failed": self.failed,
            "failures": [f.model_dump() for f in self.failures],
        }

    def __repr__(self) -> str:
        return (
            f"RunSummary(processed={self.processed}, synced={self.synced}, "
            f"skipped={self.skipped}, failed={self.failed})"
        )
