"""Domain entities for repository branches and cleanup run reports."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class BranchRecord:
    """
    Immutable branch snapshot taken from a branch listing.

    Listings carry names only, so ``last_commit_at`` stays None unless the
    source already knows the commit time. The retention engine always asks
    the source for the timestamp of a candidate it has to age-check.
    """

    name: str
    last_commit_at: Optional[datetime] = None


class SkipReason(str, Enum):
    """Reason codes attached to branches that were not deleted."""

    PROTECTED = "protected"
    MATCHES_EXCLUDE_PATTERN = "matches_exclude_pattern"
    TOO_RECENT = "too_recent"
    DELETION_FAILED = "deletion_failed"
    ERROR_PROCESSING = "error_processing"


@dataclass(frozen=True)
class SkippedBranch:
    """A branch left in place together with the reason it was kept."""

    branch: str
    reason: SkipReason

    def to_dict(self) -> dict:
        return {"branch": self.branch, "reason": self.reason.value}


@dataclass
class RunReport:
    """Outcome of a single cleanup run."""

    repository: str
    dry_run: bool
    cutoff: datetime
    deleted: List[str] = field(default_factory=list)
    skipped: List[SkippedBranch] = field(default_factory=list)

    def add_deleted(self, branch_name: str):
        self.deleted.append(branch_name)

    def add_skipped(self, branch_name: str, reason: SkipReason):
        self.skipped.append(SkippedBranch(branch=branch_name, reason=reason))

    def skipped_with(self, reason: SkipReason) -> List[str]:
        """Names of skipped branches carrying the given reason, in order."""
        return [item.branch for item in self.skipped if item.reason == reason]

    def to_dict(self) -> dict:
        """
        Serialize the report for machine consumption.

        The ``deleted`` and ``skipped`` keys mirror the action outputs
        ``deleted-branches`` and ``skipped-branches``.
        """
        return {
            "repository": self.repository,
            "dry_run": self.dry_run,
            "cutoff": self.cutoff.isoformat(),
            "deleted": list(self.deleted),
            "skipped": [item.to_dict() for item in self.skipped],
        }
