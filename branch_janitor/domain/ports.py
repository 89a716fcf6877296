"""Capability interfaces consumed by the retention engine."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from branch_janitor.domain.branch import BranchRecord, RunReport
from branch_janitor.domain.config import CleanupConfig


class BranchSourceError(Exception):
    """Raised when a branch source call fails."""
    pass


class BranchSource(ABC):
    """Lists, inspects and deletes branches of a single repository."""

    @property
    @abstractmethod
    def repository(self) -> str:
        """Repository identifier, e.g. ``owner/repo``."""

    @abstractmethod
    def get_default_branch_name(self) -> str:
        pass

    @abstractmethod
    def list_all_branches(self) -> List[BranchRecord]:
        """Return every branch, following pagination to the last page."""

    @abstractmethod
    def get_last_commit_timestamp(self, branch_name: str) -> datetime:
        pass

    @abstractmethod
    def delete_branch(self, branch_name: str) -> bool:
        """Delete the branch ref. Returns False when the deletion failed."""


class ConfigLoader(ABC):
    @abstractmethod
    def load(self) -> CleanupConfig:
        pass


class ReportSink(ABC):
    """Receives the final report of a run."""

    @abstractmethod
    def emit(self, report: RunReport) -> None:
        pass
