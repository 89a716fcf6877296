"""Application service deciding which branches to keep and which to delete."""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Pattern, Set

from branch_janitor.domain.branch import BranchRecord, RunReport, SkipReason
from branch_janitor.domain.config import CleanupConfig
from branch_janitor.domain.ports import BranchSource, ConfigLoader, ReportSink

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from a source are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_ago(value: datetime, now: datetime) -> int:
    """Whole days between ``value`` and ``now``, rounded up."""
    elapsed = abs((_as_utc(now) - _as_utc(value)).total_seconds())
    return math.ceil(elapsed / timedelta(days=1).total_seconds())


def format_timestamp(value: datetime) -> str:
    return _as_utc(value).strftime("%Y-%m-%d %H:%M:%S")


class RetentionEngine:
    """
    Classifies every branch of a repository and deletes the stale ones.

    An engine instance holds the state of exactly one run: the protected set
    extended with the default branch, the fixed cutoff and the report being
    accumulated. Build a new engine for every run.
    """

    def __init__(
        self,
        config: CleanupConfig,
        branch_source: BranchSource,
        report_sink: ReportSink,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the retention engine.

        Args:
            config: Settings for this run
            branch_source: Repository the branches are read from and deleted in
            report_sink: Receives the final report
            clock: Returns the current time; called once for the cutoff and
                again whenever a branch age is logged
        """
        self.config = config
        self.branch_source = branch_source
        self.report_sink = report_sink
        self.clock = clock

        self.protected_branches: Set[str] = set(config.protected_branches)
        self.exclude_regex: Optional[Pattern[str]] = None
        self.cutoff: Optional[datetime] = None
        self.report: Optional[RunReport] = None

    @classmethod
    def from_loader(
        cls,
        config_loader: ConfigLoader,
        branch_source: BranchSource,
        report_sink: ReportSink,
        clock: Callable[[], datetime] = utc_now,
    ) -> "RetentionEngine":
        return cls(config_loader.load(), branch_source, report_sink, clock=clock)

    def run(self) -> RunReport:
        """
        Execute one cleanup pass and emit its report.

        Returns:
            The finalized run report

        Raises:
            BranchSourceError: If the default branch or the branch listing
                cannot be fetched. No report is emitted in that case.
        """
        if self.report is not None:
            raise RuntimeError("RetentionEngine instances are single-use; create a new one per run")

        config = self.config
        logger.info("Starting branch cleanup...")
        logger.info(f"Repository: {self.branch_source.repository}")
        logger.info(f"Days threshold: {config.days_old}")
        logger.info(f"Dry run: {config.dry_run}")
        logger.info(f"Protected branches: {', '.join(sorted(config.protected_branches))}")
        if config.exclude_pattern:
            logger.info(f"Exclude pattern: {config.exclude_pattern}")

        default_branch = self.branch_source.get_default_branch_name()
        logger.info(f"Default branch: {default_branch}")
        self.protected_branches.add(default_branch)

        self.exclude_regex = self._compile_exclude_pattern(config.exclude_pattern)

        started_at = _as_utc(self.clock())
        self.cutoff = started_at - timedelta(days=config.days_old)
        logger.info(f"Cutoff date: {format_timestamp(self.cutoff)}")

        self.report = RunReport(
            repository=self.branch_source.repository,
            dry_run=config.dry_run,
            cutoff=self.cutoff,
        )

        all_branches = self.branch_source.list_all_branches()
        candidates = self._candidates(all_branches, default_branch)

        if not candidates:
            logger.warning("No branches found (other than default branch)")
        else:
            logger.info(f"Found {len(candidates)} branches to analyze")

        for branch in candidates:
            self._process_branch(branch.name)

        self.report_sink.emit(self.report)
        return self.report

    @staticmethod
    def _candidates(branches: List[BranchRecord], default_branch: str) -> List[BranchRecord]:
        return [branch for branch in branches if branch.name != default_branch]

    @staticmethod
    def _compile_exclude_pattern(pattern: Optional[str]) -> Optional[Pattern[str]]:
        if not pattern:
            return None
        try:
            return re.compile(pattern)
        except re.error as e:
            logger.error(f"Invalid exclude pattern: {pattern} ({e})")
            return None

    def is_protected(self, branch_name: str) -> bool:
        return branch_name in self.protected_branches

    def matches_exclude_pattern(self, branch_name: str) -> bool:
        if self.exclude_regex is None:
            return False
        return self.exclude_regex.search(branch_name) is not None

    def _process_branch(self, branch_name: str):
        """Classify a single branch and record the outcome."""
        logger.info(f"Analyzing branch: {branch_name}")

        if self.is_protected(branch_name):
            logger.info("  Skipping protected branch")
            self.report.add_skipped(branch_name, SkipReason.PROTECTED)
            return

        if self.matches_exclude_pattern(branch_name):
            logger.info("  Skipping branch (matches exclude pattern)")
            self.report.add_skipped(branch_name, SkipReason.MATCHES_EXCLUDE_PATTERN)
            return

        try:
            last_commit_at = _as_utc(self.branch_source.get_last_commit_timestamp(branch_name))
        except Exception as e:
            logger.error(f"  Error processing branch: {e}")
            self.report.add_skipped(branch_name, SkipReason.ERROR_PROCESSING)
            return

        age = days_ago(last_commit_at, self.clock())
        logger.info(f"  Last commit: {format_timestamp(last_commit_at)}")

        if last_commit_at < self.cutoff:
            logger.warning(f"  Branch is {age} days old (> {self.config.days_old} days)")
            self._delete(branch_name)
        else:
            logger.info(f"  Branch is {age} days old (< {self.config.days_old} days) - keeping")
            self.report.add_skipped(branch_name, SkipReason.TOO_RECENT)

    def _delete(self, branch_name: str):
        if self.config.dry_run:
            logger.warning("  DRY RUN: Would delete branch")
            self.report.add_deleted(branch_name)
            return

        logger.warning("  Deleting branch...")
        try:
            deleted = self.branch_source.delete_branch(branch_name)
        except Exception as e:
            logger.error(f"  Failed to delete branch {branch_name}: {e}")
            deleted = False

        if deleted:
            logger.info("  Successfully deleted branch")
            self.report.add_deleted(branch_name)
        else:
            self.report.add_skipped(branch_name, SkipReason.DELETION_FAILED)
