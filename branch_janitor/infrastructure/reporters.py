"""Report sinks for finished cleanup runs."""

import json
import logging
import os
from typing import Iterable, Optional

from branch_janitor.domain.branch import RunReport
from branch_janitor.domain.ports import ReportSink

logger = logging.getLogger(__name__)


class LogReportSink(ReportSink):
    """Writes a human-readable summary of the run to the log."""

    def emit(self, report: RunReport) -> None:
        logger.info("Summary:")
        logger.info(f"Deleted branches: {len(report.deleted)}")
        logger.info(f"Skipped branches: {len(report.skipped)}")

        if report.deleted:
            logger.info("Deleted branches:")
            for branch in report.deleted:
                logger.info(f"  - {branch}")

        if report.skipped:
            logger.info("Skipped branches:")
            for item in report.skipped:
                logger.info(f"  - {item.branch} ({item.reason.value})")

        if report.dry_run:
            logger.warning("Dry run completed. No branches were actually deleted.")
        else:
            logger.info("Branch cleanup completed successfully!")


class GitHubActionsOutputSink(ReportSink):
    """Publishes the report as GitHub Actions step outputs."""

    def __init__(self, output_path: Optional[str] = None):
        """
        Args:
            output_path: File the outputs are appended to. If None, uses the
                GITHUB_OUTPUT env var.
        """
        if output_path is None:
            output_path = os.getenv("GITHUB_OUTPUT")
        self.output_path = output_path

    @staticmethod
    def format_outputs(report: RunReport) -> str:
        data = report.to_dict()
        return (
            f"deleted-branches={json.dumps(data['deleted'])}\n"
            f"skipped-branches={json.dumps(data['skipped'])}\n"
        )

    def emit(self, report: RunReport) -> None:
        if not self.output_path:
            logger.debug("GITHUB_OUTPUT not set, skipping step outputs")
            return

        with open(self.output_path, "a", encoding="utf-8") as f:
            f.write(self.format_outputs(report))
        logger.info(f"Wrote step outputs to {self.output_path}")


class CompositeReportSink(ReportSink):
    """Forwards a report to several sinks in order."""

    def __init__(self, sinks: Iterable[ReportSink]):
        self.sinks = list(sinks)

    def emit(self, report: RunReport) -> None:
        for sink in self.sinks:
            sink.emit(report)
