#!/usr/bin/env python3
"""Script to delete stale branches of a GitHub repository."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from branch_janitor.application.retention_engine import RetentionEngine
from branch_janitor.infrastructure.config_loader import EnvConfigLoader, get_setting
from branch_janitor.infrastructure.database import PostgresReportSink
from branch_janitor.infrastructure.github_client import GitHubRestClient
from branch_janitor.infrastructure.reporters import (
    CompositeReportSink,
    GitHubActionsOutputSink,
    LogReportSink,
)

logger = logging.getLogger(__name__)


def configure_logging():
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main():
    """Run one branch cleanup pass against GITHUB_REPOSITORY."""
    configure_logging()
    db_sink = None
    try:
        config = EnvConfigLoader().load()

        # GitHub Actions provides GITHUB_TOKEN and GITHUB_REPOSITORY
        github_token = get_setting("github_token")
        if not github_token:
            if not config.dry_run:
                logger.error("GITHUB_TOKEN is required to delete branches")
                return 1
            logger.warning("GITHUB_TOKEN not found. Using unauthenticated requests (limited rate).")

        repository = os.getenv("GITHUB_REPOSITORY")
        if not repository:
            logger.error("GITHUB_REPOSITORY must be set to owner/repo")
            return 1

        branch_source = GitHubRestClient(repository, token=github_token)

        sinks = [LogReportSink(), GitHubActionsOutputSink()]
        if os.getenv("REPORT_DATABASE", "false").lower() == "true":
            db_sink = PostgresReportSink()
            db_sink.connect()
            # Ensure schema is initialized before any branch is deleted
            db_sink.initialize_schema()
            sinks.append(db_sink)

        engine = RetentionEngine(config, branch_source, CompositeReportSink(sinks))
        engine.run()
        return 0

    except Exception as e:
        logger.error(f"Branch cleanup failed: {e}", exc_info=True)
        return 1
    finally:
        if db_sink is not None:
            db_sink.close()


if __name__ == "__main__":
    sys.exit(main())
