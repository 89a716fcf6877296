#!/usr/bin/env python3
"""Script to initialize the PostgreSQL schema for cleanup reports."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from branch_janitor.infrastructure.database import PostgresReportSink

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Initialize database schema."""
    try:
        report_store = PostgresReportSink()
        report_store.connect()
        report_store.initialize_schema()
        report_store.close()
        logger.info("Database schema setup completed successfully")
        return 0
    except Exception as e:
        logger.error(f"Failed to setup database schema: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
