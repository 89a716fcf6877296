"""PostgreSQL storage for cleanup run reports."""

import logging
import psycopg2
from psycopg2.extras import execute_values
from psycopg2.pool import ThreadedConnectionPool
from typing import Optional
import os

from branch_janitor.domain.branch import RunReport
from branch_janitor.domain.ports import ReportSink

logger = logging.getLogger(__name__)


class PostgresReportSink(ReportSink):
    """Keeps an audit trail of cleanup runs in PostgreSQL."""

    def __init__(self, connection_string: Optional[str] = None):
        """
        Initialize the report store.

        Args:
            connection_string: PostgreSQL connection string. If None, uses env vars.
        """
        if connection_string is None:
            # Build connection string from environment variables
            db_host = os.getenv("POSTGRES_HOST", "localhost")
            db_port = os.getenv("POSTGRES_PORT", "5432")
            db_name = os.getenv("POSTGRES_DB", "branch_janitor")
            db_user = os.getenv("POSTGRES_USER", "postgres")
            db_password = os.getenv("POSTGRES_PASSWORD", "postgres")

            connection_string = (
                f"host={db_host} port={db_port} dbname={db_name} "
                f"user={db_user} password={db_password}"
            )

        self.connection_string = connection_string
        self.pool: Optional[ThreadedConnectionPool] = None

    def connect(self):
        """Initialize connection pool."""
        try:
            self.pool = ThreadedConnectionPool(1, 2, self.connection_string)
            logger.info("Database connection pool created")
        except Exception as e:
            logger.error(f"Error creating connection pool: {e}")
            raise

    def close(self):
        """Close connection pool."""
        if self.pool:
            self.pool.closeall()
            logger.info("Database connection pool closed")

    def _get_connection(self):
        """Get a connection from the pool."""
        if not self.pool:
            self.connect()
        return self.pool.getconn()

    def _return_connection(self, conn):
        """Return a connection to the pool."""
        if self.pool:
            self.pool.putconn(conn)

    def initialize_schema(self):
        """Create database tables if they don't exist."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                # One row per run, one row per branch outcome of that run.
                # A NULL reason marks a deleted branch.
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS cleanup_runs (
                        id SERIAL PRIMARY KEY,
                        repository VARCHAR(512) NOT NULL,
                        dry_run BOOLEAN NOT NULL,
                        cutoff TIMESTAMPTZ NOT NULL,
                        deleted_count INTEGER NOT NULL,
                        skipped_count INTEGER NOT NULL,
                        finished_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    );

                    CREATE TABLE IF NOT EXISTS cleanup_results (
                        run_id INTEGER NOT NULL REFERENCES cleanup_runs(id) ON DELETE CASCADE,
                        position INTEGER NOT NULL,
                        branch VARCHAR(512) NOT NULL,
                        deleted BOOLEAN NOT NULL,
                        reason VARCHAR(64),
                        PRIMARY KEY (run_id, position)
                    );

                    CREATE INDEX IF NOT EXISTS idx_cleanup_runs_repository ON cleanup_runs(repository);
                    CREATE INDEX IF NOT EXISTS idx_cleanup_runs_finished_at ON cleanup_runs(finished_at);
                    CREATE INDEX IF NOT EXISTS idx_cleanup_results_branch ON cleanup_results(branch);
                """)
                conn.commit()
                logger.info("Database schema initialized")
        except Exception as e:
            conn.rollback()
            logger.error(f"Error initializing schema: {e}")
            raise
        finally:
            self._return_connection(conn)

    @staticmethod
    def result_rows(run_id: int, report: RunReport) -> list:
        """Rows for cleanup_results: deleted branches first, then skipped ones."""
        rows = [(run_id, position, branch, True, None) for position, branch in enumerate(report.deleted)]
        offset = len(rows)
        rows.extend(
            (run_id, offset + position, item.branch, False, item.reason.value)
            for position, item in enumerate(report.skipped)
        )
        return rows

    def emit(self, report: RunReport) -> None:
        """
        Store a finished run and its per-branch outcomes in one transaction.

        Args:
            report: Report of the run to store
        """
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO cleanup_runs (
                        repository, dry_run, cutoff, deleted_count, skipped_count
                    ) VALUES (%s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (report.repository, report.dry_run, report.cutoff, len(report.deleted), len(report.skipped)),
                )
                run_id = cur.fetchone()[0]

                rows = self.result_rows(run_id, report)
                if rows:
                    execute_values(
                        cur,
                        """
                        INSERT INTO cleanup_results (run_id, position, branch, deleted, reason)
                        VALUES %s
                        """,
                        rows,
                        template=None,
                        page_size=1000
                    )

                conn.commit()
                logger.info(f"Stored cleanup run {run_id} with {len(rows)} branch results")
        except Exception as e:
            conn.rollback()
            logger.error(f"Error storing cleanup run: {e}")
            raise
        finally:
            self._return_connection(conn)

    def get_run_count(self, repository: Optional[str] = None) -> int:
        """Get the number of stored runs, optionally for a single repository."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                if repository is None:
                    cur.execute("SELECT COUNT(*) FROM cleanup_runs")
                else:
                    cur.execute("SELECT COUNT(*) FROM cleanup_runs WHERE repository = %s", (repository,))
                count = cur.fetchone()[0]
                return count
        except Exception as e:
            logger.error(f"Error getting run count: {e}")
            raise
        finally:
            self._return_connection(conn)
