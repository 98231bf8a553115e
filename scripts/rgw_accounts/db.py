"""Database helpers: connection pool, schema, upserts, run tracking."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional, Sequence

import psycopg2
import psycopg2.extras
import psycopg2.pool

from scripts.rgw_accounts.config import DatabaseConfig

logger = logging.getLogger("rgw_accounts.db")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS rgw_account_state (
    workspace      TEXT NOT NULL,
    user_id        TEXT NOT NULL,
    display_name   TEXT,
    max_buckets    INTEGER,
    created_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_synced_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (workspace, user_id)
);

CREATE TABLE IF NOT EXISTS reconcile_runs (
    id             UUID PRIMARY KEY,
    workspace      TEXT NOT NULL,
    action         TEXT NOT NULL,
    user_id        TEXT NOT NULL,
    status         TEXT NOT NULL,
    started_at     TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    finished_at    TIMESTAMPTZ,
    outcome        TEXT,
    error_kind     TEXT,
    error_message  TEXT
);
"""


class Database:
    """Thin wrapper around a ThreadedConnectionPool with upsert helpers."""

    def __init__(self, config: DatabaseConfig) -> None:
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            minconn=config.min_connections,
            maxconn=config.max_connections,
            dsn=config.url,
        )

    def close(self) -> None:
        self._pool.closeall()

    @contextmanager
    def connection(self) -> Generator:
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Generator:
        """Yield a cursor inside an auto-commit/rollback transaction."""
        with self.connection() as conn:
            try:
                with conn.cursor() as cur:
                    yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def ensure_schema(self) -> None:
        with self.transaction() as cur:
            cur.execute(SCHEMA_SQL)

    def upsert_batch(
        self,
        cur,
        table: str,
        columns: list[str],
        rows: Sequence[tuple],
        conflict_columns: list[str],
        update_columns: list[str],
    ) -> int:
        """Bulk upsert using execute_values with ON CONFLICT DO UPDATE.

        Returns the number of rows affected.
        """
        if not rows:
            return 0

        col_list = ", ".join(columns)
        conflict_list = ", ".join(conflict_columns)
        set_clauses = ", ".join(f"{c} = EXCLUDED.{c}" for c in update_columns)
        set_clauses += ", updated_at = NOW(), last_synced_at = NOW()"

        sql = (
            f"INSERT INTO {table} ({col_list}) VALUES %s "
            f"ON CONFLICT ({conflict_list}) DO UPDATE SET {set_clauses}"
        )

        psycopg2.extras.execute_values(cur, sql, rows)
        return cur.rowcount

    # ------------------------------------------------------------------
    # Run tracking
    # ------------------------------------------------------------------

    def record_run_start(self, workspace: str, action: str, user_id: str) -> str:
        """Insert a reconcile_runs row with status RUNNING. Returns the run id."""
        run_id = str(uuid.uuid4())
        with self.transaction() as cur:
            cur.execute(
                """INSERT INTO reconcile_runs (id, workspace, action, user_id, status)
                   VALUES (%s, %s, %s, %s, 'RUNNING')""",
                (run_id, workspace, action, user_id),
            )
        return run_id

    def record_run_end(
        self,
        run_id: str,
        status: str,
        outcome: Optional[str] = None,
        error_kind: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Finalise a reconcile_runs row."""
        with self.transaction() as cur:
            cur.execute(
                """UPDATE reconcile_runs
                   SET status = %s,
                       finished_at = NOW(),
                       outcome = %s,
                       error_kind = %s,
                       error_message = %s
                   WHERE id = %s""",
                (status, outcome, error_kind, error_message, run_id),
            )

    def get_recent_runs(
        self,
        workspace: str,
        user_id: Optional[str] = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Fetch recent runs for status display."""
        with self.transaction() as cur:
            if user_id:
                cur.execute(
                    """SELECT id, action, user_id, status, started_at, finished_at,
                              outcome, error_kind, error_message
                       FROM reconcile_runs
                       WHERE workspace = %s AND user_id = %s
                       ORDER BY started_at DESC LIMIT %s""",
                    (workspace, user_id, limit),
                )
            else:
                cur.execute(
                    """SELECT id, action, user_id, status, started_at, finished_at,
                              outcome, error_kind, error_message
                       FROM reconcile_runs
                       WHERE workspace = %s
                       ORDER BY started_at DESC LIMIT %s""",
                    (workspace, limit),
                )
            cols = [d[0] for d in cur.description]
            return [dict(zip(cols, row)) for row in cur.fetchall()]
