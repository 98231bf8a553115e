"""Persisted account state records, one row per (workspace, user_id)."""

from __future__ import annotations

import logging
from typing import Optional

from scripts.rgw_accounts.db import Database
from scripts.rgw_accounts.errors import BindingError
from scripts.rgw_accounts.models import AccountRecord

logger = logging.getLogger("rgw_accounts.state")

_TABLE = "rgw_account_state"
_COLUMNS = ["workspace", "user_id", "display_name", "max_buckets"]


class StateStore:
    def __init__(self, db: Database, workspace: str) -> None:
        self.db = db
        self.workspace = workspace

    def get(self, user_id: str) -> Optional[AccountRecord]:
        with self.db.transaction() as cur:
            cur.execute(
                f"""SELECT user_id, display_name, max_buckets FROM {_TABLE}
                    WHERE workspace = %s AND user_id = %s""",
                (self.workspace, user_id),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return self._decode(row)

    def list(self) -> list[AccountRecord]:
        with self.db.transaction() as cur:
            cur.execute(
                f"""SELECT user_id, display_name, max_buckets FROM {_TABLE}
                    WHERE workspace = %s ORDER BY user_id""",
                (self.workspace,),
            )
            rows = cur.fetchall()
        return [self._decode(row) for row in rows]

    def put(self, record: AccountRecord) -> None:
        row = (self.workspace, record.user_id, record.display_name, record.max_buckets)
        with self.db.transaction() as cur:
            self.db.upsert_batch(
                cur, _TABLE, _COLUMNS, [row],
                ["workspace", "user_id"],
                ["display_name", "max_buckets"],
            )
        logger.debug("State saved", extra={"user_id": record.user_id, "workspace": self.workspace})

    def drop(self, user_id: str) -> bool:
        with self.db.transaction() as cur:
            cur.execute(
                f"DELETE FROM {_TABLE} WHERE workspace = %s AND user_id = %s",
                (self.workspace, user_id),
            )
            removed = cur.rowcount > 0
        logger.debug("State dropped", extra={"user_id": user_id, "workspace": self.workspace})
        return removed

    @staticmethod
    def _decode(row: tuple) -> AccountRecord:
        user_id, display_name, max_buckets = row
        try:
            return AccountRecord.from_dict(
                {"user_id": user_id, "display_name": display_name, "max_buckets": max_buckets}
            )
        except BindingError as exc:
            raise BindingError(f"persisted state for {user_id!r} is corrupt: {exc}") from exc
