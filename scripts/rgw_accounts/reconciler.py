"""Account lifecycle: create, read, update, delete and import.

The reconciler translates state records into RemoteEntityStore calls and
store results back into state records. ``max_buckets`` passes through the
normalizer on every boundary; every other field is copied verbatim.
Nothing is returned when a call fails or the context is cancelled before a
call is issued, so the host never persists a partial record. A call that
has completed always has its result returned.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from scripts.rgw_accounts.context import CallContext
from scripts.rgw_accounts.errors import (
    BindingError,
    OperationCancelled,
    ReconcileError,
    StoreError,
)
from scripts.rgw_accounts.models import Account, AccountRecord
from scripts.rgw_accounts.normalize import inbound_max_buckets, outbound_max_buckets
from scripts.rgw_accounts.store import RemoteEntityStore

logger = logging.getLogger("rgw_accounts.reconciler")

T = TypeVar("T")


def merge_desired(current: Account, desired: AccountRecord) -> Account:
    """Overlay a desired record on a fetched snapshot for a full-object replace.

    Identifier and display name always come from the desired record; the
    quota only when the desired record sets one.
    """
    max_buckets = current.max_buckets
    if desired.max_buckets is not None:
        max_buckets = outbound_max_buckets(desired.max_buckets)
    return Account(
        identifier=desired.user_id,
        display_name=desired.display_name or "",
        max_buckets=max_buckets,
    )


def _to_record(account: Account) -> AccountRecord:
    return AccountRecord(
        user_id=account.identifier,
        display_name=account.display_name,
        max_buckets=inbound_max_buckets(account.max_buckets),
    )


def _require_display_name(record: AccountRecord) -> None:
    if record.display_name is None:
        raise BindingError(f"display_name is required for user {record.user_id}")


class AccountReconciler:
    """Lifecycle operations for one account kind against an injected store."""

    def __init__(self, store: RemoteEntityStore) -> None:
        self._store = store

    def create(self, plan: AccountRecord, ctx: Optional[CallContext] = None) -> AccountRecord:
        _require_display_name(plan)
        ctx = ctx or CallContext()
        account = Account(
            identifier=plan.user_id,
            display_name=plan.display_name,
            max_buckets=outbound_max_buckets(plan.max_buckets),
        )
        created = self._call(
            "create", plan.user_id, "Error creating user", ctx,
            lambda: self._store.create(account, ctx),
        )
        return _to_record(created)

    def read(self, state: AccountRecord, ctx: Optional[CallContext] = None) -> AccountRecord:
        """Refresh from the remote account; raises AccountNotFoundError if it vanished."""
        ctx = ctx or CallContext()
        fetched = self._call(
            "read", state.user_id, "Error reading user", ctx,
            lambda: self._store.fetch(state.user_id, ctx),
        )
        return _to_record(fetched)

    def update(self, plan: AccountRecord, ctx: Optional[CallContext] = None) -> AccountRecord:
        _require_display_name(plan)
        ctx = ctx or CallContext()
        current = self._call(
            "update", plan.user_id, "Error retrieving user", ctx,
            lambda: self._store.fetch(plan.user_id, ctx),
        )
        merged = merge_desired(current, plan)
        modified = self._call(
            "update", plan.user_id, "Error updating user", ctx,
            lambda: self._store.modify(merged, ctx),
        )
        return _to_record(modified)

    def delete(self, state: AccountRecord, ctx: Optional[CallContext] = None) -> None:
        """Remove the remote account. Returning normally means the record can be dropped."""
        ctx = ctx or CallContext()
        self._call(
            "delete", state.user_id, "Error deleting user", ctx,
            lambda: self._store.remove(state.user_id, ctx),
        )

    def import_state(self, token: str) -> AccountRecord:
        """Seed a record from an external id; the host must read it next."""
        if not isinstance(token, str) or not token:
            raise BindingError("import id must be a non-empty string")
        logger.info("Import seeded", extra={"operation": "import", "user_id": token})
        return AccountRecord(user_id=token)

    def _call(
        self,
        operation: str,
        user_id: str,
        summary: str,
        ctx: CallContext,
        fn: Callable[[], T],
    ) -> T:
        if ctx.cancelled:
            raise OperationCancelled(operation, user_id)
        started = time.monotonic()
        try:
            result = fn()
        except StoreError as exc:
            err = ReconcileError.from_store_error(operation, user_id, summary, exc)
            logger.error(
                "%s: %s",
                summary,
                exc.message,
                extra={"operation": operation, "user_id": user_id, "kind": err.kind},
            )
            raise err from exc
        logger.info(
            "%s ok",
            operation,
            extra={
                "operation": operation,
                "user_id": user_id,
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return result
