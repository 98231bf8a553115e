"""Minimal binding host: plans and drives one account's lifecycle.

The host owns the persisted records. It invokes one reconciler operation at
a time and writes back whatever the operation returned; a failed operation
leaves the record as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from scripts.rgw_accounts.context import CallContext
from scripts.rgw_accounts.errors import (
    AccountNotFoundError,
    AlreadyManagedError,
    BindingError,
    UnmanagedAccountError,
)
from scripts.rgw_accounts.models import AccountRecord
from scripts.rgw_accounts.normalize import comparable_max_buckets
from scripts.rgw_accounts.reconciler import AccountReconciler
from scripts.rgw_accounts.state import StateStore

logger = logging.getLogger("rgw_accounts.host")

CREATE = "create"
UPDATE = "update"
NOOP = "noop"
DELETE = "delete"


@dataclass(frozen=True)
class Outcome:
    action: str
    record: Optional[AccountRecord]


def needs_update(desired: AccountRecord, current: AccountRecord) -> bool:
    """True when applying ``desired`` would change the persisted ``current``.

    An unset desired quota leaves the remote value alone on update, so it
    never triggers one.
    """
    if desired.display_name != current.display_name:
        return True
    if desired.max_buckets is None:
        return False
    return comparable_max_buckets(desired.max_buckets) != current.max_buckets


class AccountHost:
    def __init__(
        self,
        reconciler: AccountReconciler,
        state: StateStore,
        runs=None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.reconciler = reconciler
        self.state = state
        self.runs = runs
        self.timeout_seconds = timeout_seconds

    def _ctx(self) -> CallContext:
        return CallContext.with_timeout(self.timeout_seconds)

    def plan(self, desired: AccountRecord) -> Outcome:
        """Offline plan against the persisted record, without refreshing."""
        prior = self.state.get(desired.user_id)
        if prior is None:
            return Outcome(CREATE, desired)
        if needs_update(desired, prior):
            return Outcome(UPDATE, desired)
        return Outcome(NOOP, prior)

    def apply(self, desired: AccountRecord) -> Outcome:
        return self._tracked("apply", desired.user_id, lambda: self._apply(desired))

    def refresh(self, user_id: str) -> Outcome:
        return self._tracked("refresh", user_id, lambda: self._refresh(user_id))

    def destroy(self, user_id: str) -> Outcome:
        return self._tracked("destroy", user_id, lambda: self._destroy(user_id))

    def import_account(self, token: str) -> Outcome:
        return self._tracked("import", token, lambda: self._import(token))

    # ------------------------------------------------------------------

    def _apply(self, desired: AccountRecord) -> Outcome:
        if desired.display_name is None:
            raise BindingError("display_name is required")

        current = None
        prior = self.state.get(desired.user_id)
        if prior is not None:
            try:
                current = self.reconciler.read(prior, self._ctx())
            except AccountNotFoundError:
                logger.warning(
                    "Managed account vanished remotely, recreating",
                    extra={"user_id": desired.user_id, "workspace": self.state.workspace},
                )
                self.state.drop(desired.user_id)
            else:
                self.state.put(current)

        if current is None:
            record = self.reconciler.create(desired, self._ctx())
            action = CREATE
        elif needs_update(desired, current):
            record = self.reconciler.update(desired, self._ctx())
            action = UPDATE
        else:
            return Outcome(NOOP, current)

        self.state.put(record)
        return Outcome(action, record)

    def _refresh(self, user_id: str) -> Outcome:
        prior = self._require_state(user_id)
        try:
            record = self.reconciler.read(prior, self._ctx())
        except AccountNotFoundError:
            self.state.drop(user_id)
            raise
        self.state.put(record)
        return Outcome(NOOP, record)

    def _destroy(self, user_id: str) -> Outcome:
        prior = self.state.get(user_id)
        if prior is None:
            logger.info("Nothing to destroy", extra={"user_id": user_id})
            return Outcome(NOOP, None)
        self.reconciler.delete(prior, self._ctx())
        self.state.drop(user_id)
        return Outcome(DELETE, None)

    def _import(self, token: str) -> Outcome:
        seed = self.reconciler.import_state(token)
        if self.state.get(seed.user_id) is not None:
            raise AlreadyManagedError(
                f"user {seed.user_id} is already managed in workspace {self.state.workspace}"
            )
        record = self.reconciler.read(seed, self._ctx())
        self.state.put(record)
        return Outcome(CREATE, record)

    def _require_state(self, user_id: str) -> AccountRecord:
        prior = self.state.get(user_id)
        if prior is None:
            raise UnmanagedAccountError(
                f"user {user_id} is not managed in workspace {self.state.workspace}"
            )
        return prior

    def _tracked(self, action: str, user_id: str, fn: Callable[[], Outcome]) -> Outcome:
        """Wrap a host action with reconcile_runs tracking."""
        run_id = None
        if self.runs is not None:
            run_id = self.runs.record_run_start(
                workspace=self.state.workspace, action=action, user_id=user_id,
            )
        try:
            outcome = fn()
        except Exception as exc:
            kind = getattr(exc, "kind", type(exc).__name__)
            if run_id is not None:
                self.runs.record_run_end(
                    run_id=run_id,
                    status="FAILED",
                    error_kind=kind,
                    error_message=str(exc)[:1000],
                )
            logger.error(
                "%s failed: %s", action, exc,
                extra={"user_id": user_id, "run_id": run_id, "kind": kind},
            )
            raise
        if run_id is not None:
            self.runs.record_run_end(run_id=run_id, status="SUCCESS", outcome=outcome.action)
        logger.info(
            "%s complete: %s", action, outcome.action,
            extra={"user_id": user_id, "run_id": run_id},
        )
        return outcome
