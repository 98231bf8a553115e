"""Shared fakes: an in-memory account store and state store."""

from __future__ import annotations

from typing import Optional

import pytest

from scripts.rgw_accounts.context import CallContext
from scripts.rgw_accounts.errors import NotFoundError, TransportError, ValidationError
from scripts.rgw_accounts.models import Account, AccountRecord
from scripts.rgw_accounts.normalize import DEFAULT_MAX_BUCKETS
from scripts.rgw_accounts.reconciler import AccountReconciler
from scripts.rgw_accounts.store import RemoteEntityStore


class FakeAccountStore(RemoteEntityStore):
    """Behaves like the gateway: unset quotas come back as the default."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.calls: list[tuple[str, object]] = []
        self.fail_next: dict[str, Exception] = {}

    def _maybe_fail(self, op: str) -> None:
        exc = self.fail_next.pop(op, None)
        if exc is not None:
            raise exc

    def create(self, account: Account, ctx: CallContext) -> Account:
        self.calls.append(("create", account))
        self._maybe_fail("create")
        if not account.identifier:
            raise ValidationError("400 InvalidArgument", status_code=400)
        if account.identifier in self.accounts:
            raise ValidationError("409 UserAlreadyExists", status_code=409)
        stored = Account(
            identifier=account.identifier,
            display_name=account.display_name,
            max_buckets=(
                account.max_buckets if account.max_buckets is not None else DEFAULT_MAX_BUCKETS
            ),
        )
        self.accounts[stored.identifier] = stored
        return stored

    def fetch(self, identifier: str, ctx: CallContext) -> Account:
        self.calls.append(("fetch", identifier))
        self._maybe_fail("fetch")
        if identifier not in self.accounts:
            raise NotFoundError("404 NoSuchUser", status_code=404)
        return self.accounts[identifier]

    def modify(self, account: Account, ctx: CallContext) -> Account:
        self.calls.append(("modify", account))
        self._maybe_fail("modify")
        current = self.accounts.get(account.identifier)
        if current is None:
            raise NotFoundError("404 NoSuchUser", status_code=404)
        stored = Account(
            identifier=current.identifier,
            display_name=account.display_name or current.display_name,
            max_buckets=(
                account.max_buckets if account.max_buckets is not None else current.max_buckets
            ),
        )
        self.accounts[stored.identifier] = stored
        return stored

    def remove(self, identifier: str, ctx: CallContext) -> None:
        self.calls.append(("remove", identifier))
        self._maybe_fail("remove")
        if identifier not in self.accounts:
            raise NotFoundError("404 NoSuchUser", status_code=404)
        del self.accounts[identifier]


class FakeStateStore:
    def __init__(self, workspace: str = "test") -> None:
        self.workspace = workspace
        self.records: dict[str, AccountRecord] = {}

    def get(self, user_id: str) -> Optional[AccountRecord]:
        return self.records.get(user_id)

    def list(self) -> list[AccountRecord]:
        return [self.records[k] for k in sorted(self.records)]

    def put(self, record: AccountRecord) -> None:
        self.records[record.user_id] = record

    def drop(self, user_id: str) -> bool:
        return self.records.pop(user_id, None) is not None


@pytest.fixture
def store() -> FakeAccountStore:
    return FakeAccountStore()


@pytest.fixture
def reconciler(store: FakeAccountStore) -> AccountReconciler:
    return AccountReconciler(store)


@pytest.fixture
def state() -> FakeStateStore:
    return FakeStateStore()


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("503 Service Unavailable", status_code=503)
