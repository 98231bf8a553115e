from unittest.mock import MagicMock

import pytest

from scripts.rgw_accounts.errors import (
    AccountNotFoundError,
    AlreadyManagedError,
    BindingError,
    ReconcileError,
    UnmanagedAccountError,
    ValidationError,
)
from scripts.rgw_accounts.host import CREATE, DELETE, NOOP, UPDATE, AccountHost, needs_update
from scripts.rgw_accounts.models import Account, AccountRecord


@pytest.fixture
def runs():
    tracker = MagicMock()
    tracker.record_run_start.return_value = "run-1"
    return tracker


@pytest.fixture
def host(reconciler, state, runs):
    return AccountHost(reconciler, state, runs=runs, timeout_seconds=5)


def test_apply_creates_and_persists(host, state):
    outcome = host.apply(AccountRecord("alice", "Alice A"))

    assert outcome.action == CREATE
    assert state.get("alice") == AccountRecord("alice", "Alice A", None)


def test_apply_is_noop_when_converged(host, store):
    host.apply(AccountRecord("alice", "Alice A"))
    store.calls.clear()

    outcome = host.apply(AccountRecord("alice", "Alice A"))

    assert outcome.action == NOOP
    assert [op for op, _ in store.calls] == ["fetch"]


def test_apply_explicit_default_quota_converges(host, store):
    host.apply(AccountRecord("alice", "Alice A", 1000))

    assert host.apply(AccountRecord("alice", "Alice A", 1000)).action == NOOP


def test_apply_without_quota_keeps_remote_quota(host, state, store):
    host.apply(AccountRecord("alice", "Alice A", 50))
    store.calls.clear()

    outcome = host.apply(AccountRecord("alice", "Alice A"))

    assert outcome.action == NOOP
    assert state.get("alice").max_buckets == 50
    assert "modify" not in [op for op, _ in store.calls]


def test_apply_updates_changed_fields(host, state, store):
    host.apply(AccountRecord("alice", "Alice A"))

    outcome = host.apply(AccountRecord("alice", "Alice B", 50))

    assert outcome.action == UPDATE
    assert state.get("alice") == AccountRecord("alice", "Alice B", 50)
    assert store.accounts["alice"] == Account("alice", "Alice B", 50)


def test_apply_recreates_vanished_account(host, state, store):
    host.apply(AccountRecord("alice", "Alice A"))
    del store.accounts["alice"]

    outcome = host.apply(AccountRecord("alice", "Alice A"))

    assert outcome.action == CREATE
    assert "alice" in store.accounts
    assert state.get("alice") == AccountRecord("alice", "Alice A", None)


def test_apply_failed_create_persists_nothing(host, state, store, runs):
    store.fail_next["create"] = ValidationError("400 InvalidArgument", status_code=400)

    with pytest.raises(ReconcileError):
        host.apply(AccountRecord("alice", "Alice A"))

    assert state.get("alice") is None
    runs.record_run_end.assert_called_once_with(
        run_id="run-1",
        status="FAILED",
        error_kind="validation",
        error_message="Error creating user: Could not create user alice: 400 InvalidArgument",
    )


def test_destroy_after_failed_create_is_noop(host, state, store):
    store.fail_next["create"] = ValidationError("400 InvalidArgument", status_code=400)
    with pytest.raises(ReconcileError):
        host.apply(AccountRecord("alice", "Alice A"))
    store.calls.clear()

    outcome = host.destroy("alice")

    assert outcome.action == NOOP
    assert store.calls == []
    assert state.records == {}


def test_apply_requires_display_name(host, store):
    with pytest.raises(BindingError):
        host.apply(AccountRecord("alice"))
    assert store.calls == []


def test_plan_reports_action_without_remote_calls(host, state, store):
    assert host.plan(AccountRecord("alice", "Alice A")).action == CREATE
    state.put(AccountRecord("alice", "Alice A", None))
    assert host.plan(AccountRecord("alice", "Alice A")).action == NOOP
    assert host.plan(AccountRecord("alice", "Alice A", 3)).action == UPDATE
    assert store.calls == []


def test_refresh_persists_remote_values(host, state, store):
    host.apply(AccountRecord("alice", "Alice A", 20))
    store.accounts["alice"] = Account("alice", "Alice A", 1000)

    outcome = host.refresh("alice")

    assert outcome.record.max_buckets is None
    assert state.get("alice").max_buckets is None


def test_refresh_of_vanished_account_drops_state(host, state, store):
    host.apply(AccountRecord("alice", "Alice A"))
    del store.accounts["alice"]

    with pytest.raises(AccountNotFoundError):
        host.refresh("alice")

    assert state.get("alice") is None


def test_refresh_transport_failure_keeps_state(host, state, store, transport_error):
    host.apply(AccountRecord("alice", "Alice A", 20))
    store.fail_next["fetch"] = transport_error

    with pytest.raises(ReconcileError):
        host.refresh("alice")

    assert state.get("alice") == AccountRecord("alice", "Alice A", 20)


def test_refresh_unmanaged_user(host):
    with pytest.raises(UnmanagedAccountError):
        host.refresh("nobody")


def test_destroy_removes_account_and_state(host, state, store, runs):
    host.apply(AccountRecord("alice", "Alice A"))

    outcome = host.destroy("alice")

    assert outcome.action == DELETE
    assert state.get("alice") is None
    assert "alice" not in store.accounts
    runs.record_run_end.assert_called_with(run_id="run-1", status="SUCCESS", outcome=DELETE)


def test_destroy_failure_keeps_state(host, state, store, transport_error):
    host.apply(AccountRecord("alice", "Alice A"))
    store.fail_next["remove"] = transport_error

    with pytest.raises(ReconcileError):
        host.destroy("alice")

    assert state.get("alice") is not None


def test_import_reads_existing_account(host, state, store):
    store.accounts["legacy"] = Account("legacy", "Legacy User", 1000)

    outcome = host.import_account("legacy")

    assert outcome.record == AccountRecord("legacy", "Legacy User", None)
    assert state.get("legacy") == outcome.record
    assert host.apply(AccountRecord("legacy", "Legacy User")).action == NOOP


def test_import_of_missing_account_persists_nothing(host, state):
    with pytest.raises(AccountNotFoundError):
        host.import_account("ghost")
    assert state.records == {}


def test_import_of_managed_account_is_rejected(host, state):
    state.put(AccountRecord("alice", "Alice A"))
    with pytest.raises(AlreadyManagedError):
        host.import_account("alice")


def test_host_without_run_tracking(reconciler, state):
    host = AccountHost(reconciler, state)
    assert host.apply(AccountRecord("alice", "Alice A")).action == CREATE


def test_needs_update_compares_normalized_quota():
    current = AccountRecord("alice", "Alice A", None)
    assert not needs_update(AccountRecord("alice", "Alice A", 1000), current)
    assert needs_update(AccountRecord("alice", "Alice A", 10), current)
    assert needs_update(AccountRecord("alice", "Other", None), current)
    assert not needs_update(
        AccountRecord("alice", "Alice A", None), AccountRecord("alice", "Alice A", 50)
    )


def test_unexpected_failure_is_recorded_as_failed_run(host, state, runs, monkeypatch):
    def broken_put(record):
        raise RuntimeError("state table unavailable")

    monkeypatch.setattr(state, "put", broken_put)

    with pytest.raises(RuntimeError):
        host.apply(AccountRecord("alice", "Alice A"))

    runs.record_run_end.assert_called_once_with(
        run_id="run-1",
        status="FAILED",
        error_kind="RuntimeError",
        error_message="state table unavailable",
    )
