"""CLI entry point: apply, plan, refresh, destroy, import, show, status."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from scripts.rgw_accounts.config import AccountsConfig, load_config
from scripts.rgw_accounts.db import Database
from scripts.rgw_accounts.errors import BindingError, ReconcileError, StateError
from scripts.rgw_accounts.host import AccountHost, Outcome
from scripts.rgw_accounts.logging_config import configure_logging
from scripts.rgw_accounts.models import AccountRecord
from scripts.rgw_accounts.reconciler import AccountReconciler
from scripts.rgw_accounts.rgw_client import RgwAdminStore
from scripts.rgw_accounts.state import StateStore

logger = logging.getLogger("rgw_accounts.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BINDING = 2


def desired_from_args(args: argparse.Namespace) -> AccountRecord:
    """Build the desired record from --file, overridden by explicit flags."""
    data: dict = {}
    if args.file:
        try:
            data = json.loads(Path(args.file).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise BindingError(f"cannot read desired state from {args.file}: {exc}") from exc
        if not isinstance(data, dict):
            raise BindingError(f"{args.file} must contain a JSON object")
    for key in ("user_id", "display_name", "max_buckets"):
        value = getattr(args, key, None)
        if value is not None:
            data[key] = value
    return AccountRecord.from_desired(data)


def _print_record(record: Optional[AccountRecord]) -> None:
    if record is None:
        print("{}")
        return
    print(json.dumps(record.to_dict(), indent=2))


def _print_outcome(outcome: Outcome) -> None:
    print(f"action: {outcome.action}")
    _print_record(outcome.record)


def _build_host(config: AccountsConfig, db: Database) -> tuple[AccountHost, RgwAdminStore]:
    store = RgwAdminStore(config.rgw)
    host = AccountHost(
        AccountReconciler(store),
        StateStore(db, config.workspace),
        runs=db,
        timeout_seconds=config.rgw.timeout_seconds,
    )
    return host, store


def _run_host_command(args: argparse.Namespace) -> int:
    config = load_config()
    db = Database(config.database)
    store = None
    try:
        db.ensure_schema()
        host, store = _build_host(config, db)
        if args.command == "apply":
            _print_outcome(host.apply(desired_from_args(args)))
        elif args.command == "plan":
            _print_outcome(host.plan(desired_from_args(args)))
        elif args.command == "refresh":
            _print_outcome(host.refresh(args.user_id))
        elif args.command == "destroy":
            _print_outcome(host.destroy(args.user_id))
        elif args.command == "import":
            _print_outcome(host.import_account(args.import_id))
        return EXIT_OK
    finally:
        if store is not None:
            store.close()
        db.close()


def cmd_show(args: argparse.Namespace) -> int:
    """Print persisted state records."""
    config = load_config()
    db = Database(config.database)
    try:
        db.ensure_schema()
        state = StateStore(db, config.workspace)
        if args.user_id:
            record = state.get(args.user_id)
            if record is None:
                print(f"User {args.user_id} is not managed.")
                return EXIT_FAILED
            _print_record(record)
        else:
            print(json.dumps([r.to_dict() for r in state.list()], indent=2))
        return EXIT_OK
    finally:
        db.close()


def cmd_status(args: argparse.Namespace) -> int:
    """Show recent reconcile runs."""
    config = load_config()
    db = Database(config.database)
    try:
        db.ensure_schema()
        runs = db.get_recent_runs(config.workspace, user_id=args.user_id, limit=args.limit)
        if not runs:
            print("No reconcile runs found.")
            return EXIT_OK

        fmt = "{:<36}  {:<8}  {:<24}  {:<8}  {:<20}  {:<8}  {}"
        print(fmt.format("RUN ID", "ACTION", "USER", "STATUS", "STARTED", "OUTCOME", "ERROR"))
        print("-" * 140)
        for r in runs:
            started = str(r["started_at"])[:19] if r["started_at"] else ""
            error = (r.get("error_message") or "")[:40]
            print(fmt.format(
                str(r["id"])[:36],
                r["action"],
                r["user_id"],
                r["status"],
                started,
                r.get("outcome") or "",
                error,
            ))
        return EXIT_OK
    finally:
        db.close()


def _add_desired_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--file", "-f", help="JSON object with user_id, display_name, max_buckets")
    parser.add_argument("--user-id", dest="user_id")
    parser.add_argument("--display-name", dest="display_name")
    parser.add_argument("--max-buckets", dest="max_buckets", type=int)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rgw-accounts",
        description="Reconcile Ceph RGW users against declared state",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply_parser = subparsers.add_parser("apply", help="Create or update the declared user")
    _add_desired_args(apply_parser)
    apply_parser.set_defaults(func=_run_host_command)

    plan_parser = subparsers.add_parser("plan", help="Show the action apply would take")
    _add_desired_args(plan_parser)
    plan_parser.set_defaults(func=_run_host_command)

    refresh_parser = subparsers.add_parser("refresh", help="Re-read a managed user")
    refresh_parser.add_argument("user_id")
    refresh_parser.set_defaults(func=_run_host_command)

    destroy_parser = subparsers.add_parser("destroy", help="Delete a managed user")
    destroy_parser.add_argument("user_id")
    destroy_parser.set_defaults(func=_run_host_command)

    import_parser = subparsers.add_parser("import", help="Adopt an existing user by id")
    import_parser.add_argument("import_id")
    import_parser.set_defaults(func=_run_host_command)

    show_parser = subparsers.add_parser("show", help="Print persisted state")
    show_parser.add_argument("user_id", nargs="?")
    show_parser.set_defaults(func=cmd_show)

    status_parser = subparsers.add_parser("status", help="Show recent reconcile runs")
    status_parser.add_argument("--user-id", dest="user_id")
    status_parser.add_argument(
        "--limit", "-l",
        type=int,
        default=10,
        help="Number of runs to show (default: 10)",
    )
    status_parser.set_defaults(func=cmd_status)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    args = build_parser().parse_args(argv)
    try:
        code = args.func(args)
    except BindingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = EXIT_BINDING
    except ReconcileError as exc:
        print(f"{exc.summary}: {exc.detail}", file=sys.stderr)
        code = EXIT_FAILED
    except (StateError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = EXIT_FAILED
    sys.exit(code)
