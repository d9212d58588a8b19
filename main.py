#!/usr/bin/env python3
"""
AuthGate -- operator CLI for the account database.

Usage:
  python main.py create-user admin@example.org --admin
  python main.py create-user a@x.com --password pw123456
  python main.py set-role 3 admin
  python main.py list-users
  python main.py sessions 3
  python main.py --db-url sqlite:///other.db list-users

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the account database (default: ./authgate.db)
  SECRET_KEY     Required unless DEBUG=true; the CLI issues no tokens but
                 shares the application's settings validation.
  BCRYPT_ROUNDS  bcrypt cost factor for passwords set here (default 12)

The CLI goes through AccountService like the HTTP API does, so the same
email policy and password hashing apply. It is the only way to grant the
admin role: signup always creates plain users.
"""

from __future__ import annotations

import argparse
import getpass
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from api.models import PASSWORD_MIN_LENGTH, SignupRequest
from auth.errors import AuthError
from auth.journal import SessionJournal
from auth.models import Role
from auth.service import AccountService
from auth.store import AccountStore
from core.config import get_settings


def _prompt_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < PASSWORD_MIN_LENGTH:
            print(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="Manage AuthGate accounts directly against the database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user admin@example.org --admin
  python main.py set-role 3 admin
  python main.py list-users
        """,
    )
    parser.add_argument(
        "--db-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL setting)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = sub.add_parser("create-user", help="Register an account")
    create.add_argument("email", help="Unique email address for login")
    create.add_argument("--password", default=None, help="Password (prompted for when omitted)")
    create.add_argument("--admin", action="store_true", help="Grant the admin role after creation")

    set_role = sub.add_parser("set-role", help="Change an account's role")
    set_role.add_argument("account_id", type=int, metavar="ID")
    set_role.add_argument("role", choices=[r.value for r in Role])

    sub.add_parser("list-users", help="List all accounts")

    sessions = sub.add_parser("sessions", help="Show an account's signin/signout history")
    sessions.add_argument("account_id", type=int, metavar="ID")

    return parser


def _run(args: argparse.Namespace, service: AccountService) -> int:
    if args.command == "create-user":
        password = args.password if args.password is not None else _prompt_password()
        try:
            request = SignupRequest(email=args.email, password=password)
        except ValidationError as exc:
            for err in exc.errors():
                field = ".".join(str(p) for p in err["loc"])
                print(f"Error: {field}: {err['msg']}", file=sys.stderr)
            return 1
        account = service.signup(request.email, request.password)
        if args.admin:
            account = service.set_role(account.id, Role.ADMIN)
        print(f"Created account #{account.id}: {account.email} ({account.role.value})")

    elif args.command == "set-role":
        account = service.set_role(args.account_id, Role(args.role))
        print(f"Account #{account.id} <{account.email}> is now {account.role.value}.")
        print("Tokens issued before this change keep the old role until they expire.")

    elif args.command == "list-users":
        summaries = service.list_accounts()
        if not summaries:
            print("No accounts.")
        for s in summaries:
            print(f"{s.id:>5}  {s.role.value:<6} {s.email:<40} {s.created_at}")

    elif args.command == "sessions":
        events = service.session_history(args.account_id)
        if not events:
            print(f"No session events for account #{args.account_id}.")
        for e in events:
            print(f"{e.timestamp}  {e.action.value}")

    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    store = AccountStore(args.db_url or settings.database_url)
    service = AccountService(
        store,
        SessionJournal(store.engine),
        token_secret=settings.secret_key,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    try:
        return _run(args, service)
    except AuthError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    raise SystemExit(main())
