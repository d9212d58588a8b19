"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper.
AccountStore is the repository; _row_to_account is the mapper.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is the authoritative uniqueness guard. The service checks for
  an existing email first, but two concurrent signups can both pass that
  check -- the loser gets sqlalchemy.exc.IntegrityError from create() and the
  service converts it to ConflictError.

The session_events table is declared here so both tables share one metadata
and one engine; SessionJournal in auth/journal.py owns its queries.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Account, Role

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.USER.value),
    Column("created_at", String(32), nullable=False),
)

# Written and read by auth/journal.py. account_id is a plain lookup key: no
# foreign key, so a SIGNOUT can be recorded for any syntactically valid id.
session_events = Table(
    "session_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, nullable=False, index=True),
    Column("action", String(10), nullable=False),
    Column("timestamp", String(32), nullable=False),
)

# Fields update() accepts. id and created_at are immutable.
_MUTABLE_FIELDS = frozenset({"email", "hashed_password", "role"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore("sqlite:///authgate.db")
        account_id = store.create(Account(email="a@x.com", hashed_password=hash_password("secret")))
        account = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create(self, account: Account) -> int:
        """Insert a new account and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    email=account.email,
                    hashed_password=account.hashed_password,
                    role=Role(account.role).value,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(self) -> list[Account]:
        """Return all accounts ordered by id (creation order)."""
        with self.engine.connect() as conn:
            rows = conn.execute(_accounts.select().order_by(_accounts.c.id)).fetchall()
        return [_row_to_account(r) for r in rows]

    def update(self, account_id: int, **fields) -> bool:
        """Update mutable fields on an existing account.

        Accepted fields: email, hashed_password, role. Unknown fields raise
        ValueError rather than being silently dropped.

        Returns True if a row was updated, False if account_id was not found.
        Raises sqlalchemy.exc.IntegrityError if the new email is taken.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)!r}")
        if not fields:
            return self.get_by_id(account_id) is not None
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete(self, account_id: int) -> bool:
        """Permanently delete an account. Returns True if deleted, False if not found.

        Session events are NOT removed here; the service deletes them through
        SessionJournal.delete_for_account() first.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.delete().where(_accounts.c.id == account_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        created_at=row.created_at,
    )
