"""
auth/journal.py -- Append-only audit log of signin/signout events.

SessionJournal shares AccountStore's engine so account deletion and its
event cascade run against the same database. Events are inserted and
deleted, never updated.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from auth.models import SessionAction, SessionEvent
from auth.store import now_iso, session_events


class SessionJournal:
    """Usage:
    journal = SessionJournal(store.engine)
    journal.append(account_id, SessionAction.SIGNIN)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def append(self, account_id: int, action: SessionAction) -> int:
        """Record one event stamped with the current UTC time. Returns its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                session_events.insert().values(
                    account_id=account_id,
                    action=SessionAction(action).value,
                    timestamp=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def list_for_account(self, account_id: int) -> list[SessionEvent]:
        """Return an account's events oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                session_events.select()
                .where(session_events.c.account_id == account_id)
                .order_by(session_events.c.id)
            ).fetchall()
        return [_row_to_event(r) for r in rows]

    def delete_for_account(self, account_id: int) -> int:
        """Delete every event for an account. Returns the number removed."""
        with self.engine.connect() as conn:
            result = conn.execute(session_events.delete().where(session_events.c.account_id == account_id))
            conn.commit()
        return result.rowcount


def _row_to_event(row) -> SessionEvent:
    return SessionEvent(
        id=row.id,
        account_id=row.account_id,
        action=SessionAction(row.action),
        timestamp=row.timestamp,
    )
