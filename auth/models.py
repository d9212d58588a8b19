"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the service
do the work; these only own the shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of authorization tiers. No implied hierarchy between them."""

    USER = "user"
    ADMIN = "admin"


class SessionAction(str, Enum):
    SIGNIN = "signin"
    SIGNOUT = "signout"


@dataclass
class Account:
    """A registered identity.

    hashed_password is the bcrypt digest and must never leave the service
    layer -- use AccountSummary for anything that crosses the API boundary.

    id and created_at are None before the record is written; the store
    assigns both on insert.
    """

    email: str
    hashed_password: str
    role: Role = Role.USER
    id: int | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class AccountSummary:
    """Outward projection of an Account, without the credential hash."""

    id: int
    email: str
    role: Role
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> AccountSummary:
        return cls(
            id=account.id,
            email=account.email,
            role=account.role,
            created_at=account.created_at or "",
        )


@dataclass
class SessionEvent:
    """Audit record of a signin or signout. Never mutated after insert.

    account_id is a lookup key only -- no ownership relation is implied and
    logout may record an event for an id with no prior signin.
    """

    account_id: int
    action: SessionAction
    id: int | None = None
    timestamp: str | None = None  # ISO 8601, set by journal on insert


@dataclass(frozen=True)
class Identity:
    """Verified caller identity produced by the authentication stage."""

    subject_id: int
    email: str
    role: Role
