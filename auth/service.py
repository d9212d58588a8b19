"""
auth/service.py -- Account lifecycle orchestration.

AccountService is the only place that combines the store, the journal, the
password hasher and the token codec. It raises typed errors from
auth/errors.py and performs no role checks: admin-only operations are
guarded at the route by require_roles(Role.ADMIN).

Email policy: addresses are stripped and lower-cased before every lookup and
write, so uniqueness is case-insensitive.

Anti-enumeration [login]: an unknown email and a wrong password produce the
same UnauthorizedError and cost one bcrypt verification each.

Layer rule: no imports from api/ or core/. Settings are passed in.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from auth.errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from auth.journal import SessionJournal
from auth.models import Account, AccountSummary, Role, SessionAction, SessionEvent
from auth.passwords import DEFAULT_ROUNDS, burn_verification, dummy_hash, hash_password, verify_password
from auth.store import AccountStore
from auth.tokens import DEFAULT_TTL, TokenClaims, issue_token

logger = logging.getLogger("authgate.auth")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountService:
    """Signup, login, logout and admin account management.

    Usage:
        service = AccountService(store, SessionJournal(store.engine), token_secret=settings.secret_key)
        service.signup("a@x.com", "pw123456")
        token = service.login("a@x.com", "pw123456")
    """

    def __init__(
        self,
        store: AccountStore,
        journal: SessionJournal,
        token_secret: str,
        token_ttl: timedelta = DEFAULT_TTL,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self.store = store
        self.journal = journal
        self._token_secret = token_secret
        self._token_ttl = token_ttl
        self._rounds = bcrypt_rounds
        dummy_hash(bcrypt_rounds)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def signup(self, email: str, password: str) -> Account:
        """Register a new account with role USER. Does not issue a token.

        Callers cannot choose a role here; promotion goes through set_role().
        """
        email = normalize_email(email)
        if self.store.get_by_email(email) is not None:
            raise ConflictError()

        account = Account(email=email, hashed_password=hash_password(password, self._rounds), role=Role.USER)
        try:
            account.id = self.store.create(account)
        except IntegrityError as exc:
            # A concurrent signup committed the same email after our check.
            raise ConflictError() from exc

        logger.info("Account %d registered", account.id)
        return self.store.get_by_id(account.id) or account

    def login(self, email: str, password: str) -> str:
        """Verify credentials, record a SIGNIN event and return a fresh token."""
        account = self.store.get_by_email(normalize_email(email))
        if account is None:
            burn_verification(password, self._rounds)
            raise UnauthorizedError()
        if not verify_password(password, account.hashed_password):
            raise UnauthorizedError()

        self.journal.append(account.id, SessionAction.SIGNIN)
        token = issue_token(
            TokenClaims(
                subject_id=account.id,
                email=account.email,
                role=account.role,
                created_at=account.created_at or "",
            ),
            self._token_secret,
            ttl=self._token_ttl,
        )
        logger.info("Account %d signed in", account.id)
        return token

    def logout(self, account_id: int) -> None:
        """Record a SIGNOUT event. No open session is required."""
        self.journal.append(account_id, SessionAction.SIGNOUT)
        logger.info("Account %d signed out", account_id)

    def update_account(
        self,
        account_id: int,
        email: str | None = None,
        password: str | None = None,
    ) -> Account:
        """Change an account's email and/or password.

        The password is re-hashed on every write; plaintext never reaches the store.
        """
        if not email and not password:
            raise BadRequestError("At least one field (email or password) must be provided for update.")

        account = self._require(account_id)
        fields: dict = {}

        if email:
            email = normalize_email(email)
            if email != account.email:
                if self.store.get_by_email(email) is not None:
                    raise ConflictError()
                fields["email"] = email

        if password:
            fields["hashed_password"] = hash_password(password, self._rounds)

        try:
            updated = self.store.update(account_id, **fields)
        except IntegrityError as exc:
            raise ConflictError() from exc
        if not updated:
            # Deleted between the lookup and the write.
            raise NotFoundError()

        logger.info("Account %d updated (%s)", account_id, ", ".join(sorted(fields)) or "no changes")
        return self._require(account_id)

    def delete_account(self, account_id: int) -> None:
        """Delete an account and, first, every session event recorded for it."""
        self._require(account_id)
        removed = self.journal.delete_for_account(account_id)
        if not self.store.delete(account_id):
            raise NotFoundError()
        logger.info("Account %d deleted (%d session events removed)", account_id, removed)

    def list_accounts(self) -> list[AccountSummary]:
        return [AccountSummary.from_account(a) for a in self.store.list_accounts()]

    def set_role(self, account_id: int, role: Role) -> Account:
        """Change an account's role. Outstanding tokens keep the old role until they expire."""
        role = Role(role)
        self._require(account_id)
        if not self.store.update(account_id, role=role):
            raise NotFoundError()
        logger.info("Account %d role set to %s", account_id, role.value)
        return self._require(account_id)

    def session_history(self, account_id: int) -> list[SessionEvent]:
        return self.journal.list_for_account(account_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, account_id: int) -> Account:
        account = self.store.get_by_id(account_id)
        if account is None:
            raise NotFoundError()
        return account
