"""
tests/conftest.py -- Shared test fixtures for AuthGate.

This module provides:
  - store / journal / service: isolated in-memory stores for unit tests
  - _patch_lifespan(): wires a test service into app.state, bypassing real startup
  - api_client: TestClient over the real app plus the service behind it
  - admin_token / user_token: helpers that create an account and log it in

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
TestClient because it runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Unit-test stores stay on one thread and can use :memory:.

Environment must be set before any auth/api/core import:
  DEBUG=true          -- get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4     -- allowed only in debug; keeps hashing fast
  *_RATE_LIMIT        -- high enough that the suite never trips slowapi
  ALLOWED_HOSTS       -- TestClient sends Host: testserver
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any auth/core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("SIGNUP_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.journal import SessionJournal
from auth.models import Role
from auth.service import AccountService
from auth.store import AccountStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"
TEST_ROUNDS = 4


@pytest.fixture
def token_secret() -> str:
    return TEST_SECRET


# ---------------------------------------------------------------------------
# Unit-test fixtures -- fresh in-memory database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def journal(store: AccountStore) -> SessionJournal:
    return SessionJournal(store.engine)


@pytest.fixture
def service(store: AccountStore, journal: SessionJournal) -> AccountService:
    return AccountService(store, journal, token_secret=TEST_SECRET, bcrypt_rounds=TEST_ROUNDS)


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AccountService):
    """Return a lifespan that publishes the test service and secret on app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_service = service
        app.state.token_secret = TEST_SECRET
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, AccountService], None, None]:
    """Yield (client, service) for API integration tests.

    One isolated shared-memory database per test module, named after the
    module so modules never see each other's accounts.
    """
    db_name = request.module.__name__.replace(".", "_")
    store = AccountStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    service = AccountService(store, SessionJournal(store.engine), token_secret=TEST_SECRET, bcrypt_rounds=TEST_ROUNDS)

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, service

    store.close()


def login_token(client: TestClient, email: str, password: str) -> str:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


@pytest.fixture(scope="module")
def admin_token(api_client: tuple[TestClient, AccountService]) -> str:
    """Bearer token for an admin account created directly through the service."""
    client, service = api_client
    account = service.signup("root@authgate.dev", "rootpass123")
    service.set_role(account.id, Role.ADMIN)
    return login_token(client, "root@authgate.dev", "rootpass123")


@pytest.fixture(scope="module")
def user_token(api_client: tuple[TestClient, AccountService]) -> str:
    """Bearer token for a plain user registered through the HTTP signup route."""
    client, _service = api_client
    resp = client.post("/auth/signup", json={"email": "plain@authgate.dev", "password": "plainpass123"})
    assert resp.status_code == 201, resp.text
    return login_token(client, "plain@authgate.dev", "plainpass123")
