"""
tests/test_guards.py -- Unit tests for the guard chain (auth/dependencies.py).

Authentication stage: bearer extraction and token verification over plain
header mappings -- no app, no store.

Authorization stage: decide() as a pure function, and require_roles()
wired into a throwaway FastAPI app to prove authentication runs first.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from auth.dependencies import authenticate_headers, decide, extract_bearer, get_identity, require_roles
from auth.errors import AuthError, Forbidden, Unauthenticated
from auth.models import Identity, Role
from auth.tokens import TokenClaims, issue_token

SECRET = "guard-test-secret-key-with-enough-entropy"

USER = Identity(subject_id=1, email="u@x.com", role=Role.USER)
ADMIN = Identity(subject_id=2, email="root@x.com", role=Role.ADMIN)


def _token(role: Role = Role.USER, secret: str = SECRET, ttl: timedelta = timedelta(hours=1)) -> str:
    claims = TokenClaims(subject_id=1, email="u@x.com", role=role, created_at="2026-01-01T00:00:00+00:00")
    return issue_token(claims, secret, ttl=ttl)


# ---------------------------------------------------------------------------
# Authentication stage
# ---------------------------------------------------------------------------


class TestExtractBearer:
    def test_extracts_token(self) -> None:
        assert extract_bearer({"Authorization": "Bearer abc.def.ghi"}) == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self) -> None:
        assert extract_bearer({"authorization": "bearer abc"}) == "abc"

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": ""},
            {"Authorization": "Bearer"},
            {"Authorization": "Bearer   "},
            {"Authorization": "Basic dXNlcjpwdw=="},
            {"Authorization": "abc.def.ghi"},
        ],
    )
    def test_missing_or_malformed_header_is_unauthenticated(self, headers: dict) -> None:
        with pytest.raises(Unauthenticated):
            extract_bearer(headers)


class TestAuthenticateHeaders:
    def test_valid_token_yields_identity(self) -> None:
        identity = authenticate_headers({"Authorization": f"Bearer {_token(Role.ADMIN)}"}, SECRET)
        assert identity == Identity(subject_id=1, email="u@x.com", role=Role.ADMIN)

    def test_expired_token_is_unauthenticated(self) -> None:
        headers = {"Authorization": f"Bearer {_token(ttl=timedelta(seconds=-1))}"}
        with pytest.raises(Unauthenticated):
            authenticate_headers(headers, SECRET)

    def test_foreign_secret_is_unauthenticated(self) -> None:
        headers = {"Authorization": f"Bearer {_token(secret='some-other-secret-key-with-entropy!!')}"}
        with pytest.raises(Unauthenticated):
            authenticate_headers(headers, SECRET)

    def test_failure_kinds_are_indistinguishable(self) -> None:
        """Expired and forged tokens raise the same class with the same message."""
        errors = []
        for token in (_token(ttl=timedelta(seconds=-1)), _token(secret="some-other-secret-key-with-entropy!!")):
            with pytest.raises(Unauthenticated) as exc_info:
                authenticate_headers({"Authorization": f"Bearer {token}"}, SECRET)
            errors.append((type(exc_info.value), exc_info.value.message))
        assert errors[0] == errors[1]

    def test_failure_kind_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="authgate.auth"):
            with pytest.raises(Unauthenticated):
                authenticate_headers({"Authorization": f"Bearer {_token(ttl=timedelta(seconds=-1))}"}, SECRET)
        assert "expired" in caplog.text


# ---------------------------------------------------------------------------
# Authorization stage
# ---------------------------------------------------------------------------


class TestDecide:
    def test_no_required_roles_allows_identity(self) -> None:
        assert decide(USER, set()) is None

    def test_no_required_roles_allows_absent_identity(self) -> None:
        assert decide(None, set()) is None

    def test_required_roles_without_identity_is_unauthenticated(self) -> None:
        with pytest.raises(Unauthenticated):
            decide(None, {Role.ADMIN})

    def test_user_on_admin_route_is_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            decide(USER, {Role.ADMIN})

    def test_admin_on_admin_route_is_allowed(self) -> None:
        assert decide(ADMIN, {Role.ADMIN}) is None

    def test_no_implied_hierarchy(self) -> None:
        """ADMIN does not satisfy a USER-only requirement unless listed."""
        with pytest.raises(Forbidden):
            decide(ADMIN, {Role.USER})
        assert decide(ADMIN, {Role.USER, Role.ADMIN}) is None


class TestRequireRoles:
    """require_roles() on a minimal app: authentication must run before the role check."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = FastAPI()
        app.state.token_secret = SECRET

        @app.exception_handler(AuthError)
        async def handler(request, exc: AuthError):
            return JSONResponse(status_code=exc.status_code, content={"code": exc.code})

        @app.get("/admin")
        def admin_route(identity: Identity = Depends(require_roles(Role.ADMIN))):
            return {"email": identity.email}

        @app.get("/any")
        def any_route(identity: Identity = Depends(get_identity)):
            return {"role": identity.role.value}

        return TestClient(app)

    def test_declared_roles_are_exposed(self) -> None:
        assert require_roles(Role.ADMIN).required_roles == frozenset({Role.ADMIN})

    def test_missing_token_is_401_not_403(self, client: TestClient) -> None:
        resp = client.get("/admin")
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthenticated"

    def test_user_token_is_403(self, client: TestClient) -> None:
        resp = client.get("/admin", headers={"Authorization": f"Bearer {_token(Role.USER)}"})
        assert resp.status_code == 403

    def test_admin_token_is_allowed(self, client: TestClient) -> None:
        resp = client.get("/admin", headers={"Authorization": f"Bearer {_token(Role.ADMIN)}"})
        assert resp.status_code == 200
        assert resp.json() == {"email": "u@x.com"}

    def test_any_role_route(self, client: TestClient) -> None:
        resp = client.get("/any", headers={"Authorization": f"Bearer {_token(Role.USER)}"})
        assert resp.status_code == 200
        assert resp.json() == {"role": "user"}
