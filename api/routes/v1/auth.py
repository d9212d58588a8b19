"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST   /auth/signup        -- register (role forced to user); 201
  POST   /auth/login         -- password login; returns a Bearer JWT
  POST   /auth/logout        -- records a signout (requires auth)
  PATCH  /auth/update/{id}   -- change email and/or password (admin only)
  GET    /auth/users         -- list all accounts (admin only)
  DELETE /auth/users/{id}    -- delete account and its session events (admin only)

Security:
  POST /login and POST /signup are rate-limited per IP (settings).
  AccountService.login() equalizes timing for unknown emails -- use it, never inline.
  Cache-Control: no-store on login responses.

Handlers are plain `def` so FastAPI runs them in its thread pool: bcrypt is
slow by design and must not block the event loop.

Errors are raised as auth.errors types and translated to the JSON error
envelope by the handler in api/main.py.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AccountResponse,
    AccountUpdate,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
    UsersResponse,
)
from auth.dependencies import get_identity, require_roles
from auth.models import Identity, Role
from auth.service import AccountService
from core.config import get_settings

# Auth policy (declared per route, checked by the guard chain):
# - POST   /auth/signup:        public
# - POST   /auth/login:         public
# - POST   /auth/logout:        bearer token, any role (get_identity)
# - PATCH  /auth/update/{id}:   bearer token, {admin}
# - GET    /auth/users:         bearer token, {admin}
# - DELETE /auth/users/{id}:    bearer token, {admin}
router = APIRouter()

admin_only = require_roles(Role.ADMIN)


def _service(request: Request) -> AccountService:
    return request.app.state.account_service


# Limits are read per request so a settings change applies without re-import.
def _signup_limit() -> str:
    return get_settings().signup_rate_limit


def _login_limit() -> str:
    return get_settings().login_rate_limit


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=MessageResponse, status_code=201)
@limiter.limit(_signup_limit)
def signup(request: Request, body: SignupRequest) -> MessageResponse:
    """Register a new account. The role is always user; no token is issued."""
    _service(request).signup(body.email, body.password)
    return MessageResponse(message="User registered successfully")


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(_login_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a Bearer token.

    Unknown email and wrong password yield the same 401 body.
    """
    token = _service(request).login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(message="Login successful", token=token).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, identity: Identity = Depends(get_identity)) -> MessageResponse:
    """Record a signout for the caller. The token itself stays valid until exp."""
    _service(request).logout(identity.subject_id)
    return MessageResponse(message="Logout successful")


# ---------------------------------------------------------------------------
# Account management (admin only)
# ---------------------------------------------------------------------------


@router.patch("/auth/update/{account_id}", response_model=MessageResponse)
def update_account(
    request: Request,
    account_id: int,
    body: AccountUpdate,
    identity: Identity = Depends(admin_only),
) -> MessageResponse:
    """Change an account's email and/or password. Admin only."""
    _service(request).update_account(account_id, email=body.email, password=body.password)
    return MessageResponse(message="User updated successfully")


@router.get("/auth/users", response_model=UsersResponse)
def list_users(request: Request, identity: Identity = Depends(admin_only)) -> UsersResponse:
    """List all accounts in creation order. Admin only."""
    summaries = _service(request).list_accounts()
    return UsersResponse(
        message="Users retrieved successfully",
        users=[AccountResponse.from_summary(s) for s in summaries],
    )


@router.delete("/auth/users/{account_id}", response_model=MessageResponse)
def delete_account(
    request: Request,
    account_id: int,
    identity: Identity = Depends(admin_only),
) -> MessageResponse:
    """Delete an account and its session history. Admin only."""
    _service(request).delete_account(account_id)
    return MessageResponse(message="User deleted successfully")
