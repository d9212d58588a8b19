"""
auth/dependencies.py -- The guard chain: authentication, then role authorization.

Authentication stage:
  extract_bearer() pulls the credential from the Authorization header.
  authenticate_headers() verifies it with the token codec and yields an
  Identity. Every failure -- missing header, wrong scheme, bad signature,
  expired, malformed claims -- becomes the same Unauthenticated error. The
  failure kind is logged, never returned, so clients cannot probe which
  check failed.

Authorization stage:
  decide() is a pure function over (identity, required roles). Membership is
  exact: ADMIN does not satisfy a USER-only requirement unless the route lists
  both.

FastAPI wiring:
  get_identity() is the authentication dependency; it attaches the identity to
  request.state.identity. require_roles(*roles) builds a dependency that
  depends on get_identity, so the authentication stage always runs before the
  role decision. Each route declares its role set statically:

      @router.get("/auth/users")
      def route(identity: Identity = Depends(require_roles(Role.ADMIN))): ...

Neither stage touches the store; the role comes from the token snapshot.

Layer rule: no imports from api/ or core/. The signing secret is read from
request.app.state.token_secret, which the app lifespan sets from settings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from fastapi import Depends, Request

from auth.errors import Forbidden, TokenError, Unauthenticated
from auth.models import Identity, Role
from auth.tokens import verify_token

logger = logging.getLogger("authgate.auth")

_SCHEME = "bearer"


# ---------------------------------------------------------------------------
# Authentication stage
# ---------------------------------------------------------------------------


def extract_bearer(headers: Mapping[str, str]) -> str:
    """Return the raw token from an ``Authorization: Bearer <token>`` header.

    The scheme comparison is case-insensitive. Raises Unauthenticated if the
    header is absent, uses another scheme, or carries no credential.
    """
    auth_header = headers.get("Authorization") or headers.get("authorization") or ""
    scheme, _, credential = auth_header.strip().partition(" ")
    if scheme.lower() != _SCHEME or not credential.strip():
        raise Unauthenticated()
    return credential.strip()


def authenticate_headers(headers: Mapping[str, str], secret: str) -> Identity:
    """Run the authentication stage over raw request headers."""
    token = extract_bearer(headers)
    try:
        claims = verify_token(token, secret)
    except TokenError as exc:
        logger.info("Rejected bearer token (%s): %s", exc.kind, exc)
        raise Unauthenticated() from exc
    return claims.identity()


def get_identity(request: Request) -> Identity:
    """FastAPI dependency: authenticate the request or raise Unauthenticated.

    Use as a dependency on any route that requires a bearer token but no
    particular role:
        @router.post("/auth/logout")
        def route(identity: Identity = Depends(get_identity)): ...
    """
    identity = authenticate_headers(request.headers, request.app.state.token_secret)
    request.state.identity = identity
    return identity


# ---------------------------------------------------------------------------
# Authorization stage
# ---------------------------------------------------------------------------


def decide(identity: Identity | None, required_roles: Iterable[Role]) -> None:
    """Allow (return None) or reject (raise) a request.

    - No required roles: allowed. Whether an absent identity is acceptable is
      decided by whether the route ran the authentication stage at all.
    - Required roles and no identity: Unauthenticated.
    - Required roles not containing identity.role: Forbidden.
    """
    roles = frozenset(Role(r) for r in required_roles)
    if not roles:
        return
    if identity is None:
        raise Unauthenticated()
    if identity.role not in roles:
        logger.info(
            "Forbidden: account %d has role %s, route requires %s",
            identity.subject_id,
            identity.role.value,
            sorted(r.value for r in roles),
        )
        raise Forbidden()


def require_roles(*roles: Role) -> Callable[..., Identity]:
    """Build a dependency that authenticates, then requires one of ``roles``."""
    required = frozenset(Role(r) for r in roles)

    def dependency(identity: Identity = Depends(get_identity)) -> Identity:
        decide(identity, required)
        return identity

    dependency.required_roles = required  # type: ignore[attr-defined]
    return dependency
