"""
auth/tokens.py -- Signed, expiring identity tokens.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (account id), email, role,
       createdAt (account creation time), iat and exp. The signing secret is
       passed in by the caller on every call and never held as module state;
       AccountService and the authentication stage both receive it from
       core.config.get_settings() at startup.

  Role snapshot: embedding role avoids a store lookup on every authorized
       request. A role change after issuance is not reflected until the next
       login -- outstanding tokens keep the old role until they expire.

  Failure kinds: verify_token() raises TokenExpired, TokenInvalid or
       TokenMalformed. Only the authentication stage sees the kind, and it logs
       it rather than returning it to the client.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import TokenExpired, TokenInvalid, TokenMalformed
from auth.models import Identity, Role

_ALGORITHM = "HS256"

DEFAULT_TTL = timedelta(hours=24)

# Claims that must be present and non-empty for a token to be usable.
_REQUIRED_CLAIMS = ("sub", "email", "role", "createdAt", "exp")


@dataclass(frozen=True)
class TokenClaims:
    """Decoded token payload.

    issued_at / expires_at are ignored by issue_token(), which always stamps
    fresh values, and populated by verify_token().
    """

    subject_id: int
    email: str
    role: Role
    created_at: str
    issued_at: datetime | None = None
    expires_at: datetime | None = None

    def identity(self) -> Identity:
        return Identity(subject_id=self.subject_id, email=self.email, role=self.role)


def issue_token(
    claims: TokenClaims,
    secret: str,
    ttl: timedelta = DEFAULT_TTL,
    now: datetime | None = None,
) -> str:
    """Encode a signed JWT for the given claims, expiring ttl from now.

    Issuance never extends an existing token: every call stamps a new iat/exp
    pair. sub is rendered as a string because JWT requires a string subject.
    """
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(claims.subject_id),
        "email": claims.email,
        "role": Role(claims.role).value,
        "createdAt": claims.created_at,
        "iat": issued,
        "exp": issued + ttl,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def verify_token(token: str, secret: str) -> TokenClaims:
    """Verify signature and expiry, then check the claim set is complete.

    Raises:
        TokenExpired:   the signature is valid but exp has passed.
        TokenInvalid:   the signature does not match or the token is not a JWT.
        TokenMalformed: a required claim is missing, empty, zero or unparseable.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired("Token has expired.") from exc
    except JWTClaimsError as exc:
        raise TokenMalformed(str(exc)) from exc
    except JWTError as exc:
        raise TokenInvalid("Token signature could not be verified.") from exc

    missing = [name for name in _REQUIRED_CLAIMS if not payload.get(name)]
    if missing:
        raise TokenMalformed(f"Missing claims: {', '.join(missing)}")

    try:
        subject_id = int(payload["sub"])
        role = Role(payload["role"])
    except ValueError as exc:
        raise TokenMalformed("Unparseable sub or role claim.") from exc
    if subject_id <= 0:
        raise TokenMalformed("Subject id must be positive.")

    return TokenClaims(
        subject_id=subject_id,
        email=str(payload["email"]),
        role=role,
        created_at=str(payload["createdAt"]),
        issued_at=_from_timestamp(payload.get("iat")),
        expires_at=_from_timestamp(payload["exp"]),
    )


def _from_timestamp(value) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
