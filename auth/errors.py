"""
auth/errors.py -- Typed error taxonomy for the auth pipeline.

Every failure the service or the guard chain can report is one of these
classes. Each carries the HTTP status and machine-readable code the API
boundary uses; the boundary never inspects message text to pick a status.

Token failures form a separate family. They are raised by auth/tokens.py and
converted to Unauthenticated by the authentication stage, so the kind of token
failure never reaches a client.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for errors that map to a deterministic HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    code = "validation_error"
    default_message = "Request validation failed."


class BadRequestError(ValidationError):
    """Input is well-formed but cannot be acted on (e.g. an empty update)."""

    code = "bad_request"
    default_message = "Bad request."


class ConflictError(AuthError):
    status_code = 409
    code = "conflict"
    default_message = "User with this email already exists."


class UnauthorizedError(AuthError):
    """Bad credentials on login. Deliberately non-specific."""

    status_code = 401
    code = "unauthorized"
    default_message = "Invalid credentials."


class Unauthenticated(UnauthorizedError):
    """Missing, malformed, or unverifiable bearer token."""

    code = "unauthenticated"
    default_message = "Authentication required."


class Forbidden(AuthError):
    status_code = 403
    code = "forbidden"
    default_message = "Insufficient role for this operation."


class NotFoundError(AuthError):
    status_code = 404
    code = "not_found"
    default_message = "User not found."


class InternalError(AuthError):
    """Store or hashing failure. The message is logged, never sent to clients."""


# ---------------------------------------------------------------------------
# Token codec failures
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Base class for token verification failures."""

    kind: str = "invalid"


class TokenInvalid(TokenError):
    kind = "invalid"


class TokenExpired(TokenError):
    kind = "expired"


class TokenMalformed(TokenError):
    kind = "malformed"
