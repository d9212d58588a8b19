"""
API request and response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Shape validation lives here; business rules (uniqueness, existence) live in
auth/service.py.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import AccountSummary, Role

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

PASSWORD_MIN_LENGTH = 8
# bcrypt only considers the first 72 bytes; longer input is refused up front.
PASSWORD_MAX_BYTES = 72


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded.")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Email and password pair shared by signup and login.

    Only presence and the bcrypt byte cap are checked here. Passwords are
    taken verbatim -- no whitespace stripping.
    """

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: object) -> object:
        """Lower-case the address before the pattern check runs."""
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class SignupRequest(Credentials):
    """Request body for POST /auth/signup. Also used by the CLI's create-user."""

    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)


class LoginRequest(Credentials):
    """Request body for POST /auth/login.

    No format or length rules: a credential that could never have been
    registered fails in the service with the same 401 as a wrong password.
    """


class AccountUpdate(BaseModel):
    """Request body for PATCH /auth/update/{id}.

    Both fields are optional here; the service rejects a body with neither.
    """

    email: Optional[str] = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN_LENGTH)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class LoginResponse(BaseModel):
    """Response for POST /auth/login. token is a Bearer JWT."""

    model_config = ConfigDict(frozen=True)

    message: str
    token: str


class AccountResponse(BaseModel):
    """One account as seen by an administrator -- never the credential hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: Role
    created_at: str

    @classmethod
    def from_summary(cls, summary: AccountSummary) -> "AccountResponse":
        return cls(
            id=summary.id,
            email=summary.email,
            role=summary.role,
            created_at=summary.created_at,
        )


class UsersResponse(BaseModel):
    """Response for GET /auth/users."""

    model_config = ConfigDict(frozen=True)

    message: str
    users: list[AccountResponse]


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
