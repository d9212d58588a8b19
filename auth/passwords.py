"""
auth/passwords.py -- One-way password hashing and verification.

bcrypt is used directly rather than through passlib[bcrypt]: passlib's
wrap-bug detection builds a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The cost factor is a parameter, not a module constant. Callers pass
Settings.bcrypt_rounds (12 in production, lower only in debug mode).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from functools import lru_cache

import bcrypt

from auth.errors import InternalError

logger = logging.getLogger("authgate.auth")

DEFAULT_ROUNDS = 12

# bcrypt only considers the first 72 bytes of its input. The API layer rejects
# longer passwords; anything that gets here longer is a hashing failure.
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt digest of the plaintext password.

    Raises InternalError if bcrypt refuses the input. A hashing failure is
    fatal to the calling operation, never a validation problem.
    """
    try:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")
    except (ValueError, TypeError) as exc:
        logger.error("Password hashing failed: %s", type(exc).__name__)
        raise InternalError("Password hashing failed.") from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt digest.

    Never raises: a malformed digest or oversized input is a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=4)
def dummy_hash(rounds: int) -> str:
    """Return the cached timing-equalization digest for a cost factor."""
    return hash_password("authgate_timing_dummy", rounds)


def burn_verification(plain: str, rounds: int = DEFAULT_ROUNDS) -> None:
    """Spend one bcrypt verification without a real digest to compare against.

    Called on login for an unknown email so the response takes as long as a
    wrong-password attempt. The dummy digest is cached per cost factor and
    AccountService warms it at construction, so the first unknown-email login
    is not measurably slower than later ones.
    """
    verify_password(plain, dummy_hash(rounds))
