"""
security/passwords.py — bcrypt password hashing.

Raw passwords are never stored and never logged.
"""

from __future__ import annotations

from functools import lru_cache

import bcrypt

# bcrypt only reads the first 72 bytes; newer releases refuse longer input.
MAX_PASSWORD_BYTES = 72


def exceeds_bcrypt_limit(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of `password` against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("sunday-picks-dummy-password", rounds)


def burn_verification(password: str, rounds: int = 12) -> None:
    """
    Runs a bcrypt comparison whose result is discarded.

    Called when the email is unknown so that response time does not reveal
    whether an account exists.
    """
    verify_password(password, _dummy_hash(rounds))
