"""
repositories/refresh_token_store.py — Refresh token persistence.

Owns every write to refresh_tokens. The raw token leaves issue() once and
is never stored; lookups hash the presented value with SHA-256.

Revocation uses a guarded UPDATE (... WHERE revoked_at IS NULL) and reports
whether this call changed the row. Two requests racing to rotate the same
token therefore cannot both win: the loser sees rowcount 0. The caller's
transaction covers revoke + issue, so a failure between them rolls back both.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.app.models.refresh_token import RefreshToken
from backend.app.models.user import User

RAW_TOKEN_BYTES = 48


class RefreshTokenNotFound(Exception):
    """No active record matches. Unknown, revoked and expired look the same."""


@dataclass(frozen=True)
class ActiveRefreshToken:
    record_id: int
    user_id: int


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw refresh token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_raw_token() -> str:
    return secrets.token_bytes(RAW_TOKEN_BYTES).hex()


class RefreshTokenRepository(Protocol):

    def issue(self, user_id: int, now: datetime, ttl_seconds: int) -> str:
        ...

    def resolve_active(self, raw_token: str, now: datetime) -> ActiveRefreshToken:
        ...

    def revoke(self, record_id: int, now: datetime) -> bool:
        ...

    def revoke_all_for_user(self, user_id: int, now: datetime) -> int:
        ...


class RefreshTokenStore:

    def __init__(self, session: Session) -> None:
        self._session = session

    def issue(self, user_id: int, now: datetime, ttl_seconds: int) -> str:
        """Persists a new record and returns the raw token (only time it exists)."""
        raw_token = generate_raw_token()
        self._session.add(RefreshToken(
            user_id=user_id,
            token_hash=hash_token(raw_token),
            expires_at=now + timedelta(seconds=ttl_seconds),
        ))
        # flush so the row exists before we return; commit is the route's job
        self._session.flush()
        return raw_token

    def resolve_active(self, raw_token: str, now: datetime) -> ActiveRefreshToken:
        """
        Raises:
          RefreshTokenNotFound — no unrevoked, unexpired record owned by a
          non-deleted user matches the token.
        """
        row = self._session.execute(
            select(RefreshToken.id, RefreshToken.user_id)
            .join(User, User.id == RefreshToken.user_id)
            .where(
                RefreshToken.token_hash == hash_token(raw_token),
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
                User.is_deleted.is_(False),
            )
            .limit(1)
        ).first()

        if row is None:
            raise RefreshTokenNotFound()
        return ActiveRefreshToken(record_id=row.id, user_id=row.user_id)

    def revoke(self, record_id: int, now: datetime) -> bool:
        """Returns True only if this call moved revoked_at from NULL to `now`."""
        result = self._session.execute(
            update(RefreshToken)
            .where(RefreshToken.id == record_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def revoke_all_for_user(self, user_id: int, now: datetime) -> int:
        result = self._session.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
