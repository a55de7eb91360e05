"""
repositories/credential_store.py — Read access to user credentials.

The auth service depends on the CredentialRepository protocol, not on this
SQLAlchemy implementation, so it can be unit-tested with an in-memory fake.
Only password_hash is ever written from here.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backend.app.models.user import User


class CredentialRecord(Protocol):
    id: int
    name: str
    email: str
    password_hash: str
    is_admin: bool


class CredentialRepository(Protocol):

    def find_by_email(self, email: str) -> CredentialRecord | None:
        ...

    def find_by_id(self, user_id: int) -> CredentialRecord | None:
        ...

    def update_password_hash(self, user_id: int, password_hash: str) -> None:
        ...


class CredentialStore:
    """SQLAlchemy-backed CredentialRepository. Soft-deleted users are invisible."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_email(self, email: str) -> User | None:
        return self._session.execute(
            select(User)
            .where(User.email == email, User.is_deleted.is_(False))
            .limit(1)
        ).scalar_one_or_none()

    def find_by_id(self, user_id: int) -> User | None:
        return self._session.execute(
            select(User)
            .where(User.id == user_id, User.is_deleted.is_(False))
            .limit(1)
        ).scalar_one_or_none()

    def update_password_hash(self, user_id: int, password_hash: str) -> None:
        self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash)
        )
        self._session.flush()
