"""
services/user_service.py — User registry (create, list, show, update,
soft delete).

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g or current_app
  - Services flush; routes commit.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import User
from backend.app.security.passwords import hash_password

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "phone", "email", "is_admin", "is_deleted")


def _duplicate_email() -> AppError:
    return AppError(ErrorCode.DUPLICATE_EMAIL, "Email already exists", 409, field="email")


def _user_not_found() -> AppError:
    return AppError(ErrorCode.USER_NOT_FOUND, "User not found", 404)


def _is_duplicate_email(error: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed: users.email"
    # PostgreSQL: duplicate key value violates unique constraint "users_email_key"
    message = str(error.orig).lower()
    return "email" in message and ("unique" in message or "duplicate" in message)


def _flush_or_conflict(session: Session) -> None:
    """
    Flushes pending writes.

    A unique-email violation becomes 409; any other constraint failure
    (blank name, malformed email) becomes 400.
    """
    try:
        session.flush()
    except IntegrityError as error:
        if _is_duplicate_email(error):
            raise _duplicate_email()
        logger.warning("Rejected user write: %s", error.orig)
        raise AppError(ErrorCode.INVALID_FIELD, "Invalid user data", 400)


def register_user(
        name: str,
        phone: str,
        email: str,
        password: str,
        session: Session,
        is_admin: bool = False,
        bcrypt_rounds: int = 12,
) -> User:
    """
    Creates a user with a bcrypt-hashed password.

    Raises:
      AppError(DUPLICATE_EMAIL, 409) — email already registered (including
      soft-deleted accounts; the unique constraint spans all rows).
    """
    user = User(
        name=name,
        phone=phone,
        email=email,
        password_hash=hash_password(password, bcrypt_rounds),
        is_admin=bool(is_admin),
    )
    session.add(user)
    _flush_or_conflict(session)
    logger.info("Registered user %s (admin=%s).", user.id, user.is_admin)
    return user


def list_users(session: Session) -> list[User]:
    """Non-deleted users, newest first."""
    return list(session.execute(
        select(User)
        .where(User.is_deleted.is_(False))
        .order_by(User.id.desc())
    ).scalars())


def get_user(user_id: int, session: Session) -> User:
    """
    Raises:
      AppError(USER_NOT_FOUND, 404) — no such user, or soft-deleted.
    """
    user = session.get(User, user_id)
    if user is None or user.is_deleted:
        raise _user_not_found()
    return user


def update_user(user_id: int, changes: dict, session: Session) -> User:
    """
    Applies the given subset of name/phone/email/is_admin/is_deleted.

    Soft-deleted users can be updated (e.g. restored with is_deleted=False).

    Raises:
      AppError(USER_NOT_FOUND, 404)  — no such user.
      AppError(DUPLICATE_EMAIL, 409) — new email belongs to another user.
    """
    user = session.get(User, user_id)
    if user is None:
        raise _user_not_found()

    for field in _UPDATABLE_FIELDS:
        if field in changes:
            setattr(user, field, changes[field])

    _flush_or_conflict(session)
    return user


def soft_delete_user(user_id: int, session: Session) -> bool:
    """
    Marks the user deleted. Returns False if it already was.

    A deleted user can no longer log in or refresh; their outstanding access
    tokens still expire naturally.

    Raises:
      AppError(USER_NOT_FOUND, 404) — no such user.
    """
    user = session.get(User, user_id)
    if user is None:
        raise _user_not_found()
    if user.is_deleted:
        return False

    user.is_deleted = True
    session.flush()
    logger.info("Soft-deleted user %s.", user_id)
    return True


def ensure_admin(
        name: str,
        phone: str,
        email: str,
        password: str,
        session: Session,
        bcrypt_rounds: int = 12,
) -> User | None:
    """Creates the seed admin unless the email is registered. Returns the new user or None."""
    existing = session.execute(
        select(User).where(User.email == email).limit(1)
    ).scalar_one_or_none()
    if existing is not None:
        return None
    return register_user(
        name=name,
        phone=phone,
        email=email,
        password=password,
        session=session,
        is_admin=True,
        bcrypt_rounds=bcrypt_rounds,
    )
