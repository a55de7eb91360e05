"""
services/auth_service.py — Session lifecycle: login, refresh, logout,
password change.

Responsibilities:
  - Credential verification (bcrypt, constant time)
  - Issuing the access + refresh token pair returned to clients
  - Refresh token rotation and revocation, delegated to the refresh token
    repository

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, current_app or HTTP plumbing
  - Storage is reached only through the repositories passed in; this module
    never writes a table itself. Services flush, routes commit.

Refresh token lineage:
  Issued ──refresh──▶ Rotated      (revoked, superseded by a new record)
  Issued ──logout / password change──▶ Revoked
  Issued ──time──▶ Expired         (no write; expires_at elapsed)
  Rotated, Revoked and Expired are terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from backend.app.errors import AppError, ErrorCode
from backend.app.repositories.credential_store import CredentialRecord, CredentialRepository
from backend.app.repositories.refresh_token_store import (
    RefreshTokenNotFound,
    RefreshTokenRepository,
)
from backend.app.security.passwords import (
    MAX_PASSWORD_BYTES,
    burn_verification,
    exceeds_bcrypt_limit,
    hash_password,
    verify_password,
)
from backend.app.services.access_token_service import issue_access_token
from backend.app.settings import AuthSettings

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as attached by the auth middleware."""

    user_id: int
    email: str | None
    is_admin: bool

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any] | None) -> "Identity | None":
        """Returns None when the claims carry no usable positive user id."""
        if not claims:
            return None
        sub = claims.get("sub")
        if isinstance(sub, bool):
            return None
        try:
            user_id = int(sub)
        except (TypeError, ValueError):
            return None
        if user_id <= 0:
            return None
        return cls(
            user_id=user_id,
            email=claims.get("email"),
            is_admin=bool(claims.get("is_admin", False)),
        )


# ── Private helpers ────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise AppError(
            ErrorCode.UNAUTHORIZED,
            "Invalid access token payload",
            401,
        )
    return identity


def build_user_summary(user: CredentialRecord) -> dict:
    """Public view of a credential record. Never includes the hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "is_admin": bool(user.is_admin),
    }


def _issue_session(
        user: CredentialRecord,
        refresh_tokens: RefreshTokenRepository,
        settings: AuthSettings,
        now: datetime,
) -> dict:
    """Issues an access token and a new refresh token record for `user`."""
    access_token = issue_access_token(
        user_id=user.id,
        email=user.email,
        is_admin=user.is_admin,
        now=int(now.timestamp()),
        ttl_seconds=settings.access_token_ttl,
        issuer=settings.jwt_issuer,
        secret=settings.jwt_secret,
    )
    refresh_token = refresh_tokens.issue(user.id, now, settings.refresh_token_ttl)

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "Bearer",
        "expires_in": settings.access_token_ttl,
        "refresh_expires_in": settings.refresh_token_ttl,
        "user": build_user_summary(user),
    }


def _invalid_refresh_token() -> AppError:
    return AppError(
        ErrorCode.REFRESH_TOKEN_INVALID,
        "Invalid or expired refresh token",
        401,
    )


# ── Public service functions ───────────────────────────────────────────────

def login_user(
        email: str,
        password: str,
        credentials: CredentialRepository,
        refresh_tokens: RefreshTokenRepository,
        settings: AuthSettings,
        now: datetime | None = None,
) -> dict:
    """
    Validates credentials and issues a new session.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — email unknown or password wrong.
      The same error covers both to avoid account enumeration, and an unknown
      email still pays for one bcrypt comparison.

    Returns: the session dict (see _issue_session).
    """
    now = now or _utcnow()
    user = credentials.find_by_email(email)

    if user is None:
        burn_verification(password, settings.bcrypt_log_rounds)
        verified = False
    else:
        verified = verify_password(password, user.password_hash)

    if not verified:
        logger.info("Rejected login attempt.")
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Invalid credentials",
            401,
        )

    session = _issue_session(user, refresh_tokens, settings, now)
    logger.info("User %s logged in.", user.id)
    return session


def refresh_session(
        raw_refresh_token: str,
        credentials: CredentialRepository,
        refresh_tokens: RefreshTokenRepository,
        settings: AuthSettings,
        now: datetime | None = None,
) -> dict:
    """
    Rotates a refresh token: the presented token is revoked and a new
    access + refresh pair is issued. The old raw value can never be used
    again, even if it had lifetime left.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — unknown, revoked, expired, owner
      deleted, or a concurrent request rotated the same token first.
    """
    now = now or _utcnow()

    try:
        active = refresh_tokens.resolve_active(raw_refresh_token, now)
    except RefreshTokenNotFound:
        raise _invalid_refresh_token()

    user = credentials.find_by_id(active.user_id)
    if user is None:
        raise _invalid_refresh_token()

    if not refresh_tokens.revoke(active.record_id, now):
        logger.warning(
            "Refresh token %s was already revoked during rotation.",
            active.record_id,
        )
        raise _invalid_refresh_token()

    session = _issue_session(user, refresh_tokens, settings, now)
    logger.info("Rotated refresh token %s for user %s.", active.record_id, user.id)
    return session


def logout_user(
        identity: Identity | None,
        refresh_tokens: RefreshTokenRepository,
        now: datetime | None = None,
) -> dict:
    """
    Revokes every active refresh token of the caller.

    The access token used for this call stays valid until it expires; there
    is no server-side access token denylist.

    Raises:
      AppError(UNAUTHORIZED, 401) — no identity attached to the request.
    """
    identity = _require_identity(identity)
    revoked = refresh_tokens.revoke_all_for_user(identity.user_id, now or _utcnow())
    logger.info("User %s logged out; %s refresh token(s) revoked.", identity.user_id, revoked)
    return {"message": "Logout successful"}


def change_password(
        identity: Identity | None,
        current_password: str | None,
        new_password: str | None,
        new_password_confirmation: str | None,
        credentials: CredentialRepository,
        refresh_tokens: RefreshTokenRepository,
        settings: AuthSettings,
        now: datetime | None = None,
) -> dict:
    """
    Replaces the caller's password and signs them out everywhere.

    Raises:
      AppError(UNAUTHORIZED, 401)               — no identity.
      AppError(MISSING_FIELD, 400)              — a field is missing or empty.
      AppError(PASSWORD_MISMATCH, 400)          — new != confirmation.
      AppError(PASSWORD_TOO_SHORT, 400)         — new shorter than 8 chars.
      AppError(PASSWORD_TOO_LONG, 400)          — new longer than 72 UTF-8 bytes.
      AppError(USER_NOT_FOUND, 404)             — user deleted since token issue.
      AppError(CURRENT_PASSWORD_INCORRECT, 401) — current password wrong.
      AppError(PASSWORD_UNCHANGED, 400)         — new equals the current one.
    """
    identity = _require_identity(identity)

    if not current_password or not new_password or not new_password_confirmation:
        raise AppError(
            ErrorCode.MISSING_FIELD,
            "current_password, new_password and new_password_confirmation are required",
            400,
        )

    if new_password != new_password_confirmation:
        raise AppError(
            ErrorCode.PASSWORD_MISMATCH,
            "new_password and new_password_confirmation must match",
            400,
            field="new_password_confirmation",
        )

    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise AppError(
            ErrorCode.PASSWORD_TOO_SHORT,
            f"new_password must be at least {MIN_PASSWORD_LENGTH} characters",
            400,
            field="new_password",
        )

    if exceeds_bcrypt_limit(new_password):
        raise AppError(
            ErrorCode.PASSWORD_TOO_LONG,
            f"new_password must be at most {MAX_PASSWORD_BYTES} bytes",
            400,
            field="new_password",
        )

    user = credentials.find_by_id(identity.user_id)
    if user is None:
        raise AppError(ErrorCode.USER_NOT_FOUND, "User not found", 404)

    if not verify_password(current_password, user.password_hash):
        raise AppError(
            ErrorCode.CURRENT_PASSWORD_INCORRECT,
            "Current password is incorrect",
            401,
        )

    if verify_password(new_password, user.password_hash):
        raise AppError(
            ErrorCode.PASSWORD_UNCHANGED,
            "New password must be different from current password",
            400,
            field="new_password",
        )

    credentials.update_password_hash(
        user.id,
        hash_password(new_password, settings.bcrypt_log_rounds),
    )
    revoked = refresh_tokens.revoke_all_for_user(user.id, now or _utcnow())
    logger.info("User %s changed password; %s refresh token(s) revoked.", user.id, revoked)
    return {"message": "Password updated successfully"}


def get_current_user(
        identity: Identity | None,
        credentials: CredentialRepository,
) -> dict:
    """
    Raises:
      AppError(USER_NOT_FOUND, 404) — the user was deleted after the access
      token was issued.
    """
    identity = _require_identity(identity)
    user = credentials.find_by_id(identity.user_id)
    if user is None:
        raise AppError(ErrorCode.USER_NOT_FOUND, "User not found", 404)
    return build_user_summary(user)
