"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the JSON body with its status code

AppError propagates to the global error handler in app/__init__.py — routes
never catch it. Nothing is committed when a service raises, so a refresh
that fails after revoking the old token leaves no trace.

Endpoints (url_prefix=/auth):
  POST   /auth/login            → 200
  POST   /auth/refresh          → 200
  POST   /auth/logout           → 200  (bearer)
  POST   /auth/change-password  → 200  (bearer)
  GET    /auth/me               → 200  (bearer)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.repositories.credential_store import CredentialStore
from backend.app.repositories.refresh_token_store import RefreshTokenStore
from backend.app.schemas.auth_schema import (
    ChangePasswordSchema,
    LoginSchema,
    RefreshTokenSchema,
)
from backend.app.services import auth_service
from backend.app.settings import get_auth_settings

auth_bp = Blueprint("auth", __name__)


def _json_body() -> dict:
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else {}


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate; return a session. (No auth required.)"""
    data = LoginSchema().load(_json_body())
    result = auth_service.login_user(
        email=data["email"],
        password=data["password"],
        credentials=CredentialStore(db.session),
        refresh_tokens=RefreshTokenStore(db.session),
        settings=get_auth_settings(),
    )
    db.session.commit()
    return jsonify(result), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh — Rotate a refresh token into a new session."""
    data = RefreshTokenSchema().load(_json_body())
    result = auth_service.refresh_session(
        raw_refresh_token=data["refresh_token"],
        credentials=CredentialStore(db.session),
        refresh_tokens=RefreshTokenStore(db.session),
        settings=get_auth_settings(),
    )
    db.session.commit()
    return jsonify(result), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    """POST /auth/logout — Revoke every refresh token of the caller."""
    result = auth_service.logout_user(
        identity=g.identity,
        refresh_tokens=RefreshTokenStore(db.session),
    )
    db.session.commit()
    return jsonify(result), 200


@auth_bp.route("/change-password", methods=["POST"])
@require_auth
def change_password():
    """POST /auth/change-password — Replace password; sign out everywhere."""
    data = ChangePasswordSchema().load(_json_body())
    result = auth_service.change_password(
        identity=g.identity,
        current_password=data["current_password"],
        new_password=data["new_password"],
        new_password_confirmation=data["new_password_confirmation"],
        credentials=CredentialStore(db.session),
        refresh_tokens=RefreshTokenStore(db.session),
        settings=get_auth_settings(),
    )
    db.session.commit()
    return jsonify(result), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me — Return the caller's public profile."""
    result = auth_service.get_current_user(
        identity=g.identity,
        credentials=CredentialStore(db.session),
    )
    return jsonify(result), 200
