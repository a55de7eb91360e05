"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: presence and types of request fields.
  - services/auth_service.py: credential checks, password rules that need the
    stored hash, token validity.

All schemas inherit from marshmallow.Schema directly so they load without a
Flask application context. Unknown keys are ignored.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validates_schema


class LoginSchema(Schema):
    """
    POST /auth/login

    Both fields are checked together so the client gets a single message.
    Credential correctness is checked in auth_service.py (401).
    """

    class Meta:
        unknown = EXCLUDE

    email = fields.Str(load_default=None, allow_none=True)
    password = fields.Str(load_default=None, allow_none=True, load_only=True)

    @validates_schema
    def require_credentials(self, data, **kwargs):
        if not data.get("email") or not data.get("password"):
            raise ValidationError("Email and password are required")


class RefreshTokenSchema(Schema):
    """
    POST /auth/refresh

    Token validity (revoked, expired, not found) is checked in
    auth_service.py (401).
    """

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.Str(load_default=None, allow_none=True)

    @validates_schema
    def require_refresh_token(self, data, **kwargs):
        if not data.get("refresh_token"):
            raise ValidationError("refresh_token is required")


class ChangePasswordSchema(Schema):
    """
    POST /auth/change-password

    Only types are checked here. Presence, confirmation and length rules run
    in auth_service.change_password in a fixed order with the hash checks.
    """

    class Meta:
        unknown = EXCLUDE

    current_password = fields.Str(load_default=None, allow_none=True, load_only=True)
    new_password = fields.Str(load_default=None, allow_none=True, load_only=True)
    new_password_confirmation = fields.Str(load_default=None, allow_none=True, load_only=True)
