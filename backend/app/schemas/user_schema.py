"""
schemas/user_schema.py — Request and response schemas for /users.

Request schemas inherit from marshmallow.Schema (no app context needed).
UserOutSchema is a flask-marshmallow schema; it is only dumped inside
request handlers.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema

from backend.app.extensions import ma
from backend.app.security.passwords import MAX_PASSWORD_BYTES, exceeds_bcrypt_limit

_REQUIRED_REGISTER_FIELDS = ("name", "phone", "email", "password")
_TEXT_FIELDS = ("name", "phone")

_NOT_BLANK = validate.Regexp(r"\s*\S", error="Must not be blank.")


class RegisterUserSchema(Schema):
    """
    POST /users/register

    Email uniqueness is enforced by the database and surfaced as 409 by
    user_service.register_user.
    """

    class Meta:
        unknown = EXCLUDE

    name = fields.Str(load_default=None, validate=validate.Length(max=100))
    phone = fields.Str(load_default=None, validate=validate.Length(max=30))
    email = fields.Email(load_default=None, validate=validate.Length(max=255))
    password = fields.Str(load_default=None, load_only=True)
    is_admin = fields.Boolean(load_default=False)

    @validates_schema
    def require_fields(self, data, **kwargs):
        missing = any(not data.get(name) for name in _REQUIRED_REGISTER_FIELDS)
        if missing or any(not data[name].strip() for name in _TEXT_FIELDS):
            raise ValidationError("Missing required fields")
        if len(data["password"]) < 8:
            raise ValidationError("password must be at least 8 characters", "password")
        if exceeds_bcrypt_limit(data["password"]):
            raise ValidationError(
                f"password must be at most {MAX_PASSWORD_BYTES} bytes", "password"
            )


class UpdateUserSchema(Schema):
    """PUT /users/<id> — every field optional; only sent fields change."""

    class Meta:
        unknown = EXCLUDE

    name = fields.Str(validate=[validate.Length(min=1, max=100), _NOT_BLANK])
    phone = fields.Str(validate=[validate.Length(min=1, max=30), _NOT_BLANK])
    email = fields.Email(validate=validate.Length(max=255))
    is_admin = fields.Boolean()
    is_deleted = fields.Boolean()


class UserOutSchema(ma.Schema):
    id = fields.Int()
    name = fields.Str()
    phone = fields.Str()
    email = fields.Str()
    is_admin = fields.Bool()
    is_deleted = fields.Bool()
    created_at = fields.DateTime()
