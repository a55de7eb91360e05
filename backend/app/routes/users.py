"""
routes/users.py — User registry endpoints. Every route requires a bearer
token.

  POST   /users/register  → 201
  GET    /users/          → 200  {"data": [...], "count": n}
  GET    /users/<id>      → 200  {"data": {...}}
  PUT    /users/<id>      → 200  {"message": ...}
  DELETE /users/<id>      → 200  {"message": ...}
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth
from backend.app.schemas.user_schema import RegisterUserSchema, UpdateUserSchema, UserOutSchema
from backend.app.services import user_service
from backend.app.settings import get_auth_settings

users_bp = Blueprint("users", __name__)


def _json_body() -> dict:
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else {}


@users_bp.route("/register", methods=["POST"])
@require_auth
def register():
    data = RegisterUserSchema().load(_json_body())
    user = user_service.register_user(
        name=data["name"],
        phone=data["phone"],
        email=data["email"],
        password=data["password"],
        is_admin=data["is_admin"],
        session=db.session,
        bcrypt_rounds=get_auth_settings().bcrypt_log_rounds,
    )
    db.session.commit()
    return jsonify(UserOutSchema().dump(user)), 201


@users_bp.route("/", methods=["GET"])
@require_auth
def list_users():
    users = user_service.list_users(session=db.session)
    return jsonify({
        "data": UserOutSchema(many=True).dump(users),
        "count": len(users),
    }), 200


@users_bp.route("/<int:user_id>", methods=["GET"])
@require_auth
def show_user(user_id: int):
    user = user_service.get_user(user_id, session=db.session)
    return jsonify({"data": UserOutSchema().dump(user)}), 200


@users_bp.route("/<int:user_id>", methods=["PUT"])
@require_auth
def update_user(user_id: int):
    changes = UpdateUserSchema().load(_json_body())
    user_service.update_user(user_id, changes, session=db.session)
    db.session.commit()
    return jsonify({"message": "User updated successfully"}), 200


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@require_auth
def delete_user(user_id: int):
    deleted = user_service.soft_delete_user(user_id, session=db.session)
    db.session.commit()
    if not deleted:
        return jsonify({"message": "User already deleted"}), 200
    return jsonify({"message": "User soft deleted successfully"}), 200
