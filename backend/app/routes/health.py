"""
routes/health.py — Liveness and database version probes. No auth.

  GET /ping     → 200 "pong" (text/plain)
  GET /version  → 200 {"version": "<database server version>"}
"""

from __future__ import annotations

from flask import Blueprint, jsonify
from sqlalchemy import text

from backend.app.extensions import db

health_bp = Blueprint("health", __name__)


@health_bp.route("/ping", methods=["GET"])
def ping():
    return "pong", 200, {"Content-Type": "text/plain; charset=utf-8"}


@health_bp.route("/version", methods=["GET"])
def version():
    # The round trip both checks connectivity and populates server_version_info.
    db.session.execute(text("SELECT 1"))
    info = db.engine.dialect.server_version_info or ()
    return jsonify({"version": ".".join(str(part) for part in info)}), 200
