"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to import the models without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Build the immutable AuthSettings and store it on the app
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Configure logging for the backend.* loggers
  5. Register blueprints, CLI commands and global error handlers
"""

from __future__ import annotations

import logging
import traceback
from pathlib import Path

from flask import Flask, jsonify, request
from flask.logging import default_handler
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to "development".
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    from backend.app.settings import AuthSettings
    app.extensions["auth_settings"] = AuthSettings.from_config(app.config)

    _configure_logging(app)
    _ensure_sqlite_directory(app.config.get("SQLALCHEMY_DATABASE_URI", ""))

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    with app.app_context():
        from backend.app.models import refresh_token, user  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)

    from backend.app.cli import register_commands
    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Routes backend.* module loggers through Flask's default handler."""
    backend_logger = logging.getLogger("backend")
    backend_logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    if default_handler not in backend_logger.handlers:
        backend_logger.addHandler(default_handler)


def _ensure_sqlite_directory(uri: str) -> None:
    """Creates the parent directory of a file-backed SQLite database."""
    prefix = "sqlite:///"
    if not uri.startswith(prefix) or uri.endswith(":memory:"):
        return
    Path(uri[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource.
    """
    from backend.app.routes.auth import auth_bp
    from backend.app.routes.health import health_bp
    from backend.app.routes.users import users_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp,  url_prefix="/auth")
    app.register_blueprint(users_bp, url_prefix="/users")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → its own JSON body and HTTP status
      ValidationError → marshmallow schema errors, first message only (400)
      HTTPException   → werkzeug errors (404, 405, ...) as {"error": ...}
      Exception       → generic 500; full traceback logged, never returned

    Every handler rolls back the session so a failed request leaves no
    partial writes behind.
    """
    from backend.app.errors import AppError, ErrorCode
    from backend.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        db.session.rollback()
        if error.http_status == 401:
            app.logger.info(
                "401 %s on %s %s", error.code, request.method, request.path
            )
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Marshmallow raises ValidationError with a messages dict keyed by field
        name ("_schema" for schema-level checks). The first message wins.
        """
        db.session.rollback()
        field, message = _first_validation_message(error.messages)
        body = {"error": message}
        if field is not None:
            body["field"] = field
        return jsonify(body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        db.session.rollback()
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        Stack traces never leave the server.
        """
        db.session.rollback()
        app.logger.error(
            "Unhandled exception (%s): %s\n%s",
            ErrorCode.INTERNAL_ERROR,
            str(error),
            traceback.format_exc(),
        )
        return jsonify({"error": "Internal server error"}), 500


def _first_validation_message(messages) -> tuple[str | None, str]:
    """Returns (field, message) for the first marshmallow error."""
    if isinstance(messages, dict):
        for field_name, field_errors in messages.items():
            field = field_name if field_name != "_schema" else None
            if isinstance(field_errors, list):
                return field, str(field_errors[0]) if field_errors else "Invalid value."
            if isinstance(field_errors, dict):
                _, nested = _first_validation_message(field_errors)
                return field, nested
            return field, str(field_errors)
    if isinstance(messages, list) and messages:
        return None, str(messages[0])
    return None, "Invalid input."
