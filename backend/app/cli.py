"""
cli.py — Flask CLI commands.

  flask --app "backend.app:create_app('development')" init-db

Creates any missing tables and the seed admin account (ADMIN_* config).
Production schemas are managed by Alembic; init-db is for local SQLite
databases and first-run setups.
"""

from __future__ import annotations

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from backend.app.extensions import db
from backend.app.services import user_service


@click.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create tables (if not exists) and the initial admin user."""
    db.create_all()

    config = current_app.config
    admin = user_service.ensure_admin(
        name=config["ADMIN_NAME"],
        phone=config["ADMIN_PHONE"],
        email=config["ADMIN_EMAIL"],
        password=config["ADMIN_PASSWORD"],
        session=db.session,
        bcrypt_rounds=config.get("BCRYPT_LOG_ROUNDS", 12),
    )
    db.session.commit()

    if admin is None:
        click.echo(f"Database initialized; admin {config['ADMIN_EMAIL']} already exists.")
    else:
        click.echo(f"Database initialized; created admin {admin.email} (id={admin.id}).")


def register_commands(app: Flask) -> None:
    app.cli.add_command(init_db_command)
