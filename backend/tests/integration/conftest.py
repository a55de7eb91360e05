"""
tests/integration/conftest.py — Fixtures and helpers for integration tests.

Design:
  - Tests run against in-memory SQLite (TestingConfig). Flask-SQLAlchemy
    keeps a single shared connection for :memory: databases, so all tables
    created once per session stay visible to every request.
  - Between tests, all rows are deleted in FK-safe order.

Helper functions (not fixtures):
  - create_user(app, ...)  → id of a user inserted directly into the DB
  - login(client, ...)     → session dict from POST /auth/login
  - auth_headers(token)    → {"Authorization": "Bearer <token>"}
  - refresh_rows(app, ...) → RefreshToken rows of a user

Users are inserted directly because /users/register itself requires a
bearer token.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select, text

from backend.app import create_app
from backend.app.extensions import db as _db
from backend.app.models.refresh_token import RefreshToken
from backend.app.services import user_service


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the app in 'testing' mode and all tables once per session."""
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """Deletes all rows after every test (refresh_tokens before users)."""
    yield

    with app.app_context():
        _db.session.rollback()
        _db.session.execute(text("DELETE FROM refresh_tokens"))
        _db.session.execute(text("DELETE FROM users"))
        _db.session.commit()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def alice(app):
    """A regular user: a@b.com / secret123."""
    return create_user(app, name="Alice", email="a@b.com", password="secret123")


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def create_user(
    app,
    name: str = "Alice",
    email: str = "a@b.com",
    password: str = "secret123",
    phone: str = "5550000000",
    is_admin: bool = False,
) -> int:
    with app.app_context():
        user = user_service.register_user(
            name=name,
            phone=phone,
            email=email,
            password=password,
            is_admin=is_admin,
            session=_db.session,
            bcrypt_rounds=4,
        )
        _db.session.commit()
        return user.id


def login(client, email: str = "a@b.com", password: str = "secret123") -> dict:
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def refresh_rows(app, user_id: int) -> list[RefreshToken]:
    with app.app_context():
        rows = list(_db.session.execute(
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.id)
        ).scalars())
        _db.session.expunge_all()
        return rows
