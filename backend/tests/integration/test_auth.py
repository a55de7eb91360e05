"""
tests/integration/test_auth.py — Authentication endpoints end to end.

Endpoints covered:
  POST /auth/login            → 200
  POST /auth/refresh          → 200
  POST /auth/logout           → 200
  POST /auth/change-password  → 200
  GET  /auth/me               → 200

Gate responses (401): missing_token, invalid_token, token_expired.
"""

from __future__ import annotations

import time

from backend.app.security import token_codec
from backend.app.services.access_token_service import issue_access_token

from .conftest import auth_headers, create_user, login, refresh_rows


def _expired_token(app, user_id: int) -> str:
    settings = app.extensions["auth_settings"]
    now = int(time.time())
    return token_codec.encode({
        "sub": user_id,
        "email": "a@b.com",
        "is_admin": False,
        "iat": now - 901,
        "exp": now - 1,
        "iss": settings.jwt_issuer,
    }, settings.jwt_secret)


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/login
# ═══════════════════════════════════════════════════════════════════════════

class TestLogin:

    def test_login_success_returns_session(self, client, alice):
        resp = client.post("/auth/login", json={"email": "a@b.com", "password": "secret123"})

        assert resp.status_code == 200
        assert resp.content_type == "application/json"
        body = resp.get_json()
        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == 900
        assert body["refresh_expires_in"] == 2592000
        assert body["user"] == {"id": alice, "name": "Alice", "email": "a@b.com", "is_admin": False}
        assert body["access_token"].count(".") == 2
        assert len(body["refresh_token"]) == 96

    def test_login_persists_hashed_refresh_token(self, app, client, alice):
        raw = login(client)["refresh_token"]
        rows = refresh_rows(app, alice)

        assert len(rows) == 1
        assert rows[0].token_hash != raw
        assert len(rows[0].token_hash) == 64
        assert rows[0].revoked_at is None

    def test_wrong_password_returns_401_and_creates_no_row(self, app, client, alice):
        resp = client.post("/auth/login", json={"email": "a@b.com", "password": "wrong"})

        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}
        assert refresh_rows(app, alice) == []

    def test_unknown_email_returns_same_body(self, client, alice):
        resp = client.post("/auth/login", json={"email": "ghost@b.com", "password": "secret123"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}

    def test_missing_fields_return_400(self, client):
        for payload in ({}, {"email": "a@b.com"}, {"password": "secret123"}):
            resp = client.post("/auth/login", json=payload)
            assert resp.status_code == 400
            assert resp.get_json() == {"error": "Email and password are required"}

    def test_non_json_body_returns_400(self, client):
        resp = client.post("/auth/login", data="not json", content_type="text/plain")
        assert resp.status_code == 400

    def test_soft_deleted_user_cannot_log_in(self, app, client, alice):
        token = login(client)["access_token"]
        client.delete(f"/users/{alice}", headers=auth_headers(token))

        resp = client.post("/auth/login", json={"email": "a@b.com", "password": "secret123"})
        assert resp.status_code == 401


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/refresh
# ═══════════════════════════════════════════════════════════════════════════

class TestRefresh:

    def test_refresh_rotates_tokens(self, app, client, alice):
        first = login(client)

        resp = client.post("/auth/refresh", json={"refresh_token": first["refresh_token"]})

        assert resp.status_code == 200
        second = resp.get_json()
        assert second["refresh_token"] != first["refresh_token"]
        assert second["token_type"] == "Bearer"
        assert second["user"]["id"] == alice

        rows = refresh_rows(app, alice)
        assert len(rows) == 2
        assert rows[0].revoked_at is not None
        assert rows[1].revoked_at is None

    def test_old_refresh_token_is_single_use(self, client, alice):
        raw = login(client)["refresh_token"]
        assert client.post("/auth/refresh", json={"refresh_token": raw}).status_code == 200

        resp = client.post("/auth/refresh", json={"refresh_token": raw})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid or expired refresh token"}

    def test_new_access_token_is_accepted(self, client, alice):
        raw = login(client)["refresh_token"]
        new_access = client.post("/auth/refresh", json={"refresh_token": raw}).get_json()["access_token"]

        resp = client.get("/auth/me", headers=auth_headers(new_access))
        assert resp.status_code == 200

    def test_unknown_refresh_token_returns_401(self, client):
        resp = client.post("/auth/refresh", json={"refresh_token": "completely_invalid_token_value"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid or expired refresh token"}

    def test_missing_refresh_token_returns_400(self, client):
        resp = client.post("/auth/refresh", json={})
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "refresh_token is required"}


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/logout
# ═══════════════════════════════════════════════════════════════════════════

class TestLogout:

    def test_logout_revokes_every_refresh_token(self, app, client, alice):
        sessions = [login(client) for _ in range(3)]

        resp = client.post("/auth/logout", headers=auth_headers(sessions[0]["access_token"]))

        assert resp.status_code == 200
        assert resp.get_json() == {"message": "Logout successful"}
        assert all(row.revoked_at is not None for row in refresh_rows(app, alice))
        for session in sessions:
            resp = client.post("/auth/refresh", json={"refresh_token": session["refresh_token"]})
            assert resp.status_code == 401

    def test_logout_leaves_other_users_alone(self, app, client, alice):
        bob = create_user(app, name="Bob", email="bob@b.com", password="bobpass123")
        bob_session = login(client, "bob@b.com", "bobpass123")

        client.post("/auth/logout", headers=auth_headers(login(client)["access_token"]))

        resp = client.post("/auth/refresh", json={"refresh_token": bob_session["refresh_token"]})
        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == bob

    def test_access_token_stays_valid_after_logout(self, client, alice):
        access = login(client)["access_token"]
        client.post("/auth/logout", headers=auth_headers(access))

        assert client.get("/auth/me", headers=auth_headers(access)).status_code == 200

    def test_logout_requires_auth(self, client):
        resp = client.post("/auth/logout")
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "missing_token"


# ═══════════════════════════════════════════════════════════════════════════
# POST /auth/change-password
# ═══════════════════════════════════════════════════════════════════════════

class TestChangePassword:

    def _post(self, client, token, **body):
        return client.post("/auth/change-password", json=body, headers=auth_headers(token))

    def test_change_password_success(self, app, client, alice):
        session = login(client)

        resp = self._post(
            client, session["access_token"],
            current_password="secret123",
            new_password="brandnew99",
            new_password_confirmation="brandnew99",
        )

        assert resp.status_code == 200
        assert resp.get_json() == {"message": "Password updated successfully"}
        refreshed = client.post("/auth/refresh", json={"refresh_token": session["refresh_token"]})
        assert refreshed.status_code == 401
        assert client.post(
            "/auth/login", json={"email": "a@b.com", "password": "secret123"}
        ).status_code == 401
        assert login(client, password="brandnew99")["user"]["id"] == alice

    def test_missing_fields_return_400(self, client, alice):
        resp = self._post(client, login(client)["access_token"], current_password="secret123")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == (
            "current_password, new_password and new_password_confirmation are required"
        )

    def test_mismatched_confirmation_returns_400(self, client, alice):
        resp = self._post(
            client, login(client)["access_token"],
            current_password="secret123",
            new_password="brandnew99",
            new_password_confirmation="brandnew98",
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "new_password and new_password_confirmation must match"

    def test_short_password_returns_400(self, client, alice):
        resp = self._post(
            client, login(client)["access_token"],
            current_password="secret123",
            new_password="short",
            new_password_confirmation="short",
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "new_password must be at least 8 characters"

    def test_password_over_72_bytes_returns_400(self, client, alice):
        session = login(client)

        resp = self._post(
            client, session["access_token"],
            current_password="secret123",
            new_password="x" * 100,
            new_password_confirmation="x" * 100,
        )

        assert resp.status_code == 400
        assert resp.get_json() == {
            "error": "new_password must be at most 72 bytes",
            "field": "new_password",
        }
        assert login(client)["user"]["id"] == alice
        refreshed = client.post("/auth/refresh", json={"refresh_token": session["refresh_token"]})
        assert refreshed.status_code == 200

    def test_wrong_current_password_returns_401(self, client, alice):
        resp = self._post(
            client, login(client)["access_token"],
            current_password="not-my-password",
            new_password="brandnew99",
            new_password_confirmation="brandnew99",
        )
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Current password is incorrect"}

    def test_same_password_returns_400(self, client, alice):
        resp = self._post(
            client, login(client)["access_token"],
            current_password="secret123",
            new_password="secret123",
            new_password_confirmation="secret123",
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "New password must be different from current password"

    def test_deleted_user_returns_404(self, client, alice, app):
        token = login(client)["access_token"]
        client.delete(f"/users/{alice}", headers=auth_headers(token))

        resp = self._post(
            client, token,
            current_password="secret123",
            new_password="brandnew99",
            new_password_confirmation="brandnew99",
        )
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "User not found"}

    def test_requires_auth(self, client):
        resp = client.post("/auth/change-password", json={})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "missing_token"


# ═══════════════════════════════════════════════════════════════════════════
# Bearer token gate (via GET /auth/me)
# ═══════════════════════════════════════════════════════════════════════════

class TestGate:

    def test_me_returns_user_summary(self, client, alice):
        resp = client.get("/auth/me", headers=auth_headers(login(client)["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json() == {"id": alice, "name": "Alice", "email": "a@b.com", "is_admin": False}

    def test_missing_header_returns_missing_token(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.get_json() == {
            "error": "Unauthorized",
            "code": "missing_token",
            "message": "Access token is required",
        }

    def test_non_bearer_header_returns_missing_token(self, client):
        resp = client.get("/auth/me", headers={"Authorization": "notbearer xyz"})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "missing_token"

    def test_blank_bearer_value_returns_missing_token(self, client):
        resp = client.get("/auth/me", headers={"Authorization": "Bearer    "})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "missing_token"

    def test_malformed_token_returns_invalid_token(self, client):
        resp = client.get("/auth/me", headers=auth_headers("bad.token.here"))
        assert resp.status_code == 401
        assert resp.get_json() == {
            "error": "Unauthorized",
            "code": "invalid_token",
            "message": "Access token is invalid",
        }

    def test_lowercase_scheme_is_accepted(self, client, alice):
        token = login(client)["access_token"]
        resp = client.get("/auth/me", headers={"Authorization": f"bearer {token}"})
        assert resp.status_code == 200

    def test_expired_token_returns_token_expired(self, app, client, alice):
        resp = client.get("/auth/me", headers=auth_headers(_expired_token(app, alice)))
        assert resp.status_code == 401
        assert resp.get_json() == {
            "error": "Unauthorized",
            "code": "token_expired",
            "message": "Access token has expired",
        }

    def test_token_signed_with_other_secret_is_invalid(self, app, client, alice):
        token = issue_access_token(
            alice, "a@b.com", False, int(time.time()), 900,
            app.extensions["auth_settings"].jwt_issuer, "attacker-secret",
        )
        resp = client.get("/auth/me", headers=auth_headers(token))
        assert resp.get_json()["code"] == "invalid_token"

    def test_tampered_payload_is_invalid(self, client, alice):
        head, body, sig = login(client)["access_token"].split(".")
        tampered = body[:-2] + ("AA" if body[-2:] != "AA" else "BB")
        resp = client.get("/auth/me", headers=auth_headers(f"{head}.{tampered}.{sig}"))
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_token"

    def test_me_for_deleted_user_returns_404(self, client, alice):
        token = login(client)["access_token"]
        client.delete(f"/users/{alice}", headers=auth_headers(token))

        resp = client.get("/auth/me", headers=auth_headers(token))
        assert resp.status_code == 404


# ═══════════════════════════════════════════════════════════════════════════
# Error envelope
# ═══════════════════════════════════════════════════════════════════════════

class TestErrorEnvelope:

    def test_unknown_route_returns_json_404(self, client):
        resp = client.get("/no-such-route")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_wrong_method_returns_405(self, client):
        resp = client.get("/auth/login")
        assert resp.status_code == 405
        assert "error" in resp.get_json()

    def test_errors_never_contain_tracebacks(self, client):
        resp = client.post("/auth/login", json={"email": "nobody@b.com", "password": "x"})
        assert "Traceback" not in resp.get_data(as_text=True)
