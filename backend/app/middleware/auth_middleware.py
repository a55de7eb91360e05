"""
middleware/auth_middleware.py — Bearer token authentication decorator.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Validates the access token (signature, HS256, exp, iss)
  3. Attaches the claims to flask.g.auth_claims and an Identity to
     flask.g.identity for the duration of the request
  4. Raises AuthenticationRequired (401) if any step fails

This is a pure gate: no database access. Access tokens are stateless, so a
token stays accepted until it expires even after its owner logs out.

Error codes (response body "code"):
  missing_token  — header absent, empty, not "Bearer <value>", or blank value
  invalid_token  — malformed, bad signature, wrong algorithm/issuer, bad exp
  token_expired  — otherwise valid token whose exp has passed
"""

from __future__ import annotations

import functools
import re
import time
from typing import Callable

from flask import g, request

from backend.app.errors import AuthenticationRequired, ErrorCode
from backend.app.services.access_token_service import (
    AccessTokenError,
    ExpiredAccessToken,
    validate_access_token,
)
from backend.app.services.auth_service import Identity
from backend.app.settings import get_auth_settings

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE | re.DOTALL)


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces bearer token authentication.

    Usage:
        @users_bp.route("/")
        @require_auth
        def list_users():
            identity = g.identity
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def extract_bearer_token(header: str | None) -> str | None:
    """Returns the token from an Authorization header value, or None."""
    if not header:
        return None
    match = _BEARER_RE.match(header)
    if match is None:
        return None
    token = match.group(1).strip()
    return token or None


def _authenticate_request() -> None:
    """
    Validates the request's bearer token and populates flask.g.

    Raises AuthenticationRequired on any failure; the global error handler
    renders it.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise AuthenticationRequired(
            ErrorCode.MISSING_TOKEN,
            "Access token is required",
        )

    settings = get_auth_settings()
    try:
        claims = validate_access_token(
            token,
            now=int(time.time()),
            expected_issuer=settings.jwt_issuer,
            secret=settings.jwt_secret,
        )
    except ExpiredAccessToken:
        raise AuthenticationRequired(
            ErrorCode.TOKEN_EXPIRED,
            "Access token has expired",
        )
    except AccessTokenError:
        raise AuthenticationRequired(
            ErrorCode.INVALID_TOKEN,
            "Access token is invalid",
        )

    g.auth_claims = claims
    g.identity = Identity.from_claims(claims)
