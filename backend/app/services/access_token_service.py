"""
services/access_token_service.py — Stateless access token issue/validate.

Access tokens are self-contained: nothing is stored server side and a token
stays valid until its exp claim passes, even after logout. Only refresh
tokens are revocable.

Layer rules:
  - No Flask imports, no DB access. Time, issuer and secret are arguments.
"""

from __future__ import annotations

import hmac
from typing import Any

from backend.app.security import token_codec


class AccessTokenError(Exception):
    """Base class for access token validation failures."""


class InvalidAccessToken(AccessTokenError):
    """Malformed, tampered, wrong algorithm, bad exp claim or wrong issuer."""


class ExpiredAccessToken(AccessTokenError):
    """Well-formed and correctly signed, but exp is not in the future."""


def issue_access_token(
        user_id: int,
        email: str,
        is_admin: bool,
        now: int,
        ttl_seconds: int,
        issuer: str,
        secret: str,
) -> str:
    """Signs a claims set for `user_id` valid for `ttl_seconds` from `now`."""
    claims = {
        "sub": int(user_id),
        "email": email,
        "is_admin": bool(is_admin),
        "iat": int(now),
        "exp": int(now) + int(ttl_seconds),
        "iss": issuer,
    }
    return token_codec.encode(claims, secret)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_access_token(
        token: str,
        now: int,
        expected_issuer: str,
        secret: str,
) -> dict[str, Any]:
    """
    Verifies `token` and returns its claims.

    Checks run in a fixed order: structure, signature (constant-time
    comparison), algorithm pinned to HS256, numeric exp, expiry, issuer.

    Raises:
      InvalidAccessToken — any structural, signature or claim failure.
      ExpiredAccessToken — exp <= now.
    """
    try:
        decoded = token_codec.decode(token)
    except token_codec.MalformedTokenError as exc:
        raise InvalidAccessToken(str(exc)) from exc

    expected = token_codec.sign(decoded.signing_input, secret)
    if not hmac.compare_digest(
            expected.encode("ascii"),
            decoded.signature.encode("utf-8"),
    ):
        raise InvalidAccessToken("Signature mismatch.")

    if decoded.header.get("alg") != token_codec.ALGORITHM:
        raise InvalidAccessToken("Unsupported signing algorithm.")

    claims = decoded.payload
    exp = claims.get("exp")
    if not _is_number(exp):
        raise InvalidAccessToken("Missing or non-numeric exp claim.")

    if exp <= now:
        raise ExpiredAccessToken("Token has expired.")

    if claims.get("iss") != expected_issuer:
        raise InvalidAccessToken("Unexpected issuer.")

    return claims
