"""
settings.py — Immutable authentication settings.

Built once by the app factory from app.config and stored in
app.extensions["auth_settings"]. Services and the auth middleware receive
this object explicitly instead of reading the environment themselves, so
tests can construct one directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from flask import current_app


@dataclass(frozen=True)
class AuthSettings:
    jwt_secret: str
    jwt_issuer: str
    access_token_ttl: int
    refresh_token_ttl: int
    bcrypt_log_rounds: int = 12

    def __post_init__(self) -> None:
        if not self.jwt_secret:
            raise ValueError("jwt_secret must not be empty.")
        if self.access_token_ttl <= 0 or self.refresh_token_ttl <= 0:
            raise ValueError("Token lifetimes must be positive numbers of seconds.")

    @classmethod
    def from_config(cls, config: Mapping) -> "AuthSettings":
        return cls(
            jwt_secret=config["JWT_SECRET"],
            jwt_issuer=config["JWT_ISSUER"],
            access_token_ttl=int(config["JWT_EXPIRES_IN"]),
            refresh_token_ttl=int(config["REFRESH_TOKEN_EXPIRES_IN"]),
            bcrypt_log_rounds=int(config.get("BCRYPT_LOG_ROUNDS", 12)),
        )


def get_auth_settings() -> AuthSettings:
    """Returns the settings of the active Flask app."""
    return current_app.extensions["auth_settings"]
