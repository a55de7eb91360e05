"""
errors.py — AppError base class and error code registry.

Every error returned by the API is raised as an AppError (or subclass) and
rendered by the global handler in app/__init__.py. Routes never catch it.

Wire format: {"error": "<human readable message>"}. The bearer-token gate
adds a machine-readable "code" and a "message" (see AuthenticationRequired).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.field is not None:
            payload["field"] = self.field
        return payload

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class AuthenticationRequired(AppError):
    """
    401 raised by the bearer-token gate.

    Body: {"error": "Unauthorized", "code": "<gate code>", "message": "..."}
    so clients can tell a missing, invalid and expired access token apart.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message, 401)

    def to_dict(self) -> dict:
        return {
            "error":   "Unauthorized",
            "code":    self.code,
            "message": self.message,
        }


# ── Error Code Registry ────────────────────────────────────────────────────
#
# HTTP status is indicated in the comment. Gate codes are lower-case because
# they are part of the response body; the rest are internal identifiers
# exposed through AppError.code only.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    PASSWORD_MISMATCH          = "PASSWORD_MISMATCH"
    PASSWORD_TOO_SHORT         = "PASSWORD_TOO_SHORT"
    PASSWORD_TOO_LONG          = "PASSWORD_TOO_LONG"
    PASSWORD_UNCHANGED         = "PASSWORD_UNCHANGED"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    NOT_FOUND                  = "NOT_FOUND"

    # ── Auth Errors (401) ──────────────────────────────────────────────────
    # Unknown email and wrong password share INVALID_CREDENTIALS; unknown,
    # revoked and expired refresh tokens share REFRESH_TOKEN_INVALID.
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"
    CURRENT_PASSWORD_INCORRECT = "CURRENT_PASSWORD_INCORRECT"
    UNAUTHORIZED               = "UNAUTHORIZED"

    # Bearer-token gate codes (sent to the client)
    MISSING_TOKEN              = "missing_token"
    INVALID_TOKEN              = "invalid_token"
    TOKEN_EXPIRED              = "token_expired"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"
