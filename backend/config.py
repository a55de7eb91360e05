import os
from pathlib import Path

from dotenv import load_dotenv


_BACKEND_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _BACKEND_DIR.parent

# Root .env is canonical; backend/.env remains a fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_BACKEND_DIR / ".env")

DEFAULT_JWT_SECRET = "local-dev-secret"
DEFAULT_SECRET_KEY = "change-me-in-production"


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _sqlite_url(filename: str) -> str:
    storage_dir = _PROJECT_ROOT / "storage"
    return f"sqlite:///{storage_dir / filename}"


class BaseConfig:

    SECRET_KEY: str = _first_non_empty_env("SECRET_KEY", default=DEFAULT_SECRET_KEY)

    # HMAC key for access tokens.
    JWT_SECRET: str = _first_non_empty_env("JWT_SECRET", default=DEFAULT_JWT_SECRET)
    JWT_ISSUER: str = _first_non_empty_env("JWT_ISSUER", default="sunday-picks-api")

    # Both TTLs are in seconds.
    JWT_EXPIRES_IN: int = _parse_int_env("JWT_EXPIRES_IN", default=900)
    REFRESH_TOKEN_EXPIRES_IN: int = _parse_int_env(
        "REFRESH_TOKEN_EXPIRES_IN", default=2592000
    )

    BCRYPT_LOG_ROUNDS: int = 12

    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO")

    # Seed account created by `flask init-db`.
    ADMIN_NAME: str = _first_non_empty_env("ADMIN_NAME", default="Admin")
    ADMIN_PHONE: str = _first_non_empty_env("ADMIN_PHONE", default="0000000000")
    ADMIN_EMAIL: str = _first_non_empty_env("ADMIN_EMAIL", default="admin@sundaypicks.local")
    ADMIN_PASSWORD: str = _first_non_empty_env("ADMIN_PASSWORD", default="ChangeMe123!")


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    SQLALCHEMY_DATABASE_URI: str = _first_non_empty_env(
        "DATABASE_URL",
        default=_sqlite_url("database.sqlite"),
    )
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG")


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    SQLALCHEMY_DATABASE_URI: str = _first_non_empty_env(
        "TEST_DATABASE_URL",
        default="sqlite:///:memory:",
    )
    SQLALCHEMY_ECHO: bool = False

    JWT_SECRET: str = "test-secret"
    JWT_ISSUER: str = "sunday-picks-api"
    JWT_EXPIRES_IN: int = 900
    REFRESH_TOKEN_EXPIRES_IN: int = 2592000

    BCRYPT_LOG_ROUNDS: int = 4


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    SQLALCHEMY_ECHO: bool = False

    # Heroku / Render return 'postgres://' which SQLAlchemy 1.4+ rejects;
    # normalise to 'postgresql://'.
    _raw_db_url: str = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI: str = (
        _raw_db_url.replace("postgres://", "postgresql://", 1)
        if _raw_db_url.startswith("postgres://")
        else _raw_db_url
    )


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Raises ValueError if any required production value is missing or still
    set to a development placeholder.
    """
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError(
            "DATABASE_URL environment variable is required in production."
        )
    if app.config.get("SECRET_KEY") == DEFAULT_SECRET_KEY:
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )
    if app.config.get("JWT_SECRET") == DEFAULT_JWT_SECRET:
        raise ValueError(
            "JWT_SECRET must be set to a strong random value in production. "
            "Do not use the default development secret."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   app.config.from_object(config_by_name[config_name])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}
