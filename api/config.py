"""
Environment-aware configuration.
Secrets for the two token classes are required; create_app() refuses to
start without them (see validate_config).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


class ConfigurationError(RuntimeError):
    """Deployment error: the process cannot serve requests with this config."""


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _origins(raw: str) -> list[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


class BaseConfig:
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # CORS: the frontend origin(s); comma-separated. Empty means same-origin only
    CORS_ORIGINS = _origins(os.getenv("CORS_ORIGINS", os.getenv("FRONTEND_URL", "")))

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///blog.db")
    SQL_ECHO = _flag("SQL_ECHO", "false")
    STORAGE_TIMEOUT_SECONDS = int(os.getenv("STORAGE_TIMEOUT_SECONDS", "10"))

    # Tokens: two distinct secrets, one per token class
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", os.getenv("JWT_SECRET"))
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", os.getenv("REFRESH_TOKEN_SECRET"))
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "blog-api")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "900")))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", "604800")))

    # Cookies
    REFRESH_TOKEN_COOKIE = "refreshToken"
    ACCESS_TOKEN_COOKIE = "accessToken"
    COOKIE_SECURE = _flag("COOKIE_SECURE", "false")
    COOKIE_SAMESITE = "Lax"
    COOKIE_PATH = "/"

    # argon2 time cost (iterations)
    PASSWORD_HASH_TIME_COST = int(os.getenv("PASSWORD_HASH_TIME_COST", "3"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    CORS_ORIGINS = BaseConfig.CORS_ORIGINS or ["http://localhost:3000"]
    SQL_ECHO = _flag("SQL_ECHO", "true")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    JWT_ACCESS_SECRET = "test-access-secret"
    JWT_REFRESH_SECRET = "test-refresh-secret"
    CORS_ORIGINS = ["http://localhost:3000"]
    PASSWORD_HASH_TIME_COST = 1


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = _flag("COOKIE_SECURE", "true")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config) -> None:
    """Fail loudly at startup when a token secret is missing or shared."""
    access = config.get("JWT_ACCESS_SECRET")
    refresh = config.get("JWT_REFRESH_SECRET")
    missing = [name for name, value in (("JWT_ACCESS_SECRET", access), ("JWT_REFRESH_SECRET", refresh)) if not value]
    if missing:
        raise ConfigurationError(f"Missing required setting(s): {', '.join(missing)}")
    if access == refresh:
        raise ConfigurationError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
    # Credentialed CORS needs explicit origins
    if "*" in (config.get("CORS_ORIGINS") or []):
        raise ConfigurationError("CORS_ORIGINS must list explicit origins, not '*'")
