"""
Environment-aware configuration.
Values come from the process environment (a local .env is read first).
JWT_SECRET and JWT_REFRESH_SECRET must be set to distinct strong values in production.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def rate_limit_policies(general: int, login: int, registration: int) -> dict:
    """Build the route-group policy table consulted by the limiter."""
    return {
        "general": {
            "window_seconds": _env_int("RATE_LIMIT_GENERAL_WINDOW", 60),
            "max_requests": _env_int("RATE_LIMIT_GENERAL_MAX", general),
        },
        "login": {
            "window_seconds": _env_int("RATE_LIMIT_LOGIN_WINDOW", 900),
            "max_requests": _env_int("RATE_LIMIT_LOGIN_MAX", login),
        },
        "registration": {
            "window_seconds": _env_int("RATE_LIMIT_REGISTRATION_WINDOW", 3600),
            "max_requests": _env_int("RATE_LIMIT_REGISTRATION_MAX", registration),
        },
    }


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    API_PREFIX = "/" + os.getenv("API_PREFIX", "api").strip("/")
    CORS_ORIGINS = os.getenv("CORS_ORIGIN", "http://localhost:3000")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///spotlight.db")

    # access tokens are signed JWTs; refresh tokens are opaque and stored as digests keyed by the refresh secret
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "1h")
    REFRESH_TOKEN_TTL = timedelta(days=7)
    PASSWORD_RESET_TTL = timedelta(minutes=_env_int("PASSWORD_RESET_TTL_MINUTES", 60))

    ARGON2_MEMORY_COST = _env_int("ARGON2_MEMORY_COST", 65536)
    ARGON2_TIME_COST = _env_int("ARGON2_TIME_COST", 3)
    ARGON2_PARALLELISM = _env_int("ARGON2_PARALLELISM", 4)

    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True
    RATE_LIMIT_POLICIES = rate_limit_policies(general=1000, login=100, registration=100)

    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = _env_int("SMTP_PORT", 587)
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM = os.getenv("SMTP_FROM", "Spotlight <no-reply@localhost>")
    SMTP_STARTTLS = _env_bool("SMTP_STARTTLS", True)
    SMTP_SSL = _env_bool("SMTP_SSL", False)

    SOCKETIO_ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE") or None
    SOCKETIO_MESSAGE_QUEUE = os.getenv("SOCKETIO_MESSAGE_QUEUE") or None


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    CORS_ORIGINS = os.getenv("CORS_ORIGIN", "https://spotlight.app")
    RATE_LIMIT_POLICIES = rate_limit_policies(general=100, login=5, registration=3)


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    JWT_SECRET = "test-access-secret-0123456789abcdef"
    JWT_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"
    # cheap hashing keeps the suite fast; production parameters are exercised separately
    ARGON2_MEMORY_COST = 1024
    ARGON2_TIME_COST = 1
    ARGON2_PARALLELISM = 1
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"
    SMTP_HOST = None
    SOCKETIO_ASYNC_MODE = "threading"


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
