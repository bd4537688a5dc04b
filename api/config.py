"""
Environment-aware configuration.
Everything security-relevant (secrets, TTLs, CORS origins, rate limits) comes
from the environment; .env is read when present.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _seconds(name: str, default: int) -> timedelta:
    return timedelta(seconds=int(os.getenv(name, str(default))))


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str, default: str) -> list:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth-api.db")
    SQL_ECHO = _flag("SQL_ECHO", "false")

    # CORS: comma-separated list of allowed origins
    CORS_ORIGINS = _csv("CORS_ORIGINS", "http://localhost:3000")
    # number of reverse proxies whose X-Forwarded-For we trust (0 = none)
    TRUST_PROXY_HOPS = int(os.getenv("TRUST_PROXY_HOPS", "1"))

    # Token signing; the refresh secret falls back to the access secret
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "dev-access-secret-change-me")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET") or JWT_ACCESS_SECRET
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "auth-api")
    ACCESS_TOKEN_EXPIRES = _seconds("ACCESS_TOKEN_EXPIRES_SECONDS", 15 * 60)
    # a session (and its refresh token) lives this long
    SESSION_EXPIRES = _seconds("SESSION_EXPIRES_SECONDS", 7 * 24 * 3600)
    REMEMBER_ME_SESSION_EXPIRES = _seconds("REMEMBER_ME_SESSION_EXPIRES_SECONDS", 30 * 24 * 3600)
    RESET_TOKEN_EXPIRES = _seconds("RESET_TOKEN_EXPIRES_SECONDS", 15 * 60)
    OTP_EXPIRES = _seconds("OTP_EXPIRES_SECONDS", 10 * 60)

    # login revokes the user's other active sessions
    SINGLE_SESSION_ON_LOGIN = _flag("SINGLE_SESSION_ON_LOGIN", "true")
    # echo reset tokens / OTP codes in responses (development only)
    EXPOSE_DEBUG_TOKENS = _flag("EXPOSE_DEBUG_TOKENS", "false")

    # "MAX/WINDOW_SECONDS" per sensitivity class
    RATE_LIMITS = {
        "auth": "{}/{}".format(
            os.getenv("RATE_LIMIT_AUTH_MAX", "5"), os.getenv("RATE_LIMIT_AUTH_WINDOW_SECONDS", "900")
        ),
        "api": "{}/{}".format(
            os.getenv("RATE_LIMIT_API_MAX", "60"), os.getenv("RATE_LIMIT_API_WINDOW_SECONDS", "60")
        ),
    }


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    EXPOSE_DEBUG_TOKENS = _flag("EXPOSE_DEBUG_TOKENS", "true")


class ProductionConfig(BaseConfig):
    DEBUG = False
    TRUST_PROXY_HOPS = int(os.getenv("TRUST_PROXY_HOPS", "1"))


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = False
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    JWT_ACCESS_SECRET = "test-access-secret-at-least-32-bytes-long"
    JWT_REFRESH_SECRET = "test-refresh-secret-at-least-32-bytes-long"
    EXPOSE_DEBUG_TOKENS = True
    SINGLE_SESSION_ON_LOGIN = True
    RATE_LIMITS = {"auth": "1000/900", "api": "10000/60"}


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
