"""
Application configuration — environment-aware settings.

All environment variables are documented here. Values may also come from a
.env file in the project root.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv(BASE_DIR / ".env")


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    # Database: SQLite (default) or PostgreSQL (set DATABASE_URL=postgresql://...)
    DATABASE = os.environ.get("DATABASE_URL", str(BASE_DIR / "learning_profiles.db"))
    WTF_CSRF_ENABLED = True

    # Teacher session cookie (signed JSON {userId, userType})
    AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "edu-session")
    AUTH_COOKIE_MAX_AGE = int(os.environ.get("AUTH_COOKIE_MAX_AGE", str(7 * 24 * 3600)))
    AUTH_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Email
    EMAIL_BACKEND = os.environ.get("EMAIL_BACKEND", "log")  # "log" or "smtp"
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME", "")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD", "")
    MAIL_FROM = os.environ.get("MAIL_FROM", "learning-profiles@example.com")
    BASE_URL = os.environ.get("BASE_URL", "http://localhost:5001")

    # Background tasks
    REDIS_URL = os.environ.get("REDIS_URL", "")

    # Scoring and progress
    SCORING_CONFIG_PATH = os.environ.get("SCORING_CONFIG_PATH", "")
    PROGRESS_TTL_DAYS = int(os.environ.get("PROGRESS_TTL_DAYS", "7"))
    PROGRESS_PURGE_INTERVAL_HOURS = int(os.environ.get("PROGRESS_PURGE_INTERVAL_HOURS", "1"))

    # Response compression
    COMPRESS_MIMETYPES = ["text/html", "text/css", "application/json", "application/javascript"]
    COMPRESS_MIN_SIZE = 500

    # Rate limiting (defaults to in-memory; set REDIS_URL for Redis-backed)
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "") or "memory://"


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True
    AUTH_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.EMAIL_BACKEND not in ("log", "smtp"):
            errors.append(f"EMAIL_BACKEND must be 'log' or 'smtp', got {cls.EMAIL_BACKEND!r}.")

        if cls.SCORING_CONFIG_PATH and not Path(cls.SCORING_CONFIG_PATH).is_file():
            errors.append(f"SCORING_CONFIG_PATH does not exist: {cls.SCORING_CONFIG_PATH}")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    WTF_CSRF_ENABLED = False
    EMAIL_BACKEND = "log"
    REDIS_URL = ""


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
