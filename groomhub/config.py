"""Configuration objects loaded by ``create_app``."""
from __future__ import annotations

import os


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///groomhub.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens expire after this many seconds
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", 86400))

    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    PAYMENT_CURRENCY = os.environ.get("PAYMENT_CURRENCY", "usd")

    CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")

    # Business served read-only under /demo/
    DEMO_BUSINESS_ID = int(os.environ.get("DEMO_BUSINESS_ID", 1))
    TRIAL_DAYS = int(os.environ.get("TRIAL_DAYS", 14))

    DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "en")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STRIPE_SECRET_KEY = "sk_test_dummy"
    LOG_LEVEL = "WARNING"
