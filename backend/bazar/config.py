# backend/bazar/config.py
from __future__ import annotations
import os
from datetime import timedelta


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bazar.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///bazar.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT access tokens (Authorization: Bearer <token>)
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=_env_int("JWT_ACCESS_TOKEN_EXPIRES_HOURS", 24 * 7))
    JWT_TOKEN_LOCATION = ["headers"]

    # bcrypt cost factor; tests lower this to keep hashing fast
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Login lockout
    MAX_LOGIN_ATTEMPTS = _env_int("MAX_LOGIN_ATTEMPTS", 5)
    LOCKOUT_MINUTES = _env_int("LOCKOUT_MINUTES", 120)

    # Invoicing defaults (IVA Colombia)
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "COP")
    DEFAULT_TAX_NAME = os.environ.get("DEFAULT_TAX_NAME", "IVA")
    DEFAULT_TAX_RATE = os.environ.get("DEFAULT_TAX_RATE", "19")
    INVOICE_DUE_DAYS = _env_int("INVOICE_DUE_DAYS", 30)

    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if o.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
