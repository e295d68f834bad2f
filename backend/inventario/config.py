# backend/inventario/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/inventario.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///inventario.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Password hashing cost (tests lower this)
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # First-run administrator, recreated by a database reset
    SEED_ADMIN_USERNAME = os.environ.get("SEED_ADMIN_USERNAME", "admin")
    SEED_ADMIN_EMAIL = os.environ.get("SEED_ADMIN_EMAIL", "admin@company.com")
    SEED_ADMIN_REAL_NAME = os.environ.get("SEED_ADMIN_REAL_NAME", "Administrator")
    SEED_ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "Admin@12345")

    TOTP_ISSUER = os.environ.get("TOTP_ISSUER", "Inventario Pro")
    TOTP_VALID_WINDOW = _env_int("TOTP_VALID_WINDOW", 1)

    # Password-verified login waiting for its TOTP code
    LOGIN_CHALLENGE_MINUTES = _env_int("LOGIN_CHALLENGE_MINUTES", 5)
    LOGIN_CHALLENGE_MAX_ATTEMPTS = _env_int("LOGIN_CHALLENGE_MAX_ATTEMPTS", 5)

    SESSION_ABSOLUTE_HOURS = _env_int("SESSION_ABSOLUTE_HOURS", 24)
    SESSION_IDLE_HOURS = _env_int("SESSION_IDLE_HOURS", 8)

    AUDIT_LOG_LIMIT = _env_int("AUDIT_LOG_LIMIT", 200)

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ).split(",")
        if origin.strip()
    ]
