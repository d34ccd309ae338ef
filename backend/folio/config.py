# backend/folio/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/folio.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///folio.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity provider backing the bearer-token gate ("local" is the bundled one)
    IDENTITY_PROVIDER = os.environ.get("IDENTITY_PROVIDER", "local")
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Users may only be provisioned by admins unless explicitly enabled
    SELF_SIGNUP_ENABLED = _env_flag("SELF_SIGNUP_ENABLED")

    AUDIT_DEFAULT_LIMIT = int(os.environ.get("AUDIT_DEFAULT_LIMIT", "200"))
    AUDIT_MAX_LIMIT = int(os.environ.get("AUDIT_MAX_LIMIT", "1000"))
    AUDIT_RETENTION_DAYS = int(os.environ.get("AUDIT_RETENTION_DAYS", "365"))

    # Development-like mode: include error detail for admin callers
    EXPOSE_ERROR_DETAILS = _env_flag("EXPOSE_ERROR_DETAILS")

    FRONTEND_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "FRONTEND_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
