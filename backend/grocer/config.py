# backend/grocer/config.py
from __future__ import annotations
import os


def _split_csv(value: str | None) -> set[str]:
    if not value:
        return set()
    return {part.strip() for part in value.split(",") if part.strip()}


class Config:
    # Required. There is deliberately no fallback secret: create_app refuses to start without one.
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_MINUTES = int(os.environ.get("JWT_EXPIRES_MINUTES", "1440"))  # 24 hours

    # SQLite DB stored in backend/instance/grocer.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///grocer.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ALLOWED_ORIGINS = _split_csv(os.environ.get("CORS_ALLOWED_ORIGINS")) or {
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    }

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
