# backend/fuelstation/config.py
from __future__ import annotations
import os


def _optional_int(name: str) -> int | None:
    raw = os.environ.get(name)
    return int(raw) if raw else None


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fuelstation.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fuelstation.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "system": one OPEN shift for the whole station (single till)
    # "employee": one OPEN shift per assigned employee
    SHIFT_SCOPE = os.environ.get("SHIFT_SCOPE", "system").lower()

    # Absolute cash difference above which a closed shift is flagged for review.
    # Unset means no shift is ever flagged; closing never fails on variance.
    CASH_VARIANCE_REVIEW_THRESHOLD = os.environ.get("CASH_VARIANCE_REVIEW_THRESHOLD") or None

    # Per-statement timeout applied on PostgreSQL connections
    STORE_STATEMENT_TIMEOUT_MS = _optional_int("STORE_STATEMENT_TIMEOUT_MS")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]
