# backend/billbook/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/billbook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///billbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Business-wide GST switch; the company profile can override it per namespace
    GST_ENABLED = _env_flag("BILLBOOK_GST_ENABLED", True)

    # literal | inter_state | reject
    MISSING_STATE_POLICY = os.environ.get("BILLBOOK_MISSING_STATE_POLICY", "literal")

    ALLOW_NEGATIVE_STOCK = _env_flag("BILLBOOK_ALLOW_NEGATIVE_STOCK", True)
    ALLOW_NEGATIVE_QUANTITY = _env_flag("BILLBOOK_ALLOW_NEGATIVE_QUANTITY", True)

    DEFAULT_DUE_DAYS = int(os.environ.get("BILLBOOK_DEFAULT_DUE_DAYS", "30"))

    # Namespace used when a request carries no X-User-Id header
    GUEST_NAMESPACE = "guest"
