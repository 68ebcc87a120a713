# backend/posledger/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file next to the instance by default; Postgres in production
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///posledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Monthly free allowance per owner, in quota units
    MEMBERSHIP_FREE_QUOTA_MONTHLY = int(os.environ.get("MEMBERSHIP_FREE_QUOTA_MONTHLY", "1000"))

    # 0 disables the per-request transaction deadline
    SALE_TRANSACTION_DEADLINE_SECONDS = float(os.environ.get("SALE_TRANSACTION_DEADLINE_SECONDS", "0"))

    SALES_LIST_LIMIT = int(os.environ.get("SALES_LIST_LIMIT", "200"))
    CURRENCY_CODE = os.environ.get("CURRENCY_CODE", "IDR")

    SYNC_STOCKS_ON_STARTUP = _env_bool("SYNC_STOCKS_ON_STARTUP")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Callable(token) -> {"id", "email", "role"} | None, supplied by the auth layer
    TOKEN_VERIFIER = None
