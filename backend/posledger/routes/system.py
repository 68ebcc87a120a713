"""
System health endpoint.

Checks the database and reports how far the stock ledger has drifted from
the catalog, for deployment debugging.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import Product, Stock
from posledger.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Round-trip a trivial query. Returns dict with status and latency."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_stock_sync_health() -> dict:
    """
    Compare tracked products with live stock rows.

    Missing rows mean the startup sync has not run (or failed) for some
    owner; that is degraded, not down.
    """
    try:
        tracked = db.session.query(Product).filter(
            Product.track_stock.is_(True),
            Product.deleted_at.is_(None),
        ).count()
        live_rows = db.session.query(Stock).filter(Stock.deleted_at.is_(None)).count()
        missing = max(tracked - live_rows, 0)
        return {
            "status": "degraded" if missing else "healthy",
            "details": {"tracked_products": tracked, "live_stock_rows": live_rows},
        }
    except Exception:
        current_app.logger.exception("Stock sync health check failed")
        return {"status": "unhealthy", "error": "Stock ledger error"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    database_health = check_database_health()
    if database_health["status"] == "healthy":
        stock_health = check_stock_sync_health()
    else:
        stock_health = {"status": "unhealthy", "error": "Database unavailable"}

    all_checks = [database_health, stock_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
            "stock_ledger": stock_health,
        },
    }, http_status
