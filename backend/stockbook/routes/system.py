# backend/stockbook/routes/system.py
"""
System health endpoint.

Reports store connectivity and whether the catalog has been set up, for
deployment debugging.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, ProductSize, Sale, Customer, Worker
from stockbook.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "product_sizes": db.session.query(ProductSize).count(),
            "sales": db.session.query(Sale).count(),
            "customers": db.session.query(Customer).count(),
            "workers": db.session.query(Worker).count(),
        }

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_catalog_health(database_health: dict) -> dict:
    """Degraded when the store is reachable but no product sizes exist to sell."""
    if database_health["status"] != "healthy":
        return {"status": "unhealthy", "error": "Database unavailable"}
    if database_health["details"]["product_sizes"] == 0:
        return {"status": "degraded", "warning": "Catalog is empty; run `flask stock seed-products`"}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    catalog_health = check_catalog_health(database_health)

    all_checks = [database_health, catalog_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "catalog": catalog_health,
        }
    }

    return response, http_status
