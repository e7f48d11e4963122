# backend/app/routes/system.py
"""
Service root, health and API index endpoints.

Health reports database connectivity so load balancers can route around
a node whose database is unreachable.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from ..extensions import db
from app.time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """Run a trivial query and time it."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/")
def root():
    return jsonify({
        "success": True,
        "message": "Resin Art Store API is running",
        "version": API_VERSION,
        "environment": current_app.config.get("APP_ENV"),
    })


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"
    return jsonify({
        "success": healthy,
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }), 200 if healthy else 503


@system_bp.get("/api")
def api_index():
    return jsonify({
        "success": True,
        "message": "Resin Art Store API",
        "version": API_VERSION,
        "endpoints": {
            "auth": "/api/auth",
            "users": "/api/users",
            "products": "/api/products",
            "cart": "/api/cart",
            "orders": "/api/orders",
            "payments": "/api/payments",
            "reviews": "/api/reviews",
            "stock": "/api/stock",
            "inventory": "/api/inventory",
            "reports": "/api/reports",
            "salesReports": "/api/reports/sales",
            "notifications": "/api/notifications",
            "contact": "/api/contact",
        },
    })
