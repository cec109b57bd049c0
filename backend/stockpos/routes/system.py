# Overview: Flask API routes for system health; parses input and returns JSON responses.

"""
System health endpoint.

Unauthenticated; used by load balancers and deployment checks.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Store
from stockpos.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Run a trivial query and time it."""
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"stores": store_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {
        "status": "ok" if healthy else "degraded",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }
    return body, 200 if healthy else 503
