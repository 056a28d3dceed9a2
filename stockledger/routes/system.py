# Overview: Health endpoint for load balancers and device connectivity checks.
"""
System health endpoint.

Checks database connectivity and reports how many devices still have queued
outbox events, which is the main operational signal for offline sales.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InventorySnapshot, PosDevice
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        snapshot_count = db.session.query(InventorySnapshot).count()
        devices_with_backlog = db.session.query(func.count(PosDevice.id)).filter(
            PosDevice.pending_outbox_count > 0
        ).scalar()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "inventory_rows": snapshot_count,
                "devices_with_pending_outbox": int(devices_with_backlog or 0),
            },
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
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }, http_status
