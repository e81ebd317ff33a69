# backend/royalty_engine/routes/system.py
"""
System health endpoint.

Reports database reachability and the size of the work queues the scheduler
drains (outstanding invoices, pending notifications).
"""

import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import NotificationRequest, RoyaltyInvoice, Tenant
from ..models.notifications import NOTIFICATION_FAILED, NOTIFICATION_PENDING
from ..models.royalties import SETTLED_STATUSES, STATUS_OVERDUE
from royalty_engine.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        tenant_count = db.session.query(Tenant).count()
        outstanding = db.session.query(RoyaltyInvoice).filter(
            RoyaltyInvoice.status.notin_(SETTLED_STATUSES)
        ).count()
        overdue = db.session.query(RoyaltyInvoice).filter_by(status=STATUS_OVERDUE).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tenants": tenant_count,
                "outstanding_invoices": outstanding,
                "overdue_invoices": overdue,
            },
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_notification_outbox_health() -> dict:
    """Degraded when deliveries are failing permanently."""
    start_time = time.time()
    try:
        pending = db.session.query(NotificationRequest).filter_by(status=NOTIFICATION_PENDING).count()
        failed = db.session.query(NotificationRequest).filter_by(status=NOTIFICATION_FAILED).count()
        elapsed_ms = (time.time() - start_time) * 1000
        result = {
            "status": "degraded" if failed else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"pending": pending, "failed": failed},
        }
        if failed:
            result["warning"] = f"{failed} notification(s) failed delivery"
        return result
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Notification outbox health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Notification outbox error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: a dependency is unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    outbox_health = check_notification_outbox_health()

    all_checks = [database_health, outbox_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "notification_outbox": outbox_health,
        },
    }
    return response, http_status
