# Overview: Scheduler-facing endpoints; royalty automation, snapshot rollup and notification delivery.

# backend/royalty_engine/routes/cron.py
"""
Cron API Routes

Called by an external scheduler (daily for royalties and notifications,
monthly for snapshots) with "Authorization: Bearer <CRON_SECRET>".

Step failures inside a run are reported in the body with success=true; only
a failure of the run itself returns 500.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_cron_secret
from ..errors import RoyaltyEngineError, error_response
from ..services import automation_service, notification_service, snapshot_service
from royalty_engine.time_utils import parse_iso_date, to_utc_z, utcnow


cron_bp = Blueprint("cron", __name__, url_prefix="/api/cron")


def _get_not_allowed():
    return jsonify({"error": "GET only allowed outside production"}), 405


@cron_bp.route("/royalties", methods=["GET", "POST"])
@require_cron_secret
def royalties_route():
    """
    Run the royalty automation batch.

    Response:
    {
        "success": true,
        "results": {"invoicesGenerated", "invoicesFailed", "invoicesMarkedOverdue",
                    "dueSoonReminders", "overdueSummariesSent", "errors"},
        "timestamp": "...Z"
    }
    """
    if request.method == "GET" and current_app.config.get("APP_ENV") == "production":
        return _get_not_allowed()
    try:
        result = automation_service.run_royalty_automation()
        return jsonify({
            "success": True,
            "results": result.to_dict(),
            "timestamp": to_utc_z(result.timestamp),
        })
    except Exception:
        current_app.logger.exception("Royalty automation job failed")
        return jsonify({"error": "Internal server error"}), 500


@cron_bp.post("/revenue-snapshots")
@require_cron_secret
def revenue_snapshots_route():
    """
    Roll snapshots for every active tenant. Body (optional):
    {"period_start": "2026-06-01", "period_end": "2026-06-30"}; defaults to
    the previous calendar month.
    """
    try:
        data = request.get_json(silent=True) or {}
        period_start = parse_iso_date(data.get("period_start"))
        period_end = parse_iso_date(data.get("period_end"))
        if period_start is None or period_end is None:
            period_start, period_end = snapshot_service.previous_month(utcnow().date())
        result = automation_service.roll_revenue_snapshots(period_start, period_end)
        return jsonify({"success": True, "results": result, "timestamp": to_utc_z(utcnow())})
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Revenue snapshot job failed")
        return jsonify({"error": "Internal server error"}), 500


@cron_bp.post("/notifications")
@require_cron_secret
def notifications_route():
    """Drain pending notification requests. Body (optional): {"limit": 100}."""
    try:
        data = request.get_json(silent=True) or {}
        limit = data.get("limit", 100)
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            return jsonify({"error": "limit must be a positive integer"}), 400
        result = notification_service.deliver_pending_notifications(limit=limit)
        return jsonify({"success": True, "results": result, "timestamp": to_utc_z(utcnow())})
    except Exception:
        current_app.logger.exception("Notification delivery job failed")
        return jsonify({"error": "Internal server error"}), 500
