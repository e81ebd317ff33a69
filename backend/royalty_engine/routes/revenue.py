# Overview: Revenue reporting API; camp dashboards, monthly trends and revenue snapshots.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import RoyaltyEngineError, ValidationError, error_response
from ..models.auth import ROLE_HQ_ADMIN, ROLE_LICENSEE_OWNER
from ..services import revenue_service, snapshot_service
from royalty_engine.time_utils import parse_iso_date


revenue_bp = Blueprint("revenue", __name__, url_prefix="/api/revenue")


def _scoped_tenant_id():
    """
    Tenant a request is limited to. HQ admins may pick one with ?tenant_id=;
    licensee owners are always pinned to their own tenant.
    """
    if ROLE_HQ_ADMIN in g.roles:
        return request.args.get("tenant_id", type=int)
    return g.tenant_id


@revenue_bp.get("/camps/<int:camp_id>/dashboard")
@require_auth
@require_role(ROLE_HQ_ADMIN, ROLE_LICENSEE_OWNER)
def camp_dashboard_route(camp_id: int):
    try:
        tenant_id = None if ROLE_HQ_ADMIN in g.roles else g.tenant_id
        if tenant_id is None and ROLE_HQ_ADMIN not in g.roles:
            return jsonify({"error": "No licensee tenant for this account"}), 403
        return jsonify(revenue_service.get_camp_revenue_dashboard(camp_id, tenant_id))
    except RoyaltyEngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build camp revenue dashboard")
        return jsonify({"error": "Internal server error"}), 500


@revenue_bp.get("/trends")
@require_auth
@require_role(ROLE_HQ_ADMIN, ROLE_LICENSEE_OWNER)
def trends_route():
    """?range=season|ytd|custom&start=&end= (tenant_id required for HQ admins)."""
    try:
        tenant_id = _scoped_tenant_id()
        if tenant_id is None:
            raise ValidationError("tenant_id is required")
        result = revenue_service.get_revenue_trends(
            tenant_id,
            request.args.get("range", "ytd"),
            parse_iso_date(request.args.get("start")),
            parse_iso_date(request.args.get("end")),
        )
        return jsonify(result)
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build revenue trends")
        return jsonify({"error": "Internal server error"}), 500


@revenue_bp.get("/snapshots")
@require_auth
@require_role(ROLE_HQ_ADMIN, ROLE_LICENSEE_OWNER)
def list_snapshots_route():
    try:
        tenant_id = _scoped_tenant_id()
        if tenant_id is None:
            raise ValidationError("tenant_id is required")
        snapshots = snapshot_service.list_snapshots(
            tenant_id,
            start=parse_iso_date(request.args.get("start")),
            end=parse_iso_date(request.args.get("end")),
            limit=request.args.get("limit", 12, type=int),
        )
        return jsonify({"snapshots": [s.to_dict() for s in snapshots]})
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list revenue snapshots")
        return jsonify({"error": "Internal server error"}), 500


@revenue_bp.post("/snapshots")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def create_snapshot_route():
    """
    Request body: {"tenant_id": 1, "period_start": "2026-06-01", "period_end": "2026-06-30"}

    Re-posting the same period replaces the stored figures.
    """
    try:
        data = request.get_json(silent=True) or {}
        tenant_id = data.get("tenant_id")
        if not isinstance(tenant_id, int) or isinstance(tenant_id, bool):
            raise ValidationError("tenant_id is required")
        snapshot = snapshot_service.create_snapshot(
            tenant_id,
            parse_iso_date(data.get("period_start")),
            parse_iso_date(data.get("period_end")),
        )
        return jsonify({"snapshot": snapshot.to_dict()}), 201
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create revenue snapshot")
        return jsonify({"error": "Internal server error"}), 500
