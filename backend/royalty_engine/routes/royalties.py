# Overview: HQ admin royalty invoice API; list, inspect, generate, adjust and settle invoices.

# backend/royalty_engine/routes/royalties.py
"""
Admin Royalty Invoice API Routes

SECURITY:
- Every route requires an hq_admin session
- Actor (generated_by / updated_by / paid_by) is the caller's email
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import RoyaltyEngineError, error_response
from ..models.auth import ROLE_HQ_ADMIN
from ..services import royalty_service
from royalty_engine.time_utils import parse_iso_date, parse_iso_datetime


admin_royalties_bp = Blueprint("admin_royalties", __name__, url_prefix="/api/admin/royalties")


def _actor() -> str:
    return g.current_user.email


def _int_or_none(value, field: str):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")


# =============================================================================
# QUERIES
# =============================================================================

@admin_royalties_bp.get("/")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def list_invoices_route():
    """
    Query params: status, tenant_id, from, to (due date range, ISO-8601),
    search, sort_by, sort_dir, limit, offset.
    """
    try:
        result = royalty_service.list_invoices(
            tenant_id=_int_or_none(request.args.get("tenant_id"), "tenant_id"),
            status=request.args.get("status") or None,
            date_from=parse_iso_datetime(request.args.get("from")),
            date_to=parse_iso_datetime(request.args.get("to")),
            search=request.args.get("search"),
            sort_by=request.args.get("sort_by", "due_date"),
            sort_dir=request.args.get("sort_dir", "desc"),
            limit=_int_or_none(request.args.get("limit"), "limit") or 50,
            offset=_int_or_none(request.args.get("offset"), "offset") or 0,
        )
        return jsonify(result)
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list royalty invoices")
        return jsonify({"error": "Internal server error"}), 500


@admin_royalties_bp.get("/<int:invoice_id>")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def get_invoice_route(invoice_id: int):
    try:
        return jsonify({"invoice": royalty_service.get_invoice(invoice_id)})
    except RoyaltyEngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load royalty invoice")
        return jsonify({"error": "Internal server error"}), 500


@admin_royalties_bp.get("/camps-without-invoices")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def camps_without_invoices_route():
    """
    Query params: tenant_id, from, to (camp start date range), status
    (comma separated, default completed,in_progress), limit.
    """
    try:
        kwargs = {
            "tenant_id": _int_or_none(request.args.get("tenant_id"), "tenant_id"),
            "date_from": parse_iso_date(request.args.get("from")),
            "date_to": parse_iso_date(request.args.get("to")),
            "limit": _int_or_none(request.args.get("limit"), "limit") or 50,
        }
        statuses = request.args.get("status")
        if statuses:
            kwargs["statuses"] = [s.strip() for s in statuses.split(",") if s.strip()]
        camps = royalty_service.get_camps_without_invoices(**kwargs)
        return jsonify({"camps": camps, "count": len(camps)})
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list camps without royalty invoices")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# GENERATION
# =============================================================================

@admin_royalties_bp.post("/generate")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def generate_invoice_route():
    """
    Request body:
    {
        "camp_id": 12,
        "due_in_days": 30  (optional, default ROYALTY_DUE_IN_DAYS)
    }

    Returns:
        201: {"invoice_id", "invoice_number"}
        400: camp_id missing / bad due_in_days
        404: camp not found
        409: outstanding invoice already exists
        503: the write failed
    """
    try:
        data = request.get_json(silent=True) or {}
        result = royalty_service.generate_invoice(
            camp_id=_int_or_none(data.get("camp_id"), "camp_id"),
            generated_by=_actor(),
            due_in_days=data.get("due_in_days"),
        )
        return jsonify(result), 201
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate royalty invoice")
        return jsonify({"error": "Internal server error"}), 500


@admin_royalties_bp.post("/calculate")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def calculate_invoice_route():
    """Create or refresh a pending (not yet issued) invoice for a camp."""
    try:
        data = request.get_json(silent=True) or {}
        invoice = royalty_service.calculate_invoice(
            camp_id=_int_or_none(data.get("camp_id"), "camp_id"),
            generated_by=_actor(),
        )
        return jsonify({"invoice": invoice})
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to calculate royalty invoice")
        return jsonify({"error": "Internal server error"}), 500


@admin_royalties_bp.post("/bulk-generate")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def bulk_generate_route():
    """
    Request body: {"camp_ids": [1, 2, 3], "due_in_days": 30}

    Per-camp failures are reported in the body; the request itself succeeds.
    """
    try:
        data = request.get_json(silent=True) or {}
        camp_ids = data.get("camp_ids")
        if not isinstance(camp_ids, list) or not camp_ids:
            return jsonify({"error": "camp_ids must be a non-empty list"}), 400
        result = royalty_service.bulk_generate_invoices(
            [_int_or_none(c, "camp_ids") for c in camp_ids],
            generated_by=_actor(),
            due_in_days=data.get("due_in_days"),
        )
        return jsonify(result)
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to bulk generate royalty invoices")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LIFECYCLE
# =============================================================================

@admin_royalties_bp.post("/<int:invoice_id>/status")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def change_status_route(invoice_id: int):
    """
    Request body:
    {
        "status": "disputed",
        "notes": "Licensee contests merchandise total",  (optional)
        "paid_amount_cents": 47000,  (paid only, optional)
        "payment_method": "ach",  (paid only, optional)
        "payment_reference": "TX-123"  (paid only, optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("status"):
            return jsonify({"error": "status is required"}), 400
        invoice = royalty_service.change_status(
            invoice_id,
            data["status"],
            notes=data.get("notes"),
            updated_by=_actor(),
            paid_amount_cents=data.get("paid_amount_cents"),
            payment_method=data.get("payment_method"),
            payment_reference=data.get("payment_reference"),
        )
        return jsonify({"invoice": invoice.to_dict()})
    except RoyaltyEngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change royalty invoice status")
        return jsonify({"error": "Internal server error"}), 500


@admin_royalties_bp.post("/<int:invoice_id>/adjustments")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def add_adjustment_route(invoice_id: int):
    """
    Request body: {"adjustment_cents": -5000, "notes": "goodwill credit"}

    Negative amounts are credits, positive amounts are charges.
    """
    try:
        data = request.get_json(silent=True) or {}
        invoice = royalty_service.add_adjustment(
            invoice_id,
            data.get("adjustment_cents"),
            data.get("notes"),
            updated_by=_actor(),
        )
        return jsonify({"invoice": invoice.to_dict(), "new_total_due_cents": invoice.total_due_cents})
    except RoyaltyEngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust royalty invoice")
        return jsonify({"error": "Internal server error"}), 500


@admin_royalties_bp.post("/<int:invoice_id>/mark-paid")
@require_auth
@require_role(ROLE_HQ_ADMIN)
def mark_paid_route(invoice_id: int):
    """
    Request body (all optional):
    {
        "paid_amount_cents": 47000,  (defaults to total due)
        "payment_method": "check",
        "payment_reference": "CHK-1001",
        "notes": "Received by mail"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        invoice = royalty_service.mark_paid(
            invoice_id,
            paid_amount_cents=data.get("paid_amount_cents"),
            payment_method=data.get("payment_method"),
            payment_reference=data.get("payment_reference"),
            paid_by=_actor(),
            notes=data.get("notes"),
        )
        return jsonify({"invoice": invoice.to_dict()})
    except RoyaltyEngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark royalty invoice paid")
        return jsonify({"error": "Internal server error"}), 500
