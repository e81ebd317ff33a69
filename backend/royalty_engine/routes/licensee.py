# Overview: Licensee royalty API; a licensee owner's view of their own royalty position.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import RoyaltyEngineError, error_response
from ..models.auth import ROLE_LICENSEE_OWNER
from ..services import royalty_service
from royalty_engine.time_utils import parse_iso_date


licensee_royalties_bp = Blueprint("licensee_royalties", __name__, url_prefix="/api/licensee/royalties")


def _no_tenant_response():
    return jsonify({"error": "No licensee tenant for this account"}), 403


@licensee_royalties_bp.get("/summary")
@require_auth
@require_role(ROLE_LICENSEE_OWNER)
def summary_route():
    """Per-camp royalty position; ?start=&end= (YYYY-MM-DD) default to the season."""
    if g.tenant_id is None:
        return _no_tenant_response()
    try:
        result = royalty_service.get_licensee_royalty_summary(
            g.tenant_id,
            start=parse_iso_date(request.args.get("start")),
            end=parse_iso_date(request.args.get("end")),
        )
        return jsonify(result)
    except RoyaltyEngineError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build licensee royalty summary")
        return jsonify({"error": "Internal server error"}), 500


@licensee_royalties_bp.get("/invoices")
@require_auth
@require_role(ROLE_LICENSEE_OWNER)
def list_invoices_route():
    if g.tenant_id is None:
        return _no_tenant_response()
    try:
        result = royalty_service.list_invoices(
            tenant_id=g.tenant_id,
            status=request.args.get("status") or None,
            sort_by=request.args.get("sort_by", "generated_at"),
            sort_dir=request.args.get("sort_dir", "desc"),
            limit=request.args.get("limit", 50, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify(result)
    except RoyaltyEngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list licensee royalty invoices")
        return jsonify({"error": "Internal server error"}), 500


@licensee_royalties_bp.get("/invoices/<int:invoice_id>")
@require_auth
@require_role(ROLE_LICENSEE_OWNER)
def get_invoice_route(invoice_id: int):
    """Invoices of other tenants are reported as not found."""
    if g.tenant_id is None:
        return _no_tenant_response()
    try:
        return jsonify({"invoice": royalty_service.get_invoice(invoice_id, tenant_id=g.tenant_id)})
    except RoyaltyEngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load licensee royalty invoice")
        return jsonify({"error": "Internal server error"}), 500
