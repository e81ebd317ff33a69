# Overview: Revenue aggregation for camps and periods; read-only, integer cents throughout.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import func

from royalty_engine.extensions import db
from royalty_engine.errors import NotFoundError, ValidationError
from royalty_engine.models import Camp, Registration, ShopOrder, RevenueSnapshot, RoyaltyInvoice, Tenant
from royalty_engine.models.camps import (
    REGISTRATION_CONFIRMED,
    REGISTRATION_REFUNDED,
    SHOP_ORDER_SALE_STATUSES,
)
from royalty_engine.services.royalty_calculator import (
    calculate_royalty_cents,
    resolve_rate_bps,
    round_half_up_div,
)
from royalty_engine.time_utils import end_of_day, start_of_day, to_iso_date, utcnow


# Invoice status -> coarse royalty status shown on dashboards
ROYALTY_STATUS_BY_INVOICE_STATUS = {
    "pending": "CALCULATED",
    "invoiced": "INVOICED",
    "overdue": "INVOICED",
    "disputed": "INVOICED",
    "paid": "PAID",
    "waived": "PAID",
}

TREND_RANGES = {"season", "ytd", "custom"}


@dataclass
class RevenueBreakdown:
    """Revenue composition of one camp session, in cents."""
    registration_revenue_cents: int = 0
    addon_revenue_cents: int = 0
    merchandise_revenue_cents: int = 0
    refunds_total_cents: int = 0
    camper_count: int = 0

    @property
    def gross_revenue_cents(self) -> int:
        return self.registration_revenue_cents + self.addon_revenue_cents + self.merchandise_revenue_cents

    @property
    def net_revenue_cents(self) -> int:
        return self.gross_revenue_cents - self.refunds_total_cents

    def to_dict(self) -> dict:
        return {
            "registration_revenue_cents": self.registration_revenue_cents,
            "addon_revenue_cents": self.addon_revenue_cents,
            "merchandise_revenue_cents": self.merchandise_revenue_cents,
            "gross_revenue_cents": self.gross_revenue_cents,
            "refunds_total_cents": self.refunds_total_cents,
            "net_revenue_cents": self.net_revenue_cents,
            "camper_count": self.camper_count,
        }


# =============================================================================
# SOURCE QUERIES
# =============================================================================

def _confirmed_registrations(camp: Camp) -> list[Registration]:
    return (
        db.session.query(Registration)
        .filter(
            Registration.camp_id == camp.id,
            Registration.status == REGISTRATION_CONFIRMED,
        )
        .order_by(Registration.id.asc())
        .all()
    )


def _camp_merchandise_orders(camp: Camp) -> list[ShopOrder]:
    """Tenant shop sales placed between the first and last camp day (inclusive)."""
    return (
        db.session.query(ShopOrder)
        .filter(
            ShopOrder.tenant_id == camp.tenant_id,
            ShopOrder.status.in_(SHOP_ORDER_SALE_STATUSES),
            ShopOrder.created_at >= start_of_day(camp.start_date),
            ShopOrder.created_at <= end_of_day(camp.end_date),
        )
        .order_by(ShopOrder.id.asc())
        .all()
    )


def _registration_base_cents(registration: Registration) -> int:
    return (registration.total_price_cents or 0) - (registration.addons_total_cents or 0)


def _registration_addon_cents(registration: Registration) -> int:
    # Itemized add-on rows win over the denormalized total when present
    if registration.addons:
        return sum(addon.price_cents or 0 for addon in registration.addons)
    return registration.addons_total_cents or 0


# =============================================================================
# CAMP AGGREGATION
# =============================================================================

def aggregate_camp_revenue(camp: Camp) -> RevenueBreakdown:
    """
    Aggregate the revenue a camp session produced.

    - registration: confirmed registrations, price net of their add-ons
    - addon: add-on rows (or addons_total_cents when none are itemized)
    - merchandise: tenant shop sales inside the camp's date window
    - refunds: full price of the camp's refunded registrations
    """
    confirmed = _confirmed_registrations(camp)
    orders = _camp_merchandise_orders(camp)

    refunds_total = (
        db.session.query(func.coalesce(func.sum(Registration.total_price_cents), 0))
        .filter(
            Registration.camp_id == camp.id,
            Registration.status == REGISTRATION_REFUNDED,
        )
        .scalar()
    )

    return RevenueBreakdown(
        registration_revenue_cents=sum(_registration_base_cents(r) for r in confirmed),
        addon_revenue_cents=sum(_registration_addon_cents(r) for r in confirmed),
        merchandise_revenue_cents=sum(o.total_cents or 0 for o in orders),
        refunds_total_cents=int(refunds_total or 0),
        camper_count=len(confirmed),
    )


def build_camp_line_items(camp: Camp) -> list[dict]:
    """
    Build the line items that compose a camp's gross revenue.

    The totals of the returned lines always sum to the gross revenue that
    aggregate_camp_revenue reports for the same data.
    """
    lines: list[dict] = []
    confirmed = _confirmed_registrations(camp)

    for registration in confirmed:
        base = _registration_base_cents(registration)
        lines.append({
            "description": f"Registration: {registration.camper_name}",
            "category": "registration",
            "quantity": 1,
            "unit_amount_cents": base,
            "total_amount_cents": base,
            "royalty_applies": True,
        })

    untracked_count = 0
    untracked_total = 0
    for registration in confirmed:
        if registration.addons:
            for addon in registration.addons:
                quantity = addon.quantity or 1
                label = addon.name if not addon.variant_name else f"{addon.name} ({addon.variant_name})"
                lines.append({
                    "description": f"Add-on: {label}",
                    "category": "addon",
                    "quantity": quantity,
                    "unit_amount_cents": round_half_up_div(addon.price_cents or 0, quantity),
                    "total_amount_cents": addon.price_cents or 0,
                    "royalty_applies": True,
                })
        elif registration.addons_total_cents:
            untracked_count += 1
            untracked_total += registration.addons_total_cents

    if untracked_count:
        lines.append({
            "description": "Add-ons (registration totals)",
            "category": "addon",
            "quantity": untracked_count,
            "unit_amount_cents": round_half_up_div(untracked_total, untracked_count),
            "total_amount_cents": untracked_total,
            "royalty_applies": True,
        })

    for order in _camp_merchandise_orders(camp):
        lines.append({
            "description": f"Merchandise order #{order.id}",
            "category": "merchandise",
            "quantity": 1,
            "unit_amount_cents": order.total_cents or 0,
            "total_amount_cents": order.total_cents or 0,
            "royalty_applies": True,
        })

    return lines


# =============================================================================
# PERIOD AGGREGATION
# =============================================================================

def aggregate_period_revenue(tenant_id: int, period_start: date, period_end: date) -> dict:
    """
    Tenant revenue for camps held entirely inside [period_start, period_end].

    Gross counts confirmed registrations at full price (registration plus
    add-ons); refunds count registrations refunded during the period.
    """
    camps = (
        db.session.query(Camp)
        .filter(
            Camp.tenant_id == tenant_id,
            Camp.start_date >= period_start,
            Camp.end_date <= period_end,
        )
        .all()
    )
    camp_ids = [c.id for c in camps]

    gross = 0
    campers = 0
    if camp_ids:
        gross, campers = (
            db.session.query(
                func.coalesce(func.sum(Registration.total_price_cents), 0),
                func.count(Registration.id),
            )
            .filter(
                Registration.camp_id.in_(camp_ids),
                Registration.status == REGISTRATION_CONFIRMED,
            )
            .one()
        )

    refunds = (
        db.session.query(func.coalesce(func.sum(Registration.total_price_cents), 0))
        .filter(
            Registration.tenant_id == tenant_id,
            Registration.status == REGISTRATION_REFUNDED,
            Registration.updated_at >= start_of_day(period_start),
            Registration.updated_at <= end_of_day(period_end),
        )
        .scalar()
    )

    gross = int(gross or 0)
    refunds = int(refunds or 0)
    return {
        "gross_revenue_cents": gross,
        "refunds_cents": refunds,
        "net_revenue_cents": gross - refunds,
        "total_campers": int(campers or 0),
        "sessions_held": len(camps),
    }


# =============================================================================
# DASHBOARDS
# =============================================================================

def get_camp_revenue_dashboard(camp_id: int, tenant_id: int | None = None) -> dict:
    """Per-camp revenue figures plus the royalty the camp is expected to owe."""
    query = db.session.query(Camp).filter(Camp.id == camp_id)
    if tenant_id is not None:
        query = query.filter(Camp.tenant_id == tenant_id)
    camp = query.first()
    if not camp:
        raise NotFoundError("Camp session not found")

    breakdown = aggregate_camp_revenue(camp)
    total_registrations = (
        db.session.query(func.count(Registration.id))
        .filter(Registration.camp_id == camp.id)
        .scalar()
    ) or 0

    rate_bps = resolve_rate_bps(camp.tenant, current_app.config["DEFAULT_ROYALTY_RATE_BPS"])

    latest_invoice = (
        db.session.query(RoyaltyInvoice)
        .filter(RoyaltyInvoice.tenant_id == camp.tenant_id, RoyaltyInvoice.camp_id == camp.id)
        .order_by(RoyaltyInvoice.id.desc())
        .first()
    )
    royalty_status = "PENDING"
    if latest_invoice:
        royalty_status = ROYALTY_STATUS_BY_INVOICE_STATUS.get(latest_invoice.status, "PENDING")

    conversion_rate = 0.0
    if total_registrations:
        conversion_rate = round(breakdown.camper_count * 100.0 / total_registrations, 2)

    return {
        "camp_id": camp.id,
        "camp_name": camp.name,
        "tenant_id": camp.tenant_id,
        "tenant_name": camp.tenant.name if camp.tenant else None,
        "period": {
            "start_date": to_iso_date(camp.start_date),
            "end_date": to_iso_date(camp.end_date),
        },
        "revenue": breakdown.to_dict(),
        "metrics": {
            "total_registrations": int(total_registrations),
            "confirmed_registrations": breakdown.camper_count,
            "arpc_cents": round_half_up_div(breakdown.net_revenue_cents, breakdown.camper_count),
            "conversion_rate": conversion_rate,
        },
        "royalty": {
            "rate_bps": rate_bps,
            "estimated_cents": calculate_royalty_cents(breakdown.net_revenue_cents, rate_bps),
            "status": royalty_status,
            "invoice_id": latest_invoice.id if latest_invoice else None,
        },
    }


def _trend_window(range_name: str, start: date | None, end: date | None, today: date) -> tuple[date, date]:
    if range_name == "season":
        return date(today.year, 5, 1), date(today.year, 8, 31)
    if range_name == "ytd":
        return date(today.year, 1, 1), today
    return start or date(today.year, 1, 1), end or today


def get_revenue_trends(
    tenant_id: int,
    range_name: str = "ytd",
    start: date | None = None,
    end: date | None = None,
    *,
    today: date | None = None,
) -> dict:
    """
    Monthly revenue points for a tenant.

    Uses stored snapshots; when none cover the window, falls back to grouping
    confirmed registrations by creation month (no refund data on that path).
    """
    if range_name not in TREND_RANGES:
        raise ValidationError("range must be season, ytd, or custom")
    if not db.session.get(Tenant, tenant_id):
        raise NotFoundError("Tenant not found")

    today = today or utcnow().date()
    range_start, range_end = _trend_window(range_name, start, end, today)
    if range_end < range_start:
        raise ValidationError("end must not be before start")

    snapshots = (
        db.session.query(RevenueSnapshot)
        .filter(
            RevenueSnapshot.tenant_id == tenant_id,
            RevenueSnapshot.period_start >= range_start,
            RevenueSnapshot.period_end <= range_end,
        )
        .order_by(RevenueSnapshot.period_start.asc())
        .all()
    )

    trends = [
        {
            "period": s.period_start.strftime("%Y-%m"),
            "gross_revenue_cents": s.gross_revenue_cents,
            "net_revenue_cents": s.net_revenue_cents,
            "registrations": s.total_campers,
            "arpc_cents": s.arpc_cents,
        }
        for s in snapshots
    ]
    source = "snapshots"

    if not trends:
        source = "registrations"
        registrations = (
            db.session.query(Registration.total_price_cents, Registration.created_at)
            .filter(
                Registration.tenant_id == tenant_id,
                Registration.status == REGISTRATION_CONFIRMED,
                Registration.created_at >= start_of_day(range_start),
                Registration.created_at <= end_of_day(range_end),
            )
            .all()
        )
        monthly: dict[str, list[int]] = {}
        for total_price_cents, created_at in registrations:
            bucket = monthly.setdefault(created_at.strftime("%Y-%m"), [0, 0])
            bucket[0] += total_price_cents or 0
            bucket[1] += 1

        for period in sorted(monthly):
            gross, count = monthly[period]
            trends.append({
                "period": period,
                "gross_revenue_cents": gross,
                "net_revenue_cents": gross,
                "registrations": count,
                "arpc_cents": round_half_up_div(gross, count),
            })

    return {
        "tenant_id": tenant_id,
        "range": range_name,
        "start": to_iso_date(range_start),
        "end": to_iso_date(range_end),
        "source": source,
        "trends": trends,
    }
