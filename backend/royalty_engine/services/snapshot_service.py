# Overview: Revenue snapshot roller; idempotent per-period revenue rollups for trend reporting.

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from royalty_engine.extensions import db
from royalty_engine.errors import NotFoundError, UpstreamError, ValidationError
from royalty_engine.models import RevenueSnapshot, Tenant
from royalty_engine.services.concurrency import run_with_retry
from royalty_engine.services.revenue_service import aggregate_period_revenue
from royalty_engine.services.royalty_calculator import round_half_up_div


SNAPSHOT_FIELDS = (
    "gross_revenue_cents",
    "net_revenue_cents",
    "refunds_cents",
    "total_campers",
    "arpc_cents",
    "sessions_held",
)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    if month < 1 or month > 12:
        raise ValidationError("month must be between 1 and 12")
    first = date(year, month, 1)
    next_first = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return first, next_first - timedelta(days=1)


def previous_month(today: date) -> tuple[date, date]:
    """Bounds of the calendar month before today's."""
    last_of_previous = today.replace(day=1) - timedelta(days=1)
    return month_bounds(last_of_previous.year, last_of_previous.month)


def _find_snapshot(tenant_id: int, period_start: date, period_end: date) -> RevenueSnapshot | None:
    return (
        db.session.query(RevenueSnapshot)
        .filter_by(tenant_id=tenant_id, period_start=period_start, period_end=period_end)
        .first()
    )


def create_snapshot(tenant_id: int, period_start: date, period_end: date) -> RevenueSnapshot:
    """
    Compute and store the revenue snapshot for (tenant, period).

    Upsert on the (tenant_id, period_start, period_end) key: an existing row is
    overwritten with the fresh figures, so re-running never duplicates. A
    concurrent insert that wins the race is caught via IntegrityError and the
    write falls back to an update.
    """
    if period_start is None or period_end is None:
        raise ValidationError("period_start and period_end are required")
    if period_end < period_start:
        raise ValidationError("period_end must not be before period_start")
    if not db.session.get(Tenant, tenant_id):
        raise NotFoundError("Tenant not found")

    figures = aggregate_period_revenue(tenant_id, period_start, period_end)
    figures["arpc_cents"] = round_half_up_div(figures["net_revenue_cents"], figures["total_campers"])
    values = {field: figures[field] for field in SNAPSHOT_FIELDS}

    def _upsert() -> RevenueSnapshot:
        snapshot = _find_snapshot(tenant_id, period_start, period_end)
        if snapshot is None:
            snapshot = RevenueSnapshot(
                tenant_id=tenant_id,
                period_start=period_start,
                period_end=period_end,
                **values,
            )
            db.session.add(snapshot)
            try:
                db.session.commit()
                return snapshot
            except IntegrityError:
                db.session.rollback()
                snapshot = _find_snapshot(tenant_id, period_start, period_end)
                if snapshot is None:
                    raise
        for field, value in values.items():
            setattr(snapshot, field, value)
        db.session.commit()
        return snapshot

    try:
        return run_with_retry(_upsert)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError("Failed to save revenue snapshot") from exc


def list_snapshots(
    tenant_id: int,
    start: date | None = None,
    end: date | None = None,
    limit: int = 12,
) -> list[RevenueSnapshot]:
    """Most recent snapshots first."""
    if limit < 1:
        raise ValidationError("limit must be positive")
    query = db.session.query(RevenueSnapshot).filter(RevenueSnapshot.tenant_id == tenant_id)
    if start:
        query = query.filter(RevenueSnapshot.period_start >= start)
    if end:
        query = query.filter(RevenueSnapshot.period_end <= end)
    return query.order_by(RevenueSnapshot.period_start.desc()).limit(limit).all()
