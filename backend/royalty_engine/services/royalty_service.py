# Overview: Royalty invoice lifecycle; generation, adjustments, status transitions, settlement and queries.

"""
Royalty Invoice Lifecycle

STATES:
    pending -> invoiced | waived
    invoiced -> paid | overdue | disputed | waived
    overdue -> paid | disputed | waived
    disputed -> invoiced | paid | waived
    paid, waived: terminal

INVARIANTS:
- At most one outstanding invoice per (tenant, camp). Checked here for a
  friendly error and enforced by the uq_royalty_invoices_outstanding_camp
  partial unique index for concurrent writers.
- total_due_cents == royalty_due_cents + adjustment_cents after every write.
- Invoices are never deleted.
- Every real transition writes exactly one RoyaltyInvoiceEvent.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from royalty_engine.extensions import db
from royalty_engine.errors import (
    ConflictError,
    NotFoundError,
    RoyaltyEngineError,
    UpstreamError,
    ValidationError,
)
from royalty_engine.models import Camp, Registration, RoyaltyInvoice, RoyaltyInvoiceEvent, RoyaltyLineItem, Tenant
from royalty_engine.models.camps import CAMP_COMPLETED, CAMP_IN_PROGRESS, REGISTRATION_CONFIRMED
from royalty_engine.models.royalties import (
    PERIOD_CAMP_SESSION,
    SETTLED_STATUSES,
    STATUS_DISPUTED,
    STATUS_INVOICED,
    STATUS_OVERDUE,
    STATUS_PAID,
    STATUS_PENDING,
    STATUS_WAIVED,
    VALID_STATUSES,
)
from royalty_engine.services import notification_service
from royalty_engine.services.concurrency import lock_for_update, run_with_retry
from royalty_engine.services.revenue_service import aggregate_camp_revenue, build_camp_line_items
from royalty_engine.services.royalty_calculator import calculate_royalty_cents, resolve_rate_bps, round_half_up_div
from royalty_engine.time_utils import to_utc_z, utcnow


ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_INVOICED, STATUS_WAIVED},
    STATUS_INVOICED: {STATUS_PAID, STATUS_OVERDUE, STATUS_DISPUTED, STATUS_WAIVED},
    STATUS_OVERDUE: {STATUS_PAID, STATUS_DISPUTED, STATUS_WAIVED},
    STATUS_DISPUTED: {STATUS_INVOICED, STATUS_PAID, STATUS_WAIVED},
    STATUS_PAID: set(),
    STATUS_WAIVED: set(),
}

EVENT_GENERATED = "GENERATED"
EVENT_CALCULATED = "CALCULATED"
EVENT_STATUS_CHANGED = "STATUS_CHANGED"
EVENT_ADJUSTED = "ADJUSTED"
EVENT_PAID = "PAID"

DUPLICATE_INVOICE_MESSAGE = "An unpaid royalty invoice already exists for this camp"

SORT_COLUMNS = {
    "due_date": RoyaltyInvoice.due_date,
    "generated_at": RoyaltyInvoice.generated_at,
    "gross_revenue": RoyaltyInvoice.gross_revenue_cents,
    "royalty_amount": RoyaltyInvoice.royalty_due_cents,
    "status": RoyaltyInvoice.status,
}

MAX_PAGE_SIZE = 200
BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


# =============================================================================
# HELPERS
# =============================================================================

def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def _alnum_upper(value: str) -> str:
    return "".join(ch for ch in (value or "").upper() if ch.isalnum())


def invoice_number_for(tenant: Tenant, camp_id: int | None, now: datetime) -> str:
    """
    ROY-<TENANT6>-<CAMP4|GEN>-<base36 epoch millis>, uppercase alphanumerics.

    A numeric suffix is appended when the number is already taken (two invoices
    for the same tenant/camp inside one millisecond).
    """
    tenant_part = (_alnum_upper(tenant.slug) or str(tenant.id))[:6]
    camp_part = str(camp_id).zfill(4)[-4:] if camp_id else "GEN"
    epoch_ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    base = f"ROY-{tenant_part}-{camp_part}-{_to_base36(epoch_ms)}"

    candidate = base
    suffix = 1
    while db.session.query(RoyaltyInvoice.id).filter_by(invoice_number=candidate).first():
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate


def _get_camp(camp_id: int, tenant_id: int | None) -> Camp:
    query = db.session.query(Camp).filter(Camp.id == camp_id)
    if tenant_id is not None:
        query = query.filter(Camp.tenant_id == tenant_id)
    camp = query.first()
    if not camp:
        raise NotFoundError("Camp not found")
    return camp


def _get_invoice(invoice_id: int, tenant_id: int | None, *, for_update: bool = False) -> RoyaltyInvoice:
    query = db.session.query(RoyaltyInvoice).filter(RoyaltyInvoice.id == invoice_id)
    if tenant_id is not None:
        query = query.filter(RoyaltyInvoice.tenant_id == tenant_id)
    if for_update:
        query = lock_for_update(query)
    invoice = query.first()
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


def _outstanding_invoice(tenant_id: int, camp_id: int) -> RoyaltyInvoice | None:
    return (
        db.session.query(RoyaltyInvoice)
        .filter(
            RoyaltyInvoice.tenant_id == tenant_id,
            RoyaltyInvoice.camp_id == camp_id,
            RoyaltyInvoice.status.notin_(SETTLED_STATUSES),
        )
        .first()
    )


def _record_event(
    invoice: RoyaltyInvoice,
    event_type: str,
    *,
    from_status: str | None = None,
    to_status: str | None = None,
    amount_cents: int | None = None,
    actor: str | None = None,
    note: str | None = None,
    occurred_at: datetime | None = None,
) -> RoyaltyInvoiceEvent:
    event = RoyaltyInvoiceEvent(
        invoice=invoice,
        event_type=event_type,
        from_status=from_status,
        to_status=to_status,
        amount_cents=amount_cents,
        actor=actor,
        note=note,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(event)
    return event


def _append_log(existing: str | None, line: str) -> str:
    return f"{existing}\n{line}" if existing else line


def _apply_revenue(invoice: RoyaltyInvoice, camp: Camp) -> None:
    """
    Write the camp's current revenue, royalty and line items onto invoice.

    Every query runs before the invoice is touched so autoflush never sees a
    half-filled row.
    """
    breakdown = aggregate_camp_revenue(camp)
    lines = build_camp_line_items(camp)
    rate_bps = resolve_rate_bps(camp.tenant, current_app.config["DEFAULT_ROYALTY_RATE_BPS"])
    royalty_due = calculate_royalty_cents(breakdown.net_revenue_cents, rate_bps)

    invoice.period_type = PERIOD_CAMP_SESSION
    invoice.period_start = camp.start_date
    invoice.period_end = camp.end_date
    invoice.registration_revenue_cents = breakdown.registration_revenue_cents
    invoice.addon_revenue_cents = breakdown.addon_revenue_cents
    invoice.merchandise_revenue_cents = breakdown.merchandise_revenue_cents
    invoice.gross_revenue_cents = breakdown.gross_revenue_cents
    invoice.refunds_total_cents = breakdown.refunds_total_cents
    invoice.net_revenue_cents = breakdown.net_revenue_cents
    invoice.royalty_rate_bps = rate_bps
    invoice.royalty_due_cents = royalty_due
    invoice.adjustment_cents = invoice.adjustment_cents or 0
    invoice.total_due_cents = royalty_due + invoice.adjustment_cents

    invoice.line_items.clear()
    for line in lines:
        invoice.line_items.append(RoyaltyLineItem(**line))


def _commit_invoice_write(op):
    """
    Run op (which stages and commits an invoice write) with transient retry.

    Unique violations mean another writer got there first; any other database
    failure aborts the write and surfaces as UpstreamError.
    """
    try:
        return run_with_retry(op)
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_INVOICE_MESSAGE)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Royalty invoice write failed")
        raise UpstreamError("Failed to save royalty invoice") from exc


def _resolve_due_in_days(due_in_days: int | None) -> int:
    if due_in_days is None:
        return int(current_app.config["ROYALTY_DUE_IN_DAYS"])
    try:
        due_in_days = int(due_in_days)
    except (TypeError, ValueError):
        raise ValidationError("due_in_days must be an integer")
    if due_in_days < 0:
        raise ValidationError("due_in_days must be non-negative")
    return due_in_days


def _require_cents(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")
    return value


# =============================================================================
# GENERATION
# =============================================================================

def generate_invoice(
    tenant_id: int | None = None,
    camp_id: int | None = None,
    *,
    generated_by: str | None = None,
    due_in_days: int | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Issue a royalty invoice (status invoiced) for a camp session.

    Aggregates revenue, computes the royalty, snapshots the line items and
    writes invoice + line items + GENERATED event in one commit.

    Raises:
        ValidationError: camp_id missing or due_in_days negative
        NotFoundError: camp missing (or outside tenant_id when given)
        ConflictError: an outstanding invoice already exists for the camp
        UpstreamError: the write failed
    """
    if not camp_id:
        raise ValidationError("camp_id is required")
    due_days = _resolve_due_in_days(due_in_days)
    camp = _get_camp(camp_id, tenant_id)

    if _outstanding_invoice(camp.tenant_id, camp.id):
        raise ConflictError(DUPLICATE_INVOICE_MESSAGE)

    issued_at = now or utcnow()

    def _op() -> RoyaltyInvoice:
        invoice = RoyaltyInvoice(
            tenant_id=camp.tenant_id,
            camp_id=camp.id,
            invoice_number=invoice_number_for(camp.tenant, camp.id, issued_at),
            status=STATUS_INVOICED,
            due_date=issued_at + timedelta(days=due_days),
            generated_at=issued_at,
            generated_by=generated_by,
            adjustment_cents=0,
        )
        _apply_revenue(invoice, camp)
        db.session.add(invoice)
        _record_event(
            invoice,
            EVENT_GENERATED,
            to_status=STATUS_INVOICED,
            amount_cents=invoice.total_due_cents,
            actor=generated_by,
            occurred_at=issued_at,
        )
        db.session.commit()
        return invoice

    invoice = _commit_invoice_write(_op)
    current_app.logger.info(
        "Generated royalty invoice %s for camp %s (total_due_cents=%s)",
        invoice.invoice_number, camp.id, invoice.total_due_cents,
    )
    notification_service.notify_invoice_created(invoice)
    return {"invoice_id": invoice.id, "invoice_number": invoice.invoice_number}


def calculate_invoice(
    tenant_id: int | None = None,
    camp_id: int | None = None,
    *,
    generated_by: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Create a pending invoice for a camp, or recalculate the existing pending
    one in place (line items rebuilt). Issued invoices are never recalculated.
    """
    if not camp_id:
        raise ValidationError("camp_id is required")
    camp = _get_camp(camp_id, tenant_id)
    calculated_at = now or utcnow()

    existing = _outstanding_invoice(camp.tenant_id, camp.id)
    if existing and existing.status != STATUS_PENDING:
        raise ConflictError(DUPLICATE_INVOICE_MESSAGE)

    def _op() -> RoyaltyInvoice:
        invoice = existing
        if invoice is None:
            invoice = RoyaltyInvoice(
                tenant_id=camp.tenant_id,
                camp_id=camp.id,
                invoice_number=invoice_number_for(camp.tenant, camp.id, calculated_at),
                status=STATUS_PENDING,
                due_date=calculated_at + timedelta(days=_resolve_due_in_days(None)),
                generated_at=calculated_at,
                generated_by=generated_by,
                adjustment_cents=0,
            )
        _apply_revenue(invoice, camp)
        db.session.add(invoice)
        _record_event(
            invoice,
            EVENT_CALCULATED,
            to_status=STATUS_PENDING,
            amount_cents=invoice.total_due_cents,
            actor=generated_by,
            occurred_at=calculated_at,
        )
        db.session.commit()
        return invoice

    invoice = _commit_invoice_write(_op)
    return invoice.to_dict()


def get_camps_without_invoices(
    *,
    tenant_id: int | None = None,
    statuses=(CAMP_COMPLETED, CAMP_IN_PROGRESS),
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 50,
    today: date | None = None,
) -> list[dict]:
    """
    Camps (started inside the window, default year to date) that have never
    been invoiced, most recently ended first.
    """
    today = today or utcnow().date()
    range_start = date_from or date(today.year, 1, 1)
    range_end = date_to or today

    has_invoice = (
        db.session.query(RoyaltyInvoice.id)
        .filter(RoyaltyInvoice.camp_id == Camp.id)
        .exists()
    )
    query = db.session.query(Camp).filter(
        Camp.start_date >= range_start,
        Camp.start_date <= range_end,
        Camp.status.in_(list(statuses)),
        ~has_invoice,
    )
    if tenant_id is not None:
        query = query.filter(Camp.tenant_id == tenant_id)
    camps = query.order_by(Camp.end_date.desc(), Camp.id.asc()).limit(limit).all()

    totals = {}
    if camps:
        rows = (
            db.session.query(
                Registration.camp_id,
                func.count(Registration.id),
                func.coalesce(func.sum(Registration.total_price_cents), 0),
            )
            .filter(
                Registration.camp_id.in_([c.id for c in camps]),
                Registration.status == REGISTRATION_CONFIRMED,
            )
            .group_by(Registration.camp_id)
            .all()
        )
        totals = {camp_id: (int(count), int(total)) for camp_id, count, total in rows}

    result = []
    for camp in camps:
        count, estimated = totals.get(camp.id, (0, 0))
        result.append({
            **camp.to_dict(),
            "tenant_name": camp.tenant.name if camp.tenant else None,
            "registration_count": count,
            "estimated_revenue_cents": estimated,
        })
    return result


def bulk_generate_invoices(
    camp_ids,
    *,
    generated_by: str | None = None,
    due_in_days: int | None = None,
    now: datetime | None = None,
) -> dict:
    """Generate invoices camp by camp; one camp's failure never stops the rest."""
    generated = 0
    failed = 0
    errors: list[str] = []

    for camp_id in camp_ids:
        try:
            generate_invoice(
                camp_id=camp_id,
                generated_by=generated_by,
                due_in_days=due_in_days,
                now=now,
            )
            generated += 1
        except RoyaltyEngineError as exc:
            db.session.rollback()
            failed += 1
            errors.append(f"Camp {camp_id}: {exc}")
            current_app.logger.warning("Royalty invoice generation failed for camp %s: %s", camp_id, exc)
        except Exception as exc:
            db.session.rollback()
            failed += 1
            errors.append(f"Camp {camp_id}: {exc}")
            current_app.logger.exception("Royalty invoice generation failed for camp %s", camp_id)

    return {"generated": generated, "failed": failed, "errors": errors}


# =============================================================================
# ADJUSTMENTS AND STATUS
# =============================================================================

def add_adjustment(
    invoice_id: int,
    adjustment_cents: int,
    notes: str,
    *,
    tenant_id: int | None = None,
    updated_by: str | None = None,
    now: datetime | None = None,
) -> RoyaltyInvoice:
    """
    Apply a signed adjustment (credit or charge) to an open invoice.

    total_due_cents is recomputed and a timestamped line is appended to
    adjustment_notes. Paid or waived invoices cannot be adjusted.
    """
    adjustment_cents = _require_cents(adjustment_cents, "adjustment_cents")
    if adjustment_cents == 0:
        raise ValidationError("adjustment_cents must be non-zero")
    notes = (notes or "").strip()
    if not notes:
        raise ValidationError("notes are required for an adjustment")

    adjusted_at = now or utcnow()

    def _op() -> RoyaltyInvoice:
        invoice = _get_invoice(invoice_id, tenant_id, for_update=True)
        if invoice.status in SETTLED_STATUSES:
            raise ConflictError("Cannot adjust a paid or waived invoice")

        invoice.adjustment_cents = (invoice.adjustment_cents or 0) + adjustment_cents
        invoice.total_due_cents = invoice.royalty_due_cents + invoice.adjustment_cents

        sign = "+" if adjustment_cents > 0 else "-"
        line = f"[{to_utc_z(adjusted_at)}] Adjustment: {sign}{notification_service.format_cents(abs(adjustment_cents))} - {notes}"
        if updated_by:
            line += f" (by {updated_by})"
        invoice.adjustment_notes = _append_log(invoice.adjustment_notes, line)

        _record_event(
            invoice,
            EVENT_ADJUSTED,
            from_status=invoice.status,
            to_status=invoice.status,
            amount_cents=adjustment_cents,
            actor=updated_by,
            note=notes,
            occurred_at=adjusted_at,
        )
        db.session.commit()
        return invoice

    return _commit_invoice_write(_op)


def mark_paid(
    invoice_id: int,
    *,
    tenant_id: int | None = None,
    paid_amount_cents: int | None = None,
    payment_method: str | None = None,
    payment_reference: str | None = None,
    paid_by: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> RoyaltyInvoice:
    """
    Record settlement and close the invoice.

    paid_amount_cents defaults to total_due_cents. A partial amount is recorded
    as given and still closes the invoice.
    """
    if paid_amount_cents is not None:
        paid_amount_cents = _require_cents(paid_amount_cents, "paid_amount_cents")
        if paid_amount_cents < 0:
            raise ValidationError("paid_amount_cents must be non-negative")

    paid_at = now or utcnow()

    def _op() -> RoyaltyInvoice:
        invoice = _get_invoice(invoice_id, tenant_id, for_update=True)
        if invoice.status == STATUS_PAID:
            raise ConflictError("Invoice is already paid")
        if not can_transition(invoice.status, STATUS_PAID):
            raise ConflictError(f"Cannot transition from {invoice.status} to {STATUS_PAID}")

        from_status = invoice.status
        invoice.status = STATUS_PAID
        invoice.paid_at = paid_at
        invoice.paid_amount_cents = invoice.total_due_cents if paid_amount_cents is None else paid_amount_cents
        invoice.paid_by = paid_by
        if payment_method:
            invoice.payment_method = payment_method
        if payment_reference:
            invoice.payment_reference = payment_reference
        if from_status == STATUS_DISPUTED:
            invoice.resolved_at = paid_at
        if notes:
            invoice.notes = _append_log(invoice.notes, f"[{to_utc_z(paid_at)}] {notes}")

        _record_event(
            invoice,
            EVENT_PAID,
            from_status=from_status,
            to_status=STATUS_PAID,
            amount_cents=invoice.paid_amount_cents,
            actor=paid_by,
            note=payment_reference,
            occurred_at=paid_at,
        )
        db.session.commit()
        return invoice

    invoice = _commit_invoice_write(_op)
    if invoice.paid_amount_cents < invoice.total_due_cents:
        current_app.logger.warning(
            "Invoice %s closed with partial payment %s of %s cents",
            invoice.invoice_number, invoice.paid_amount_cents, invoice.total_due_cents,
        )
    notification_service.notify_invoice_status_changed(invoice, STATUS_PAID)
    return invoice


def change_status(
    invoice_id: int,
    status: str,
    *,
    tenant_id: int | None = None,
    notes: str | None = None,
    updated_by: str | None = None,
    paid_amount_cents: int | None = None,
    payment_method: str | None = None,
    payment_reference: str | None = None,
    now: datetime | None = None,
) -> RoyaltyInvoice:
    """
    Move an invoice along the lifecycle.

    Same-status requests are a no-op. Moving to disputed records notes as the
    dispute reason; leaving disputed stamps resolved_at. Paid goes through
    mark_paid so settlement fields are always filled.
    """
    status = (status or "").strip().lower()
    if status not in VALID_STATUSES:
        raise ValidationError(f"Invalid status: {status or '(empty)'}")

    if status == STATUS_PAID:
        current = _get_invoice(invoice_id, tenant_id)
        if current.status == STATUS_PAID:
            return current
        return mark_paid(
            invoice_id,
            tenant_id=tenant_id,
            paid_amount_cents=paid_amount_cents,
            payment_method=payment_method,
            payment_reference=payment_reference,
            paid_by=updated_by,
            notes=notes,
            now=now,
        )

    changed_at = now or utcnow()

    def _op() -> tuple[RoyaltyInvoice, bool]:
        invoice = _get_invoice(invoice_id, tenant_id, for_update=True)
        if invoice.status == status:
            return invoice, False
        if not can_transition(invoice.status, status):
            raise ConflictError(f"Cannot transition from {invoice.status} to {status}")

        from_status = invoice.status
        invoice.status = status

        if status == STATUS_DISPUTED:
            invoice.dispute_reason = notes or invoice.dispute_reason
            invoice.disputed_at = changed_at
        elif notes:
            invoice.notes = _append_log(invoice.notes, f"[{to_utc_z(changed_at)}] {notes}")
        if from_status == STATUS_DISPUTED:
            invoice.resolved_at = changed_at

        _record_event(
            invoice,
            EVENT_STATUS_CHANGED,
            from_status=from_status,
            to_status=status,
            actor=updated_by,
            note=notes,
            occurred_at=changed_at,
        )
        db.session.commit()
        return invoice, True

    invoice, changed = _commit_invoice_write(_op)
    if changed:
        notification_service.notify_invoice_status_changed(invoice, status)
    return invoice


def mark_overdue(now: datetime | None = None) -> int:
    """
    Flip every invoiced invoice whose due date has passed to overdue.

    Idempotent: a second run finds nothing to flip and writes no events.
    Returns the number of invoices changed.
    """
    cutoff = now or utcnow()

    def _op() -> int:
        invoices = lock_for_update(
            db.session.query(RoyaltyInvoice).filter(
                RoyaltyInvoice.status == STATUS_INVOICED,
                RoyaltyInvoice.due_date < cutoff,
            )
        ).all()
        for invoice in invoices:
            invoice.status = STATUS_OVERDUE
            _record_event(
                invoice,
                EVENT_STATUS_CHANGED,
                from_status=STATUS_INVOICED,
                to_status=STATUS_OVERDUE,
                actor="system-auto",
                occurred_at=cutoff,
            )
        db.session.commit()
        return len(invoices)

    try:
        count = run_with_retry(_op)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise UpstreamError("Failed to mark overdue invoices") from exc
    if count:
        current_app.logger.info("Marked %s royalty invoices overdue", count)
    return count


# =============================================================================
# QUERIES
# =============================================================================

def get_invoice(invoice_id: int, tenant_id: int | None = None) -> dict:
    """Invoice detail with line items, audit events, tenant and camp summary."""
    invoice = _get_invoice(invoice_id, tenant_id)
    data = invoice.to_dict()
    data["line_items"] = [li.to_dict() for li in invoice.line_items]
    data["events"] = [ev.to_dict() for ev in invoice.events]
    data["tenant"] = {
        "id": invoice.tenant.id,
        "name": invoice.tenant.name,
        "slug": invoice.tenant.slug,
        "contact_email": invoice.tenant.contact_email,
    }
    data["camp"] = invoice.camp.to_dict() if invoice.camp else None
    return data


def _compliance_rate(paid: int, total: int) -> int:
    if not total:
        return 100
    return round_half_up_div(paid * 100, total)


def list_invoices(
    *,
    tenant_id: int | None = None,
    status: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
    sort_by: str = "due_date",
    sort_dir: str = "desc",
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """
    Filtered, sorted page of invoices plus a portfolio summary.

    The summary covers every invoice in the tenant/due-date scope, not just
    the current page or status filter.
    """
    if status and status not in VALID_STATUSES:
        raise ValidationError(f"Invalid status: {status}")
    if sort_by not in SORT_COLUMNS:
        raise ValidationError(f"sort_by must be one of: {', '.join(sorted(SORT_COLUMNS))}")
    if sort_dir not in ("asc", "desc"):
        raise ValidationError("sort_dir must be asc or desc")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        raise ValidationError("offset must be non-negative")

    scope = []
    if tenant_id is not None:
        scope.append(RoyaltyInvoice.tenant_id == tenant_id)
    if date_from:
        scope.append(RoyaltyInvoice.due_date >= date_from)
    if date_to:
        scope.append(RoyaltyInvoice.due_date <= date_to)

    query = (
        db.session.query(RoyaltyInvoice)
        .join(Tenant, Tenant.id == RoyaltyInvoice.tenant_id)
        .outerjoin(Camp, Camp.id == RoyaltyInvoice.camp_id)
        .filter(*scope)
    )
    if status:
        query = query.filter(RoyaltyInvoice.status == status)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            RoyaltyInvoice.invoice_number.ilike(pattern),
            Tenant.name.ilike(pattern),
            Camp.name.ilike(pattern),
        ))

    total_count = query.count()
    column = SORT_COLUMNS[sort_by]
    ordering = column.asc() if sort_dir == "asc" else column.desc()
    invoices = query.order_by(ordering, RoyaltyInvoice.id.asc()).offset(offset).limit(limit).all()

    items = []
    for invoice in invoices:
        item = invoice.to_dict()
        item["tenant_name"] = invoice.tenant.name if invoice.tenant else None
        item["camp_name"] = invoice.camp.name if invoice.camp else None
        items.append(item)

    totals = (
        db.session.query(
            func.count(RoyaltyInvoice.id),
            func.coalesce(func.sum(RoyaltyInvoice.gross_revenue_cents), 0),
            func.coalesce(func.sum(RoyaltyInvoice.total_due_cents), 0),
            func.coalesce(func.sum(RoyaltyInvoice.paid_amount_cents), 0),
        )
        .filter(*scope)
        .one()
    )
    status_rows = (
        db.session.query(RoyaltyInvoice.status, func.count(RoyaltyInvoice.id))
        .filter(*scope)
        .group_by(RoyaltyInvoice.status)
        .all()
    )
    by_status = {s: 0 for s in sorted(VALID_STATUSES)}
    by_status.update({s: int(c) for s, c in status_rows})

    invoices_count, gross, total_due, total_paid = (int(v or 0) for v in totals)
    summary = {
        "total_gross_revenue_cents": gross,
        "total_royalty_due_cents": total_due,
        "total_royalty_paid_cents": total_paid,
        "total_outstanding_cents": total_due - total_paid,
        "invoices_count": invoices_count,
        "by_status": by_status,
        "compliance_rate": _compliance_rate(by_status[STATUS_PAID], invoices_count),
    }

    return {"items": items, "total_count": total_count, "summary": summary}


def get_licensee_royalty_summary(
    tenant_id: int,
    start: date | None = None,
    end: date | None = None,
    *,
    today: date | None = None,
) -> dict:
    """
    Per-camp royalty position for one licensee over a season (default
    March 1 to September 30 of the current year).

    Camps without an invoice show an estimate at the current rate.
    """
    tenant = db.session.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundError("Tenant not found")

    today = today or utcnow().date()
    start = start or date(today.year, 3, 1)
    end = end or date(today.year, 9, 30)
    if end < start:
        raise ValidationError("end must not be before start")

    rate_bps = resolve_rate_bps(tenant, current_app.config["DEFAULT_ROYALTY_RATE_BPS"])

    camps = (
        db.session.query(Camp)
        .filter(
            Camp.tenant_id == tenant_id,
            Camp.start_date >= start,
            Camp.start_date <= end,
            Camp.status.in_([CAMP_COMPLETED, CAMP_IN_PROGRESS]),
        )
        .order_by(Camp.start_date.desc(), Camp.id.asc())
        .all()
    )

    totals = {
        "total_gross_revenue_cents": 0,
        "total_net_revenue_cents": 0,
        "total_royalty_due_cents": 0,
        "total_royalty_paid_cents": 0,
        "sessions_count": len(camps),
        "sessions_invoiced": 0,
        "sessions_paid": 0,
    }
    rows = []
    for camp in camps:
        invoice = (
            db.session.query(RoyaltyInvoice)
            .filter(RoyaltyInvoice.camp_id == camp.id)
            .order_by(RoyaltyInvoice.id.desc())
            .first()
        )
        if invoice:
            gross = invoice.gross_revenue_cents
            net = invoice.net_revenue_cents
            royalty_due = invoice.total_due_cents
            camp_rate = invoice.royalty_rate_bps
            camper_count = None
            totals["sessions_invoiced"] += 1
            if invoice.status == STATUS_PAID:
                totals["sessions_paid"] += 1
                paid = invoice.paid_amount_cents if invoice.paid_amount_cents is not None else invoice.total_due_cents
                totals["total_royalty_paid_cents"] += paid
        else:
            breakdown = aggregate_camp_revenue(camp)
            gross = breakdown.gross_revenue_cents
            net = breakdown.net_revenue_cents
            royalty_due = calculate_royalty_cents(net, rate_bps)
            camp_rate = rate_bps
            camper_count = breakdown.camper_count

        totals["total_gross_revenue_cents"] += gross
        totals["total_net_revenue_cents"] += net
        totals["total_royalty_due_cents"] += royalty_due

        rows.append({
            "camp_id": camp.id,
            "camp_name": camp.name,
            "camp_slug": camp.slug,
            "start_date": camp.to_dict()["start_date"],
            "end_date": camp.to_dict()["end_date"],
            "status": camp.status,
            "gross_revenue_cents": gross,
            "net_revenue_cents": net,
            "royalty_rate_bps": camp_rate,
            "royalty_due_cents": royalty_due,
            "royalty_status": invoice.status if invoice else "not_generated",
            "invoice_id": invoice.id if invoice else None,
            "invoice_number": invoice.invoice_number if invoice else None,
            "paid_at": to_utc_z(invoice.paid_at) if invoice else None,
            "camper_count": camper_count,
        })

    completed = sum(1 for c in camps if c.status == CAMP_COMPLETED)
    totals["total_outstanding_cents"] = totals["total_royalty_due_cents"] - totals["total_royalty_paid_cents"]
    totals["compliance_rate"] = _compliance_rate(totals["sessions_paid"], completed)

    return {
        "tenant_id": tenant_id,
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "royalty_rate_bps": rate_bps,
        "totals": totals,
        "camps": rows,
    }
