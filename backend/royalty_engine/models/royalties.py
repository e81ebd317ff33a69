from __future__ import annotations

from ..extensions import db
from royalty_engine.time_utils import to_iso_date, to_utc_z


# =============================================================================
# INVOICE STATUS (CONSTANTS)
# =============================================================================

STATUS_PENDING = "pending"
STATUS_INVOICED = "invoiced"
STATUS_PAID = "paid"
STATUS_OVERDUE = "overdue"
STATUS_DISPUTED = "disputed"
STATUS_WAIVED = "waived"

VALID_STATUSES = {
    STATUS_PENDING,
    STATUS_INVOICED,
    STATUS_PAID,
    STATUS_OVERDUE,
    STATUS_DISPUTED,
    STATUS_WAIVED,
}

# paid/waived settle an invoice; anything else is "outstanding"
SETTLED_STATUSES = (STATUS_PAID, STATUS_WAIVED)

PERIOD_CAMP_SESSION = "camp_session"
VALID_PERIOD_TYPES = {PERIOD_CAMP_SESSION, "monthly", "quarterly", "annual"}

# Raw SQL so the same predicate serves SQLite and PostgreSQL partial indexes
OUTSTANDING_PREDICATE = "status NOT IN ('paid', 'waived')"


class RoyaltyInvoice(db.Model):
    """
    Royalty owed by a tenant to HQ for one billing period (normally a camp session).

    INVARIANTS:
    - gross = registration + addon + merchandise; net = gross - refunds
    - total_due_cents = royalty_due_cents + adjustment_cents
    - At most one outstanding (not paid/waived) invoice per (tenant_id, camp_id),
      enforced by the partial unique index below.
    - Never deleted. After creation only adjustment, settlement and lifecycle
      fields change.
    """
    __tablename__ = "royalty_invoices"
    __table_args__ = (
        db.Index(
            "uq_royalty_invoices_outstanding_camp",
            "tenant_id",
            "camp_id",
            unique=True,
            sqlite_where=db.text(OUTSTANDING_PREDICATE),
            postgresql_where=db.text(OUTSTANDING_PREDICATE),
        ),
        db.Index("ix_royalty_invoices_status_due", "status", "due_date"),
        db.Index("ix_royalty_invoices_period", "period_start", "period_end"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    camp_id = db.Column(db.Integer, db.ForeignKey("camps.id"), nullable=True, index=True)
    period_type = db.Column(db.String(16), nullable=False, default=PERIOD_CAMP_SESSION)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    # Revenue breakdown (all amounts in cents)
    gross_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    registration_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    addon_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    merchandise_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    refunds_total_cents = db.Column(db.Integer, nullable=False, default=0)
    net_revenue_cents = db.Column(db.Integer, nullable=False, default=0)

    # Royalty
    royalty_rate_bps = db.Column(db.Integer, nullable=False)  # Basis points (1000 = 10%)
    royalty_due_cents = db.Column(db.Integer, nullable=False, default=0)

    # Adjustments (signed, cumulative) and append-only notes
    adjustment_cents = db.Column(db.Integer, nullable=False, default=0)
    adjustment_notes = db.Column(db.Text, nullable=True)

    total_due_cents = db.Column(db.Integer, nullable=False, default=0)

    # Lifecycle
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    generated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    generated_by = db.Column(db.String(64), nullable=True)

    # Settlement
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_amount_cents = db.Column(db.Integer, nullable=True)
    payment_method = db.Column(db.String(64), nullable=True)
    payment_reference = db.Column(db.String(255), nullable=True)
    paid_by = db.Column(db.String(64), nullable=True)

    # Admin notes and dispute tracking
    notes = db.Column(db.Text, nullable=True)
    dispute_reason = db.Column(db.Text, nullable=True)
    disputed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("royalty_invoices", lazy=True))
    camp = db.relationship("Camp", backref=db.backref("royalty_invoices", lazy=True))
    line_items = db.relationship(
        "RoyaltyLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="RoyaltyLineItem.id",
        lazy=True,
    )
    events = db.relationship(
        "RoyaltyInvoiceEvent",
        back_populates="invoice",
        order_by="RoyaltyInvoiceEvent.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<RoyaltyInvoice id={self.id} number={self.invoice_number!r} status={self.status}>"

    @property
    def is_outstanding(self) -> bool:
        return self.status not in SETTLED_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "tenant_id": self.tenant_id,
            "camp_id": self.camp_id,
            "period_type": self.period_type,
            "period_start": to_iso_date(self.period_start),
            "period_end": to_iso_date(self.period_end),
            "gross_revenue_cents": self.gross_revenue_cents,
            "registration_revenue_cents": self.registration_revenue_cents,
            "addon_revenue_cents": self.addon_revenue_cents,
            "merchandise_revenue_cents": self.merchandise_revenue_cents,
            "refunds_total_cents": self.refunds_total_cents,
            "net_revenue_cents": self.net_revenue_cents,
            "royalty_rate_bps": self.royalty_rate_bps,
            "royalty_due_cents": self.royalty_due_cents,
            "adjustment_cents": self.adjustment_cents,
            "adjustment_notes": self.adjustment_notes,
            "total_due_cents": self.total_due_cents,
            "status": self.status,
            "due_date": to_utc_z(self.due_date),
            "generated_at": to_utc_z(self.generated_at),
            "generated_by": self.generated_by,
            "paid_at": to_utc_z(self.paid_at),
            "paid_amount_cents": self.paid_amount_cents,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "paid_by": self.paid_by,
            "notes": self.notes,
            "dispute_reason": self.dispute_reason,
            "disputed_at": to_utc_z(self.disputed_at),
            "resolved_at": to_utc_z(self.resolved_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RoyaltyLineItem(db.Model):
    """
    Immutable record of what composed an invoice at generation time.
    """
    __tablename__ = "royalty_line_items"
    __table_args__ = (
        db.Index("ix_royalty_line_items_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("royalty_invoices.id"), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)  # registration, addon, merchandise, adjustment
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_amount_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    royalty_applies = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("RoyaltyInvoice", back_populates="line_items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "description": self.description,
            "category": self.category,
            "quantity": self.quantity,
            "unit_amount_cents": self.unit_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "royalty_applies": self.royalty_applies,
        }


class RoyaltyInvoiceEvent(db.Model):
    """
    Append-only audit trail of invoice lifecycle events.

    One row per actual transition; re-running an idempotent operation that
    changes nothing writes nothing.
    """
    __tablename__ = "royalty_invoice_events"
    __table_args__ = (
        db.Index("ix_royalty_invoice_events_invoice_occurred", "invoice_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("royalty_invoices.id"), nullable=False, index=True)
    event_type = db.Column(db.String(32), nullable=False)  # GENERATED, CALCULATED, STATUS_CHANGED, ADJUSTED, PAID
    from_status = db.Column(db.String(16), nullable=True)
    to_status = db.Column(db.String(16), nullable=True)
    amount_cents = db.Column(db.Integer, nullable=True)
    actor = db.Column(db.String(64), nullable=True)
    note = db.Column(db.Text, nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("RoyaltyInvoice", back_populates="events")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "event_type": self.event_type,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "amount_cents": self.amount_cents,
            "actor": self.actor,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
