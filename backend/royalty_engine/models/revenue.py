from __future__ import annotations

from ..extensions import db
from royalty_engine.time_utils import to_iso_date, to_utc_z


class RevenueSnapshot(db.Model):
    """
    Derived revenue rollup for a tenant/period. Upserted by the snapshot
    roller, never hand-edited; latest computation wins.
    """
    __tablename__ = "revenue_snapshots"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "period_start", "period_end", name="uq_revenue_snapshots_tenant_period"),
        db.Index("ix_revenue_snapshots_period_start", "period_start"),
        db.Index("ix_revenue_snapshots_period_end", "period_end"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    gross_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    net_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    refunds_cents = db.Column(db.Integer, nullable=False, default=0)
    total_campers = db.Column(db.Integer, nullable=False, default=0)
    arpc_cents = db.Column(db.Integer, nullable=False, default=0)  # Average revenue per camper
    sessions_held = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("revenue_snapshots", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "period_start": to_iso_date(self.period_start),
            "period_end": to_iso_date(self.period_end),
            "gross_revenue_cents": self.gross_revenue_cents,
            "net_revenue_cents": self.net_revenue_cents,
            "refunds_cents": self.refunds_cents,
            "total_campers": self.total_campers,
            "arpc_cents": self.arpc_cents,
            "sessions_held": self.sessions_held,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
