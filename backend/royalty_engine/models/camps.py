from __future__ import annotations

from ..extensions import db
from royalty_engine.time_utils import to_iso_date, to_utc_z


# Registration statuses the engine cares about
REGISTRATION_CONFIRMED = "confirmed"
REGISTRATION_REFUNDED = "refunded"

# Shop order statuses that count as a completed sale
SHOP_ORDER_SALE_STATUSES = ("processing", "shipped", "delivered")

CAMP_COMPLETED = "completed"
CAMP_IN_PROGRESS = "in_progress"


class Camp(db.Model):
    """
    Camp session run by a tenant. Owned by camp management; read-only here.
    """
    __tablename__ = "camps"
    __table_args__ = (
        db.Index("ix_camps_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(128), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="scheduled", index=True)  # scheduled, in_progress, completed, cancelled

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("camps", lazy=True))
    registrations = db.relationship("Registration", back_populates="camp", lazy=True)

    def __repr__(self) -> str:
        return f"<Camp id={self.id} name={self.name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "slug": self.slug,
            "status": self.status,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
        }


class Registration(db.Model):
    """
    Camper registration. total_price_cents includes add-ons;
    addons_total_cents is the add-on portion of that total.
    """
    __tablename__ = "registrations"
    __table_args__ = (
        db.Index("ix_registrations_camp_status", "camp_id", "status"),
        db.Index("ix_registrations_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    camp_id = db.Column(db.Integer, db.ForeignKey("camps.id"), nullable=False, index=True)
    camper_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending, confirmed, cancelled, refunded

    total_price_cents = db.Column(db.Integer, nullable=False, default=0)
    addons_total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    camp = db.relationship("Camp", back_populates="registrations")
    addons = db.relationship("RegistrationAddon", back_populates="registration", lazy=True)


class RegistrationAddon(db.Model):
    __tablename__ = "registration_addons"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    registration_id = db.Column(db.Integer, db.ForeignKey("registrations.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    variant_name = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_cents = db.Column(db.Integer, nullable=False)  # Line total, not unit price

    registration = db.relationship("Registration", back_populates="addons")


class ShopOrder(db.Model):
    """Ancillary (merchandise) order placed with a tenant's shop."""
    __tablename__ = "shop_orders"
    __table_args__ = (
        db.Index("ix_shop_orders_tenant_status_created", "tenant_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="pending")
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "status": self.status,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
