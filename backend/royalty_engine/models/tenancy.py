from __future__ import annotations

from ..extensions import db
from royalty_engine.time_utils import to_utc_z


class Tenant(db.Model):
    """
    Licensed operator (licensee) whose camp revenue is subject to royalty.

    MULTI-TENANT: Every camp, registration, shop order, invoice and snapshot
    carries tenant_id. royalty_rate is a decimal fraction (0.0800 = 8%);
    NULL means the configured DEFAULT_ROYALTY_RATE_BPS applies.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(64), nullable=False, unique=True, index=True)

    contact_email = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(32), nullable=True)

    royalty_rate = db.Column(db.Numeric(6, 4), nullable=True)
    license_status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, suspended, terminated

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "royalty_rate": str(self.royalty_rate) if self.royalty_rate is not None else None,
            "license_status": self.license_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
