from __future__ import annotations

from ..extensions import db
from royalty_engine.time_utils import to_utc_z


NOTIFICATION_PENDING = "PENDING"
NOTIFICATION_SENT = "SENT"
NOTIFICATION_FAILED = "FAILED"


class NotificationRequest(db.Model):
    """
    Outbound notification queued by the engine (outbox pattern).

    The engine only enqueues; a separate delivery worker drains PENDING rows.
    Delivery is at-least-once: duplicate reminders across runs are accepted.
    """
    __tablename__ = "notification_requests"
    __table_args__ = (
        db.Index("ix_notification_requests_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=True, index=True)

    type = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(32), nullable=False, default="royalty")
    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)
    severity = db.Column(db.String(16), nullable=False, default="info")  # info, success, warning, error
    action_url = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=NOTIFICATION_PENDING)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "tenant_id": self.tenant_id,
            "type": self.type,
            "category": self.category,
            "title": self.title,
            "body": self.body,
            "severity": self.severity,
            "action_url": self.action_url,
            "status": self.status,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": to_utc_z(self.created_at),
            "sent_at": to_utc_z(self.sent_at),
        }
