# Overview: Notification outbox; enqueue requests best-effort and drain them with a delivery worker.

"""
Notification Outbox

The engine never talks to an email/push provider directly. It enqueues
NotificationRequest rows (status PENDING) and a delivery worker drains them
through a sender callable. Enqueueing is best-effort: a failure is logged and
swallowed so a broken outbox never fails an invoice write or a batch step.

Delivery is at-least-once. Rows that keep failing are marked FAILED after
NOTIFICATION_MAX_ATTEMPTS.

NOTE: notify() commits (or rolls back) the current session. Call it only
after the caller's own unit of work has been committed.
"""

from __future__ import annotations

from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from royalty_engine.extensions import db
from royalty_engine.models import NotificationRequest, UserRoleAssignment
from royalty_engine.models.auth import ROLE_HQ_ADMIN, ROLE_LICENSEE_OWNER
from royalty_engine.models.notifications import (
    NOTIFICATION_FAILED,
    NOTIFICATION_PENDING,
    NOTIFICATION_SENT,
)
from royalty_engine.time_utils import to_iso_date, utcnow


VALID_SEVERITIES = {"info", "success", "warning", "error"}

STATUS_LABELS = {
    "invoiced": ("Invoiced", "info"),
    "paid": ("Paid", "success"),
    "overdue": ("Overdue", "warning"),
    "disputed": ("Disputed", "warning"),
    "waived": ("Waived", "info"),
}

LICENSEE_ROYALTIES_URL = "/licensee/reports/royalties"


def format_cents(amount_cents: int) -> str:
    sign = "-" if amount_cents < 0 else ""
    return f"{sign}${abs(amount_cents) / 100:,.2f}"


# =============================================================================
# RECIPIENTS
# =============================================================================

def licensee_owner_user_ids(tenant_id: int) -> list[int]:
    """Active licensee owners of a tenant, oldest assignment first (billing contacts)."""
    rows = (
        db.session.query(UserRoleAssignment.user_id)
        .filter(
            UserRoleAssignment.tenant_id == tenant_id,
            UserRoleAssignment.role == ROLE_LICENSEE_OWNER,
            UserRoleAssignment.is_active.is_(True),
        )
        .order_by(UserRoleAssignment.id.asc())
        .all()
    )
    return [r[0] for r in rows]


def billing_contact_user_id(tenant_id: int) -> int | None:
    owner_ids = licensee_owner_user_ids(tenant_id)
    return owner_ids[0] if owner_ids else None


def hq_admin_user_ids() -> list[int]:
    rows = (
        db.session.query(UserRoleAssignment.user_id)
        .filter(
            UserRoleAssignment.role == ROLE_HQ_ADMIN,
            UserRoleAssignment.is_active.is_(True),
        )
        .distinct()
        .order_by(UserRoleAssignment.user_id.asc())
        .all()
    )
    return [r[0] for r in rows]


# =============================================================================
# ENQUEUE
# =============================================================================

def notify(
    user_id: int,
    type: str,
    title: str,
    body: str,
    *,
    tenant_id: int | None = None,
    severity: str = "info",
    action_url: str | None = None,
    category: str = "royalty",
) -> NotificationRequest | None:
    """
    Enqueue one notification request. Never raises; returns None on failure.
    """
    if severity not in VALID_SEVERITIES:
        severity = "info"
    try:
        request_row = NotificationRequest(
            user_id=user_id,
            tenant_id=tenant_id,
            type=type,
            category=category,
            title=title,
            body=body,
            severity=severity,
            action_url=action_url,
            status=NOTIFICATION_PENDING,
            attempts=0,
            created_at=utcnow(),
        )
        db.session.add(request_row)
        db.session.commit()
        return request_row
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to enqueue %s notification for user %s", type, user_id)
        return None


def notify_invoice_created(invoice) -> int:
    """Tell the tenant's licensee owners a new invoice was issued. Returns count enqueued."""
    camp_name = invoice.camp.name if invoice.camp else "royalties"
    body = (
        f"Invoice {invoice.invoice_number} for {camp_name}: "
        f"{format_cents(invoice.total_due_cents)} due by {to_iso_date(invoice.due_date)}."
    )
    sent = 0
    for user_id in licensee_owner_user_ids(invoice.tenant_id):
        if notify(
            user_id,
            "royalty_invoice_created",
            "Royalty Invoice Generated",
            body,
            tenant_id=invoice.tenant_id,
            severity="info",
            action_url=LICENSEE_ROYALTIES_URL,
        ):
            sent += 1
    return sent


def notify_invoice_status_changed(invoice, new_status: str) -> int:
    label, severity = STATUS_LABELS.get(new_status, (new_status, "info"))
    sent = 0
    for user_id in licensee_owner_user_ids(invoice.tenant_id):
        if notify(
            user_id,
            "royalty_invoice_status_changed",
            f"Royalty Invoice {label}",
            f"Invoice {invoice.invoice_number} status updated to: {label}.",
            tenant_id=invoice.tenant_id,
            severity=severity,
            action_url=LICENSEE_ROYALTIES_URL,
        ):
            sent += 1
    return sent


# =============================================================================
# DELIVERY WORKER
# =============================================================================

def log_sender(notification: NotificationRequest) -> None:
    """Default sender: write the notification to the application log."""
    current_app.logger.info(
        "Notification %s to user %s [%s] %s: %s",
        notification.id,
        notification.user_id,
        notification.severity,
        notification.title,
        notification.body,
    )


def deliver_pending_notifications(
    limit: int = 100,
    sender: Callable[[NotificationRequest], None] | None = None,
) -> dict:
    """
    Drain PENDING notification requests through sender, oldest first.

    A sender exception counts as one failed attempt; the row stays PENDING
    until NOTIFICATION_MAX_ATTEMPTS is reached, then becomes FAILED.
    """
    sender = sender or log_sender
    max_attempts = int(current_app.config.get("NOTIFICATION_MAX_ATTEMPTS", 3))

    pending = (
        db.session.query(NotificationRequest)
        .filter(NotificationRequest.status == NOTIFICATION_PENDING)
        .order_by(NotificationRequest.created_at.asc(), NotificationRequest.id.asc())
        .limit(limit)
        .all()
    )

    result = {"processed": 0, "sent": 0, "retrying": 0, "failed": 0}
    for notification in pending:
        result["processed"] += 1
        notification.attempts = (notification.attempts or 0) + 1
        try:
            sender(notification)
        except Exception as exc:
            notification.last_error = str(exc)[:1000]
            if notification.attempts >= max_attempts:
                notification.status = NOTIFICATION_FAILED
                result["failed"] += 1
                current_app.logger.warning(
                    "Notification %s failed permanently after %s attempts: %s",
                    notification.id, notification.attempts, exc,
                )
            else:
                result["retrying"] += 1
        else:
            notification.status = NOTIFICATION_SENT
            notification.sent_at = utcnow()
            notification.last_error = None
            result["sent"] += 1
        db.session.commit()

    if result["processed"]:
        current_app.logger.info("Notification delivery: %s", result)
    return result
