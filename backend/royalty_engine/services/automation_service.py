# Overview: Scheduled royalty automation; the batch the cron endpoint and CLI drive.

"""
Royalty Automation Batch

Runs in a fixed order; every step is isolated so a failure is logged, rolled
back and recorded in errors while later steps still run:

1. Generate invoices for completed camps that have never been invoiced
2. Flip past-due invoices to overdue
3. Remind billing contacts of invoices due inside the reminder window
4. On the weekly summary day, send HQ admins an overdue summary

Reminders are at-least-once; two runs on the same day enqueue two reminders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from math import ceil

from flask import current_app
from sqlalchemy import func

from royalty_engine.extensions import db
from royalty_engine.errors import RoyaltyEngineError
from royalty_engine.models import RoyaltyInvoice, Tenant
from royalty_engine.models.camps import CAMP_COMPLETED
from royalty_engine.models.royalties import STATUS_INVOICED, STATUS_OVERDUE
from royalty_engine.services import notification_service, royalty_service, snapshot_service
from royalty_engine.services.notification_service import format_cents
from royalty_engine.time_utils import to_utc_z, utcnow


AUTOMATION_ACTOR = "system-auto"


@dataclass
class AutomationResult:
    invoices_generated: int = 0
    invoices_failed: int = 0
    invoices_marked_overdue: int = 0
    due_soon_reminders: int = 0
    overdue_summaries_sent: int = 0
    errors: list[str] = field(default_factory=list)
    timestamp: datetime | None = None

    def to_dict(self) -> dict:
        """Wire format for schedulers (camelCase keys)."""
        return {
            "invoicesGenerated": self.invoices_generated,
            "invoicesFailed": self.invoices_failed,
            "invoicesMarkedOverdue": self.invoices_marked_overdue,
            "dueSoonReminders": self.due_soon_reminders,
            "overdueSummariesSent": self.overdue_summaries_sent,
            "errors": list(self.errors),
        }


def _generate_missing_invoices(result: AutomationResult, now: datetime) -> None:
    camps = royalty_service.get_camps_without_invoices(
        statuses=(CAMP_COMPLETED,),
        limit=int(current_app.config["ROYALTY_BATCH_LIMIT"]),
        today=now.date(),
    )
    if not camps:
        return
    current_app.logger.info("Found %s completed camps needing royalty invoices", len(camps))

    outcome = royalty_service.bulk_generate_invoices(
        [c["id"] for c in camps],
        generated_by=AUTOMATION_ACTOR,
        due_in_days=int(current_app.config["ROYALTY_DUE_IN_DAYS"]),
        now=now,
    )
    result.invoices_generated = outcome["generated"]
    result.invoices_failed = outcome["failed"]
    result.errors.extend(outcome["errors"])


def _send_due_soon_reminders(result: AutomationResult, now: datetime) -> None:
    window_end = now + timedelta(days=int(current_app.config["ROYALTY_REMINDER_WINDOW_DAYS"]))
    invoices = (
        db.session.query(RoyaltyInvoice)
        .filter(
            RoyaltyInvoice.status == STATUS_INVOICED,
            RoyaltyInvoice.due_date >= now,
            RoyaltyInvoice.due_date <= window_end,
        )
        .order_by(RoyaltyInvoice.due_date.asc(), RoyaltyInvoice.id.asc())
        .all()
    )
    current_app.logger.info("Found %s royalty invoices due soon", len(invoices))

    for invoice in invoices:
        user_id = notification_service.billing_contact_user_id(invoice.tenant_id)
        if user_id is None:
            continue
        days_until_due = max(ceil((invoice.due_date - now).total_seconds() / 86400), 0)
        camp_name = invoice.camp.name if invoice.camp else "royalties"
        plural = "" if days_until_due == 1 else "s"
        notification_service.notify(
            user_id,
            "royalty_invoice_due_soon",
            "Royalty Payment Reminder",
            f"Invoice {invoice.invoice_number} for {camp_name} is due in {days_until_due} day{plural}. "
            f"Amount: {format_cents(invoice.total_due_cents)}",
            tenant_id=invoice.tenant_id,
            severity="warning",
            action_url=f"/portal/royalties/{invoice.id}",
        )
        result.due_soon_reminders += 1


def _send_weekly_overdue_summary(result: AutomationResult) -> None:
    count, total = (
        db.session.query(
            func.count(RoyaltyInvoice.id),
            func.coalesce(func.sum(RoyaltyInvoice.total_due_cents), 0),
        )
        .filter(RoyaltyInvoice.status == STATUS_OVERDUE)
        .one()
    )
    if not count:
        return

    noun = "invoice is" if count == 1 else "invoices are"
    body = f"{count} royalty {noun} overdue, totaling {format_cents(int(total))}."
    for user_id in notification_service.hq_admin_user_ids():
        notification_service.notify(
            user_id,
            "system_alert",
            "Weekly Overdue Royalties Summary",
            body,
            severity="error",
            action_url="/admin/royalties?status=overdue",
        )
        result.overdue_summaries_sent += 1


def _run_step(result: AutomationResult, label: str, step, *args) -> None:
    try:
        step(result, *args)
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("Royalty automation step '%s' failed", label)
        result.errors.append(f"{label}: {exc}")


def run_royalty_automation(now: datetime | None = None) -> AutomationResult:
    """Run the royalty batch once. Never raises for a failing step."""
    now = now or utcnow()
    result = AutomationResult(timestamp=now)
    current_app.logger.info("Starting royalty automation run at %s", to_utc_z(now))

    _run_step(result, "Generate", _generate_missing_invoices, now)

    def _mark_overdue(res: AutomationResult) -> None:
        res.invoices_marked_overdue = royalty_service.mark_overdue(now)

    _run_step(result, "Overdue", _mark_overdue)
    _run_step(result, "Reminders", _send_due_soon_reminders, now)

    if now.weekday() == int(current_app.config["ROYALTY_WEEKLY_SUMMARY_WEEKDAY"]):
        _run_step(result, "Weekly summary", _send_weekly_overdue_summary)

    current_app.logger.info("Royalty automation run completed: %s", result.to_dict())
    return result


def roll_revenue_snapshots(period_start: date, period_end: date) -> dict:
    """Create or refresh the snapshot for every active tenant over one period."""
    tenants = (
        db.session.query(Tenant)
        .filter(Tenant.license_status == "active")
        .order_by(Tenant.id.asc())
        .all()
    )
    created = 0
    errors: list[str] = []
    for tenant in tenants:
        try:
            snapshot_service.create_snapshot(tenant.id, period_start, period_end)
            created += 1
        except RoyaltyEngineError as exc:
            db.session.rollback()
            current_app.logger.warning("Revenue snapshot failed for tenant %s: %s", tenant.id, exc)
            errors.append(f"Tenant {tenant.id}: {exc}")

    current_app.logger.info(
        "Rolled revenue snapshots for %s..%s: %s created/updated, %s failed",
        period_start, period_end, created, len(errors),
    )
    return {
        "period_start": period_start.isoformat(),
        "period_end": period_end.isoformat(),
        "snapshots": created,
        "failed": len(errors),
        "errors": errors,
    }
