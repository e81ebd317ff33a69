# Overview: Flask CLI command groups for the royalty batch, revenue snapshots and notification delivery.

# backend/royalty_engine/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to royalty_engine (PowerShell: $env:FLASK_APP="royalty_engine").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system init-db
#   Create any missing tables (use "flask db upgrade" for migrated databases).
#
# Royalties:
# - python -m flask royalties run-automation
#   Run the full batch: generate, mark overdue, reminders, weekly summary.
# - python -m flask royalties mark-overdue
#   Flip past-due invoiced invoices to overdue.
# - python -m flask royalties generate --camp-id 12 [--due-in-days 30]
#   Issue an invoice for one camp.
#
# Revenue:
# - python -m flask revenue snapshot --tenant-id 1 --start 2026-06-01 --end 2026-06-30
#   Create or refresh one tenant's snapshot.
# - python -m flask revenue roll-snapshots [--month 2026-06]
#   Snapshot every active tenant for a month (default: previous month).
#
# Notifications:
# - python -m flask notifications deliver [--limit 100]
#   Drain pending notification requests.
#
# Users:
# - python -m flask users issue-token --email admin@example.com
#   Print a new bearer token for an API caller.

import click
from flask.cli import with_appcontext

from .errors import RoyaltyEngineError
from .extensions import db
from .models import User
from .services import automation_service, notification_service, royalty_service, session_service, snapshot_service
from .time_utils import parse_iso_date, utcnow


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


# =============================================================================
# ROYALTIES
# =============================================================================

@click.group('royalties')
def royalties_group():
    """Royalty invoice automation commands."""


@royalties_group.command('run-automation')
@with_appcontext
def run_automation():
    """Run the royalty automation batch once."""
    result = automation_service.run_royalty_automation()
    summary = result.to_dict()
    click.echo(f"PASS Invoices generated: {summary['invoicesGenerated']} (failed: {summary['invoicesFailed']})")
    click.echo(f"PASS Invoices marked overdue: {summary['invoicesMarkedOverdue']}")
    click.echo(f"PASS Due-soon reminders: {summary['dueSoonReminders']}")
    click.echo(f"PASS Overdue summaries sent: {summary['overdueSummariesSent']}")
    for error in summary["errors"]:
        click.echo(f"WARN {error}")


@royalties_group.command('mark-overdue')
@with_appcontext
def mark_overdue_cli():
    """Flip past-due invoices to overdue."""
    count = royalty_service.mark_overdue()
    click.echo(f"PASS Marked {count} invoice(s) overdue")


@royalties_group.command('generate')
@click.option('--camp-id', type=int, required=True, help='Camp to invoice')
@click.option('--due-in-days', type=int, default=None, help='Days until due (default ROYALTY_DUE_IN_DAYS)')
@click.option('--generated-by', default='cli', help='Actor recorded on the invoice')
@with_appcontext
def generate_cli(camp_id, due_in_days, generated_by):
    """Issue a royalty invoice for one camp."""
    try:
        result = royalty_service.generate_invoice(
            camp_id=camp_id,
            generated_by=generated_by,
            due_in_days=due_in_days,
        )
    except RoyaltyEngineError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Generated invoice {result['invoice_number']} (ID: {result['invoice_id']})")


# =============================================================================
# REVENUE SNAPSHOTS
# =============================================================================

@click.group('revenue')
def revenue_group():
    """Revenue snapshot commands."""


@revenue_group.command('snapshot')
@click.option('--tenant-id', type=int, required=True)
@click.option('--start', 'start', required=True, help='Period start (YYYY-MM-DD)')
@click.option('--end', 'end', required=True, help='Period end (YYYY-MM-DD)')
@with_appcontext
def snapshot_cli(tenant_id, start, end):
    """Create or refresh a tenant's revenue snapshot."""
    try:
        snapshot = snapshot_service.create_snapshot(tenant_id, parse_iso_date(start), parse_iso_date(end))
    except (RoyaltyEngineError, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(
        f"PASS Snapshot {snapshot.id}: gross {snapshot.gross_revenue_cents} / net {snapshot.net_revenue_cents} cents, "
        f"{snapshot.total_campers} campers, {snapshot.sessions_held} sessions"
    )


@revenue_group.command('roll-snapshots')
@click.option('--month', default=None, help='Month to roll (YYYY-MM, default previous month)')
@with_appcontext
def roll_snapshots_cli(month):
    """Snapshot every active tenant for one calendar month."""
    try:
        if month:
            year_str, month_str = month.split("-", 1)
            period_start, period_end = snapshot_service.month_bounds(int(year_str), int(month_str))
        else:
            period_start, period_end = snapshot_service.previous_month(utcnow().date())
    except (RoyaltyEngineError, ValueError) as e:
        raise click.ClickException(f"Invalid --month: {e}")

    result = automation_service.roll_revenue_snapshots(period_start, period_end)
    click.echo(f"PASS {result['snapshots']} snapshot(s) for {result['period_start']}..{result['period_end']}")
    for error in result["errors"]:
        click.echo(f"WARN {error}")


# =============================================================================
# NOTIFICATIONS
# =============================================================================

@click.group('notifications')
def notifications_group():
    """Notification outbox commands."""


@notifications_group.command('deliver')
@click.option('--limit', type=int, default=100, help='Maximum requests to process')
@with_appcontext
def deliver_cli(limit):
    """Deliver pending notification requests."""
    result = notification_service.deliver_pending_notifications(limit=limit)
    click.echo(
        f"PASS Processed {result['processed']}: {result['sent']} sent, "
        f"{result['retrying']} retrying, {result['failed']} failed"
    )


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """API caller commands."""


@users_group.command('issue-token')
@click.option('--email', required=True)
@with_appcontext
def issue_token_cli(email):
    """Create a session and print its bearer token (shown once)."""
    user = db.session.query(User).filter_by(email=email).first()
    if not user:
        raise click.ClickException(f"No user with email {email}")
    try:
        session, token = session_service.create_session(user.id)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Token for {email} (expires {session.expires_at.isoformat()}Z):")
    click.echo(token)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(royalties_group)
    app.cli.add_command(revenue_group)
    app.cli.add_command(notifications_group)
    app.cli.add_command(users_group)
