"""royalty engine initial schema: tenancy, camps, royalty invoices, snapshots, notification outbox

Revision ID: 20261019_royalty_engine_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_royalty_engine_initial"
down_revision = None
branch_labels = None
depends_on = None


OUTSTANDING_PREDICATE = "status NOT IN ('paid', 'waived')"


def _timestamp(name):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False)


def upgrade():
    # -------------------------------------------------------------------------
    # Tenancy and callers
    # -------------------------------------------------------------------------
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=64), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=32), nullable=True),
        sa.Column("royalty_rate", sa.Numeric(6, 4), nullable=True),
        sa.Column("license_status", sa.String(length=16), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True)
    op.create_index("ix_tenants_license_status", "tenants", ["license_status"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=True),
        sa.Column("last_name", sa.String(length=128), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "user_role_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "tenant_id", "role", name="uq_user_role_assignments_user_tenant_role"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_user_role_assignments_user_id", "user_role_assignments", ["user_id"], unique=False)
    op.create_index("ix_user_role_assignments_tenant_id", "user_role_assignments", ["tenant_id"], unique=False)
    op.create_index(
        "ix_user_role_assignments_tenant_role",
        "user_role_assignments",
        ["tenant_id", "role", "is_active"],
        unique=False,
    )

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(length=255), nullable=False),
        _timestamp("created_at"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_user_id", "session_tokens", ["user_id"], unique=False)
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_expires_at", "session_tokens", ["expires_at"], unique=False)
    op.create_index("ix_session_tokens_user_active", "session_tokens", ["user_id", "is_revoked"], unique=False)

    # -------------------------------------------------------------------------
    # Camps and revenue sources
    # -------------------------------------------------------------------------
    op.create_table(
        "camps",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_camps_tenant_id", "camps", ["tenant_id"], unique=False)
    op.create_index("ix_camps_status", "camps", ["status"], unique=False)
    op.create_index("ix_camps_tenant_status", "camps", ["tenant_id", "status"], unique=False)

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("camp_id", sa.Integer(), nullable=False),
        sa.Column("camper_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("total_price_cents", sa.Integer(), nullable=False),
        sa.Column("addons_total_cents", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["camp_id"], ["camps.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_registrations_tenant_id", "registrations", ["tenant_id"], unique=False)
    op.create_index("ix_registrations_camp_id", "registrations", ["camp_id"], unique=False)
    op.create_index("ix_registrations_camp_status", "registrations", ["camp_id", "status"], unique=False)
    op.create_index("ix_registrations_tenant_status", "registrations", ["tenant_id", "status"], unique=False)

    op.create_table(
        "registration_addons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("registration_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("variant_name", sa.String(length=255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["registration_id"], ["registrations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_registration_addons_registration_id", "registration_addons", ["registration_id"], unique=False)

    op.create_table(
        "shop_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_shop_orders_tenant_id", "shop_orders", ["tenant_id"], unique=False)
    op.create_index(
        "ix_shop_orders_tenant_status_created",
        "shop_orders",
        ["tenant_id", "status", "created_at"],
        unique=False,
    )

    # -------------------------------------------------------------------------
    # Royalty invoices
    # -------------------------------------------------------------------------
    op.create_table(
        "royalty_invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("camp_id", sa.Integer(), nullable=True),
        sa.Column("period_type", sa.String(length=16), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("gross_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("registration_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("addon_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("merchandise_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("refunds_total_cents", sa.Integer(), nullable=False),
        sa.Column("net_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("royalty_rate_bps", sa.Integer(), nullable=False),
        sa.Column("royalty_due_cents", sa.Integer(), nullable=False),
        sa.Column("adjustment_cents", sa.Integer(), nullable=False),
        sa.Column("adjustment_notes", sa.Text(), nullable=True),
        sa.Column("total_due_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        _timestamp("generated_at"),
        sa.Column("generated_by", sa.String(length=64), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_amount_cents", sa.Integer(), nullable=True),
        sa.Column("payment_method", sa.String(length=64), nullable=True),
        sa.Column("payment_reference", sa.String(length=255), nullable=True),
        sa.Column("paid_by", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("disputed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["camp_id"], ["camps.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_royalty_invoices_invoice_number", "royalty_invoices", ["invoice_number"], unique=True)
    op.create_index("ix_royalty_invoices_tenant_id", "royalty_invoices", ["tenant_id"], unique=False)
    op.create_index("ix_royalty_invoices_camp_id", "royalty_invoices", ["camp_id"], unique=False)
    op.create_index("ix_royalty_invoices_status", "royalty_invoices", ["status"], unique=False)
    op.create_index("ix_royalty_invoices_due_date", "royalty_invoices", ["due_date"], unique=False)
    op.create_index("ix_royalty_invoices_status_due", "royalty_invoices", ["status", "due_date"], unique=False)
    op.create_index("ix_royalty_invoices_period", "royalty_invoices", ["period_start", "period_end"], unique=False)

    # One outstanding invoice per camp, enforced by the database.
    op.create_index(
        "uq_royalty_invoices_outstanding_camp",
        "royalty_invoices",
        ["tenant_id", "camp_id"],
        unique=True,
        sqlite_where=sa.text(OUTSTANDING_PREDICATE),
        postgresql_where=sa.text(OUTSTANDING_PREDICATE),
    )

    op.create_table(
        "royalty_line_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_amount_cents", sa.Integer(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("royalty_applies", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["invoice_id"], ["royalty_invoices.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_royalty_line_items_invoice_id", "royalty_line_items", ["invoice_id"], unique=False)
    op.create_index("ix_royalty_line_items_category", "royalty_line_items", ["category"], unique=False)

    op.create_table(
        "royalty_invoice_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column("from_status", sa.String(length=16), nullable=True),
        sa.Column("to_status", sa.String(length=16), nullable=True),
        sa.Column("amount_cents", sa.Integer(), nullable=True),
        sa.Column("actor", sa.String(length=64), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        _timestamp("occurred_at"),
        sa.ForeignKeyConstraint(["invoice_id"], ["royalty_invoices.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_royalty_invoice_events_invoice_id", "royalty_invoice_events", ["invoice_id"], unique=False)
    op.create_index(
        "ix_royalty_invoice_events_invoice_occurred",
        "royalty_invoice_events",
        ["invoice_id", "occurred_at"],
        unique=False,
    )

    # -------------------------------------------------------------------------
    # Revenue snapshots
    # -------------------------------------------------------------------------
    op.create_table(
        "revenue_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("gross_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("net_revenue_cents", sa.Integer(), nullable=False),
        sa.Column("refunds_cents", sa.Integer(), nullable=False),
        sa.Column("total_campers", sa.Integer(), nullable=False),
        sa.Column("arpc_cents", sa.Integer(), nullable=False),
        sa.Column("sessions_held", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "period_start", "period_end", name="uq_revenue_snapshots_tenant_period"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_revenue_snapshots_tenant_id", "revenue_snapshots", ["tenant_id"], unique=False)
    op.create_index("ix_revenue_snapshots_period_start", "revenue_snapshots", ["period_start"], unique=False)
    op.create_index("ix_revenue_snapshots_period_end", "revenue_snapshots", ["period_end"], unique=False)

    # -------------------------------------------------------------------------
    # Notification outbox
    # -------------------------------------------------------------------------
    op.create_table(
        "notification_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("action_url", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_notification_requests_user_id", "notification_requests", ["user_id"], unique=False)
    op.create_index("ix_notification_requests_tenant_id", "notification_requests", ["tenant_id"], unique=False)
    op.create_index(
        "ix_notification_requests_status_created",
        "notification_requests",
        ["status", "created_at"],
        unique=False,
    )


def downgrade():
    op.drop_table("notification_requests")
    op.drop_table("revenue_snapshots")
    op.drop_table("royalty_invoice_events")
    op.drop_table("royalty_line_items")
    op.drop_index("uq_royalty_invoices_outstanding_camp", table_name="royalty_invoices")
    op.drop_table("royalty_invoices")
    op.drop_table("shop_orders")
    op.drop_table("registration_addons")
    op.drop_table("registrations")
    op.drop_table("camps")
    op.drop_table("session_tokens")
    op.drop_table("user_role_assignments")
    op.drop_table("users")
    op.drop_table("tenants")
