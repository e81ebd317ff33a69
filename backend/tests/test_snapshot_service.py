# Overview: Pytest coverage for revenue snapshots (period bounds, idempotent upsert, rollup across tenants).

from datetime import date, datetime

import pytest

from royalty_engine.errors import NotFoundError, ValidationError
from royalty_engine.models import RevenueSnapshot
from royalty_engine.services import automation_service, snapshot_service


JUNE = (date(2026, 6, 1), date(2026, 6, 30))


class TestPeriodBounds:

    def test_month_bounds(self):
        assert snapshot_service.month_bounds(2026, 2) == (date(2026, 2, 1), date(2026, 2, 28))
        assert snapshot_service.month_bounds(2028, 2) == (date(2028, 2, 1), date(2028, 2, 29))
        assert snapshot_service.month_bounds(2026, 12) == (date(2026, 12, 1), date(2026, 12, 31))

    def test_invalid_month(self):
        with pytest.raises(ValidationError):
            snapshot_service.month_bounds(2026, 13)

    def test_previous_month_crosses_year(self):
        assert snapshot_service.previous_month(date(2026, 1, 15)) == (date(2025, 12, 1), date(2025, 12, 31))


class TestCreateSnapshot:

    def test_figures(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 3, 40000)
        add_registrations(camp, 1, 40000, status="refunded", updated_at=datetime(2026, 6, 12, 9, 0))

        snapshot = snapshot_service.create_snapshot(tenant_a.id, *JUNE)

        assert snapshot.gross_revenue_cents == 120000
        assert snapshot.refunds_cents == 40000
        assert snapshot.net_revenue_cents == 80000
        assert snapshot.total_campers == 3
        assert snapshot.arpc_cents == 26667
        assert snapshot.sessions_held == 1

    def test_rerun_updates_in_place(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 1, 40000)
        first = snapshot_service.create_snapshot(tenant_a.id, *JUNE)
        add_registrations(camp, 1, 40000)

        second = snapshot_service.create_snapshot(tenant_a.id, *JUNE)

        assert second.id == first.id
        assert second.gross_revenue_cents == 80000
        assert db_session.query(RevenueSnapshot).count() == 1

    def test_empty_period(self, db_session, tenant_a):
        snapshot = snapshot_service.create_snapshot(tenant_a.id, *JUNE)

        assert snapshot.gross_revenue_cents == 0
        assert snapshot.arpc_cents == 0

    def test_inverted_period(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            snapshot_service.create_snapshot(tenant_a.id, date(2026, 6, 30), date(2026, 6, 1))

    def test_missing_period(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            snapshot_service.create_snapshot(tenant_a.id, None, date(2026, 6, 30))

    def test_unknown_tenant(self, db_session):
        with pytest.raises(NotFoundError):
            snapshot_service.create_snapshot(99999, *JUNE)


class TestListSnapshots:

    def test_most_recent_first(self, db_session, tenant_a, tenant_b):
        for month in (4, 5, 6):
            snapshot_service.create_snapshot(tenant_a.id, *snapshot_service.month_bounds(2026, month))
        snapshot_service.create_snapshot(tenant_b.id, *JUNE)

        snapshots = snapshot_service.list_snapshots(tenant_a.id, limit=2)

        assert [s.period_start.month for s in snapshots] == [6, 5]
        assert all(s.tenant_id == tenant_a.id for s in snapshots)

    def test_invalid_limit(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            snapshot_service.list_snapshots(tenant_a.id, limit=0)


class TestRollSnapshots:

    def test_active_tenants_only(self, db_session, tenant_a, tenant_b):
        tenant_b.license_status = "suspended"
        db_session.commit()

        result = automation_service.roll_revenue_snapshots(*JUNE)

        assert result["snapshots"] == 1
        assert result["failed"] == 0
        assert result["period_start"] == "2026-06-01"
        assert db_session.query(RevenueSnapshot).filter_by(tenant_id=tenant_b.id).count() == 0

    def test_rerun_is_idempotent(self, db_session, tenant_a, tenant_b):
        automation_service.roll_revenue_snapshots(*JUNE)
        automation_service.roll_revenue_snapshots(*JUNE)

        assert db_session.query(RevenueSnapshot).count() == 2
