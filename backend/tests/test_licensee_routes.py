# Overview: Pytest coverage for licensee-facing royalty and revenue routes (tenant isolation).

"""
Licensee Isolation Tests

SECURITY TESTS: a licensee owner only ever sees their own tenant's invoices,
camps and snapshots. Foreign records are reported as not found rather than
forbidden so their existence is not revealed.
"""

from datetime import date, datetime

import pytest

from royalty_engine.models import UserRoleAssignment
from royalty_engine.models.auth import ROLE_LICENSEE_OWNER
from royalty_engine.services import royalty_service, snapshot_service


@pytest.fixture
def invoices(db_session, tenant_a, tenant_b, make_camp, add_registrations):
    camp_a = make_camp(tenant_a)
    camp_b = make_camp(tenant_b)
    add_registrations(camp_a, 2, 50000)
    add_registrations(camp_b, 3, 50000)
    now = datetime(2026, 6, 20, 9, 0)
    a = royalty_service.generate_invoice(camp_id=camp_a.id, now=now)
    b = royalty_service.generate_invoice(camp_id=camp_b.id, now=now)
    return {"a": a["invoice_id"], "b": b["invoice_id"], "camp_a": camp_a.id, "camp_b": camp_b.id}


class TestLicenseeInvoices:

    def test_lists_own_invoices_only(self, client, owner_a_headers, invoices):
        response = client.get("/api/licensee/royalties/invoices", headers=owner_a_headers)

        assert response.status_code == 200
        assert [i["id"] for i in response.json["items"]] == [invoices["a"]]
        assert response.json["summary"]["invoices_count"] == 1

    def test_own_invoice_detail(self, client, owner_a_headers, invoices):
        response = client.get(f"/api/licensee/royalties/invoices/{invoices['a']}", headers=owner_a_headers)

        assert response.status_code == 200
        assert response.json["invoice"]["total_due_cents"] == 10000

    def test_foreign_invoice_is_not_found(self, client, owner_a_headers, invoices):
        response = client.get(f"/api/licensee/royalties/invoices/{invoices['b']}", headers=owner_a_headers)

        assert response.status_code == 404

    def test_admin_routes_forbidden(self, client, owner_a_headers, invoices):
        response = client.post(
            f"/api/admin/royalties/{invoices['a']}/mark-paid", headers=owner_a_headers, json={},
        )

        assert response.status_code == 403

    def test_account_without_tenant(self, client, make_user, headers_for, invoices):
        orphan = make_user("orphan@nowhere.test", ROLE_LICENSEE_OWNER)

        response = client.get("/api/licensee/royalties/invoices", headers=headers_for(orphan))

        assert response.status_code == 403

    def test_owner_of_two_tenants_scoped_to_lowest_id(
        self, client, db_session, make_user, headers_for, tenant_a, tenant_b, invoices
    ):
        owner = make_user("owner@group.test", ROLE_LICENSEE_OWNER, tenant_b)
        db_session.add(UserRoleAssignment(
            user_id=owner.id, tenant_id=tenant_a.id, role=ROLE_LICENSEE_OWNER, is_active=True,
        ))
        db_session.commit()

        response = client.get("/api/licensee/royalties/invoices", headers=headers_for(owner))

        assert response.status_code == 200
        assert tenant_a.id < tenant_b.id
        assert [i["id"] for i in response.json["items"]] == [invoices["a"]]

    def test_hq_admin_is_not_a_licensee(self, client, admin_headers, invoices):
        response = client.get("/api/licensee/royalties/invoices", headers=admin_headers)

        assert response.status_code == 403


class TestLicenseeSummary:

    def test_summary_window(self, client, owner_a_headers, invoices):
        response = client.get(
            "/api/licensee/royalties/summary?start=2026-03-01&end=2026-09-30", headers=owner_a_headers,
        )

        assert response.status_code == 200
        assert response.json["tenant_id"] is not None
        assert [c["camp_id"] for c in response.json["camps"]] == [invoices["camp_a"]]
        assert response.json["totals"]["total_royalty_due_cents"] == 10000

    def test_bad_date(self, client, owner_a_headers, invoices):
        response = client.get("/api/licensee/royalties/summary?start=March", headers=owner_a_headers)

        assert response.status_code == 400


class TestRevenueRoutes:

    def test_own_camp_dashboard(self, client, owner_a_headers, invoices):
        response = client.get(f"/api/revenue/camps/{invoices['camp_a']}/dashboard", headers=owner_a_headers)

        assert response.status_code == 200
        assert response.json["royalty"]["status"] == "INVOICED"

    def test_foreign_camp_dashboard_is_not_found(self, client, owner_a_headers, invoices):
        response = client.get(f"/api/revenue/camps/{invoices['camp_b']}/dashboard", headers=owner_a_headers)

        assert response.status_code == 404

    def test_admin_sees_any_dashboard(self, client, admin_headers, invoices):
        response = client.get(f"/api/revenue/camps/{invoices['camp_b']}/dashboard", headers=admin_headers)

        assert response.status_code == 200

    def test_trends_pinned_to_own_tenant(self, client, owner_a_headers, tenant_a, tenant_b, invoices):
        response = client.get(
            f"/api/revenue/trends?range=custom&start=2026-01-01&end=2026-12-31&tenant_id={tenant_b.id}",
            headers=owner_a_headers,
        )

        assert response.status_code == 200
        assert response.json["tenant_id"] == tenant_a.id

    def test_admin_trends_require_tenant(self, client, admin_headers, invoices):
        response = client.get("/api/revenue/trends", headers=admin_headers)

        assert response.status_code == 400

    def test_invalid_range(self, client, admin_headers, tenant_a, invoices):
        response = client.get(f"/api/revenue/trends?range=decade&tenant_id={tenant_a.id}", headers=admin_headers)

        assert response.status_code == 400

    def test_snapshots_scoped(self, client, owner_a_headers, tenant_a, tenant_b, invoices):
        snapshot_service.create_snapshot(tenant_a.id, date(2026, 6, 1), date(2026, 6, 30))
        snapshot_service.create_snapshot(tenant_b.id, date(2026, 6, 1), date(2026, 6, 30))

        response = client.get("/api/revenue/snapshots", headers=owner_a_headers)

        assert response.status_code == 200
        assert [s["tenant_id"] for s in response.json["snapshots"]] == [tenant_a.id]

    def test_admin_creates_snapshot(self, client, admin_headers, tenant_a, invoices):
        body = {"tenant_id": tenant_a.id, "period_start": "2026-06-01", "period_end": "2026-06-30"}

        first = client.post("/api/revenue/snapshots", headers=admin_headers, json=body)
        second = client.post("/api/revenue/snapshots", headers=admin_headers, json=body)

        assert first.status_code == 201
        assert first.json["snapshot"]["gross_revenue_cents"] == 100000
        assert second.json["snapshot"]["id"] == first.json["snapshot"]["id"]

    def test_owner_cannot_create_snapshot(self, client, owner_a_headers, tenant_a, invoices):
        response = client.post(
            "/api/revenue/snapshots",
            headers=owner_a_headers,
            json={"tenant_id": tenant_a.id, "period_start": "2026-06-01", "period_end": "2026-06-30"},
        )

        assert response.status_code == 403


class TestHealth:

    def test_health(self, client, db_session, invoices):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json["status"] == "healthy"
        assert response.json["checks"]["database"]["details"]["outstanding_invoices"] == 2
