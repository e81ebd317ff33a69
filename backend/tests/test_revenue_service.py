# Overview: Pytest coverage for camp and period revenue aggregation, dashboards and trends.

from datetime import date, datetime

import pytest

from royalty_engine.errors import NotFoundError, ValidationError
from royalty_engine.models import RevenueSnapshot
from royalty_engine.services import revenue_service, royalty_service


class TestCampAggregation:

    def test_registration_and_addon_split(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 10, 52000, addons_total_cents=2000)

        breakdown = revenue_service.aggregate_camp_revenue(camp)

        assert breakdown.registration_revenue_cents == 500000
        assert breakdown.addon_revenue_cents == 20000
        assert breakdown.merchandise_revenue_cents == 0
        assert breakdown.gross_revenue_cents == 520000
        assert breakdown.net_revenue_cents == 520000
        assert breakdown.camper_count == 10

    def test_only_confirmed_registrations_count(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 2, 40000)
        add_registrations(camp, 3, 40000, status="pending")
        add_registrations(camp, 1, 40000, status="cancelled")

        breakdown = revenue_service.aggregate_camp_revenue(camp)

        assert breakdown.gross_revenue_cents == 80000
        assert breakdown.camper_count == 2

    def test_refunds_reduce_net(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 3, 30000)
        add_registrations(camp, 1, 30000, status="refunded")

        breakdown = revenue_service.aggregate_camp_revenue(camp)

        assert breakdown.gross_revenue_cents == 90000
        assert breakdown.refunds_total_cents == 30000
        assert breakdown.net_revenue_cents == 60000

    def test_itemized_addons_win_over_denormalized_total(
        self, db_session, tenant_a, make_camp, add_registrations, add_addon
    ):
        camp = make_camp(tenant_a)
        [registration] = add_registrations(camp, 1, 52000, addons_total_cents=2000)
        add_addon(registration, "Lunch plan", 1500, quantity=5)
        add_addon(registration, "Jersey", 700, variant_name="Youth M")

        breakdown = revenue_service.aggregate_camp_revenue(camp)

        assert breakdown.registration_revenue_cents == 50000
        assert breakdown.addon_revenue_cents == 2200

    def test_merchandise_inside_camp_window_only(
        self, db_session, tenant_a, tenant_b, make_camp, add_registrations, add_shop_order
    ):
        camp = make_camp(tenant_a)
        add_registrations(camp, 1, 30000)
        add_shop_order(tenant_a, 2500, datetime(2026, 6, 15, 9, 0))
        add_shop_order(tenant_a, 1500, datetime(2026, 6, 19, 23, 30))
        add_shop_order(tenant_a, 9900, datetime(2026, 6, 20, 0, 5))
        add_shop_order(tenant_a, 4000, datetime(2026, 6, 16, 10, 0), status="cancelled")
        add_shop_order(tenant_b, 7000, datetime(2026, 6, 16, 10, 0))

        breakdown = revenue_service.aggregate_camp_revenue(camp)

        assert breakdown.merchandise_revenue_cents == 4000
        assert breakdown.gross_revenue_cents == 34000

    def test_empty_camp(self, db_session, tenant_a, make_camp):
        camp = make_camp(tenant_a)

        breakdown = revenue_service.aggregate_camp_revenue(camp)

        assert breakdown.gross_revenue_cents == 0
        assert breakdown.net_revenue_cents == 0
        assert revenue_service.build_camp_line_items(camp) == []


class TestLineItems:

    def test_line_items_sum_to_gross(
        self, db_session, tenant_a, make_camp, add_registrations, add_addon, add_shop_order
    ):
        camp = make_camp(tenant_a)
        itemized = add_registrations(camp, 2, 41000, addons_total_cents=1000)
        add_registrations(camp, 3, 52000, addons_total_cents=2000)
        add_addon(itemized[0], "Goalkeeper gloves", 1000, quantity=3)
        add_addon(itemized[1], "Goalkeeper gloves", 1000)
        add_shop_order(tenant_a, 3333, datetime(2026, 6, 17, 14, 0))

        lines = revenue_service.build_camp_line_items(camp)
        breakdown = revenue_service.aggregate_camp_revenue(camp)

        assert sum(line["total_amount_cents"] for line in lines) == breakdown.gross_revenue_cents
        by_category = {}
        for line in lines:
            by_category[line["category"]] = by_category.get(line["category"], 0) + line["total_amount_cents"]
        assert by_category["registration"] == breakdown.registration_revenue_cents
        assert by_category["addon"] == breakdown.addon_revenue_cents
        assert by_category["merchandise"] == breakdown.merchandise_revenue_cents

    def test_untracked_addons_aggregate_into_one_line(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 4, 52000, addons_total_cents=2000)

        lines = revenue_service.build_camp_line_items(camp)
        addon_lines = [line for line in lines if line["category"] == "addon"]

        assert len(addon_lines) == 1
        assert addon_lines[0]["quantity"] == 4
        assert addon_lines[0]["unit_amount_cents"] == 2000
        assert addon_lines[0]["total_amount_cents"] == 8000

    def test_addon_unit_amount_from_line_total(
        self, db_session, tenant_a, make_camp, add_registrations, add_addon
    ):
        camp = make_camp(tenant_a)
        [registration] = add_registrations(camp, 1, 30000, addons_total_cents=1000)
        add_addon(registration, "Snack pack", 1000, quantity=3)

        [addon_line] = [
            line for line in revenue_service.build_camp_line_items(camp) if line["category"] == "addon"
        ]

        assert addon_line["description"] == "Add-on: Snack pack"
        assert addon_line["unit_amount_cents"] == 333
        assert addon_line["total_amount_cents"] == 1000


class TestPeriodAggregation:

    def test_camps_fully_inside_period(self, db_session, tenant_a, make_camp, add_registrations):
        june = make_camp(tenant_a)
        straddling = make_camp(tenant_a, start=date(2026, 6, 29), end=date(2026, 7, 3))
        add_registrations(june, 4, 25000)
        add_registrations(straddling, 2, 25000)
        add_registrations(
            june, 1, 25000, status="refunded",
            updated_at=datetime(2026, 6, 10, 8, 0),
        )

        figures = revenue_service.aggregate_period_revenue(tenant_a.id, date(2026, 6, 1), date(2026, 6, 30))

        assert figures == {
            "gross_revenue_cents": 100000,
            "refunds_cents": 25000,
            "net_revenue_cents": 75000,
            "total_campers": 4,
            "sessions_held": 1,
        }

    def test_no_camps(self, db_session, tenant_a):
        figures = revenue_service.aggregate_period_revenue(tenant_a.id, date(2026, 6, 1), date(2026, 6, 30))

        assert figures["gross_revenue_cents"] == 0
        assert figures["sessions_held"] == 0


class TestDashboard:

    def test_estimate_before_invoice(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 10, 52000, addons_total_cents=2000)
        add_registrations(camp, 2, 52000, status="pending")

        dashboard = revenue_service.get_camp_revenue_dashboard(camp.id)

        assert dashboard["revenue"]["gross_revenue_cents"] == 520000
        assert dashboard["metrics"]["total_registrations"] == 12
        assert dashboard["metrics"]["confirmed_registrations"] == 10
        assert dashboard["metrics"]["arpc_cents"] == 52000
        assert dashboard["metrics"]["conversion_rate"] == 83.33
        assert dashboard["royalty"] == {
            "rate_bps": 1000,
            "estimated_cents": 52000,
            "status": "PENDING",
            "invoice_id": None,
        }

    def test_reflects_latest_invoice(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 1, 10000)
        result = royalty_service.generate_invoice(camp_id=camp.id, now=datetime(2026, 6, 20, 9, 0))

        dashboard = revenue_service.get_camp_revenue_dashboard(camp.id)

        assert dashboard["royalty"]["status"] == "INVOICED"
        assert dashboard["royalty"]["invoice_id"] == result["invoice_id"]

    def test_tenant_scope(self, db_session, tenant_a, tenant_b, make_camp):
        camp = make_camp(tenant_a)

        with pytest.raises(NotFoundError):
            revenue_service.get_camp_revenue_dashboard(camp.id, tenant_id=tenant_b.id)


class TestTrends:

    def test_snapshots_preferred(self, db_session, tenant_a):
        db_session.add(RevenueSnapshot(
            tenant_id=tenant_a.id,
            period_start=date(2026, 6, 1),
            period_end=date(2026, 6, 30),
            gross_revenue_cents=100000,
            net_revenue_cents=90000,
            refunds_cents=10000,
            total_campers=4,
            arpc_cents=22500,
            sessions_held=1,
        ))
        db_session.commit()

        trends = revenue_service.get_revenue_trends(tenant_a.id, "season", today=date(2026, 7, 20))

        assert trends["source"] == "snapshots"
        assert trends["start"] == "2026-05-01"
        assert trends["end"] == "2026-08-31"
        assert trends["trends"] == [{
            "period": "2026-06",
            "gross_revenue_cents": 100000,
            "net_revenue_cents": 90000,
            "registrations": 4,
            "arpc_cents": 22500,
        }]

    def test_falls_back_to_registrations(self, db_session, tenant_a, make_camp, add_registrations):
        camp = make_camp(tenant_a)
        add_registrations(camp, 2, 30000, created_at=datetime(2026, 4, 10, 12, 0))
        add_registrations(camp, 1, 45000, created_at=datetime(2026, 5, 2, 12, 0))

        trends = revenue_service.get_revenue_trends(tenant_a.id, "ytd", today=date(2026, 7, 20))

        assert trends["source"] == "registrations"
        assert [t["period"] for t in trends["trends"]] == ["2026-04", "2026-05"]
        assert trends["trends"][0]["gross_revenue_cents"] == 60000
        assert trends["trends"][0]["arpc_cents"] == 30000

    def test_invalid_range(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            revenue_service.get_revenue_trends(tenant_a.id, "decade")

    def test_unknown_tenant(self, db_session):
        with pytest.raises(NotFoundError):
            revenue_service.get_revenue_trends(99999, "ytd")
