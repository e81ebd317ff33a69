# Overview: Pytest coverage for the notification outbox (enqueue, recipients, delivery worker).

from royalty_engine.models import NotificationRequest
from royalty_engine.models.auth import ROLE_DIRECTOR, ROLE_HQ_ADMIN, ROLE_LICENSEE_OWNER
from royalty_engine.services import notification_service


def test_format_cents():
    assert notification_service.format_cents(520000) == "$5,200.00"
    assert notification_service.format_cents(-5000) == "-$50.00"
    assert notification_service.format_cents(7) == "$0.07"


class TestNotify:

    def test_enqueues_pending_request(self, db_session, owner_a, tenant_a):
        row = notification_service.notify(
            owner_a.id, "royalty_invoice_created", "Title", "Body",
            tenant_id=tenant_a.id, severity="warning", action_url="/x",
        )

        assert row is not None
        assert row.status == "PENDING"
        assert row.attempts == 0
        assert row.category == "royalty"
        assert row.severity == "warning"

    def test_unknown_severity_falls_back_to_info(self, db_session, owner_a):
        row = notification_service.notify(owner_a.id, "t", "Title", "Body", severity="critical")

        assert row.severity == "info"

    def test_failure_is_swallowed(self, db_session):
        # user_id is NOT NULL; the insert fails and notify reports None
        assert notification_service.notify(None, "t", "Title", "Body") is None
        assert db_session.query(NotificationRequest).count() == 0


class TestRecipients:

    def test_billing_contact_is_first_owner(self, db_session, make_user, tenant_a, tenant_b):
        first = make_user("first@acme.test", ROLE_LICENSEE_OWNER, tenant_a)
        second = make_user("second@acme.test", ROLE_LICENSEE_OWNER, tenant_a)
        make_user("director@acme.test", ROLE_DIRECTOR, tenant_a)
        make_user("owner@beta.test", ROLE_LICENSEE_OWNER, tenant_b)

        assert notification_service.licensee_owner_user_ids(tenant_a.id) == [first.id, second.id]
        assert notification_service.billing_contact_user_id(tenant_a.id) == first.id

    def test_no_billing_contact(self, db_session, tenant_a):
        assert notification_service.billing_contact_user_id(tenant_a.id) is None

    def test_hq_admins(self, db_session, make_user, tenant_a):
        admin = make_user("ops@hq.test", ROLE_HQ_ADMIN)
        make_user("owner@acme.test", ROLE_LICENSEE_OWNER, tenant_a)

        assert notification_service.hq_admin_user_ids() == [admin.id]


class TestDelivery:

    def test_successful_delivery(self, db_session, owner_a):
        notification_service.notify(owner_a.id, "t", "One", "Body")
        notification_service.notify(owner_a.id, "t", "Two", "Body")
        delivered = []

        result = notification_service.deliver_pending_notifications(sender=delivered.append)

        assert result == {"processed": 2, "sent": 2, "retrying": 0, "failed": 0}
        assert [n.title for n in delivered] == ["One", "Two"]
        rows = db_session.query(NotificationRequest).all()
        assert all(r.status == "SENT" and r.sent_at is not None for r in rows)

    def test_default_sender_logs(self, db_session, owner_a):
        notification_service.notify(owner_a.id, "t", "Title", "Body")

        result = notification_service.deliver_pending_notifications()

        assert result["sent"] == 1

    def test_failures_retry_then_fail(self, app, db_session, owner_a):
        notification_service.notify(owner_a.id, "t", "Title", "Body")

        def broken_sender(notification):
            raise RuntimeError("provider unavailable")

        max_attempts = app.config["NOTIFICATION_MAX_ATTEMPTS"]
        for _ in range(max_attempts - 1):
            result = notification_service.deliver_pending_notifications(sender=broken_sender)
            assert result["retrying"] == 1

        result = notification_service.deliver_pending_notifications(sender=broken_sender)
        assert result["failed"] == 1

        row = db_session.query(NotificationRequest).one()
        assert row.status == "FAILED"
        assert row.attempts == max_attempts
        assert row.last_error == "provider unavailable"

        # Failed rows are never picked up again
        assert notification_service.deliver_pending_notifications(sender=broken_sender)["processed"] == 0

    def test_respects_limit(self, db_session, owner_a):
        for i in range(3):
            notification_service.notify(owner_a.id, "t", f"N{i}", "Body")

        result = notification_service.deliver_pending_notifications(limit=2, sender=lambda n: None)

        assert result["processed"] == 2
        assert db_session.query(NotificationRequest).filter_by(status="PENDING").count() == 1
