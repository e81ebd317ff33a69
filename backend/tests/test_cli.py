# Overview: Pytest coverage for the Flask CLI command groups.

from royalty_engine.models import NotificationRequest, RevenueSnapshot, RoyaltyInvoice


def test_generate_and_mark_overdue(app, db_session, tenant_a, make_camp, add_registrations):
    camp = make_camp(tenant_a)
    add_registrations(camp, 1, 10000)
    runner = app.test_cli_runner()

    result = runner.invoke(args=["royalties", "generate", "--camp-id", str(camp.id), "--generated-by", "ops"])
    assert result.exit_code == 0
    assert "PASS Generated invoice ROY-ACME-" in result.output
    assert db_session.query(RoyaltyInvoice).one().generated_by == "ops"

    result = runner.invoke(args=["royalties", "mark-overdue"])
    assert result.exit_code == 0
    assert "PASS Marked 0 invoice(s) overdue" in result.output


def test_generate_duplicate_fails(app, db_session, tenant_a, make_camp):
    camp = make_camp(tenant_a)
    runner = app.test_cli_runner()
    runner.invoke(args=["royalties", "generate", "--camp-id", str(camp.id)])

    result = runner.invoke(args=["royalties", "generate", "--camp-id", str(camp.id)])

    assert result.exit_code != 0
    assert "already exists" in result.output


def test_run_automation(app, db_session):
    result = app.test_cli_runner().invoke(args=["royalties", "run-automation"])

    assert result.exit_code == 0
    assert "PASS Invoices generated: 0" in result.output


def test_snapshot_commands(app, db_session, tenant_a):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "revenue", "snapshot", "--tenant-id", str(tenant_a.id), "--start", "2026-06-01", "--end", "2026-06-30",
    ])
    assert result.exit_code == 0

    result = runner.invoke(args=["revenue", "roll-snapshots", "--month", "2026-06"])
    assert result.exit_code == 0
    assert "PASS 1 snapshot(s) for 2026-06-01..2026-06-30" in result.output
    assert db_session.query(RevenueSnapshot).count() == 1


def test_roll_snapshots_bad_month(app, db_session):
    result = app.test_cli_runner().invoke(args=["revenue", "roll-snapshots", "--month", "2026-13"])

    assert result.exit_code != 0
    assert "Invalid --month" in result.output


def test_deliver_notifications(app, db_session, owner_a):
    db_session.add(NotificationRequest(
        user_id=owner_a.id, type="t", title="Title", body="Body",
        severity="info", status="PENDING", attempts=0,
    ))
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["notifications", "deliver", "--limit", "5"])

    assert result.exit_code == 0
    assert "PASS Processed 1: 1 sent" in result.output


def test_issue_token(app, db_session, hq_admin, client):
    result = app.test_cli_runner().invoke(args=["users", "issue-token", "--email", hq_admin.email])

    assert result.exit_code == 0
    token = result.output.strip().splitlines()[-1]
    response = client.get("/api/admin/royalties/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_issue_token_unknown_user(app, db_session):
    result = app.test_cli_runner().invoke(args=["users", "issue-token", "--email", "nobody@nowhere.test"])

    assert result.exit_code != 0
