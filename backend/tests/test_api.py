# tests/test_api.py
from datetime import timedelta

from gymapp import models


def _iso(dt):
    return dt.isoformat()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_create_membership_classifies_plan_and_prefers_aliases(client, now):
    r = client.post(
        "/admin/memberships",
        json={
            "user_id": "u-42",
            "plan_name": "Regular Monthly Boys",
            "status": "active",
            "start_date": _iso(now - timedelta(days=90)),
            "membership_start_date": _iso(now - timedelta(days=14)),
            "membership_end_date": _iso(now + timedelta(days=16)),
        },
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["plan_tier"] == "REGULAR_MONTHLY"
    assert body["start_date"].startswith((now - timedelta(days=14)).date().isoformat())
    assert body["end_date"].startswith((now + timedelta(days=16)).date().isoformat())


def test_create_membership_validates_input(client):
    r = client.post("/admin/memberships", json={"user_id": "u", "plan_name": "", "duration_months": 0})
    assert r.status_code == 422


def test_member_dashboard_lists_only_live_statuses(client, make_membership, now):
    make_membership(user_id="u-1", plan_name="Premium", start_date=now - timedelta(days=14))
    make_membership(user_id="u-1", plan_name="Basic", status="expired")
    make_membership(user_id="u-2", plan_name="Elite")

    r = client.get("/member/u-1/memberships/status")
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 1
    status = rows[0]
    assert status["membership"]["plan_tier"] == "PREMIUM"
    assert status["current_week"] == 3
    assert status["missing_chart_types"] == ["workout", "diet"]
    assert status["chart_state"] == "missing"
    assert status["evaluated_at"].startswith(now.date().isoformat())


def test_membership_status_not_found(client):
    r = client.get("/member/memberships/999/status")
    assert r.status_code == 404
    assert r.json() == {"detail": "Membership not found"}


def test_membership_status_with_charts(client, db_session, make_membership, now):
    m = make_membership(plan_name="Premium", start_date=now - timedelta(days=20), end_date=now + timedelta(days=3))
    db_session.add(models.WeeklyChart(membership_id=m.id, week_number=3, chart_type="workout"))
    db_session.commit()

    r = client.get(f"/member/memberships/{m.id}/status")
    assert r.status_code == 200
    body = r.json()
    assert body["expiration"] == {"is_expired": False, "is_expiring_soon": True, "days_remaining": 3}
    assert body["missing_chart_types"] == ["diet"]
    assert body["charts"]["required_types"] == ["workout", "diet"]


def test_messaging_allowed_and_denied(client, make_membership, make_trainer, now):
    trainer = make_trainer()
    other = make_trainer(name="Coach Lee")
    m = make_membership(
        trainer_addon=True,
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now + timedelta(days=5),
        end_date=now + timedelta(days=30),
    )

    ok = client.get(f"/member/memberships/{m.id}/messaging/{trainer.id}")
    assert ok.status_code == 200
    assert ok.json()["can_message"] is True
    assert ok.json()["reason"] == "active"

    wrong = client.get(f"/member/memberships/{m.id}/messaging/{other.id}")
    assert wrong.status_code == 403
    assert wrong.json()["detail"]["code"] == "TRAINER_NOT_ASSIGNED"


def test_messaging_regular_monthly_expired_membership(client, make_membership, make_trainer, now):
    trainer = make_trainer()
    m = make_membership(
        plan_name="Regular Monthly",
        trainer_addon=True,
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now + timedelta(days=5),
        end_date=now - timedelta(minutes=5),
    )

    r = client.get(f"/member/memberships/{m.id}/messaging/{trainer.id}")
    assert r.status_code == 403
    detail = r.json()["detail"]
    assert detail["code"] == "MEMBERSHIP_EXPIRED"
    assert detail["membership_id"] == m.id


def test_renewal_endpoint(client, make_membership, now):
    m = make_membership(
        status="grace_period",
        end_date=now - timedelta(days=3),
        grace_period_end=now + timedelta(days=12),
    )
    r = client.get(f"/member/memberships/{m.id}/renewal")
    assert r.status_code == 200
    body = r.json()
    assert body["badge"] == "membership_renewal"
    assert body["membership"]["grace_days_remaining"] == 12
    assert body["can_purchase_new_plan"] is False


def test_admin_status_filter(client, make_membership):
    make_membership(status="active")
    make_membership(status="expired")

    all_rows = client.get("/admin/memberships/status").json()
    expired = client.get("/admin/memberships/status", params={"status": "expired"}).json()

    assert len(all_rows) == 2
    assert [row["membership"]["status"] for row in expired] == ["expired"]


def test_assign_trainer(client, make_membership, make_trainer, now):
    trainer = make_trainer()
    m = make_membership(plan_name="Elite", start_date=now - timedelta(days=2), end_date=now + timedelta(days=60))

    r = client.post(f"/admin/memberships/{m.id}/assign-trainer", json={"trainer_id": trainer.id, "duration_months": 1})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["trainer_assigned"] is True
    assert body["trainer_addon"] is True
    assert body["trainer_id"] == trainer.id
    assert body["trainer_period_end"].startswith("2025-04-15")


def test_assign_trainer_rejects_zero_length_period(client, make_membership, make_trainer, now):
    trainer = make_trainer()
    m = make_membership(plan_name="Regular", start_date=now - timedelta(days=2), end_date=now + timedelta(days=28))

    r = client.post(
        f"/admin/memberships/{m.id}/assign-trainer",
        json={"trainer_id": trainer.id, "trainer_period_end": _iso(now)},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "TRAINER_PERIOD_TOO_SHORT"


def test_assign_unknown_trainer(client, make_membership):
    m = make_membership()
    r = client.post(f"/admin/memberships/{m.id}/assign-trainer", json={"trainer_id": 404})
    assert r.status_code == 400


def test_create_trainer(client):
    r = client.post("/admin/trainers", json={"name": "  Coach Ana "})
    assert r.status_code == 201
    assert r.json()["name"] == "Coach Ana"


def test_check_expiries_endpoint(client, make_membership, now):
    m = make_membership(end_date=now - timedelta(days=1))
    r = client.post("/admin/check-expiries")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["moved_to_grace"] == [m.id]


def test_repair_endpoint(client, make_membership, now):
    start = now - timedelta(days=3)
    m = make_membership(
        plan_name="Regular",
        start_date=start,
        end_date=start + timedelta(days=30),
        trainer_addon=True,
        trainer_period_end=start,
    )
    r = client.post("/admin/memberships/repair-trainer-periods")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "repaired": [m.id]}


def test_weekly_chart_store_and_missing_list(client, make_membership, now):
    premium = make_membership(plan_name="Premium", start_date=now - timedelta(days=20))
    make_membership(plan_name="Regular", start_date=now - timedelta(days=20))
    basic = make_membership(plan_name="Basic", start_date=now - timedelta(days=20))

    created = client.post(
        "/admin/weekly-charts",
        json={"membership_id": premium.id, "week_number": 3, "chart_type": "workout", "title": "Week 3"},
    )
    assert created.status_code == 201, created.text
    client.post("/admin/weekly-charts", json={"membership_id": basic.id, "week_number": 3, "chart_type": "workout"})

    missing = client.get("/admin/weekly-charts/missing").json()
    assert [(row["membership_id"], row["missing_types"]) for row in missing] == [(premium.id, ["diet"])]
    assert missing[0]["week"] == 3
    assert missing[0]["uploader"] == "admin"

    listed = client.get("/admin/weekly-charts", params={"membership_id": premium.id}).json()
    assert [c["chart_type"] for c in listed] == ["workout"]

    deleted = client.delete(f"/admin/weekly-charts/{created.json()['id']}")
    assert deleted.json() == {"ok": True}
    assert client.delete(f"/admin/weekly-charts/{created.json()['id']}").status_code == 404


def test_weekly_chart_validation(client, make_membership):
    m = make_membership()
    assert client.post("/admin/weekly-charts", json={"membership_id": m.id, "week_number": 0, "chart_type": "workout"}).status_code == 422
    assert client.post("/admin/weekly-charts", json={"membership_id": m.id, "week_number": 1, "chart_type": "cardio"}).status_code == 422
    assert client.post("/admin/weekly-charts", json={"membership_id": 999, "week_number": 1, "chart_type": "diet"}).status_code == 404


def test_admin_key_guard(client, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "s3cret")

    denied = client.get("/admin/memberships/status")
    assert denied.status_code == 403
    assert denied.json()["detail"]["code"] == "ADMIN_KEY_REQUIRED"

    allowed = client.get("/admin/memberships/status", headers={"X-Admin-Key": "s3cret"})
    assert allowed.status_code == 200


def test_approve_pending_membership_with_trainer(client, make_membership, make_trainer, now):
    trainer = make_trainer()
    m = make_membership(plan_name="Premium", status="pending", trainer_addon=True, duration_months=1)

    r = client.post(f"/admin/memberships/{m.id}/approve", json={"trainer_id": trainer.id})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "active"
    assert body["start_date"] == "2025-03-15T12:00:00"
    assert body["end_date"] == "2025-04-15T12:00:00"
    assert body["trainer_assigned"] is True
    assert body["trainer_id"] == trainer.id
    # free week plus the purchased month
    assert body["trainer_period_end"] == "2025-04-22T12:00:00"

    status = client.get(f"/member/memberships/{m.id}/status").json()
    assert status["can_message_trainer"] is True


def test_approve_without_trainer_only_sets_plan_dates(client, make_membership):
    m = make_membership(plan_name="Regular", status="pending", duration_months=3)

    r = client.post(f"/admin/memberships/{m.id}/approve")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["end_date"] == "2025-06-15T12:00:00"
    assert body["trainer_assigned"] is False
    assert body["trainer_period_end"] is None


def test_approve_rejections(client, db_session, make_membership, make_trainer):
    active = make_membership(status="active")
    r = client.post(f"/admin/memberships/{active.id}/approve")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "MEMBERSHIP_NOT_PENDING"

    trainer = make_trainer()
    regular = make_membership(plan_name="Regular", status="pending")
    r = client.post(f"/admin/memberships/{regular.id}/approve", json={"trainer_id": trainer.id})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "NO_TRAINER_ENTITLEMENT"
    db_session.refresh(regular)
    assert regular.status == "pending"
    assert regular.end_date is None

    assert client.post("/admin/memberships/999/approve").status_code == 404


def test_renew_membership_in_grace(client, make_membership, now):
    m = make_membership(
        status="grace_period",
        start_date=now - timedelta(days=32),
        end_date=now - timedelta(days=2),
        grace_period_end=now + timedelta(days=13),
    )

    r = client.post(f"/admin/memberships/{m.id}/renew")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "active"
    assert body["end_date"] == "2025-04-15T12:00:00"
    assert body["grace_period_end"] is None

    renewal = client.get(f"/member/memberships/{m.id}/renewal").json()
    assert renewal["badge"] is None
    assert renewal["can_purchase_new_plan"] is True


def test_renew_membership_outside_grace_is_rejected(client, make_membership, now):
    m = make_membership(status="active", end_date=now + timedelta(days=10))
    r = client.post(f"/admin/memberships/{m.id}/renew")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "NOT_IN_GRACE_PERIOD"

    ended = make_membership(
        status="grace_period",
        end_date=now - timedelta(days=20),
        grace_period_end=now - timedelta(days=5),
    )
    r = client.post(f"/admin/memberships/{ended.id}/renew")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "GRACE_PERIOD_ENDED"


def test_renew_trainer_extends_period_and_clears_grace(client, make_membership, make_trainer, now):
    trainer = make_trainer()
    m = make_membership(
        plan_name="Elite",
        start_date=now - timedelta(days=30),
        end_date=now + timedelta(days=60),
        trainer_addon=True,
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now - timedelta(days=1),
        trainer_grace_period_end=now + timedelta(days=4),
    )

    r = client.post(f"/admin/memberships/{m.id}/renew-trainer")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["trainer_period_end"] == "2025-04-15T12:00:00"
    assert body["trainer_grace_period_end"] is None

    m2 = make_membership(
        plan_name="Elite",
        end_date=now + timedelta(days=60),
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now - timedelta(days=1),
    )
    r = client.post(f"/admin/memberships/{m2.id}/renew-trainer", json={"duration_months": 3})
    assert r.status_code == 200, r.text
    # capped at the membership end
    assert r.json()["trainer_period_end"] == "2025-05-14T12:00:00"


def test_renew_trainer_rejections(client, make_membership, make_trainer, now):
    trainer = make_trainer()
    running = make_membership(
        end_date=now + timedelta(days=60),
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now + timedelta(days=3),
    )
    r = client.post(f"/admin/memberships/{running.id}/renew-trainer")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "TRAINER_PERIOD_ACTIVE"

    short = make_membership(
        end_date=now + timedelta(days=10),
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now - timedelta(days=1),
    )
    r = client.post(f"/admin/memberships/{short.id}/renew-trainer")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "NOT_ENOUGH_PLAN_DAYS"

    untrained = make_membership(end_date=now + timedelta(days=60))
    r = client.post(f"/admin/memberships/{untrained.id}/renew-trainer")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "NO_TRAINER_ASSIGNED"
