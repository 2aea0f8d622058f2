# tests/test_expiry_sweep.py
from datetime import timedelta

import pytest

from gymapp.expiry_sweep import repair_trainer_periods, run_expiry_sweep


def test_active_membership_past_end_moves_to_grace(db_session, make_membership, now):
    m = make_membership(end_date=now - timedelta(days=1))

    report = run_expiry_sweep(db_session, now)

    db_session.refresh(m)
    assert report.moved_to_grace == [m.id]
    assert m.status == "grace_period"
    assert m.grace_period_end == m.end_date + timedelta(days=15)
    assert report.expired == []


def test_grace_period_over_expires(db_session, make_membership, now):
    m = make_membership(
        status="grace_period",
        end_date=now - timedelta(days=20),
        grace_period_end=now - timedelta(days=5),
    )

    report = run_expiry_sweep(db_session, now)

    db_session.refresh(m)
    assert report.expired == [m.id]
    assert m.status == "expired"


def test_long_overdue_active_membership_goes_straight_to_expired(db_session, make_membership, now):
    m = make_membership(end_date=now - timedelta(days=40))

    report = run_expiry_sweep(db_session, now)

    db_session.refresh(m)
    assert report.moved_to_grace == [m.id]
    assert report.expired == [m.id]
    assert m.status == "expired"


def test_untouched_rows_and_expiring_counts(db_session, make_membership, now):
    make_membership(end_date=now + timedelta(days=3))
    make_membership(end_date=now + timedelta(days=30))
    make_membership(status="pending", end_date=now - timedelta(days=3))

    report = run_expiry_sweep(db_session, now)

    assert report.expiring_memberships == 1
    assert report.moved_to_grace == []
    assert report.expired == []


def test_grace_reminder_on_milestone(db_session, make_membership, now):
    m = make_membership(
        status="grace_period",
        end_date=now - timedelta(days=8),
        grace_period_end=now + timedelta(days=7),
    )

    report = run_expiry_sweep(db_session, now)

    assert report.grace_reminders == [(m.id, 7)]


def test_trainer_period_end_starts_trainer_grace(db_session, make_membership, make_trainer, now):
    trainer = make_trainer()
    m = make_membership(
        end_date=now + timedelta(days=40),
        trainer_addon=True,
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now - timedelta(days=1),
    )

    report = run_expiry_sweep(db_session, now)

    db_session.refresh(m)
    assert report.trainer_moved_to_grace == [m.id]
    assert m.trainer_grace_period_end == m.trainer_period_end + timedelta(days=5)
    assert m.trainer_assigned is True


def test_trainer_grace_over_unassigns(db_session, make_membership, make_trainer, now):
    trainer = make_trainer()
    m = make_membership(
        end_date=now + timedelta(days=40),
        trainer_addon=True,
        trainer_assigned=True,
        trainer_id=trainer.id,
        trainer_period_end=now - timedelta(days=10),
        trainer_grace_period_end=now - timedelta(days=5),
    )

    report = run_expiry_sweep(db_session, now)

    db_session.refresh(m)
    assert report.trainer_unassigned == [m.id]
    assert m.trainer_assigned is False
    assert m.trainer_id is None
    assert m.trainer_period_end is None


def test_sweep_rolls_back_on_failure(db_session, make_membership, now, monkeypatch):
    m = make_membership(end_date=now - timedelta(days=1))

    def boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(db_session, "commit", boom)
    with pytest.raises(RuntimeError):
        run_expiry_sweep(db_session, now)

    db_session.refresh(m)
    assert m.status == "active"


def test_repair_rewrites_zero_length_regular_periods(db_session, make_membership, now):
    start = now - timedelta(days=3)
    broken = make_membership(
        plan_name="Regular",
        start_date=start,
        end_date=start + timedelta(days=30),
        trainer_addon=True,
        trainer_period_end=start,
    )
    fine = make_membership(
        plan_name="Premium",
        start_date=start,
        end_date=start + timedelta(days=30),
        trainer_addon=True,
        trainer_period_end=start,
    )

    repaired = repair_trainer_periods(db_session, now)

    db_session.refresh(broken)
    db_session.refresh(fine)
    assert repaired == [broken.id]
    assert broken.trainer_period_end == start + timedelta(days=30)
    assert fine.trainer_period_end == start
