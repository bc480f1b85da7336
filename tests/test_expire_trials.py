"""
Tests for the trial expiry job
"""

from datetime import datetime, timedelta

from app.models.tenant import Tenant, TenantPlan, TenantStatus
from app.scripts.expire_trials import expire_lapsed_trials


def test_expires_only_lapsed_trials(db, factory):
    lapsed = factory.tenant("lapsed", plan=TenantPlan.TRIAL, trial_ends_at=datetime.utcnow() - timedelta(days=1))
    running = factory.tenant("running", plan=TenantPlan.TRIAL)
    paid = factory.tenant("paid", plan=TenantPlan.STARTER, trial_ends_at=datetime.utcnow() - timedelta(days=1))

    assert expire_lapsed_trials(db) == {"processed": 1, "expired": 1}

    db.expire_all()
    assert db.get(Tenant, lapsed.id).status == TenantStatus.TRIAL_EXPIRED
    assert db.get(Tenant, running.id).status == TenantStatus.ACTIVE
    assert db.get(Tenant, paid.id).status == TenantStatus.ACTIVE


def test_nothing_to_do(db, factory):
    factory.tenant("fresh", plan=TenantPlan.TRIAL)
    assert expire_lapsed_trials(db) == {"processed": 0, "expired": 0}


def test_suspended_trial_left_alone(db, factory):
    factory.tenant(
        "paused",
        plan=TenantPlan.TRIAL,
        status=TenantStatus.SUSPENDED,
        trial_ends_at=datetime.utcnow() - timedelta(days=1),
    )
    assert expire_lapsed_trials(db) == {"processed": 0, "expired": 0}
