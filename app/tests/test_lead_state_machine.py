"""
Unit tests for lead, tenant and company model rules
"""

import pytest
from datetime import datetime, timedelta
import uuid

from app.models.company import CompanyPlan, calculate_company_price
from app.models.lead import Lead, LeadStatus, STATUS_PROBABILITY, compute_weighted_value
from app.models.tenant import Tenant, TenantPlan, TenantStatus


def make_lead(**fields) -> Lead:
    return Lead(
        id=uuid.uuid4(),
        tenant_id=uuid.uuid4(),
        company_id=uuid.uuid4(),
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        **fields
    )


def make_tenant(**fields) -> Tenant:
    return Tenant(id=uuid.uuid4(), name="Acme", subdomain="acme", email="ops@acme.com", **fields)


class TestLeadStateMachine:
    """Lead conversion and pipeline transitions"""

    def test_initial_state(self):
        lead = make_lead()

        assert lead.status == LeadStatus.NEW
        assert lead.probability == 10
        assert lead.converted_to_client is False

    def test_can_convert_from_any_stage(self):
        for status in LeadStatus:
            assert make_lead(status=status).can_convert() is True

    def test_cannot_convert_twice(self):
        lead = make_lead(converted_to_client=True)

        assert lead.can_convert() is False
        assert lead.can_modify() is False

    def test_status_change_sets_stage_probability(self):
        lead = make_lead()

        lead.change_status(LeadStatus.PROPOSAL)

        assert lead.status == LeadStatus.PROPOSAL
        assert lead.probability == STATUS_PROBABILITY[LeadStatus.PROPOSAL]

    def test_closed_lost_has_zero_probability(self):
        lead = make_lead(status=LeadStatus.NEGOTIATION, probability=80)
        lead.change_status(LeadStatus.CLOSED_LOST)
        assert lead.probability == 0

    def test_explicit_probability_wins(self):
        lead = make_lead()
        lead.change_status(LeadStatus.QUALIFIED, probability=55)
        assert lead.probability == 55

    def test_same_status_keeps_probability(self):
        lead = make_lead(status=LeadStatus.QUALIFIED, probability=45)
        lead.change_status("qualified")
        assert lead.probability == 45

    def test_weighted_value(self):
        assert make_lead(estimated_value=5000, probability=60).weighted_value == 3000
        assert compute_weighted_value(None, 50) == 0


class TestLeadSchedule:
    """Overdue and close date helpers"""

    def test_overdue_when_open_and_past_close(self):
        lead = make_lead(expected_close_date=datetime.utcnow() - timedelta(days=1))
        assert lead.is_overdue is True

    def test_closed_lead_is_never_overdue(self):
        lead = make_lead(
            expected_close_date=datetime.utcnow() - timedelta(days=1),
            status=LeadStatus.CLOSED_WON,
        )
        assert lead.is_overdue is False

    def test_no_close_date(self):
        lead = make_lead()

        assert lead.is_overdue is False
        assert lead.days_until_close is None

    def test_days_until_close_rounds_up(self):
        lead = make_lead(expected_close_date=datetime.utcnow() + timedelta(days=2, hours=1))
        assert lead.days_until_close == 3


class TestTenantLifecycle:
    """Trial expiry and plan changes"""

    def test_trial_active(self):
        tenant = make_tenant(trial_ends_at=datetime.utcnow() + timedelta(days=3))

        assert tenant.is_trial_active is True
        assert tenant.is_usable() is True
        assert tenant.trial_days_remaining == 3

    def test_lapsed_trial_expires(self):
        tenant = make_tenant(trial_ends_at=datetime.utcnow() - timedelta(minutes=1))

        assert tenant.is_usable() is False
        assert tenant.expire_trial_if_due() is True
        assert tenant.status == TenantStatus.TRIAL_EXPIRED
        assert tenant.expire_trial_if_due() is False

    def test_paid_plan_never_expires(self):
        tenant = make_tenant(plan=TenantPlan.STARTER, trial_ends_at=datetime.utcnow() - timedelta(days=1))

        assert tenant.expire_trial_if_due() is False
        assert tenant.is_usable() is True

    def test_suspended_is_not_usable(self):
        tenant = make_tenant(plan=TenantPlan.PROFESSIONAL, status=TenantStatus.SUSPENDED)
        assert tenant.is_usable() is False

    def test_apply_plan_copies_limits(self):
        tenant = make_tenant()

        tenant.apply_plan(TenantPlan.PROFESSIONAL)

        assert tenant.plan == TenantPlan.PROFESSIONAL
        assert tenant.max_users == 50
        assert tenant.has_feature("api_access") is True
        assert tenant.is_trial_active is False

    def test_user_capacity(self):
        tenant = make_tenant(max_users=5, current_users=4)

        assert tenant.can_add_user() is True
        assert tenant.can_add_user(2) is False


class TestCompanyPricing:

    @pytest.mark.parametrize("plan,seats,price", [
        (CompanyPlan.STARTER, 5, 50),
        (CompanyPlan.STARTER, 20, 180),
        (CompanyPlan.PROFESSIONAL, 10, 250),
        (CompanyPlan.ENTERPRISE, 50, 2000),
    ])
    def test_volume_discounts(self, plan, seats, price):
        assert calculate_company_price(plan, seats) == price
