"""
Unit tests for membership upgrades.
Tests carry-over arithmetic, per-dimension merge rules and rejections.
"""
import pytest
from datetime import datetime, timedelta

from leadengine.core.errors import NotFoundError, PlanMismatchError
from leadengine.core.plan_limits import DEFAULT_CONTRACTOR_BENEFITS
from leadengine.db.models.membership_period import MembershipPeriod
from leadengine.services.benefit_resolver import get_effective_plan
from leadengine.services.lead_ledger import check_lead_limit, increment_period_counter
from leadengine.services.membership_service import activate_membership
from leadengine.services.upgrade_calculator import (
    calculate_effective_benefits,
    merge_max_unlimited,
    remaining_days,
    upgrade_membership,
)
from tests.conftest import NOW

UPGRADE_AT = NOW + timedelta(days=10)


def benefits(**overrides):
    values = {key: value for key, value in DEFAULT_CONTRACTOR_BENEFITS.items() if key != "tier"}
    values.update(overrides)
    return values


@pytest.fixture
def basic_monthly(db, contractor, plans):
    return activate_membership(db, contractor.id, plans[("contractor", "basic")].id, "monthly", now=NOW)


def test_basic_monthly_to_basic_yearly_accumulates_leads(db, contractor, plans, basic_monthly):
    """25 unused + 25 * 12 = 325 leads; 20 days left + 365."""
    result = upgrade_membership(db, contractor.id, plans[("contractor", "basic")].id, "yearly", now=UPGRADE_AT)

    assert result.bonus_leads == 25
    assert result.accumulated_leads == 325
    assert result.remaining_days == 20
    assert result.new_plan_duration_days == 365
    assert result.accumulated_days == 385
    assert result.new_end_date == UPGRADE_AT + timedelta(days=385)

    status = check_lead_limit(db, contractor.id, UPGRADE_AT)
    assert status.leads_limit == 325
    assert status.billing_period == "yearly"


def test_upgrade_writes_lineage(db, contractor, plans, basic_monthly):
    result = upgrade_membership(db, contractor.id, plans[("contractor", "standard")].id, now=UPGRADE_AT)

    db.expire_all()
    old = db.get(MembershipPeriod, result.previous_period_id)
    new = db.get(MembershipPeriod, result.new_period_id)

    assert old.status == "upgraded"
    assert old.upgraded_to_id == new.id
    assert new.status == "active"
    assert new.upgraded_from_id == old.id
    assert new.start_date == UPGRADE_AT
    assert new.lead_reset_anchor == UPGRADE_AT
    assert new.used_this_month == 0
    assert db.query(MembershipPeriod).filter(
        MembershipPeriod.user_id == contractor.id,
        MembershipPeriod.status == "active",
    ).count() == 1


def test_basic_to_standard_merges_best_of(db, contractor, plans, basic_monthly):
    """10 used of 25: 15 carried over on top of standard's 40."""
    increment_period_counter(db, basic_monthly.id, "used_this_month", delta=10)

    result = upgrade_membership(db, contractor.id, plans[("contractor", "standard")].id, now=UPGRADE_AT)

    assert result.bonus_leads == 15
    assert result.accumulated_leads == 55
    assert result.effective.leads_per_month == 40
    assert result.effective.radius_km == 50
    assert result.effective.access_delay_hours == 12
    assert result.effective.verified_badge is True

    plan = get_effective_plan(db, contractor.id, UPGRADE_AT)
    assert plan.tier == "standard"
    assert plan.accumulated_leads == 55


def test_upgrade_to_unlimited(db, contractor, plans, basic_monthly):
    result = upgrade_membership(db, contractor.id, plans[("contractor", "premium")].id, now=UPGRADE_AT)

    assert result.effective.leads_per_month is None
    assert result.effective.radius_km is None
    assert result.effective.access_delay_hours == 0
    assert result.accumulated_leads is None
    assert check_lead_limit(db, contractor.id, UPGRADE_AT).unlimited is True


def test_downgrade_rejected(db, contractor, plans):
    activate_membership(db, contractor.id, plans[("contractor", "standard")].id, now=NOW)

    with pytest.raises(PlanMismatchError):
        upgrade_membership(db, contractor.id, plans[("contractor", "basic")].id, now=UPGRADE_AT)


def test_same_plan_and_period_rejected(db, contractor, plans, basic_monthly):
    with pytest.raises(PlanMismatchError):
        upgrade_membership(db, contractor.id, plans[("contractor", "basic")].id, "monthly", now=UPGRADE_AT)


def test_yearly_to_monthly_same_tier_rejected(db, contractor, plans):
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, "yearly", now=NOW)

    with pytest.raises(PlanMismatchError):
        upgrade_membership(db, contractor.id, plans[("contractor", "basic")].id, "monthly", now=UPGRADE_AT)


def test_cross_category_rejected(db, contractor, plans, basic_monthly):
    with pytest.raises(PlanMismatchError):
        upgrade_membership(db, contractor.id, plans[("customer", "premium")].id, now=UPGRADE_AT)

    db.refresh(basic_monthly)
    assert basic_monthly.status == "active"


def test_upgrade_without_membership(db, contractor, plans):
    with pytest.raises(NotFoundError):
        upgrade_membership(db, contractor.id, plans[("contractor", "standard")].id, now=NOW)


def test_upgrade_to_missing_or_inactive_plan(db, contractor, plans, basic_monthly):
    with pytest.raises(NotFoundError):
        upgrade_membership(db, contractor.id, 9999, now=UPGRADE_AT)

    standard = plans[("contractor", "standard")]
    standard.is_active = False
    db.commit()
    with pytest.raises(NotFoundError):
        upgrade_membership(db, contractor.id, standard.id, now=UPGRADE_AT)


def test_customer_upgrade_merges_customer_dimensions(db, customer, plans):
    activate_membership(db, customer.id, plans[("customer", "basic")].id, now=NOW)

    result = upgrade_membership(db, customer.id, plans[("customer", "standard")].id, now=UPGRADE_AT)
    assert result.effective.max_properties == 5
    assert result.effective.platform_fee_percent == 50
    assert result.accumulated_leads is None

    result = upgrade_membership(db, customer.id, plans[("customer", "premium")].id, now=UPGRADE_AT)
    assert result.effective.max_properties is None
    assert result.effective.platform_fee_percent == 0
    assert result.effective.property_type == "commercial"
    assert result.effective.free_calculators is True


def test_merge_never_regresses():
    """A stronger old snapshot survives a new plan with weaker values."""
    old = benefits(leads_per_month=60, radius_km=100, access_delay_hours=6, featured_listing=True)
    new = benefits(leads_per_month=40, radius_km=50, access_delay_hours=12)

    calculation = calculate_effective_benefits(
        old, new, "contractor", "monthly", old_lead_limit=60, old_leads_used=50, days_left=3,
    )
    effective = calculation["effective"]

    assert effective["leads_per_month"] == 60
    assert effective["radius_km"] == 100
    assert effective["access_delay_hours"] == 6
    assert effective["featured_listing"] is True
    assert calculation["bonus_leads"] == 10
    assert calculation["accumulated_leads"] == 50
    assert calculation["accumulated_days"] == 33


def test_bonus_never_negative():
    calculation = calculate_effective_benefits(
        benefits(), benefits(), "contractor", "monthly", old_lead_limit=25, old_leads_used=30,
    )

    assert calculation["bonus_leads"] == 0
    assert calculation["accumulated_leads"] == 25


def test_foreign_dimensions_take_new_plan_values():
    """A customer upgrade copies contractor dimensions straight from the new plan."""
    old = benefits(radius_km=100, max_properties=1, platform_fee_percent=100)
    new = benefits(radius_km=20, max_properties=5, platform_fee_percent=50)

    effective = calculate_effective_benefits(old, new, "customer", "monthly")["effective"]

    assert effective["radius_km"] == 20
    assert effective["max_properties"] == 5


def test_merge_max_unlimited():
    assert merge_max_unlimited(15, 50) == 50
    assert merge_max_unlimited(None, 50) is None
    assert merge_max_unlimited(15, None) is None


def test_remaining_days_rounds_up():
    now = datetime(2026, 1, 1, 12, 0)

    assert remaining_days(now + timedelta(days=1, hours=12), now) == 2
    assert remaining_days(now + timedelta(days=3), now) == 3
    assert remaining_days(now - timedelta(days=1), now) == 0
