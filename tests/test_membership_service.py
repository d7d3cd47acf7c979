"""
Unit tests for membership lifecycle and the plan catalog.
"""
import pytest
from datetime import timedelta

from leadengine.core.cache import TTLCache
from leadengine.core.errors import NotFoundError, PlanMismatchError, ValidationError
from leadengine.db.models.membership_period import MembershipPeriod
from leadengine.db.models.membership_plan import MembershipPlan
from leadengine.services.benefit_resolver import get_effective_plan
from leadengine.services.membership_service import (
    activate_membership,
    cancel_membership,
    expire_lapsed_periods,
    list_plans,
    membership_history,
    seed_plans,
)
from leadengine.services.upgrade_calculator import upgrade_membership
from tests.conftest import NOW, FakeClock


def test_seed_plans_is_idempotent(db):
    assert seed_plans(db) == 6
    assert seed_plans(db) == 0
    assert db.query(MembershipPlan).count() == 6


def test_list_plans_by_category(db, plans):
    contractor_plans = list_plans(db, "contractor")

    assert [plan.tier for plan in contractor_plans] == ["basic", "standard", "premium"]
    assert contractor_plans[2].leads_per_month is None
    assert len(list_plans(db)) == 6

    with pytest.raises(ValidationError):
        list_plans(db, "vendor")


def test_list_plans_reads_through_cache(db, plans):
    cache = TTLCache(ttl_seconds=300, clock=FakeClock())
    assert len(list_plans(db, cache=cache)) == 6

    plans[("customer", "premium")].is_active = False
    db.commit()
    assert len(list_plans(db, cache=cache)) == 6

    seed_plans(db, cache=cache)
    assert len(list_plans(db, cache=cache)) == 5


def test_activate_copies_plan_into_snapshot(db, contractor, plans):
    period = activate_membership(db, contractor.id, plans[("contractor", "standard")].id, "yearly", now=NOW)

    assert period.status == "active"
    assert period.end_date == NOW + timedelta(days=365)
    assert period.lead_reset_anchor == NOW
    assert period.snapshot()["radius_km"] == 50
    assert period.snapshot()["verified_badge"] is True


def test_activate_twice_rejected(db, contractor, plans):
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW)

    with pytest.raises(ValidationError):
        activate_membership(db, contractor.id, plans[("contractor", "premium")].id, now=NOW)


def test_activate_validation(db, contractor, plans):
    with pytest.raises(ValidationError):
        activate_membership(db, contractor.id, plans[("contractor", "basic")].id, "weekly", now=NOW)
    with pytest.raises(NotFoundError):
        activate_membership(db, 9999, plans[("contractor", "basic")].id, now=NOW)
    with pytest.raises(NotFoundError):
        activate_membership(db, contractor.id, 9999, now=NOW)


def test_expire_lapsed_periods(db, contractor, customer, plans):
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=31))
    activate_membership(db, customer.id, plans[("customer", "basic")].id, now=NOW - timedelta(days=5))

    assert expire_lapsed_periods(db, now=NOW) == 1

    statuses = {
        period.user_id: period.status
        for period in db.query(MembershipPeriod).all()
    }
    assert statuses == {contractor.id: "expired", customer.id: "active"}


def test_cancel_membership_falls_back_to_default(db, contractor, plans):
    activate_membership(db, contractor.id, plans[("contractor", "premium")].id, now=NOW)

    period = cancel_membership(db, contractor.id, now=NOW)

    assert period.status == "cancelled"
    assert period.end_date == NOW
    assert get_effective_plan(db, contractor.id, NOW).source == "default"
    with pytest.raises(NotFoundError):
        cancel_membership(db, contractor.id, now=NOW)


def test_activate_rejects_other_category_plan(db, contractor, customer, plans):
    with pytest.raises(PlanMismatchError) as exc_info:
        activate_membership(db, contractor.id, plans[("customer", "premium")].id, now=NOW)

    assert exc_info.value.details["user_role"] == "contractor"
    with pytest.raises(PlanMismatchError):
        activate_membership(db, customer.id, plans[("contractor", "basic")].id, now=NOW)
    assert db.query(MembershipPeriod).count() == 0


def test_history_follows_upgrade_lineage(db, contractor, plans):
    first = activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=10))
    upgrade_membership(db, contractor.id, plans[("contractor", "premium")].id, now=NOW)

    history = membership_history(db, contractor.id).periods

    assert [period.tier for period in history] == ["premium", "basic"]
    assert [period.status for period in history] == ["active", "upgraded"]
    assert history[0].upgraded_from_id == first.id
    assert history[1].upgraded_to_id == history[0].id


def test_history_empty_for_default_users(db, customer, plans):
    assert membership_history(db, customer.id).periods == []
