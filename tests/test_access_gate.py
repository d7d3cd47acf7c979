"""
Unit tests for per-job access gating.
Tests access delay, off-market restriction and radius checks.
"""
from datetime import timedelta

from leadengine.services.access_gate import can_access_job
from leadengine.services.geo import haversine_km
from leadengine.services.membership_service import activate_membership
from tests.conftest import NOW, HOME, FAR


def test_haversine_distance():
    """0.18 degrees of latitude is about 20 km."""
    assert abs(haversine_km(HOME, FAR) - 20.0) < 0.1
    assert haversine_km(HOME, HOME) == 0


def test_basic_plan_job_too_new(db, contractor, plans, make_job):
    """Basic plan, job created an hour ago: delayed until created_at + 24h."""
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=2))
    job = make_job(created_at=NOW - timedelta(hours=1))

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is False
    assert decision.reason == "access_delayed"
    assert decision.access_time == job.created_at + timedelta(hours=24)


def test_basic_plan_job_after_delay(db, contractor, plans, make_job):
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=2))
    job = make_job(created_at=NOW - timedelta(hours=25))

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is True
    assert decision.reasons == []
    assert decision.distance_km < 2


def test_default_plan_uses_basic_delay(db, contractor, make_job):
    """Users without a membership are gated like basic members."""
    job = make_job(created_at=NOW - timedelta(hours=10))

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.reason == "access_delayed"
    assert decision.access_time == NOW + timedelta(hours=14)


def test_radius_excludes_far_job(db, contractor, plans, make_job):
    """15 km radius does not reach a job 20 km away."""
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=2))
    job = make_job(location=FAR)

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is False
    assert decision.reason == "outside_radius"
    assert decision.distance_km > 15


def test_unlimited_radius_sees_far_job(db, contractor, plans, make_job):
    """Premium has no radius limit."""
    activate_membership(db, contractor.id, plans[("contractor", "premium")].id, now=NOW - timedelta(days=2))
    job = make_job(location=FAR)

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is True
    assert decision.distance_km is None


def test_job_without_location_denied_when_radius_applies(db, contractor, plans, make_job):
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=2))
    job = make_job(location=None)

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is False
    assert decision.reason == "job_location_unknown"


def test_unknown_home_skips_radius(db, contractor, plans, make_job):
    contractor.home_lat = None
    contractor.home_lng = None
    db.commit()
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=2))
    job = make_job(location=FAR)

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is True


def test_off_market_requires_access(db, contractor, plans, make_job):
    activate_membership(db, contractor.id, plans[("contractor", "standard")].id, now=NOW - timedelta(days=2))
    job = make_job(job_type="off_market")

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is False
    assert decision.reason == "off_market_restricted"


def test_premium_sees_off_market_immediately(db, contractor, plans, make_job):
    activate_membership(db, contractor.id, plans[("contractor", "premium")].id, now=NOW - timedelta(days=2))
    job = make_job(job_type="off_market", created_at=NOW - timedelta(minutes=5))

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.can_access is True


def test_every_failing_check_is_reported(db, contractor, plans, make_job):
    """Checks are independent: one denial does not hide the others."""
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=2))
    job = make_job(job_type="off_market", location=FAR, created_at=NOW - timedelta(hours=1))

    decision = can_access_job(db, contractor.id, job, NOW)

    assert decision.reason == "off_market_restricted"
    assert decision.reasons == ["off_market_restricted", "access_delayed", "outside_radius"]
