"""
Unit tests for the contractor job list.
Tests service matching, gating, ordering and pagination.
"""
from datetime import timedelta

from leadengine.db.models.bid import Bid
from leadengine.schemas.job import JobFilters
from leadengine.services.access_gate import list_visible_jobs
from leadengine.services.membership_service import activate_membership
from tests.conftest import NOW, FAR


def place_existing_bid(db, contractor_id, job_id):
    db.add(Bid(
        job_id=job_id,
        contractor_id=contractor_id,
        bid_amount=100.0,
        message="Existing bid",
        start_date=NOW,
        end_date=NOW + timedelta(days=1),
    ))
    db.commit()


def titles(result):
    return [job.title for job in result["jobs"]]


def test_basic_contractor_listing(db, contractor, plans, make_job):
    """Only old-enough, nearby, matching-service jobs without a bid are listed."""
    activate_membership(db, contractor.id, plans[("contractor", "basic")].id, now=NOW - timedelta(days=2))
    make_job(title="Visible plumbing")
    make_job(title="Too new", created_at=NOW - timedelta(hours=2))
    make_job(title="Too far", service="electrical", location=FAR)
    make_job(title="Wrong service", service="roofing")
    make_job(title="Off market", job_type="off_market")
    make_job(title="Closed", status="completed")
    already = make_job(title="Already bid")
    place_existing_bid(db, contractor.id, already.id)

    result = list_visible_jobs(db, contractor.id, now=NOW)

    assert titles(result) == ["Visible plumbing"]
    assert result["total"] == 1
    assert result["jobs"][0].distance_km < 2


def test_unlimited_premium_listing_puts_off_market_first(db, contractor, plans, make_job):
    """Featured-listing contractors see off-market jobs ahead of newer jobs."""
    activate_membership(db, contractor.id, plans[("contractor", "premium")].id, now=NOW - timedelta(days=2))
    make_job(title="Newest regular", created_at=NOW - timedelta(minutes=10))
    make_job(title="Far regular", location=FAR, created_at=NOW - timedelta(hours=5))
    make_job(title="Old off market", job_type="off_market", created_at=NOW - timedelta(days=3))

    result = list_visible_jobs(db, contractor.id, now=NOW)

    assert titles(result) == ["Old off market", "Newest regular", "Far regular"]


def test_newest_first_without_featured_listing(db, contractor, plans, make_job):
    activate_membership(db, contractor.id, plans[("contractor", "standard")].id, now=NOW - timedelta(days=2))
    make_job(title="Older", created_at=NOW - timedelta(days=3))
    make_job(title="Newer", created_at=NOW - timedelta(hours=13))

    result = list_visible_jobs(db, contractor.id, now=NOW)

    assert titles(result) == ["Newer", "Older"]


def test_search_matches_title_and_description(db, contractor, make_job):
    make_job(title="Boiler service", description="Annual check")
    make_job(title="Tap repair", description="Replace BOILER valve")
    make_job(title="Shower", description="New tray")

    result = list_visible_jobs(db, contractor.id, JobFilters(search="boiler"), now=NOW)

    assert sorted(titles(result)) == ["Boiler service", "Tap repair"]


def test_service_filter(db, contractor, make_job):
    make_job(title="Plumbing job", service="plumbing")
    make_job(title="Electrical job", service="electrical")

    result = list_visible_jobs(db, contractor.id, JobFilters(service="electrical"), now=NOW)
    assert titles(result) == ["Electrical job"]

    result = list_visible_jobs(db, contractor.id, JobFilters(service="roofing"), now=NOW)
    assert result["total"] == 0


def test_contractor_without_services_sees_nothing(db, contractor, make_job):
    contractor.services = []
    db.commit()
    make_job()

    result = list_visible_jobs(db, contractor.id, now=NOW)

    assert result["jobs"] == []
    assert result["pagination"].total_pages == 0


def test_unknown_status_falls_back_to_open(db, contractor, make_job):
    make_job(title="Open job")
    make_job(title="Finished job", status="completed")

    result = list_visible_jobs(db, contractor.id, JobFilters(status="archived"), now=NOW)

    assert titles(result) == ["Open job"]


def test_non_open_status_skips_bid_and_delay_gates(db, contractor, make_job):
    """Listings for in-progress jobs include ones already bid on."""
    job = make_job(title="In progress", status="inprogress", created_at=NOW - timedelta(hours=1))
    place_existing_bid(db, contractor.id, job.id)

    result = list_visible_jobs(db, contractor.id, JobFilters(status="inprogress"), now=NOW)

    assert titles(result) == ["In progress"]


def test_pagination(db, contractor, make_job):
    for index in range(5):
        make_job(title=f"Job {index}", created_at=NOW - timedelta(days=2, hours=index))

    result = list_visible_jobs(db, contractor.id, page=2, limit=2, now=NOW)

    assert titles(result) == ["Job 2", "Job 3"]
    assert result["total"] == 5
    assert result["pagination"].total_pages == 3
    assert result["pagination"].has_next_page is True
    assert result["pagination"].has_prev_page is True


def test_page_size_is_clamped(db, contractor, make_job):
    make_job()

    result = list_visible_jobs(db, contractor.id, page=0, limit=500, now=NOW)

    assert result["pagination"].page == 1
    assert result["pagination"].limit == 100


def test_unlimited_radius_pages_in_sql(db, contractor, plans, make_job):
    """Without a radius gate every matching job counts, including ones with no location."""
    activate_membership(db, contractor.id, plans[("contractor", "premium")].id, now=NOW - timedelta(days=2))
    make_job(title="No location", location=None, created_at=NOW - timedelta(hours=1))
    for index in range(4):
        make_job(title=f"Far {index}", location=FAR, created_at=NOW - timedelta(hours=2 + index))

    result = list_visible_jobs(db, contractor.id, page=2, limit=2, now=NOW)

    assert titles(result) == ["Far 1", "Far 2"]
    assert result["total"] == 5
    assert result["pagination"].total_pages == 3
    assert all(job.distance_km is None for job in result["jobs"])


def test_contractor_without_home_skips_radius_gate(db, contractor, make_job):
    contractor.home_lat = None
    contractor.home_lng = None
    db.commit()
    make_job(title="Far away", location=FAR)
    make_job(title="Unknown location", location=None)

    result = list_visible_jobs(db, contractor.id, now=NOW)

    assert result["total"] == 2
    assert sorted(titles(result)) == ["Far away", "Unknown location"]
