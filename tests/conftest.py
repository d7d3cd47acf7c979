"""
Shared fixtures: a file-backed SQLite database per test, the plan catalog,
users and job factories.

The database lives in a temp file rather than memory so the bid fan-out
threads each get their own connection.
"""
import os

# Token signing needs a key and logs stay on the console
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_DIR", "")

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadengine.db.base import Base
from leadengine.db import models  # noqa: F401
from leadengine.db.models.job import Job
from leadengine.db.models.membership_plan import MembershipPlan
from leadengine.db.models.property import Property
from leadengine.db.models.user import User
from leadengine.services.membership_service import seed_plans

NOW = datetime(2026, 1, 15, 12, 0, 0)

# Central London; NEAR is ~1.1 km away, FAR ~20 km
HOME = (51.5074, -0.1278)
NEAR = (51.5174, -0.1278)
FAR = (51.6874, -0.1278)


class FakeClock:
    """Monotonic clock stand-in advanced by hand."""
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture(scope="function")
def engine(tmp_path):
    """Create a fresh database file for each test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'leadengine_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """Provide a database session for tests."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def plans(db):
    """Seed the catalog and index plans by (category, tier)."""
    seed_plans(db)
    return {
        (plan.user_category, plan.tier): plan
        for plan in db.query(MembershipPlan).all()
    }


@pytest.fixture
def contractor(db):
    """Create a contractor living at HOME offering plumbing and electrical."""
    user = User(
        full_name="Casey Contractor",
        email="contractor@example.com",
        role="contractor",
        home_lat=HOME[0],
        home_lng=HOME[1],
        services=["plumbing", "electrical"],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    """Create a customer account."""
    user = User(
        full_name="Morgan Customer",
        email="customer@example.com",
        role="customer",
        services=[],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_job(db, customer):
    """Factory creating a job, optionally at a (lat, lng) location."""
    def _make_job(
        title="Fix leaking pipe",
        service="plumbing",
        location=NEAR,
        created_at=None,
        job_type="regular",
        status="open",
        description="Kitchen sink leaks under the counter",
    ):
        property_id = None
        if location is not None:
            prop = Property(
                owner_id=customer.id,
                title=f"Property for {title}",
                latitude=location[0],
                longitude=location[1],
            )
            db.add(prop)
            db.commit()
            property_id = prop.id

        job = Job(
            created_by=customer.id,
            property_id=property_id,
            title=title,
            description=description,
            service=service,
            estimate=500.0,
            type=job_type,
            status=status,
            created_at=created_at or NOW - timedelta(hours=48),
        )
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make_job
