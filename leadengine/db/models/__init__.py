"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.
"""
from leadengine.db.models.user import User
from leadengine.db.models.membership_plan import MembershipPlan
from leadengine.db.models.membership_period import MembershipPeriod, SNAPSHOT_COLUMNS
from leadengine.db.models.property import Property
from leadengine.db.models.job import Job, JobBidRef, JOB_STATUSES
from leadengine.db.models.bid import Bid
from leadengine.db.models.lead_access import LeadAccessRecord

__all__ = [
    "User",
    "MembershipPlan",
    "MembershipPeriod",
    "SNAPSHOT_COLUMNS",
    "Property",
    "Job",
    "JobBidRef",
    "JOB_STATUSES",
    "Bid",
    "LeadAccessRecord",
]
