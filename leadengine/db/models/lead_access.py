from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from leadengine.core.clock import utcnow
from leadengine.db.base import Base


class LeadAccessRecord(Base):
    """
    Append-only fact: one row per lead credit consumed by a bid.

    Rows are never updated; they are deleted only when a bid saga compensates.
    """
    __tablename__ = "lead_access_records"

    id = Column(Integer, primary_key=True, index=True)
    contractor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False)
    bid_id = Column(Integer, ForeignKey("bids.id"), nullable=False, index=True)
    membership_tier = Column(String, nullable=False)  # basic | standard | premium
    billing_period = Column(String, nullable=True)
    accessed_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Composite index for window counts
    __table_args__ = (
        Index("idx_lead_contractor_accessed", "contractor_id", "accessed_at"),
        Index("idx_lead_job_contractor", "job_id", "contractor_id"),
    )
