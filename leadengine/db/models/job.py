"""
Job request model and the bid references pushed onto it.
"""
from sqlalchemy import Column, Integer, String, Text, Float, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from leadengine.core.clock import utcnow
from leadengine.db.base import Base

JOB_STATUSES = ["open", "inprogress", "hold", "completed", "cancelled"]


class Job(Base):
    """A customer's job request that contractors bid on."""
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    service = Column(String, nullable=False, index=True)
    estimate = Column(Float, nullable=True)
    type = Column(String, nullable=False, default="regular")  # regular | off_market | commercial
    status = Column(String, nullable=False, default="open", index=True)

    # Set when the customer accepts a bid (plain column: bids already reference jobs)
    accepted_bid_id = Column(Integer, nullable=True)
    accepted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    job_property = relationship("Property")
    bid_refs = relationship("JobBidRef", back_populates="job")

    __table_args__ = (
        Index("idx_job_status_service_created", "status", "service", "created_at"),
    )

    @property
    def bid_ids(self):
        return [ref.bid_id for ref in self.bid_refs]

    def __repr__(self):
        return f"<Job(id={self.id}, title='{self.title}', status='{self.status}')>"


class JobBidRef(Base):
    """A bid pushed onto a job's bid list."""
    __tablename__ = "job_bid_refs"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    bid_id = Column(Integer, ForeignKey("bids.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    job = relationship("Job", back_populates="bid_refs")

    __table_args__ = (
        UniqueConstraint("job_id", "bid_id", name="uq_job_bid_ref"),
    )
