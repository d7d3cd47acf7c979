from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from leadengine.core.clock import utcnow
from leadengine.db.base import Base

class Bid(Base):
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    contractor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    bid_amount = Column(Float, nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending | accepted | rejected

    # Proposed timeline
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    materials_included = Column(Boolean, nullable=False, default=False)
    materials_description = Column(Text, nullable=True)
    warranty_months = Column(Integer, nullable=True)
    warranty_description = Column(Text, nullable=True)

    # Set in the same transaction as the lead counter increment for this bid
    lead_counted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    # One bid per contractor per job
    __table_args__ = (
        UniqueConstraint("contractor_id", "job_id", name="uq_bid_contractor_job"),
        Index("idx_bid_contractor_created", "contractor_id", "created_at"),
    )

    def __repr__(self):
        return f"<Bid(id={self.id}, job_id={self.job_id}, contractor_id={self.contractor_id})>"
