"""
Membership plan catalog model.
"""
from sqlalchemy import Column, Integer, String, Boolean, Float, Index
from leadengine.db.base import Base


class MembershipPlan(Base):
    """
    Static catalog entry: tier, user category, prices and benefit dimensions.

    NULL on leads_per_month, radius_km or max_properties means unlimited.
    """
    __tablename__ = "membership_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    user_category = Column(String, nullable=False, index=True)  # customer | contractor
    tier = Column(String, nullable=False)  # basic | standard | premium

    monthly_price = Column(Integer, nullable=False, default=0)  # cents
    yearly_price = Column(Integer, nullable=False, default=0)  # cents
    annual_discount_rate = Column(Float, nullable=False, default=15)
    is_active = Column(Boolean, nullable=False, default=True)

    # Contractor dimensions
    leads_per_month = Column(Integer, nullable=True)
    access_delay_hours = Column(Integer, nullable=False, default=24)
    radius_km = Column(Float, nullable=True)
    featured_listing = Column(Boolean, nullable=False, default=False)
    off_market_access = Column(Boolean, nullable=False, default=False)
    publicity_references = Column(Boolean, nullable=False, default=False)
    verified_badge = Column(Boolean, nullable=False, default=False)
    financing_support = Column(Boolean, nullable=False, default=False)
    private_network = Column(Boolean, nullable=False, default=False)

    # Customer dimensions
    max_properties = Column(Integer, nullable=True)
    platform_fee_percent = Column(Float, nullable=False, default=100)
    property_type = Column(String, nullable=False, default="domestic")  # domestic | commercial
    free_calculators = Column(Boolean, nullable=False, default=False)
    unlimited_requests = Column(Boolean, nullable=False, default=False)
    contractor_reviews_visible = Column(Boolean, nullable=False, default=False)
    priority_contractor_access = Column(Boolean, nullable=False, default=False)
    property_valuation_support = Column(Boolean, nullable=False, default=False)
    certified_aas_work = Column(Boolean, nullable=False, default=False)
    free_evaluation = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_plan_category_tier", "user_category", "tier"),
    )

    def __repr__(self):
        return f"<MembershipPlan(id={self.id}, category='{self.user_category}', tier='{self.tier}')>"
