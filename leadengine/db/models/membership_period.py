"""
Membership period model: one row per purchase or upgrade event.
"""
from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, ForeignKey, Index, event
from sqlalchemy.orm import relationship, attributes
from leadengine.core.clock import utcnow
from leadengine.db.base import Base

# Benefit dimension -> snapshot column
SNAPSHOT_COLUMNS = {
    "leads_per_month": "effective_leads_per_month",
    "access_delay_hours": "effective_access_delay_hours",
    "radius_km": "effective_radius_km",
    "max_properties": "effective_max_properties",
    "platform_fee_percent": "effective_platform_fee_percent",
    "property_type": "effective_property_type",
    "featured_listing": "effective_featured_listing",
    "off_market_access": "effective_off_market_access",
    "publicity_references": "effective_publicity_references",
    "verified_badge": "effective_verified_badge",
    "financing_support": "effective_financing_support",
    "private_network": "effective_private_network",
    "free_calculators": "effective_free_calculators",
    "unlimited_requests": "effective_unlimited_requests",
    "contractor_reviews_visible": "effective_contractor_reviews_visible",
    "priority_contractor_access": "effective_priority_contractor_access",
    "property_valuation_support": "effective_property_valuation_support",
    "certified_aas_work": "effective_certified_aas_work",
    "free_evaluation": "effective_free_evaluation",
}


class MembershipPeriod(Base):
    """
    A user's membership for one purchase/upgrade.

    The effective_* columns hold the merged best-of benefits across the
    upgrade lineage and are written once at creation.
    """
    __tablename__ = "membership_periods"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("membership_plans.id"), nullable=False)

    status = Column(String, nullable=False, default="active")  # active | upgraded | cancelled | expired
    billing_period = Column(String, nullable=False, default="monthly")  # monthly | yearly
    start_date = Column(DateTime, nullable=False, default=utcnow)
    end_date = Column(DateTime, nullable=False)

    # Effective benefit snapshot
    effective_leads_per_month = Column(Integer, nullable=True)
    effective_access_delay_hours = Column(Integer, nullable=False, default=24)
    effective_radius_km = Column(Float, nullable=True)
    effective_max_properties = Column(Integer, nullable=True)
    effective_platform_fee_percent = Column(Float, nullable=False, default=100)
    effective_property_type = Column(String, nullable=False, default="domestic")
    effective_featured_listing = Column(Boolean, nullable=False, default=False)
    effective_off_market_access = Column(Boolean, nullable=False, default=False)
    effective_publicity_references = Column(Boolean, nullable=False, default=False)
    effective_verified_badge = Column(Boolean, nullable=False, default=False)
    effective_financing_support = Column(Boolean, nullable=False, default=False)
    effective_private_network = Column(Boolean, nullable=False, default=False)
    effective_free_calculators = Column(Boolean, nullable=False, default=False)
    effective_unlimited_requests = Column(Boolean, nullable=False, default=False)
    effective_contractor_reviews_visible = Column(Boolean, nullable=False, default=False)
    effective_priority_contractor_access = Column(Boolean, nullable=False, default=False)
    effective_property_valuation_support = Column(Boolean, nullable=False, default=False)
    effective_certified_aas_work = Column(Boolean, nullable=False, default=False)
    effective_free_evaluation = Column(Boolean, nullable=False, default=False)

    # Upgrade accumulation
    accumulated_leads = Column(Integer, nullable=True)  # ceiling for the first window after upgrade
    bonus_leads = Column(Integer, nullable=False, default=0)

    # Lead counters
    used_this_month = Column(Integer, nullable=False, default=0)
    used_this_year = Column(Integer, nullable=False, default=0)
    lead_reset_anchor = Column(DateTime, nullable=False, default=utcnow)
    last_lead_reset_at = Column(DateTime, nullable=False, default=utcnow)

    # Lineage
    upgraded_from_id = Column(Integer, ForeignKey("membership_periods.id"), nullable=True)
    upgraded_to_id = Column(Integer, ForeignKey("membership_periods.id"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    plan = relationship("MembershipPlan")

    __table_args__ = (
        Index("idx_period_user_status", "user_id", "status"),
        Index("idx_period_user_status_end", "user_id", "status", "end_date"),
    )

    def snapshot(self) -> dict:
        """Effective benefits keyed by dimension name."""
        return {dimension: getattr(self, column) for dimension, column in SNAPSHOT_COLUMNS.items()}

    def __repr__(self):
        return f"<MembershipPeriod(id={self.id}, user_id={self.user_id}, status='{self.status}')>"


@event.listens_for(MembershipPeriod, "before_update")
def _reject_snapshot_changes(mapper, connection, target):
    for column in SNAPSHOT_COLUMNS.values():
        if attributes.get_history(target, column).has_changes():
            raise ValueError(f"{column} is part of an immutable benefit snapshot")
