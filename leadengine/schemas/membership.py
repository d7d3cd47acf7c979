"""
Pydantic schemas for membership plans, effective benefits and upgrades.
"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class BenefitSnapshot(BaseModel):
    """
    One value per benefit dimension.

    None on leads_per_month, radius_km or max_properties means unlimited and
    never means "not set".
    """
    leads_per_month: Optional[int] = Field(None, description="Leads per month (None = unlimited)")
    access_delay_hours: int = Field(24, ge=0, description="Hours after job creation before access")
    radius_km: Optional[float] = Field(None, description="Job radius in km (None = unlimited)")
    max_properties: Optional[int] = Field(None, description="Property limit (None = unlimited)")
    platform_fee_percent: float = Field(100, ge=0, le=100, description="Platform fee percentage")
    property_type: str = Field("domestic", pattern="^(domestic|commercial)$")

    featured_listing: bool = False
    off_market_access: bool = False
    publicity_references: bool = False
    verified_badge: bool = False
    financing_support: bool = False
    private_network: bool = False
    free_calculators: bool = False
    unlimited_requests: bool = False
    contractor_reviews_visible: bool = False
    priority_contractor_access: bool = False
    property_valuation_support: bool = False
    certified_aas_work: bool = False
    free_evaluation: bool = False


class EffectivePlan(BenefitSnapshot):
    """Benefits a user currently has, merged across upgrades."""
    user_id: int = Field(..., description="User ID")
    source: str = Field(..., description="'membership' for an active period, 'default' otherwise")
    period_id: Optional[int] = Field(None, description="Active membership period ID")
    plan_id: Optional[int] = Field(None, description="Plan of the active period")
    tier: str = Field("basic", description="basic | standard | premium")
    user_category: str = Field("contractor", description="customer | contractor")
    billing_period: str = Field("monthly", description="monthly | yearly")
    start_date: datetime = Field(..., description="Period start (default plan: now - 24h)")
    end_date: Optional[datetime] = Field(None, description="Period end")

    accumulated_leads: Optional[int] = Field(None, description="Lead ceiling carried in by an upgrade")
    bonus_leads: int = Field(0, description="Unused leads carried over from the previous period")
    used_this_month: int = Field(0, description="Monthly lead counter")
    used_this_year: int = Field(0, description="Annual lead counter")
    lead_reset_anchor: Optional[datetime] = Field(None, description="Anchor of the lead reset windows")
    last_lead_reset_at: Optional[datetime] = Field(None, description="Last reconciliation timestamp")

    @property
    def has_membership(self) -> bool:
        return self.source == "membership"

    def benefits(self) -> BenefitSnapshot:
        return BenefitSnapshot(**self.model_dump(include=set(BenefitSnapshot.model_fields)))


class PlanResponse(BenefitSnapshot):
    """Schema for a catalog plan."""
    id: int
    name: str
    description: Optional[str] = None
    user_category: str
    tier: str
    monthly_price: int = Field(..., description="Monthly price in cents")
    yearly_price: int = Field(..., description="Yearly price in cents")
    annual_discount_rate: float

    class Config:
        from_attributes = True


class UpgradeRequest(BaseModel):
    """Request schema for upgrading a membership."""
    plan_id: int = Field(..., description="Target plan ID")
    billing_period: Optional[str] = Field(
        None,
        description="New billing period; defaults to the current one",
        pattern="^(monthly|yearly)$"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "plan_id": 2,
                "billing_period": "yearly"
            }
        }


class UpgradeResult(BaseModel):
    """Outcome of an upgrade: the new period and how it was computed."""
    previous_period_id: int
    new_period_id: int
    plan_id: int
    billing_period: str

    remaining_days: int = Field(..., description="Days left on the previous period")
    new_plan_duration_days: int = Field(..., description="Full duration of the purchased period")
    accumulated_days: int
    new_end_date: datetime

    bonus_leads: int = Field(0, description="Unused leads carried over")
    accumulated_leads: Optional[int] = Field(None, description="Lead ceiling for the first window (None = unlimited)")

    effective: BenefitSnapshot


class PlanListResponse(BaseModel):
    plans: List[PlanResponse]


class PurchaseRequest(BaseModel):
    """Request schema for starting a membership once payment has cleared."""
    plan_id: int = Field(..., description="Plan to activate")
    billing_period: str = Field("monthly", pattern="^(monthly|yearly)$")

    class Config:
        json_schema_extra = {
            "example": {
                "plan_id": 1,
                "billing_period": "monthly"
            }
        }


class MembershipPeriodResponse(BaseModel):
    """One membership period, with its plan and upgrade lineage."""
    id: int
    plan_id: int
    plan_name: str
    tier: str
    user_category: str
    status: str = Field(..., description="active | upgraded | cancelled | expired")
    billing_period: str
    start_date: datetime
    end_date: datetime
    bonus_leads: int = 0
    accumulated_leads: Optional[int] = None
    upgraded_from_id: Optional[int] = Field(None, description="Period this one replaced on upgrade")
    upgraded_to_id: Optional[int] = Field(None, description="Period that replaced this one on upgrade")
    created_at: datetime


class MembershipHistory(BaseModel):
    """A user's membership periods, newest first."""
    periods: List[MembershipPeriodResponse]
