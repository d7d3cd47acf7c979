"""
Pydantic schemas for lead metering.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class LeadLimitStatus(BaseModel):
    """Lead availability for the current reset window."""
    can_access: bool = Field(..., description="Whether another lead may be consumed")
    reason: Optional[str] = Field(None, description="Human-readable denial reason")
    leads_used: int = Field(..., description="Leads consumed in the current window")
    leads_limit: Optional[int] = Field(None, description="Window limit (None for unlimited)")
    remaining: Optional[int] = Field(None, description="Remaining leads (None for unlimited)")
    unlimited: bool = Field(..., description="Whether the plan has unlimited leads")
    reset_date: datetime = Field(..., description="When the next window starts")
    window_start: datetime = Field(..., description="Start of the current window")
    billing_period: str = Field(..., description="Billing period that drives the window")

    class Config:
        json_schema_extra = {
            "example": {
                "can_access": True,
                "reason": None,
                "leads_used": 5,
                "leads_limit": 25,
                "remaining": 20,
                "unlimited": False,
                "reset_date": "2026-02-15T09:30:00",
                "window_start": "2026-01-15T09:30:00",
                "billing_period": "monthly"
            }
        }


class LeadUsageSummary(BaseModel):
    """Dashboard view of a contractor's lead usage."""
    tier: str
    source: str
    billing_period: str
    status: LeadLimitStatus
    used_this_month: int
    used_this_year: int
