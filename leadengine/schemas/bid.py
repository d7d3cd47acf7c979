"""
Pydantic schemas for bids.
"""
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from leadengine.schemas.job import Pagination
from leadengine.schemas.leads import LeadLimitStatus


class BidTimeline(BaseModel):
    start_date: Optional[datetime] = Field(None, description="Proposed start")
    end_date: Optional[datetime] = Field(None, description="Proposed completion")


class BidMaterials(BaseModel):
    included: bool = False
    description: Optional[str] = None


class BidWarranty(BaseModel):
    period_months: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


class BidCreate(BaseModel):
    """
    Request schema for placing a bid.

    Fields are optional here so the bid saga reports missing values with its
    own validation error.
    """
    job_id: Optional[int] = Field(None, description="Job to bid on")
    bid_amount: Optional[float] = Field(None, description="Bid amount, must be positive")
    message: Optional[str] = Field(None, description="Message to the customer")
    timeline: Optional[BidTimeline] = None
    materials: Optional[BidMaterials] = None
    warranty: Optional[BidWarranty] = None

    class Config:
        json_schema_extra = {
            "example": {
                "job_id": 12,
                "bid_amount": 1500.0,
                "message": "Can start next week",
                "timeline": {
                    "start_date": "2026-02-01T09:00:00",
                    "end_date": "2026-02-10T17:00:00"
                },
                "materials": {"included": True, "description": "Tiles and grout"},
                "warranty": {"period_months": 12}
            }
        }


class BidResponse(BaseModel):
    id: int
    job_id: int
    contractor_id: int
    bid_amount: float
    message: str
    status: str
    start_date: datetime
    end_date: datetime
    materials_included: bool
    materials_description: Optional[str] = None
    warranty_months: Optional[int] = None
    warranty_description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BidResult(BaseModel):
    """Committed bid plus the post-increment lead status."""
    bid: BidResponse
    lead_status: LeadLimitStatus


class ContractorBid(BidResponse):
    """A contractor's bid with the job it was placed on."""
    job_title: str
    job_status: str


class ContractorBidList(BaseModel):
    bids: List[ContractorBid]
    total: int
    pagination: Pagination


class AcceptBidResult(BaseModel):
    """Outcome of a customer accepting a bid."""
    bid: BidResponse
    job_id: int
    job_status: str
    rejected_bids: int = Field(..., description="Other bids on the job marked rejected")
