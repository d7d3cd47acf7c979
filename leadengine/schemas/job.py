"""
Pydantic schemas for contractor job visibility.
"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field


class AccessDecision(BaseModel):
    """Whether a contractor may see/bid on a job, and why not."""
    can_access: bool
    reason: Optional[str] = Field(
        None,
        description="First failing check: off_market_restricted | access_delayed | outside_radius | job_location_unknown"
    )
    reasons: List[str] = Field(default_factory=list, description="Every failing check")
    access_time: datetime = Field(..., description="When the access delay elapses")
    distance_km: Optional[float] = Field(None, description="Distance from contractor home, when known")


class JobFilters(BaseModel):
    """Schema for filtering the contractor job list."""
    status: Optional[str] = Field(None, description="Job status; unknown values fall back to open")
    service: Optional[str] = Field(None, description="Restrict to one of the contractor's services")
    search: Optional[str] = Field(None, description="Search in title and description")


class VisibleJob(BaseModel):
    """A job as shown to a contractor."""
    id: int
    title: str
    description: Optional[str] = None
    service: str
    estimate: Optional[float] = None
    type: str
    status: str
    created_at: datetime
    distance_km: Optional[float] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class VisibleJobList(BaseModel):
    """Schema for the contractor job list response."""
    jobs: List[VisibleJob]
    total: int
    pagination: Pagination


class MyJobFilters(BaseModel):
    """Schema for filtering the jobs a contractor has bid on."""
    status: Optional[str] = Field(None, description="Job status; unknown values are ignored")
    bid_status: Optional[str] = Field(
        None,
        description="pending | accepted | rejected; defaults to accepted for in-progress, on-hold and completed jobs"
    )
    search: Optional[str] = Field(None, description="Search in title and description")


class ContractorJob(BaseModel):
    """A job the contractor has bid on, with the bid's state."""
    job_id: int
    title: str
    service: str
    estimate: Optional[float] = None
    job_status: str
    bid_id: int
    bid_amount: float
    bid_status: str
    bid_created_at: datetime
    customer_email: Optional[str] = Field(None, description="Shared once the bid is accepted")


class ContractorJobList(BaseModel):
    jobs: List[ContractorJob]
    total: int
    pagination: Pagination
