"""
Contractor job endpoints: visible job list, per-job access checks and the
jobs the contractor has bid on.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leadengine.core.auth_dependency import get_current_contractor
from leadengine.core.errors import NotFoundError
from leadengine.db.models.job import Job
from leadengine.db.models.user import User
from leadengine.db.session import get_db
from leadengine.schemas.job import AccessDecision, ContractorJobList, JobFilters, MyJobFilters, VisibleJobList
from leadengine.services.access_gate import can_access_job, list_visible_jobs
from leadengine.services.bid_service import list_contractor_jobs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contractor", tags=["Contractor Jobs"])


@router.get("/jobs", response_model=VisibleJobList, status_code=status.HTTP_200_OK)
def get_jobs(
    job_status: Optional[str] = Query(None, alias="status", description="Job status (default open)"),
    service: Optional[str] = Query(None, description="Filter by one of your services"),
    search: Optional[str] = Query(None, description="Search title and description"),
    page: int = Query(1, description="Page number"),
    limit: int = Query(10, description="Page size (1-100)"),
    user: User = Depends(get_current_contractor),
    db: Session = Depends(get_db)
):
    """
    List jobs the contractor can currently see.

    Jobs are filtered by the contractor's services, the plan's access delay,
    off-market access and radius.
    """
    filters = JobFilters(status=job_status, service=service, search=search)
    return VisibleJobList(**list_visible_jobs(db, user.id, filters, page, limit))


@router.get("/jobs/{job_id}/access", response_model=AccessDecision, status_code=status.HTTP_200_OK)
def get_job_access(
    job_id: int,
    user: User = Depends(get_current_contractor),
    db: Session = Depends(get_db)
):
    """Explain whether the contractor can access a job right now."""
    job = db.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job not found", job_id=job_id)
    return can_access_job(db, user.id, job)


@router.get("/my-jobs", response_model=ContractorJobList, status_code=status.HTTP_200_OK)
def get_my_jobs(
    job_status: Optional[str] = Query(None, alias="status", description="Job status"),
    bid_status: Optional[str] = Query(None, description="pending | accepted | rejected"),
    search: Optional[str] = Query(None, description="Search title and description"),
    page: int = Query(1, description="Page number"),
    limit: int = Query(10, description="Page size (1-100)"),
    user: User = Depends(get_current_contractor),
    db: Session = Depends(get_db)
):
    """List jobs the contractor has bid on, with each bid's status."""
    filters = MyJobFilters(status=job_status, bid_status=bid_status, search=search)
    return ContractorJobList(**list_contractor_jobs(db, user.id, filters, page, limit))
