"""
Bid endpoints: placing bids, bid lists and acceptance.
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from leadengine.core.auth_dependency import get_current_contractor, get_current_user_obj
from leadengine.db.models.user import User
from leadengine.db.session import get_db
from leadengine.schemas.bid import AcceptBidResult, BidCreate, BidResponse, BidResult, ContractorBidList
from leadengine.services.bid_saga import create_bid
from leadengine.services.bid_service import accept_bid, list_contractor_bids, list_job_bids

router = APIRouter(prefix="/bids", tags=["Bids"])


@router.post("", response_model=BidResult, status_code=status.HTTP_201_CREATED)
def place_bid(
    bid_input: BidCreate,
    user: User = Depends(get_current_contractor),
    db: Session = Depends(get_db)
):
    """
    Place a bid on a job.

    Consumes one lead. Returns 429 when the lead limit is reached and 403
    when the job is not accessible yet.
    """
    return create_bid(db, user.id, bid_input)


@router.get("/contractor", response_model=ContractorBidList, status_code=status.HTTP_200_OK)
def get_my_bids(
    page: int = Query(1, description="Page number"),
    limit: int = Query(10, description="Page size (1-100)"),
    user: User = Depends(get_current_contractor),
    db: Session = Depends(get_db)
):
    """List the authenticated contractor's bids, newest first."""
    return ContractorBidList(**list_contractor_bids(db, user.id, page, limit))


@router.get("/job/{job_id}", response_model=List[BidResponse], status_code=status.HTTP_200_OK)
def get_job_bids(
    job_id: int,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """List the bids on one of your jobs."""
    return list_job_bids(db, user.id, job_id)


@router.put("/{bid_id}/accept", response_model=AcceptBidResult, status_code=status.HTTP_200_OK)
def accept(
    bid_id: int,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Accept a bid on one of your open jobs.

    Other bids on the job are rejected and the job moves to in progress.
    """
    return accept_bid(db, user.id, bid_id)
