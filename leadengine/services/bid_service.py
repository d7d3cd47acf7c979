"""
Bid reads and the customer's acceptance of a bid.

Placing a bid goes through the bid saga; this module covers everything after
that: the contractor's own bids and jobs, the bids on a customer's job, and
accepting one of them.
"""
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy import or_
from sqlalchemy.orm import Session

from leadengine.core.clock import utcnow
from leadengine.core.errors import ForbiddenError, NotFoundError, ValidationError
from leadengine.db.models.bid import Bid
from leadengine.db.models.job import Job, JOB_STATUSES
from leadengine.db.models.user import User
from leadengine.schemas.bid import AcceptBidResult, BidResponse, ContractorBid
from leadengine.schemas.job import ContractorJob, MyJobFilters
from leadengine.services.paging import DEFAULT_PAGE_SIZE, clamp_paging, page_info

logger = logging.getLogger(__name__)

BID_STATUSES = ["pending", "accepted", "rejected"]

# Job statuses that only make sense for the contractor whose bid won
ACCEPTED_JOB_STATUSES = ["inprogress", "hold", "completed"]


def list_contractor_bids(
    db: Session,
    contractor_id: int,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    """
    List a contractor's bids, newest first, with the job each was placed on.

    Returns:
        Dict with bids (ContractorBid), total and pagination
    """
    page, limit = clamp_paging(page, limit)
    query = (
        db.query(Bid, Job)
        .join(Job, Job.id == Bid.job_id)
        .filter(Bid.contractor_id == contractor_id)
    )
    total = query.count()
    rows = (
        query.order_by(Bid.created_at.desc(), Bid.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    bids = []
    for bid, job in rows:
        item = BidResponse.model_validate(bid).model_dump()
        bids.append(ContractorBid(**item, job_title=job.title, job_status=job.status))

    return {"bids": bids, "total": total, "pagination": page_info(page, limit, total)}


def _owned_job(db: Session, user_id: int, job_id: int) -> Job:
    job = db.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job not found", job_id=job_id)
    if job.created_by != user_id:
        raise ForbiddenError("Only the job's owner can manage its bids", job_id=job_id)
    return job


def list_job_bids(db: Session, user_id: int, job_id: int) -> List[BidResponse]:
    """Bids on a job, newest first. Only the job's creator may read them."""
    _owned_job(db, user_id, job_id)
    bids = (
        db.query(Bid)
        .filter(Bid.job_id == job_id)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
        .all()
    )
    return [BidResponse.model_validate(bid) for bid in bids]


def accept_bid(db: Session, user_id: int, bid_id: int, now: Optional[datetime] = None) -> AcceptBidResult:
    """
    Accept a bid on one of the caller's open jobs.

    The accepted bid wins the job, every other bid on it is rejected and the
    job moves to in progress, all in one commit.

    Args:
        db: Database session
        user_id: Customer accepting the bid
        bid_id: Bid to accept
        now: Acceptance time (defaults to current UTC time)

    Returns:
        AcceptBidResult

    Raises:
        NotFoundError: Unknown bid or job
        ForbiddenError: Caller did not create the job
        ValidationError: Job is no longer open
    """
    now = now or utcnow()
    bid = db.get(Bid, bid_id)
    if bid is None:
        raise NotFoundError("Bid not found", bid_id=bid_id)

    job = _owned_job(db, user_id, bid.job_id)
    if job.status != "open":
        raise ValidationError("Job is no longer accepting bids", job_id=job.id, job_status=job.status)

    try:
        bid.status = "accepted"
        rejected = (
            db.query(Bid)
            .filter(Bid.job_id == job.id, Bid.id != bid.id)
            .update({Bid.status: "rejected"}, synchronize_session=False)
        )
        job.accepted_bid_id = bid.id
        job.accepted_at = now
        job.status = "inprogress"
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to accept bid {bid_id} for job {job.id}: {str(e)}", exc_info=True)
        raise

    db.refresh(bid)
    logger.info(f"Bid accepted: bid_id={bid.id}, job_id={job.id}, rejected={rejected}")

    return AcceptBidResult(
        bid=BidResponse.model_validate(bid),
        job_id=job.id,
        job_status=job.status,
        rejected_bids=rejected,
    )


def list_contractor_jobs(
    db: Session,
    user_id: int,
    filters: Optional[MyJobFilters] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    """
    List the jobs a contractor has bid on, newest bid first.

    Unlike the visible job list this is not gated by plan benefits: a bid
    already placed stays listed. Jobs that moved past open only show up
    under the contractor's accepted bid unless ``bid_status`` says otherwise.
    The customer's email is shared for accepted bids only.

    Returns:
        Dict with jobs (ContractorJob), total and pagination
    """
    filters = filters or MyJobFilters()
    page, limit = clamp_paging(page, limit)

    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", user_id=user_id)

    query = (
        db.query(Bid, Job, User.email)
        .join(Job, Job.id == Bid.job_id)
        .outerjoin(User, User.id == Job.created_by)
        .filter(Bid.contractor_id == user_id)
    )

    if filters.status in JOB_STATUSES:
        query = query.filter(Job.status == filters.status)

    bid_status = filters.bid_status if filters.bid_status in BID_STATUSES else None
    if bid_status is None and filters.status in ACCEPTED_JOB_STATUSES:
        bid_status = "accepted"
    if bid_status is not None:
        query = query.filter(Bid.status == bid_status)

    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(or_(Job.title.ilike(pattern), Job.description.ilike(pattern)))

    total = query.count()
    rows = (
        query.order_by(Bid.created_at.desc(), Bid.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    jobs = [
        ContractorJob(
            job_id=job.id,
            title=job.title,
            service=job.service,
            estimate=job.estimate,
            job_status=job.status,
            bid_id=bid.id,
            bid_amount=bid.bid_amount,
            bid_status=bid.status,
            bid_created_at=bid.created_at,
            customer_email=email if bid.status == "accepted" else None,
        )
        for bid, job, email in rows
    ]

    logger.info(f"Contractor jobs listed: user_id={user_id}, total={total}, page={page}")

    return {"jobs": jobs, "total": total, "pagination": page_info(page, limit, total)}
