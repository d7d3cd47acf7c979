"""
Job visibility gating for contractors.

A contractor sees a job only when every gate passes:
- off-market jobs need the off_market_access benefit
- the plan's access delay must have elapsed since the job was created
- the job must lie within the plan's radius of the contractor's home
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any
from sqlalchemy import case, or_, select
from sqlalchemy.orm import Session

from leadengine.core.clock import utcnow
from leadengine.core.errors import NotFoundError
from leadengine.db.models.bid import Bid
from leadengine.db.models.job import Job, JOB_STATUSES
from leadengine.db.models.user import User
from leadengine.schemas.job import AccessDecision, JobFilters, VisibleJob
from leadengine.schemas.membership import EffectivePlan
from leadengine.services.benefit_resolver import get_effective_plan
from leadengine.services.geo import haversine_km
from leadengine.services.paging import DEFAULT_PAGE_SIZE, clamp_paging, page_info

logger = logging.getLogger(__name__)


def access_time_for(job: Job, plan: EffectivePlan) -> datetime:
    """When the plan's access delay elapses for a job."""
    return job.created_at + timedelta(hours=plan.access_delay_hours)


def _evaluate(
    job: Job,
    plan: EffectivePlan,
    home: Optional[tuple],
    now: datetime,
) -> AccessDecision:
    reasons: List[str] = []

    if job.type == "off_market" and not plan.off_market_access:
        reasons.append("off_market_restricted")

    access_time = access_time_for(job, plan)
    if now < access_time:
        reasons.append("access_delayed")

    distance_km = None
    if home is not None and plan.radius_km is not None:
        location = job.job_property.location if job.job_property is not None else None
        if location is None:
            reasons.append("job_location_unknown")
        else:
            distance_km = round(haversine_km(home, location), 3)
            if distance_km > plan.radius_km:
                reasons.append("outside_radius")

    return AccessDecision(
        can_access=not reasons,
        reason=reasons[0] if reasons else None,
        reasons=reasons,
        access_time=access_time,
        distance_km=distance_km,
    )


def can_access_job(db: Session, user_id: int, job: Job, now: Optional[datetime] = None) -> AccessDecision:
    """
    Decide whether a contractor may see and bid on a job.

    Args:
        db: Database session
        user_id: Contractor user ID
        job: Job to check
        now: Evaluation time (defaults to current UTC time)

    Returns:
        AccessDecision listing every failing check
    """
    now = now or utcnow()
    plan = get_effective_plan(db, user_id, now)
    user = db.get(User, user_id)
    home = user.home_location if user is not None else None

    decision = _evaluate(job, plan, home, now)
    if not decision.can_access:
        logger.debug(f"Job access denied: user_id={user_id}, job_id={job.id}, reasons={decision.reasons}")
    return decision


def _empty_page(page: int, limit: int) -> Dict[str, Any]:
    return {"jobs": [], "total": 0, "pagination": page_info(page, limit, 0)}


def list_visible_jobs(
    db: Session,
    user_id: int,
    filters: Optional[JobFilters] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    List the jobs a contractor can currently see.

    Args:
        db: Database session
        user_id: Contractor user ID
        filters: Optional status/service/search filters
        page: Page number (1-based)
        limit: Page size, clamped to 1..100
        now: Evaluation time (defaults to current UTC time)

    Returns:
        Dict with jobs (VisibleJob), total and pagination
    """
    now = now or utcnow()
    filters = filters or JobFilters()
    page, limit = clamp_paging(page, limit)

    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", user_id=user_id)

    status = filters.status if filters.status in JOB_STATUSES else "open"

    services = list(user.services or [])
    if not services:
        return _empty_page(page, limit)
    if filters.service:
        if filters.service not in services:
            return _empty_page(page, limit)
        services = [filters.service]

    plan = get_effective_plan(db, user_id, now)

    query = db.query(Job).filter(Job.status == status, Job.service.in_(services))

    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(or_(Job.title.ilike(pattern), Job.description.ilike(pattern)))

    if not plan.off_market_access:
        query = query.filter(Job.type != "off_market")

    if status == "open":
        already_bid = select(Bid.job_id).where(Bid.contractor_id == user_id)
        query = query.filter(Job.id.not_in(already_bid))
        if plan.access_delay_hours > 0:
            query = query.filter(Job.created_at <= now - timedelta(hours=plan.access_delay_hours))

    if plan.featured_listing:
        query = query.order_by(case((Job.type == "off_market", 0), else_=1), Job.created_at.desc(), Job.id.desc())
    else:
        query = query.order_by(Job.created_at.desc(), Job.id.desc())

    home = user.home_location
    offset = (page - 1) * limit

    if home is None or plan.radius_km is None:
        # No radius gate: count and page in SQL
        total = query.order_by(None).count()
        page_jobs = [VisibleJob.model_validate(job) for job in query.offset(offset).limit(limit).all()]
    else:
        visible: List[VisibleJob] = []
        for job in query.all():
            location = job.job_property.location if job.job_property is not None else None
            if location is None:
                continue
            distance_km = round(haversine_km(home, location), 3)
            if distance_km > plan.radius_km:
                continue
            item = VisibleJob.model_validate(job)
            item.distance_km = distance_km
            visible.append(item)
        total = len(visible)
        page_jobs = visible[offset:offset + limit]

    logger.info(f"Visible jobs listed: user_id={user_id}, status={status}, total={total}, page={page}")

    return {"jobs": page_jobs, "total": total, "pagination": page_info(page, limit, total)}
