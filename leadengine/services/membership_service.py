"""
Membership lifecycle: plan catalog reads, activation, expiry and cancellation.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, List
from sqlalchemy.orm import Session

from leadengine.core.cache import TTLCache
from leadengine.core.clock import utcnow
from leadengine.core.errors import NotFoundError, PlanMismatchError, ValidationError
from leadengine.core.plan_limits import BILLING_PERIODS, PLAN_CATALOG, PLAN_DURATION_DAYS, USER_CATEGORIES
from leadengine.db.models.membership_period import MembershipPeriod, SNAPSHOT_COLUMNS
from leadengine.db.models.membership_plan import MembershipPlan
from leadengine.db.models.user import User
from leadengine.schemas.membership import MembershipHistory, MembershipPeriodResponse, PlanResponse
from leadengine.services.benefit_resolver import get_active_period

logger = logging.getLogger(__name__)


def get_plan(db: Session, plan_id: int) -> MembershipPlan:
    plan = db.get(MembershipPlan, plan_id)
    if plan is None or not plan.is_active:
        raise NotFoundError("Plan not found", plan_id=plan_id)
    return plan


def list_plans(db: Session, user_category: Optional[str] = None, cache: Optional[TTLCache] = None) -> List[PlanResponse]:
    """
    List active catalog plans, cheapest tier first.

    Args:
        db: Database session
        user_category: Optional "customer" or "contractor" filter
        cache: Optional catalog cache to read through

    Returns:
        List of PlanResponse
    """
    if user_category is not None and user_category not in USER_CATEGORIES:
        raise ValidationError(f"Invalid user category: {user_category}", user_category=user_category)

    key = ("plans", user_category)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    query = db.query(MembershipPlan).filter(MembershipPlan.is_active.is_(True))
    if user_category:
        query = query.filter(MembershipPlan.user_category == user_category)
    plans = [
        PlanResponse.model_validate(plan)
        for plan in query.order_by(MembershipPlan.user_category, MembershipPlan.monthly_price).all()
    ]

    if cache is not None:
        cache.set(key, plans)
    return plans


def seed_plans(db: Session, cache: Optional[TTLCache] = None) -> int:
    """
    Insert catalog plans that are missing, matched on (category, tier).

    Returns:
        Number of plans inserted
    """
    inserted = 0
    for entry in PLAN_CATALOG:
        exists = db.query(MembershipPlan).filter(
            MembershipPlan.user_category == entry["user_category"],
            MembershipPlan.tier == entry["tier"],
        ).first()
        if exists:
            continue
        db.add(MembershipPlan(**entry))
        inserted += 1

    if inserted:
        db.commit()
        logger.info(f"Seeded {inserted} membership plans")

    if cache is not None:
        cache.invalidate()
    return inserted


def activate_membership(
    db: Session,
    user_id: int,
    plan_id: int,
    billing_period: str = "monthly",
    now: Optional[datetime] = None,
) -> MembershipPeriod:
    """
    Start a membership from a purchase.

    The effective snapshot is copied from the plan and the lead reset windows
    are anchored at activation time.

    Raises:
        NotFoundError: Unknown user or plan
        PlanMismatchError: Plan is for the other user category
        ValidationError: Invalid billing period or an active period already exists
    """
    now = now or utcnow()

    if billing_period not in BILLING_PERIODS:
        raise ValidationError(f"Invalid billing period: {billing_period}", billing_period=billing_period)
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", user_id=user_id)

    plan = get_plan(db, plan_id)
    if plan.user_category != user.role:
        raise PlanMismatchError(
            "You cannot subscribe to this plan type",
            plan_category=plan.user_category,
            user_role=user.role,
        )

    if get_active_period(db, user_id, now) is not None:
        raise ValidationError("User already has an active membership; upgrade instead", user_id=user_id)

    period = MembershipPeriod(
        user_id=user_id,
        plan_id=plan.id,
        status="active",
        billing_period=billing_period,
        start_date=now,
        end_date=now + timedelta(days=PLAN_DURATION_DAYS[billing_period]),
        accumulated_leads=None,
        bonus_leads=0,
        used_this_month=0,
        used_this_year=0,
        lead_reset_anchor=now,
        last_lead_reset_at=now,
        created_at=now,
        **{column: getattr(plan, dimension) for dimension, column in SNAPSHOT_COLUMNS.items()},
    )
    db.add(period)
    db.commit()
    db.refresh(period)

    logger.info(
        f"Membership activated: user_id={user_id}, plan={plan.user_category}/{plan.tier}, "
        f"billing_period={billing_period}, period_id={period.id}"
    )
    return period


def expire_lapsed_periods(db: Session, now: Optional[datetime] = None) -> int:
    """
    Mark active periods whose end date has passed as expired.

    Returns:
        Number of periods expired
    """
    now = now or utcnow()
    expired = db.query(MembershipPeriod).filter(
        MembershipPeriod.status == "active",
        MembershipPeriod.end_date <= now,
    ).update({MembershipPeriod.status: "expired"}, synchronize_session=False)
    db.commit()

    if expired:
        logger.info(f"Expired {expired} lapsed membership periods")
    return expired


def cancel_membership(db: Session, user_id: int, now: Optional[datetime] = None) -> MembershipPeriod:
    """Cancel the user's active membership now; they fall back to default benefits."""
    now = now or utcnow()
    period = get_active_period(db, user_id, now)
    if period is None:
        raise NotFoundError("No active membership to cancel", user_id=user_id)

    period.status = "cancelled"
    period.end_date = now
    db.commit()
    db.refresh(period)

    logger.info(f"Membership cancelled: user_id={user_id}, period_id={period.id}")
    return period


def period_response(period: MembershipPeriod) -> MembershipPeriodResponse:
    plan = period.plan
    return MembershipPeriodResponse(
        id=period.id,
        plan_id=period.plan_id,
        plan_name=plan.name,
        tier=plan.tier,
        user_category=plan.user_category,
        status=period.status,
        billing_period=period.billing_period,
        start_date=period.start_date,
        end_date=period.end_date,
        bonus_leads=period.bonus_leads,
        accumulated_leads=period.accumulated_leads,
        upgraded_from_id=period.upgraded_from_id,
        upgraded_to_id=period.upgraded_to_id,
        created_at=period.created_at,
    )


def membership_history(db: Session, user_id: int) -> MembershipHistory:
    """
    Every membership period of a user, newest first.

    Upgrade chains can be followed through upgraded_from_id/upgraded_to_id.
    """
    periods = (
        db.query(MembershipPeriod)
        .filter(MembershipPeriod.user_id == user_id)
        .order_by(MembershipPeriod.start_date.desc(), MembershipPeriod.id.desc())
        .all()
    )
    return MembershipHistory(periods=[period_response(period) for period in periods])
