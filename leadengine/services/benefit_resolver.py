"""
Benefit resolver: what a user is entitled to right now.

Read-only. The active membership period's effective-benefit snapshot is the
only source of truth for benefits; the raw plan is never consulted for values
because upgrades must not let a benefit regress.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from leadengine.core.clock import utcnow
from leadengine.core.plan_limits import DEFAULT_CONTRACTOR_BENEFITS
from leadengine.db.models.membership_period import MembershipPeriod
from leadengine.schemas.membership import EffectivePlan

logger = logging.getLogger(__name__)

# Default-tier users are treated as if their membership started a day ago
DEFAULT_PLAN_BACKDATE = timedelta(hours=24)


def get_active_period(db: Session, user_id: int, now: Optional[datetime] = None) -> Optional[MembershipPeriod]:
    """
    Get the user's active, unexpired membership period.

    Args:
        db: Database session
        user_id: User ID
        now: Evaluation time (defaults to current UTC time)

    Returns:
        Newest active period whose end date is in the future, or None
    """
    now = now or utcnow()
    return (
        db.query(MembershipPeriod)
        .filter(
            MembershipPeriod.user_id == user_id,
            MembershipPeriod.status == "active",
            MembershipPeriod.end_date > now,
        )
        .order_by(MembershipPeriod.created_at.desc(), MembershipPeriod.id.desc())
        .first()
    )


def default_effective_plan(user_id: int, now: Optional[datetime] = None) -> EffectivePlan:
    """Basic-equivalent benefits for users without an active membership."""
    now = now or utcnow()
    return EffectivePlan(
        user_id=user_id,
        source="default",
        billing_period="monthly",
        start_date=now - DEFAULT_PLAN_BACKDATE,
        **DEFAULT_CONTRACTOR_BENEFITS,
    )


def effective_plan_from_period(period: MembershipPeriod) -> EffectivePlan:
    plan = period.plan
    return EffectivePlan(
        user_id=period.user_id,
        source="membership",
        period_id=period.id,
        plan_id=period.plan_id,
        tier=plan.tier if plan else "basic",
        user_category=plan.user_category if plan else "contractor",
        billing_period=period.billing_period,
        start_date=period.start_date,
        end_date=period.end_date,
        accumulated_leads=period.accumulated_leads,
        bonus_leads=period.bonus_leads or 0,
        used_this_month=period.used_this_month or 0,
        used_this_year=period.used_this_year or 0,
        lead_reset_anchor=period.lead_reset_anchor or period.start_date,
        last_lead_reset_at=period.last_lead_reset_at or period.start_date,
        **period.snapshot(),
    )


def get_effective_plan(db: Session, user_id: int, now: Optional[datetime] = None) -> EffectivePlan:
    """
    Resolve the user's effective plan.

    Args:
        db: Database session
        user_id: User ID
        now: Evaluation time (defaults to current UTC time)

    Returns:
        EffectivePlan built from the active period's snapshot, or the default
        basic-equivalent plan when there is no active period
    """
    now = now or utcnow()
    period = get_active_period(db, user_id, now)
    if period is None:
        logger.debug(f"No active membership, using default plan: user_id={user_id}")
        return default_effective_plan(user_id, now)
    return effective_plan_from_period(period)
