"""
Membership upgrades.

An upgrade supersedes the active period with a new one whose benefit
snapshot is the best-of merge of the old snapshot and the new plan, so no
dimension ever regresses across the upgrade lineage. Unused days and leads
from the old period carry over.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session

from leadengine.core.clock import utcnow
from leadengine.core.errors import NotFoundError, PlanMismatchError, ValidationError
from leadengine.core.plan_limits import (
    BILLING_PERIODS,
    CONTRACTOR_FEATURES,
    CUSTOMER_FEATURES,
    PLAN_DURATION_DAYS,
    lead_allocation,
    upgrade_rank,
)
from leadengine.db.models.membership_period import MembershipPeriod, SNAPSHOT_COLUMNS
from leadengine.db.models.membership_plan import MembershipPlan
from leadengine.schemas.membership import BenefitSnapshot, UpgradeResult
from leadengine.services.benefit_resolver import get_active_period
from leadengine.services.lead_ledger import check_lead_limit

logger = logging.getLogger(__name__)


def merge_max_unlimited(old: Optional[float], new: Optional[float]) -> Optional[float]:
    """Larger of two values where None (unlimited) beats any number."""
    if old is None or new is None:
        return None
    return max(old, new)


def remaining_days(end_date: datetime, now: datetime) -> int:
    """Whole days left on a period, rounded up and never negative."""
    seconds = (end_date - now).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 86400)


def plan_benefits(plan: MembershipPlan) -> Dict[str, Any]:
    return {dimension: getattr(plan, dimension) for dimension in SNAPSHOT_COLUMNS}


def calculate_effective_benefits(
    old: Dict[str, Any],
    new: Dict[str, Any],
    user_category: str,
    billing_period: str,
    old_lead_limit: Optional[int] = None,
    old_leads_used: int = 0,
    days_left: int = 0,
) -> Dict[str, Any]:
    """
    Merge an old benefit snapshot with a new plan.

    Pure function: no database access.

    Args:
        old: Current effective snapshot keyed by dimension
        new: New plan's benefits keyed by dimension
        user_category: "contractor" or "customer"
        billing_period: Billing period of the new period
        old_lead_limit: Lead limit of the old window (None = unlimited)
        old_leads_used: Leads consumed in the old window
        days_left: Remaining days on the old period

    Returns:
        Dict with the merged snapshot under "effective" plus the carried-over
        day and lead figures
    """
    effective = dict(new)

    if user_category == "contractor":
        effective["leads_per_month"] = merge_max_unlimited(old["leads_per_month"], new["leads_per_month"])
        effective["radius_km"] = merge_max_unlimited(old["radius_km"], new["radius_km"])
        effective["access_delay_hours"] = min(old["access_delay_hours"], new["access_delay_hours"])
        features = CONTRACTOR_FEATURES
    else:
        effective["max_properties"] = merge_max_unlimited(old["max_properties"], new["max_properties"])
        effective["platform_fee_percent"] = min(old["platform_fee_percent"], new["platform_fee_percent"])
        if "commercial" in (old["property_type"], new["property_type"]):
            effective["property_type"] = "commercial"
        features = CUSTOMER_FEATURES

    for feature in features:
        effective[feature] = bool(old[feature]) or bool(new[feature])

    bonus_leads = 0
    accumulated_leads = None
    if user_category == "contractor":
        new_allocation = lead_allocation(new["leads_per_month"], billing_period)
        if old_lead_limit is None or new_allocation is None:
            effective["leads_per_month"] = None
        else:
            bonus_leads = max(0, old_lead_limit - old_leads_used)
            accumulated_leads = bonus_leads + new_allocation

    duration = PLAN_DURATION_DAYS[billing_period]
    return {
        "effective": effective,
        "bonus_leads": bonus_leads,
        "accumulated_leads": accumulated_leads,
        "remaining_days": days_left,
        "new_plan_duration_days": duration,
        "accumulated_days": days_left + duration,
    }


def upgrade_membership(
    db: Session,
    user_id: int,
    new_plan_id: int,
    billing_period: Optional[str] = None,
    now: Optional[datetime] = None,
) -> UpgradeResult:
    """
    Upgrade the user's active membership to a higher plan.

    Args:
        db: Database session
        user_id: User ID
        new_plan_id: Target plan ID
        billing_period: New billing period (defaults to the current one)
        now: Evaluation time (defaults to current UTC time)

    Returns:
        UpgradeResult describing the new period

    Raises:
        NotFoundError: No active period, or the plan does not exist
        PlanMismatchError: Cross-category move or not an upgrade
        ValidationError: Unknown billing period
    """
    now = now or utcnow()

    current = get_active_period(db, user_id, now)
    if current is None:
        raise NotFoundError("No active membership to upgrade", user_id=user_id)

    new_plan = db.get(MembershipPlan, new_plan_id)
    if new_plan is None or not new_plan.is_active:
        raise NotFoundError("Plan not found", plan_id=new_plan_id)

    billing_period = billing_period or current.billing_period
    if billing_period not in BILLING_PERIODS:
        raise ValidationError(f"Invalid billing period: {billing_period}", billing_period=billing_period)

    old_plan = current.plan
    if new_plan.user_category != old_plan.user_category:
        raise PlanMismatchError(
            "Cannot change membership category on upgrade",
            current_category=old_plan.user_category,
            requested_category=new_plan.user_category,
        )

    if upgrade_rank(new_plan.tier, billing_period) <= upgrade_rank(old_plan.tier, current.billing_period):
        raise PlanMismatchError(
            "Requested plan is not an upgrade",
            current_tier=old_plan.tier,
            current_billing_period=current.billing_period,
            requested_tier=new_plan.tier,
            requested_billing_period=billing_period,
        )

    old_lead_limit = None
    old_leads_used = 0
    if old_plan.user_category == "contractor":
        status = check_lead_limit(db, user_id, now)
        old_lead_limit = status.leads_limit
        old_leads_used = status.leads_used

    calculation = calculate_effective_benefits(
        current.snapshot(),
        plan_benefits(new_plan),
        old_plan.user_category,
        billing_period,
        old_lead_limit=old_lead_limit,
        old_leads_used=old_leads_used,
        days_left=remaining_days(current.end_date, now),
    )
    effective = calculation["effective"]
    new_end_date = now + timedelta(days=calculation["accumulated_days"])

    new_period = MembershipPeriod(
        user_id=user_id,
        plan_id=new_plan.id,
        status="active",
        billing_period=billing_period,
        start_date=now,
        end_date=new_end_date,
        accumulated_leads=calculation["accumulated_leads"],
        bonus_leads=calculation["bonus_leads"],
        used_this_month=0,
        used_this_year=0,
        lead_reset_anchor=now,
        last_lead_reset_at=now,
        upgraded_from_id=current.id,
        created_at=now,
        **{column: effective[dimension] for dimension, column in SNAPSHOT_COLUMNS.items()},
    )

    try:
        current.status = "upgraded"
        db.add(new_period)
        db.flush()
        current.upgraded_to_id = new_period.id
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Upgrade failed: user_id={user_id}, period_id={current.id}, plan_id={new_plan.id}")
        raise

    db.refresh(new_period)

    logger.info(
        f"Membership upgraded: user_id={user_id}, {old_plan.tier}/{current.billing_period} -> "
        f"{new_plan.tier}/{billing_period}, period {current.id} -> {new_period.id}, "
        f"accumulated_days={calculation['accumulated_days']}, accumulated_leads={calculation['accumulated_leads']}"
    )

    return UpgradeResult(
        previous_period_id=current.id,
        new_period_id=new_period.id,
        plan_id=new_plan.id,
        billing_period=billing_period,
        remaining_days=calculation["remaining_days"],
        new_plan_duration_days=calculation["new_plan_duration_days"],
        accumulated_days=calculation["accumulated_days"],
        new_end_date=new_end_date,
        bonus_leads=calculation["bonus_leads"],
        accumulated_leads=calculation["accumulated_leads"],
        effective=BenefitSnapshot(**effective),
    )
