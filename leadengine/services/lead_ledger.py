"""
Lead ledger: metering of lead credits against a reset window.

The reset cadence follows the billing period of the active membership:
monthly billing resets every month on the anchor's day-of-month and UTC
time-of-day, yearly billing draws from one annual pool that resets on the
anchor's anniversary. Windows are always computed as anchor + k periods, so
short months never shift later windows.

The stored counter is a cache of the append-only LeadAccessRecord log. When a
window boundary has been crossed since the last reset, the counter is
recomputed from the log and persisted.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple
from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session

from leadengine.core.clock import utcnow
from leadengine.core.plan_limits import lead_allocation
from leadengine.db.models.lead_access import LeadAccessRecord
from leadengine.db.models.membership_period import MembershipPeriod
from leadengine.schemas.leads import LeadLimitStatus, LeadUsageSummary
from leadengine.schemas.membership import EffectivePlan
from leadengine.services.benefit_resolver import get_effective_plan

logger = logging.getLogger(__name__)

COUNTER_FIELDS = {
    "monthly": "used_this_month",
    "yearly": "used_this_year",
}

WINDOW_STEP = {
    "monthly": lambda k: relativedelta(months=k),
    "yearly": lambda k: relativedelta(years=k),
}


def counter_field(billing_period: str) -> str:
    """Name of the MembershipPeriod counter used for a billing period."""
    return COUNTER_FIELDS.get(billing_period, "used_this_month")


def reset_window(anchor: datetime, billing_period: str, now: datetime) -> Tuple[datetime, datetime, int]:
    """
    Get the reset window containing ``now``.

    Args:
        anchor: Start of the first window
        billing_period: "monthly" or "yearly"
        now: Evaluation time

    Returns:
        Tuple of (window_start, window_end, window_index); window_index 0 is
        the window that starts at the anchor
    """
    step = WINDOW_STEP.get(billing_period, WINDOW_STEP["monthly"])
    if now < anchor:
        return anchor, anchor + step(1), 0

    if billing_period == "yearly":
        index = now.year - anchor.year
    else:
        index = (now.year - anchor.year) * 12 + (now.month - anchor.month)

    start = anchor + step(index)
    if start > now:
        index -= 1
        start = anchor + step(index)
    return start, anchor + step(index + 1), index


def calendar_month_window(now: datetime) -> Tuple[datetime, datetime]:
    """Current UTC calendar month, used for users without a membership."""
    start = datetime(now.year, now.month, 1)
    return start, start + relativedelta(months=1)


def window_limit(plan: EffectivePlan, window_index: int) -> Optional[int]:
    """
    Lead limit for a window. None means unlimited.

    The accumulated ceiling from an upgrade applies to the first window only;
    later windows fall back to the plan allocation.
    """
    if plan.leads_per_month is None:
        return None
    if plan.accumulated_leads is not None and window_index == 0:
        return plan.accumulated_leads
    return lead_allocation(plan.leads_per_month, plan.billing_period)


def count_leads_in_window(db: Session, contractor_id: int, start: datetime, end: datetime) -> int:
    """Count LeadAccessRecords for a contractor with start <= accessed_at < end."""
    count = db.query(func.count(LeadAccessRecord.id)).filter(
        LeadAccessRecord.contractor_id == contractor_id,
        LeadAccessRecord.accessed_at >= start,
        LeadAccessRecord.accessed_at < end,
    ).scalar()
    return int(count or 0)


def _build_status(
    used: int,
    limit: Optional[int],
    window_start: datetime,
    reset_date: datetime,
    billing_period: str,
) -> LeadLimitStatus:
    if limit is None:
        return LeadLimitStatus(
            can_access=True,
            leads_used=used,
            leads_limit=None,
            remaining=None,
            unlimited=True,
            reset_date=reset_date,
            window_start=window_start,
            billing_period=billing_period,
        )

    if used >= limit:
        label = "Annual" if billing_period == "yearly" else "Monthly"
        return LeadLimitStatus(
            can_access=False,
            reason=f"{label} lead limit reached ({used}/{limit}). Resets on {reset_date.date().isoformat()}.",
            leads_used=used,
            leads_limit=limit,
            remaining=0,
            unlimited=False,
            reset_date=reset_date,
            window_start=window_start,
            billing_period=billing_period,
        )

    return LeadLimitStatus(
        can_access=True,
        leads_used=used,
        leads_limit=limit,
        remaining=max(0, limit - used),
        unlimited=False,
        reset_date=reset_date,
        window_start=window_start,
        billing_period=billing_period,
    )


def check_lead_limit(db: Session, user_id: int, now: Optional[datetime] = None) -> LeadLimitStatus:
    """
    Check whether the user may consume another lead.

    Reconciles the stored counter against the LeadAccessRecord log when a
    window boundary has been crossed since the last reset.

    Args:
        db: Database session
        user_id: Contractor user ID
        now: Evaluation time (defaults to current UTC time)

    Returns:
        LeadLimitStatus for the current window
    """
    now = now or utcnow()
    plan = get_effective_plan(db, user_id, now)

    if not plan.has_membership:
        start, end = calendar_month_window(now)
        used = count_leads_in_window(db, user_id, start, end)
        return _build_status(used, window_limit(plan, 1), start, end, plan.billing_period)

    field = counter_field(plan.billing_period)
    start, end, index = reset_window(plan.lead_reset_anchor, plan.billing_period, now)
    used = getattr(plan, field)

    if plan.last_lead_reset_at < start:
        actual = count_leads_in_window(db, user_id, start, end)
        period = db.get(MembershipPeriod, plan.period_id)
        setattr(period, field, actual)
        period.last_lead_reset_at = now
        db.commit()

        if actual != used:
            logger.info(
                f"Lead counter reconciled: user_id={user_id}, period_id={plan.period_id}, "
                f"field={field}, stored={used}, actual={actual}"
            )
        used = actual

    return _build_status(used, window_limit(plan, index), start, end, plan.billing_period)


def increment_period_counter(
    db: Session,
    period_id: int,
    field: str,
    delta: int = 1,
    below: Optional[int] = None,
    commit: bool = True,
) -> bool:
    """
    Atomically add ``delta`` to a period's lead counter.

    Args:
        db: Database session
        period_id: MembershipPeriod ID
        field: "used_this_month" or "used_this_year"
        delta: Amount to add (negative values undo an increment)
        below: When set, only update while the counter is below this value
        commit: Commit immediately; pass False to join a larger transaction

    Returns:
        True if a row was updated
    """
    if field not in COUNTER_FIELDS.values():
        raise ValueError(f"Unknown lead counter: {field}")

    column = getattr(MembershipPeriod, field)
    query = db.query(MembershipPeriod).filter(MembershipPeriod.id == period_id)
    if below is not None:
        query = query.filter(column < below)

    updated = query.update({column: column + delta}, synchronize_session=False)
    if commit:
        db.commit()
    return updated > 0


def increment_lead_usage(db: Session, user_id: int, now: Optional[datetime] = None) -> bool:
    """
    Record one consumed lead on the counter matching the billing mode.

    Users without a membership have no stored counter; their usage is read
    straight from the LeadAccessRecord log.

    Returns:
        True if a counter was incremented
    """
    plan = get_effective_plan(db, user_id, now)
    if not plan.has_membership:
        logger.debug(f"No membership counter to increment: user_id={user_id}")
        return False

    field = counter_field(plan.billing_period)
    incremented = increment_period_counter(db, plan.period_id, field)
    logger.info(f"Lead usage incremented: user_id={user_id}, period_id={plan.period_id}, field={field}")
    return incremented


def increment_lead_usage_if_below(
    db: Session,
    period_id: int,
    field: str,
    limit: Optional[int],
    commit: bool = True,
) -> bool:
    """
    Conditional increment: only consume a lead while the counter is below ``limit``.

    Closes the check-then-increment race for concurrent requests in the same
    billing window. A ``limit`` of None means unlimited.

    Returns:
        True if the counter was incremented
    """
    incremented = increment_period_counter(db, period_id, field, below=limit, commit=commit)
    if not incremented:
        logger.warning(f"Conditional lead increment refused: period_id={period_id}, field={field}, limit={limit}")
    return incremented


def lead_usage_summary(db: Session, user_id: int, now: Optional[datetime] = None) -> LeadUsageSummary:
    """Get lead usage formatted for the contractor dashboard."""
    now = now or utcnow()
    status = check_lead_limit(db, user_id, now)
    plan = get_effective_plan(db, user_id, now)
    return LeadUsageSummary(
        tier=plan.tier,
        source=plan.source,
        billing_period=plan.billing_period,
        status=status,
        used_this_month=plan.used_this_month,
        used_this_year=plan.used_this_year,
    )
