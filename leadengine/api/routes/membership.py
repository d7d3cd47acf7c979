"""
Membership endpoints: plan catalog, effective benefits, purchase, upgrades,
cancellation and history.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from leadengine.core.auth_dependency import get_current_user_obj
from leadengine.core.cache import TTLCache
from leadengine.db.models.user import User
from leadengine.db.session import get_db
from leadengine.schemas.membership import (
    EffectivePlan,
    MembershipHistory,
    MembershipPeriodResponse,
    PlanListResponse,
    PurchaseRequest,
    UpgradeRequest,
    UpgradeResult,
)
from leadengine.services.benefit_resolver import get_effective_plan
from leadengine.services.membership_service import (
    activate_membership,
    cancel_membership,
    list_plans,
    membership_history,
    period_response,
)
from leadengine.services.upgrade_calculator import upgrade_membership

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/membership", tags=["Membership"])


def get_plan_cache(request: Request) -> TTLCache:
    """Plan catalog cache owned by the application."""
    return request.app.state.plan_cache


@router.get("/plans", response_model=PlanListResponse, status_code=status.HTTP_200_OK)
def get_plans(
    user_category: Optional[str] = Query(None, description="customer | contractor"),
    db: Session = Depends(get_db),
    cache: TTLCache = Depends(get_plan_cache)
):
    """List active membership plans."""
    return PlanListResponse(plans=list_plans(db, user_category, cache=cache))


@router.get("/effective", response_model=EffectivePlan, status_code=status.HTTP_200_OK)
def get_effective(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Get the benefits the authenticated user currently has.

    Users without an active membership get the default basic-equivalent plan.
    """
    return get_effective_plan(db, user.id)


@router.post("/upgrade", response_model=UpgradeResult, status_code=status.HTTP_200_OK)
def upgrade(
    request: UpgradeRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Upgrade the active membership.

    Unused days and leads carry over; no benefit dimension regresses.
    """
    result = upgrade_membership(db, user.id, request.plan_id, request.billing_period)
    logger.info(f"Upgrade requested via API: user_id={user.id}, new_period_id={result.new_period_id}")
    return result


@router.post("/purchase", response_model=MembershipPeriodResponse, status_code=status.HTTP_201_CREATED)
def purchase(
    request: PurchaseRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Start a membership once payment has been captured.

    The plan must match the user's role. Users with an active membership
    upgrade instead.
    """
    period = activate_membership(db, user.id, request.plan_id, request.billing_period)
    return period_response(period)


@router.post("/cancel", response_model=MembershipPeriodResponse, status_code=status.HTTP_200_OK)
def cancel(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Cancel the active membership; default benefits apply from now on."""
    return period_response(cancel_membership(db, user.id))


@router.get("/history", response_model=MembershipHistory, status_code=status.HTTP_200_OK)
def history(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Every membership period of the user, newest first, with upgrade lineage."""
    return membership_history(db, user.id)
