"""
Lead usage endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from leadengine.core.auth_dependency import get_current_contractor
from leadengine.db.models.user import User
from leadengine.db.session import get_db
from leadengine.schemas.leads import LeadLimitStatus, LeadUsageSummary
from leadengine.services.lead_ledger import check_lead_limit, lead_usage_summary

router = APIRouter(prefix="/leads", tags=["Leads"])


@router.get("/limit", response_model=LeadLimitStatus, status_code=status.HTTP_200_OK)
def get_lead_limit(
    user: User = Depends(get_current_contractor),
    db: Session = Depends(get_db)
):
    """Whether the contractor can consume another lead, and when the window resets."""
    return check_lead_limit(db, user.id)


@router.get("/usage", response_model=LeadUsageSummary, status_code=status.HTTP_200_OK)
def get_lead_usage(
    user: User = Depends(get_current_contractor),
    db: Session = Depends(get_db)
):
    return lead_usage_summary(db, user.id)
