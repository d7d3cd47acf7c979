"""
Health check endpoint for deployment monitoring.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leadengine.core.clock import utcnow
from leadengine.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check(db: Session = Depends(get_db)):
    """
    Returns 200 with status "healthy" when the database answers,
    "degraded" otherwise.
    """
    status = "healthy"

    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        logger.warning(f"Health check database error: {e}")
        db_status = f"error: {str(e)}"
        status = "degraded"

    return {
        "status": status,
        "timestamp": utcnow().isoformat(),
        "database": db_status,
        "version": "1.0.0",
    }
