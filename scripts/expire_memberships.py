"""
Script to close membership periods whose end date has passed.
Run: python -m scripts.expire_memberships
"""
import logging

from leadengine.core.logging_config import setup_logging
from leadengine.db.session import SessionLocal
from leadengine.services.membership_service import expire_lapsed_periods

setup_logging()
logger = logging.getLogger(__name__)


def main() -> int:
    db = SessionLocal()
    try:
        expired = expire_lapsed_periods(db)
        logger.info(f"✅ Expired {expired} membership periods")
        return expired
    finally:
        db.close()


if __name__ == "__main__":
    main()
