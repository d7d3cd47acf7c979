"""
Create tables and seed the plan catalog for local development.
"""
import logging
from leadengine.db.session import engine, SessionLocal
from leadengine.db.base import Base
from leadengine.db import models  # noqa: F401  registers every model on Base.metadata
from leadengine.services.membership_service import seed_plans

logger = logging.getLogger(__name__)


def init_db() -> int:
    """Create missing tables and seed plans. Returns the number of plans inserted."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        return seed_plans(db)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    inserted = init_db()
    logger.info(f"Database initialised, {inserted} plans seeded")
