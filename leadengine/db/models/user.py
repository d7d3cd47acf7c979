from sqlalchemy import Column, Integer, String, DateTime, Float, JSON
from leadengine.core.clock import utcnow
from leadengine.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True)
    role = Column(String, nullable=False, default="contractor")  # customer | contractor | admin

    # Contractor home point (used for radius gating)
    home_lat = Column(Float, nullable=True)
    home_lng = Column(Float, nullable=True)
    services = Column(JSON, nullable=False, default=list)  # service names the contractor offers

    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def home_location(self):
        """(lat, lng) of the contractor's home, or None when unknown."""
        if self.home_lat is None or self.home_lng is None:
            return None
        return (self.home_lat, self.home_lng)
