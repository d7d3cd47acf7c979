from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from leadengine.core.clock import utcnow
from leadengine.db.base import Base


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String, nullable=False)
    property_type = Column(String, nullable=False, default="domestic")  # domestic | commercial
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def location(self):
        """(lat, lng) of the property, or None when it was never geocoded."""
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)
