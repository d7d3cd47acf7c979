"""
Great-circle distance helpers.
"""
import math
from typing import Tuple

EARTH_RADIUS_KM = 6371.0


def haversine_km(origin: Tuple[float, float], destination: Tuple[float, float]) -> float:
    """
    Distance in kilometres between two (lat, lng) points.

    Args:
        origin: (latitude, longitude) in degrees
        destination: (latitude, longitude) in degrees
    """
    lat1, lng1 = origin
    lat2, lng2 = destination
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c

