"""Geographic helpers for discover distance and booking check-in"""

import math
from typing import Optional

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates in kilometres"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(
    lat1: Optional[float], lng1: Optional[float], lat2: Optional[float], lng2: Optional[float]
) -> Optional[float]:
    """Distance in km rounded to 2 decimals, or None when a side has no coordinates"""
    if None in (lat1, lng1, lat2, lng2):
        return None
    return round(haversine_km(lat1, lng1, lat2, lng2), 2)


def is_within_radius(
    lat1: float, lng1: float, lat2: float, lng2: float, radius_km: float
) -> tuple[bool, float]:
    """Return (inside, distance_in_metres)"""
    distance_km = haversine_km(lat1, lng1, lat2, lng2)
    return distance_km <= radius_km, round(distance_km * 1000)
