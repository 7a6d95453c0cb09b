"""
Great-circle distance helpers.
"""

import math
from typing import Optional

EARTH_RADIUS_MILES = 3959.0
EARTH_RADIUS_METERS = 6371000.0
METERS_PER_MILE = 1609.344


def _haversine(lat1: float, lng1: float, lat2: float, lng2: float, radius: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius * c


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    return _haversine(lat1, lng1, lat2, lng2, EARTH_RADIUS_MILES)


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    return _haversine(lat1, lng1, lat2, lng2, EARTH_RADIUS_METERS)


def distance_between(a, b) -> Optional[float]:
    """
    Miles between two objects exposing lat/lng, or None when either
    lacks coordinates.
    """
    if a.lat is None or a.lng is None or b.lat is None or b.lng is None:
        return None
    return haversine_miles(a.lat, a.lng, b.lat, b.lng)
