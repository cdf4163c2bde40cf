"""
Great-circle distance and distance-to-score bucketing.
"""

import math
import sys

from eventrec.models.domain.event_domain import Location

EARTH_RADIUS_KM = 6371.0

# Returned for missing/invalid locations so such events sort last
MAX_DISTANCE_KM = sys.float_info.max

# (upper bound km, score), checked in order
GEO_SCORE_TIERS: tuple[tuple[float, float], ...] = (
    (5.0, 1.0),
    (10.0, 0.8),
    (20.0, 0.5),
    (50.0, 0.2),
)


def distance_km(a: Location | None, b: Location | None) -> float:
    """Haversine distance in km, or MAX_DISTANCE_KM if either location is unusable."""
    if a is None or b is None or not a.is_valid() or not b.is_valid():
        return MAX_DISTANCE_KM

    lat1 = math.radians(a.latitude)
    lon1 = math.radians(a.longitude)
    lat2 = math.radians(b.latitude)
    lon2 = math.radians(b.longitude)

    d_lat = lat2 - lat1
    d_lon = lon2 - lon1

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_KM * c


def geo_score(distance: float | None) -> float:
    if distance is None or distance < 0 or math.isnan(distance):
        return 0.0

    for upper_bound, score in GEO_SCORE_TIERS:
        if distance <= upper_bound:
            return score
    return 0.0


def is_real_distance(distance: float | None) -> bool:
    return distance is not None and 0 <= distance < MAX_DISTANCE_KM
