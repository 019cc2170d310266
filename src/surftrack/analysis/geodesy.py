"""
Great-circle distance and speed derivation for GPS fixes.

Distances use the haversine formula on a spherical Earth (mean radius
6371.0 km), which is well within GPS error over the few hundred metres a wave
covers. Speeds are in kilometres per hour throughout the pipeline.
"""
import math
from typing import Tuple

EARTH_RADIUS_KM = 6371.0
SECONDS_PER_HOUR = 3600.0


def distance_km(p1: Tuple[float, float], p2: Tuple[float, float]) -> float:
    """
    Haversine distance in kilometres between two (lat, lon) pairs in degrees.

    Coincident points return exactly 0.0. The intermediate term is clamped to
    [0, 1] so rounding near antipodal points can't push sqrt() into a domain
    error; antipodal points come out at half the circumference.
    """
    lat1, lon1 = p1
    lat2, lon2 = p2
    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def speed_from_distance_time(distance: float, seconds: float) -> float:
    """
    Convert a distance in km covered over `seconds` into kph.

    Returns 0.0 when seconds is zero or negative, so callers never see a
    division error, infinity or NaN.
    """
    if seconds <= 0 or not math.isfinite(seconds) or not math.isfinite(distance):
        return 0.0
    return max(0.0, distance / (seconds / SECONDS_PER_HOUR))
