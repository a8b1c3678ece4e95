"""Geospatial and numeric helpers shared by the scoring components."""

import math
from datetime import datetime
from typing import Optional

from tip_triage.config.scoring_config import EARTH_RADIUS_KM, MAX_SCORE, MIN_SCORE


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS84 points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_between(
    lat1: Optional[float],
    lon1: Optional[float],
    lat2: Optional[float],
    lon2: Optional[float],
) -> Optional[float]:
    """Distance in km, or None when either point is incomplete."""
    if None in (lat1, lon1, lat2, lon2):
        return None
    return haversine_km(lat1, lon1, lat2, lon2)


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Signed hours from start to end, or None when either is missing."""
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600.0


def round_half_up(value: float) -> int:
    """Round to nearest integer with .5 rounding away from zero for positives."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round and clamp a raw score into [0, 100]."""
    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(value)))


def proximity(value: float, threshold: float, falloff: float) -> float:
    """1.0 inside threshold, decaying linearly to 0 over falloff * threshold beyond it."""
    if value <= threshold:
        return 1.0
    return max(0.0, 1.0 - (value - threshold) / (falloff * threshold))


__all__ = [
    "haversine_km",
    "distance_between",
    "hours_between",
    "round_half_up",
    "clamp_score",
    "proximity",
]
