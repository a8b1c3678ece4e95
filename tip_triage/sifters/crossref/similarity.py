"""Similarity primitives combining text, geospatial and temporal proximity.

Each component is in [0, 1]. Components that cannot be computed (missing
coordinates or timestamps) are dropped and the remaining weights are
renormalised, so a pair is never penalised for data it does not have.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from tip_triage.utils.geo import distance_between, hours_between, proximity
from tip_triage.utils.text import text_similarity

GEO_FALLOFF = 4.0
TIME_FALLOFF = 3.0


@dataclass
class SimilarityBreakdown:
    """Per-component similarity for one compared pair.

    Attributes:
        text: Token Jaccard similarity
        geo: Geo proximity, None if either side lacks coordinates
        time: Temporal proximity, None if either side lacks a timestamp
        distance_km: Raw distance when computable
        combined: Weighted, renormalised combination
    """

    text: float
    geo: Optional[float]
    time: Optional[float]
    distance_km: Optional[float]
    combined: float


def combine(components: Dict[str, Optional[float]], weights: Dict[str, float]) -> float:
    """Weighted mean over the components that are present."""
    available = {name: value for name, value in components.items() if value is not None}
    total_weight = sum(weights[name] for name in available)
    if total_weight == 0:
        return 0.0
    return sum(weights[name] * value for name, value in available.items()) / total_weight


def compare(
    text_a: str,
    text_b: str,
    lat_a: Optional[float],
    lon_a: Optional[float],
    lat_b: Optional[float],
    lon_b: Optional[float],
    time_a: Optional[datetime],
    time_b: Optional[datetime],
    distance_threshold_km: float,
    time_window_hours: float,
    weights: Dict[str, float],
) -> SimilarityBreakdown:
    """Compute all similarity components for one pair and combine them."""
    text = text_similarity(text_a, text_b)

    distance = distance_between(lat_a, lon_a, lat_b, lon_b)
    geo = None if distance is None else proximity(distance, distance_threshold_km, GEO_FALLOFF)

    delta = hours_between(time_a, time_b)
    temporal = None if delta is None else proximity(abs(delta), time_window_hours, TIME_FALLOFF)

    combined = combine({"text": text, "geo": geo, "time": temporal}, weights)
    return SimilarityBreakdown(
        text=text,
        geo=geo,
        time=temporal,
        distance_km=distance,
        combined=combined,
    )


__all__ = ["SimilarityBreakdown", "combine", "compare"]
