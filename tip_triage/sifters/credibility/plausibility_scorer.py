"""Location and time plausibility of a claimed sighting.

Location: distance from the case's last-known point, discounted by elapsed
time, so a far sighting days later is less implausible than the same
distance an hour later:

    effective_km = distance_km / sqrt(1 + hours_elapsed / 24)
    score = 15 + 75 * exp(-effective_km / 20)

Time: the sighting must fall after the last-seen time and not in the future,
and the implied travel must be possible at ordinary transport speed
(120 km/h plus 5 km slack). Infeasible travel costs 35 points and sets
travel_time_feasible=False. Recent sightings get a lag bonus.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from tip_triage.config.scoring_config import (
    FUTURE_SKEW_MINUTES,
    LAG_ADJUSTMENTS,
    LOCATION_DECAY_KM,
    LOCATION_FLOOR,
    LOCATION_RANGE,
    MAX_TRAVEL_SPEED_KMH,
    NEUTRAL_SCORE,
    STALE_LAG_ADJUSTMENT,
    TIME_BASE_SCORE,
    TIME_IMPOSSIBLE_SCORE,
    TRAVEL_FEASIBLE_BONUS,
    TRAVEL_INFEASIBLE_PENALTY,
    TRAVEL_SLACK_KM,
)
from tip_triage.data_management.schemas import CaseContext, Tip
from tip_triage.utils.geo import clamp_score, distance_between, hours_between


@dataclass
class TimeScore:
    """Time plausibility outcome.

    Attributes:
        score: Clamped 0-100 score
        travel_time_feasible: None when it could not be checked
        lag_hours: Hours from last seen to sighting, if computable
    """

    score: int
    travel_time_feasible: Optional[bool] = None
    lag_hours: Optional[float] = None


class PlausibilityScorer:
    """Scores where and when a sighting was claimed against the case timeline."""

    def __init__(
        self,
        max_travel_speed_kmh: float = MAX_TRAVEL_SPEED_KMH,
        travel_slack_km: float = TRAVEL_SLACK_KM,
        location_decay_km: float = LOCATION_DECAY_KM,
    ):
        self.max_travel_speed_kmh = max_travel_speed_kmh
        self.travel_slack_km = travel_slack_km
        self.location_decay_km = location_decay_km
        self.logger = logger.bind(component="PlausibilityScorer")

    def score_location(self, tip: Tip, case: CaseContext) -> int:
        distance = distance_between(
            tip.latitude, tip.longitude, case.last_known_latitude, case.last_known_longitude
        )
        if distance is None:
            return NEUTRAL_SCORE

        elapsed = hours_between(case.reference_time, tip.event_time) or 0.0
        effective = distance / math.sqrt(1 + max(elapsed, 0.0) / 24)
        score = LOCATION_FLOOR + LOCATION_RANGE * math.exp(-effective / self.location_decay_km)
        self.logger.debug(
            f"Location {distance:.1f}km after {elapsed:.1f}h -> {score:.1f}",
            tip_id=tip.id,
        )
        return clamp_score(score)

    def score_time(self, tip: Tip, case: CaseContext, now: datetime) -> TimeScore:
        if tip.sighting_time is None:
            return TimeScore(score=NEUTRAL_SCORE)

        if tip.sighting_time > now + timedelta(minutes=FUTURE_SKEW_MINUTES):
            return TimeScore(score=TIME_IMPOSSIBLE_SCORE, travel_time_feasible=False)

        lag = hours_between(case.reference_time, tip.sighting_time)
        if lag < 0:
            return TimeScore(score=TIME_IMPOSSIBLE_SCORE, travel_time_feasible=False, lag_hours=lag)

        score = TIME_BASE_SCORE
        feasible: Optional[bool] = None
        distance = distance_between(
            tip.latitude, tip.longitude, case.last_known_latitude, case.last_known_longitude
        )
        if distance is not None:
            reachable_km = self.max_travel_speed_kmh * lag + self.travel_slack_km
            feasible = distance <= reachable_km
            score += TRAVEL_FEASIBLE_BONUS if feasible else TRAVEL_INFEASIBLE_PENALTY

        score += self._lag_adjustment(lag)
        return TimeScore(score=clamp_score(score), travel_time_feasible=feasible, lag_hours=lag)

    @staticmethod
    def _lag_adjustment(lag_hours: float) -> int:
        for max_hours, adjustment in LAG_ADJUSTMENTS:
            if lag_hours <= max_hours:
                return adjustment
        return STALE_LAG_ADJUSTMENT


__all__ = ["PlausibilityScorer", "TimeScore"]
