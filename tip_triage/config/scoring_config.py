"""Scoring constants for tip credibility, duplicates, hoax detection and triage.

Sub-score weights (sum to 1.0):
1. Photo verification: 0.20
2. Location verification: 0.20
3. Time plausibility: 0.15
4. Text analysis: 0.15
5. Cross-reference: 0.15
6. Tipster reliability: 0.15

Any sub-score whose input is absent is scored at NEUTRAL_SCORE so the
weighting never needs renormalization.
"""

from typing import Dict

NEUTRAL_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100

SCORE_WEIGHTS: Dict[str, float] = {
    "photo_verification_score": 0.20,
    "location_verification_score": 0.20,
    "time_plausibility_score": 0.15,
    "text_analysis_score": 0.15,
    "cross_reference_score": 0.15,
    "tipster_reliability_score": 0.15,
}

EARTH_RADIUS_KM = 6371.0

# Tipster reliability
ANONYMOUS_TIPSTER_SCORE = 20
BLOCKED_TIPSTER_SCORE = 0
TIPSTER_TRAIT_BONUS = 5
TIPSTER_SPAM_PENALTY = 5

# Photo verification (per image attachment)
PHOTO_BASE_SCORE = 50
PHOTO_ADJUSTMENTS: Dict[str, int] = {
    "exif_present": 10,
    "exif_missing": -10,
    "gps_present": 10,
    "gps_missing": -5,
    "gps_within_1km": 10,
    "gps_within_5km": 5,
    "gps_beyond_50km": -15,
    "capture_within_2h": 10,
    "capture_within_24h": 5,
    "capture_beyond_7d": -15,
    "stock_photo": -30,
    "ai_generated": -40,
    "manipulated": -25,
    "no_faces": -10,
    "matches_subject": 20,
    "vision_high_quality": 5,
    "vision_low_quality": -5,
    "vision_matches_subject": 10,
}
MANIPULATION_CONFIDENCE_THRESHOLD = 0.7
EXIF_TIMESTAMP_FORMAT = "%Y:%m:%d %H:%M:%S"

# Location verification: 15 + 75 * exp(-effective_km / LOCATION_DECAY_KM)
LOCATION_FLOOR = 15
LOCATION_RANGE = 75
LOCATION_DECAY_KM = 20.0

# Time plausibility
TIME_BASE_SCORE = 50
TIME_IMPOSSIBLE_SCORE = 10
FUTURE_SKEW_MINUTES = 5
MAX_TRAVEL_SPEED_KMH = 120.0
TRAVEL_SLACK_KM = 5.0
TRAVEL_FEASIBLE_BONUS = 10
TRAVEL_INFEASIBLE_PENALTY = -35
# (max lag hours, adjustment); anything beyond the last bound gets STALE_LAG_ADJUSTMENT
LAG_ADJUSTMENTS = [(6, 30), (24, 15), (48, 5)]
STALE_LAG_ADJUSTMENT = -25

# Text analysis blend
TEXT_COMPONENT_WEIGHTS: Dict[str, float] = {
    "detail": 0.45,
    "coherence": 0.15,
    "neutrality": 0.10,
    "consistency": 0.30,
}

# Cross-reference
CROSS_REFERENCE_BASE = 35
LEAD_FIRST_BONUS = 20
LEAD_EXTRA_BONUS = 5
LEAD_BONUS_CAP = 30
TIP_FIRST_BONUS = 8
TIP_EXTRA_BONUS = 4
TIP_BONUS_CAP = 16
KNOWN_LOCATION_BONUS = 10

# Duplicate / corroboration similarity
DUPLICATE_COMPONENT_WEIGHTS: Dict[str, float] = {"text": 0.5, "geo": 0.3, "time": 0.2}
CORROBORATION_COMPONENT_WEIGHTS: Dict[str, float] = {"text": 0.15, "geo": 0.6, "time": 0.25}

# Hoax / spam heuristics
SCAM_PATTERN_BASE_POINTS = 60
SCAM_PATTERN_CONFIDENCE_POINTS = 25
PHRASE_MATCH_CONFIDENCE = 1.0
REGEX_MATCH_CONFIDENCE = 0.9
HEURISTIC_POINTS: Dict[str, int] = {
    "payment_request": 30,
    "urgency_pressure": 20,
    "identity_inconsistency": 20,
    "link_spam": 15,
    "low_content": 10,
    "shouting": 5,
    "ai_generated_content": 25,
    "stock_photo_detected": 20,
    "manipulated_media": 15,
}
LOW_CONTENT_CHARS = 20
LINK_SPAM_MIN_URLS = 2

# Triage: bucket -> SLA hours / review priority / queue type
SLA_HOURS: Dict[str, int] = {"critical": 1, "high": 4, "standard": 24, "low": 72}
REVIEW_PRIORITY: Dict[str, int] = {"critical": 1, "high": 2, "standard": 5, "low": 8}
ESCALATION_SLA_HOURS = 4
ESCALATION_PRIORITY = 1

# Enrichment thresholds
HIGH_SPAM_WARNING = 50
LOW_CREDIBILITY_WARNING = 30
NEW_LEAD_SUGGESTION_CREDIBILITY = 60
DETAIL_SUGGESTION_CHARS = 100


__all__ = [
    "NEUTRAL_SCORE",
    "MIN_SCORE",
    "MAX_SCORE",
    "SCORE_WEIGHTS",
    "EARTH_RADIUS_KM",
    "ANONYMOUS_TIPSTER_SCORE",
    "BLOCKED_TIPSTER_SCORE",
    "TIPSTER_TRAIT_BONUS",
    "TIPSTER_SPAM_PENALTY",
    "PHOTO_BASE_SCORE",
    "PHOTO_ADJUSTMENTS",
    "MANIPULATION_CONFIDENCE_THRESHOLD",
    "EXIF_TIMESTAMP_FORMAT",
    "LOCATION_FLOOR",
    "LOCATION_RANGE",
    "LOCATION_DECAY_KM",
    "TIME_BASE_SCORE",
    "TIME_IMPOSSIBLE_SCORE",
    "FUTURE_SKEW_MINUTES",
    "MAX_TRAVEL_SPEED_KMH",
    "TRAVEL_SLACK_KM",
    "TRAVEL_FEASIBLE_BONUS",
    "TRAVEL_INFEASIBLE_PENALTY",
    "LAG_ADJUSTMENTS",
    "STALE_LAG_ADJUSTMENT",
    "TEXT_COMPONENT_WEIGHTS",
    "CROSS_REFERENCE_BASE",
    "LEAD_FIRST_BONUS",
    "LEAD_EXTRA_BONUS",
    "LEAD_BONUS_CAP",
    "TIP_FIRST_BONUS",
    "TIP_EXTRA_BONUS",
    "TIP_BONUS_CAP",
    "KNOWN_LOCATION_BONUS",
    "DUPLICATE_COMPONENT_WEIGHTS",
    "CORROBORATION_COMPONENT_WEIGHTS",
    "SCAM_PATTERN_BASE_POINTS",
    "SCAM_PATTERN_CONFIDENCE_POINTS",
    "PHRASE_MATCH_CONFIDENCE",
    "REGEX_MATCH_CONFIDENCE",
    "HEURISTIC_POINTS",
    "LOW_CONTENT_CHARS",
    "LINK_SPAM_MIN_URLS",
    "SLA_HOURS",
    "REVIEW_PRIORITY",
    "ESCALATION_SLA_HOURS",
    "ESCALATION_PRIORITY",
    "HIGH_SPAM_WARNING",
    "LOW_CREDIBILITY_WARNING",
    "NEW_LEAD_SUGGESTION_CREDIBILITY",
    "DETAIL_SUGGESTION_CHARS",
]
