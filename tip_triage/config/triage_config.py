"""Tunable thresholds shared by the detectors and the triage decision table.

TriageConfig is an immutable strategy object. Threshold rules produce a new
instance per verification via ``with_overrides``; nothing is mutated globally.
Base sub-score weights are not tunable here; they live in
tip_triage.config.scoring_config.
"""

from typing import Any, Mapping

from pydantic import BaseModel, Field, model_validator

from tip_triage.config.scoring_config import ANONYMOUS_TIPSTER_SCORE


class TriageConfig(BaseModel):
    """Thresholds for duplicates, corroboration, hoax forcing and bucket assignment."""

    # Hoax forcing
    spam_high_threshold: int = Field(default=70, ge=0, le=100)
    hoax_indicator_limit: int = Field(default=2, ge=1)

    # Bucket table
    critical_credibility: int = Field(default=70, ge=0, le=100)
    high_credibility: int = Field(default=40, ge=0, le=100)
    medium_high_credibility: int = Field(default=70, ge=0, le=100)
    standard_credibility: int = Field(default=40, ge=0, le=100)
    auto_verify_threshold: int = Field(default=85, ge=0, le=100)

    # Duplicates
    duplicate_distance_km: float = Field(default=0.5, gt=0)
    duplicate_time_window_hours: float = Field(default=3.0, gt=0)
    duplicate_similarity_threshold: float = Field(default=0.75, ge=0, le=1)
    duplicate_min_text_similarity: float = Field(default=0.5, ge=0, le=1)

    # Corroboration
    lead_match_radius_km: float = Field(default=5.0, gt=0)
    lead_time_window_hours: float = Field(default=48.0, gt=0)
    lead_match_threshold: float = Field(default=0.6, ge=0, le=1)
    corroboration_radius_km: float = Field(default=2.0, gt=0)
    corroboration_time_window_hours: float = Field(default=24.0, gt=0)
    corroboration_threshold: float = Field(default=0.6, ge=0, le=1)
    known_location_radius_km: float = Field(default=5.0, gt=0)
    location_text_match_threshold: float = Field(default=0.5, ge=0, le=1)

    # Scoring
    anonymous_tipster_score: int = Field(default=ANONYMOUS_TIPSTER_SCORE, ge=0, le=100)

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def _check_bucket_order(self) -> "TriageConfig":
        # A high-priority case must reach at least the high bucket wherever a
        # medium-priority case does.
        if min(self.critical_credibility, self.high_credibility) > self.medium_high_credibility:
            raise ValueError(
                "critical_credibility or high_credibility must not exceed medium_high_credibility"
            )
        return self

    def with_overrides(self, overrides: Mapping[str, Any]) -> "TriageConfig":
        """Return a validated copy with the given fields replaced.

        Raises:
            pydantic.ValidationError: unknown field, out-of-range value, or
                bucket thresholds that would rank a higher case priority
                below a lower one.
        """
        if not overrides:
            return self
        return TriageConfig.model_validate({**self.model_dump(), **dict(overrides)})


BUCKET_THRESHOLD_FIELDS = frozenset(
    {
        "critical_credibility",
        "high_credibility",
        "medium_high_credibility",
        "standard_credibility",
    }
)

DEFAULT_TRIAGE_CONFIG = TriageConfig()

__all__ = ["TriageConfig", "DEFAULT_TRIAGE_CONFIG", "BUCKET_THRESHOLD_FIELDS"]
