"""Verification record schema: the engine's output for a tip.

A VerificationRecord holds every sub-score, every flag, the aggregate
credibility score and the triage decision, and later the human review
outcome. Status is an explicit state machine:

| From            | Allowed targets                                         |
|-----------------|---------------------------------------------------------|
| auto_verified   | verified, rejected                                      |
| pending_review  | verified, rejected, needs_more_info, pending_review     |
| needs_more_info | pending_review, verified, rejected                      |
| verified        | (terminal)                                              |
| rejected        | (terminal)                                              |

pending_review -> pending_review is the escalation path: the record stays
open while a new queue item is created for the escalation target.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from tip_triage.data_management.schemas.tip_schema import UtcDatetime, utc_now
from tip_triage.errors import InvalidTransitionError


class PriorityBucket(str, Enum):
    """Review urgency bucket governing queue SLA."""

    CRITICAL = "critical"
    HIGH = "high"
    STANDARD = "standard"
    LOW = "low"

    @property
    def urgency(self) -> int:
        """Urgency rank, higher is more urgent."""
        return _BUCKET_URGENCY[self]


_BUCKET_URGENCY = {
    PriorityBucket.LOW: 0,
    PriorityBucket.STANDARD: 1,
    PriorityBucket.HIGH: 2,
    PriorityBucket.CRITICAL: 3,
}


class VerificationStatus(str, Enum):
    AUTO_VERIFIED = "auto_verified"
    PENDING_REVIEW = "pending_review"
    NEEDS_MORE_INFO = "needs_more_info"
    VERIFIED = "verified"
    REJECTED = "rejected"


VERIFICATION_TRANSITIONS: dict[VerificationStatus, frozenset[VerificationStatus]] = {
    VerificationStatus.AUTO_VERIFIED: frozenset(
        {VerificationStatus.VERIFIED, VerificationStatus.REJECTED}
    ),
    VerificationStatus.PENDING_REVIEW: frozenset(
        {
            VerificationStatus.VERIFIED,
            VerificationStatus.REJECTED,
            VerificationStatus.NEEDS_MORE_INFO,
            VerificationStatus.PENDING_REVIEW,
        }
    ),
    VerificationStatus.NEEDS_MORE_INFO: frozenset(
        {
            VerificationStatus.PENDING_REVIEW,
            VerificationStatus.VERIFIED,
            VerificationStatus.REJECTED,
        }
    ),
    VerificationStatus.VERIFIED: frozenset(),
    VerificationStatus.REJECTED: frozenset(),
}


class ReviewOutcome(str, Enum):
    """Reviewer decision when completing a queue item."""

    VERIFIED = "verified"
    REJECTED = "rejected"
    ESCALATED = "escalated"
    NEEDS_MORE_INFO = "needs_more_info"

    @property
    def record_status(self) -> VerificationStatus:
        return {
            ReviewOutcome.VERIFIED: VerificationStatus.VERIFIED,
            ReviewOutcome.REJECTED: VerificationStatus.REJECTED,
            ReviewOutcome.NEEDS_MORE_INFO: VerificationStatus.NEEDS_MORE_INFO,
            ReviewOutcome.ESCALATED: VerificationStatus.PENDING_REVIEW,
        }[self]


class WarningSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class VerificationWarning(BaseModel):
    """Reviewer-facing warning attached to a verification result."""

    type: str = Field(..., description="Stable warning type, e.g. possible_duplicate")
    message: str
    severity: WarningSeverity = WarningSeverity.WARNING


class VerificationRecord(BaseModel):
    """Complete verification outcome for one tip.

    At most one record exists per tip. Forced re-verification replaces the
    content in place (same id, version + 1).
    """

    id: str = Field(default_factory=lambda: f"ver-{uuid.uuid4().hex[:12]}")
    tip_id: str
    case_id: str
    version: int = Field(default=1, ge=1)

    # Sub-scores
    photo_verification_score: int = Field(..., ge=0, le=100)
    location_verification_score: int = Field(..., ge=0, le=100)
    time_plausibility_score: int = Field(..., ge=0, le=100)
    text_analysis_score: int = Field(..., ge=0, le=100)
    cross_reference_score: int = Field(..., ge=0, le=100)
    tipster_reliability_score: int = Field(..., ge=0, le=100)
    credibility_score: int = Field(..., ge=0, le=100, description="Weighted aggregate")

    # Duplicate / cross-reference
    is_duplicate: bool = False
    duplicate_tip_ids: list[str] = Field(default_factory=list)
    primary_duplicate_id: Optional[str] = None
    similarity_scores: dict[str, float] = Field(default_factory=dict)
    matches_existing_leads: bool = False
    matching_lead_ids: list[str] = Field(default_factory=list)
    matches_known_locations: bool = False
    matches_suspect_description: bool = False
    travel_time_feasible: Optional[bool] = None

    # Hoax
    hoax_indicators: list[str] = Field(default_factory=list)
    spam_score: int = Field(default=0, ge=0, le=100)
    hoax_detection_notes: str = ""

    # Triage
    priority_bucket: PriorityBucket
    auto_triaged: bool = False
    auto_triage_reason: Optional[str] = None
    requires_human_review: bool = True
    review_priority: int = Field(..., ge=1)
    review_deadline: UtcDatetime
    status: VerificationStatus = VerificationStatus.PENDING_REVIEW

    # Enrichment
    auto_actions: list[str] = Field(default_factory=list)
    warnings: list[VerificationWarning] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    summary: str = ""

    # Human review
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[UtcDatetime] = None
    reviewer_notes: Optional[str] = None
    reviewer_credibility_override: Optional[int] = Field(default=None, ge=0, le=100)

    verified_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)

    def transition_to(self, target: VerificationStatus) -> None:
        """Move to target status or raise InvalidTransitionError."""
        if target not in VERIFICATION_TRANSITIONS[self.status]:
            raise InvalidTransitionError("VerificationRecord", self.status.value, target.value)
        self.status = target

    def apply_review(
        self,
        reviewer_id: str,
        outcome: ReviewOutcome,
        reviewed_at: datetime,
        notes: Optional[str] = None,
        override_score: Optional[int] = None,
    ) -> None:
        """Record a human review outcome on this record."""
        self.transition_to(outcome.record_status)
        self.reviewed_by = reviewer_id
        self.reviewed_at = reviewed_at
        if notes:
            self.reviewer_notes = notes
        if override_score is not None:
            self.reviewer_credibility_override = override_score
        if outcome in (ReviewOutcome.VERIFIED, ReviewOutcome.REJECTED):
            self.requires_human_review = False
        self.updated_at = reviewed_at


__all__ = [
    "PriorityBucket",
    "VerificationStatus",
    "VERIFICATION_TRANSITIONS",
    "ReviewOutcome",
    "WarningSeverity",
    "VerificationWarning",
    "VerificationRecord",
]
