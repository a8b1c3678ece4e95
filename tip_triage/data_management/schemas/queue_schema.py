"""Review queue schema with an explicit status state machine.

    pending ──claim/assign──> in_review ──complete──> resolved
       ^                         │   └────escalate──> escalated
       └────────release──────────┘

resolved and escalated are terminal. in_review -> in_review is a reassignment
by an elevated caller.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from tip_triage.data_management.schemas.tip_schema import UtcDatetime, utc_now
from tip_triage.data_management.schemas.verification_schema import PriorityBucket
from tip_triage.errors import InvalidTransitionError


class QueueType(str, Enum):
    CRITICAL = "critical"
    HIGH_PRIORITY = "high_priority"
    STANDARD = "standard"
    LOW_PRIORITY = "low_priority"

    @classmethod
    def for_bucket(cls, bucket: PriorityBucket) -> "QueueType":
        return {
            PriorityBucket.CRITICAL: cls.CRITICAL,
            PriorityBucket.HIGH: cls.HIGH_PRIORITY,
            PriorityBucket.STANDARD: cls.STANDARD,
            PriorityBucket.LOW: cls.LOW_PRIORITY,
        }[bucket]


class QueueStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"
    ESCALATED = "escalated"

    @property
    def is_open(self) -> bool:
        return self in (QueueStatus.PENDING, QueueStatus.IN_REVIEW)


QUEUE_TRANSITIONS: dict[QueueStatus, frozenset[QueueStatus]] = {
    QueueStatus.PENDING: frozenset({QueueStatus.IN_REVIEW, QueueStatus.RESOLVED}),
    QueueStatus.IN_REVIEW: frozenset(
        {
            QueueStatus.PENDING,
            QueueStatus.IN_REVIEW,
            QueueStatus.RESOLVED,
            QueueStatus.ESCALATED,
        }
    ),
    QueueStatus.RESOLVED: frozenset(),
    QueueStatus.ESCALATED: frozenset(),
}


class QueueItem(BaseModel):
    """Review-routing record for a tip whose verification requires human review.

    Never deleted: the sequence of items for a tip is the review audit trail.
    """

    id: str = Field(default_factory=lambda: f"q-{uuid.uuid4().hex[:12]}")
    tip_id: str
    verification_id: str
    case_id: str
    queue_type: QueueType
    priority: int = Field(..., ge=1, description="1 = most urgent")
    sla_deadline: UtcDatetime
    status: QueueStatus = QueueStatus.PENDING
    assigned_to: Optional[str] = None
    assigned_at: Optional[UtcDatetime] = None
    review_started_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None
    outcome: Optional[str] = None
    escalated_to: Optional[str] = None
    escalated_from: Optional[str] = None
    created_at: UtcDatetime = Field(default_factory=utc_now)

    def transition_to(self, target: QueueStatus) -> None:
        """Move to target status or raise InvalidTransitionError."""
        if target not in QUEUE_TRANSITIONS[self.status]:
            raise InvalidTransitionError("QueueItem", self.status.value, target.value)
        self.status = target

    def is_sla_breached(self, now: datetime) -> bool:
        """True when the item is still open past its deadline. Derived, never stored."""
        return self.status.is_open and now > self.sla_deadline

    def sort_key(self) -> tuple[int, datetime]:
        return (self.priority, self.sla_deadline)


class QueueStats(BaseModel):
    """Aggregate counts over pending items only."""

    total_pending: int = 0
    critical_pending: int = 0
    high_priority_pending: int = 0
    standard_pending: int = 0
    low_priority_pending: int = 0
    sla_breached: int = 0


__all__ = [
    "QueueType",
    "QueueStatus",
    "QUEUE_TRANSITIONS",
    "QueueItem",
    "QueueStats",
]
