"""Schemas for tip verification.

- tip_schema: engine-side inputs (Tip, Attachment, CaseContext, Lead, TipsterProfile,
  ScamPattern, VerificationRule)
- verification_schema: VerificationRecord and its status state machine
- queue_schema: QueueItem and its status state machine
- context_schema: VerificationContext handed to the evaluators
"""

from tip_triage.data_management.schemas.tip_schema import (
    Attachment,
    CaseContext,
    CasePriority,
    KnownLocation,
    Lead,
    ReliabilityTier,
    RuleType,
    ScamPattern,
    Tip,
    TipsterProfile,
    UtcDatetime,
    VerificationRule,
    utc_now,
)
from tip_triage.data_management.schemas.verification_schema import (
    VERIFICATION_TRANSITIONS,
    PriorityBucket,
    ReviewOutcome,
    VerificationRecord,
    VerificationStatus,
    VerificationWarning,
    WarningSeverity,
)
from tip_triage.data_management.schemas.queue_schema import (
    QUEUE_TRANSITIONS,
    QueueItem,
    QueueStats,
    QueueStatus,
    QueueType,
)
from tip_triage.data_management.schemas.context_schema import VerificationContext

__all__ = [
    "Attachment",
    "CaseContext",
    "CasePriority",
    "KnownLocation",
    "Lead",
    "ReliabilityTier",
    "RuleType",
    "ScamPattern",
    "Tip",
    "TipsterProfile",
    "UtcDatetime",
    "VerificationRule",
    "utc_now",
    "VERIFICATION_TRANSITIONS",
    "PriorityBucket",
    "ReviewOutcome",
    "VerificationRecord",
    "VerificationStatus",
    "VerificationWarning",
    "WarningSeverity",
    "QUEUE_TRANSITIONS",
    "QueueItem",
    "QueueStats",
    "QueueStatus",
    "QueueType",
    "VerificationContext",
]
