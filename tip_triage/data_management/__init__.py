"""Data management package for tip verification.

Provides storage adapters, collaborator protocols and schemas for:
- Verification records (VerificationRecord) - one active record per tip
- Review queue items (QueueItem) - never deleted, the review audit trail
- Read-side sources (tips, cases, leads, tipsters, scam patterns, rules)

Storage adapters:
- VerificationStore: records keyed by tip
- QueueStore: queue items with atomic claim
- InMemoryCaseRepository: all read-side sources over storage rows
"""

from tip_triage.data_management.case_repository import (
    CaseSource,
    InMemoryCaseRepository,
    RuleRegistry,
    ScamPatternRegistry,
    TipSource,
    TipsterHistorySource,
)
from tip_triage.data_management.queue_store import QueueStore
from tip_triage.data_management.verification_store import VerificationStore

__all__ = [
    "CaseSource",
    "InMemoryCaseRepository",
    "RuleRegistry",
    "ScamPatternRegistry",
    "TipSource",
    "TipsterHistorySource",
    "QueueStore",
    "VerificationStore",
]
