"""Triage decision table: bucket, auto-triage and review requirement.

| Condition (first match wins)                                 | Bucket   |
|--------------------------------------------------------------|----------|
| spam_score > 70 OR hoax indicators >= 2                      | low (suspected_hoax) |
| high case priority AND credibility >= 70                     | critical |
| high case priority AND credibility >= 40                     | high     |
| medium case priority AND credibility >= 70                   | high     |
| credibility >= 40                                            | standard |
| otherwise                                                    | low      |

"High case priority" is critical or high. Auto-verification (no human review)
requires bucket low/standard, credibility >= 85, no hoax indicators and no
duplicate.

The table is exactly reproducible: same inputs and clock, same decision.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from tip_triage.config.scoring_config import REVIEW_PRIORITY, SLA_HOURS
from tip_triage.config.triage_config import DEFAULT_TRIAGE_CONFIG, TriageConfig
from tip_triage.data_management.schemas import (
    CasePriority,
    PriorityBucket,
    QueueType,
    VerificationStatus,
)

SUSPECTED_HOAX = "suspected_hoax"
AUTO_VERIFIED = "high_confidence_auto_verified"


@dataclass
class TriageDecision:
    """Outcome of the triage decision table.

    Attributes:
        priority_bucket: Review urgency bucket
        auto_triaged: Engine decided without a human
        auto_triage_reason: suspected_hoax / high_confidence_auto_verified / None
        requires_human_review: Whether a queue item must be created
        review_priority: 1 = most urgent
        review_deadline: now + bucket SLA
        status: Initial record status
    """

    priority_bucket: PriorityBucket
    auto_triaged: bool
    auto_triage_reason: Optional[str]
    requires_human_review: bool
    review_priority: int
    review_deadline: datetime
    status: VerificationStatus

    @property
    def queue_type(self) -> QueueType:
        return QueueType.for_bucket(self.priority_bucket)

    @property
    def suspected_hoax(self) -> bool:
        return self.auto_triage_reason == SUSPECTED_HOAX


class TriageEngine:
    """
    Joins the credibility score and the detector flags into a triage decision.

    Usage:
        engine = TriageEngine()
        decision = engine.decide(CasePriority.HIGH, 72, spam_score=0,
                                 hoax_indicator_count=0, is_duplicate=False, now=now)
        decision.priority_bucket  # PriorityBucket.CRITICAL
    """

    def __init__(self, config: TriageConfig = DEFAULT_TRIAGE_CONFIG):
        self.config = config
        self._logger = logger.bind(component="TriageEngine")

    def classify(
        self,
        case_priority: CasePriority,
        credibility_score: int,
        config: Optional[TriageConfig] = None,
    ) -> PriorityBucket:
        """Bucket from case priority and credibility alone (no hoax forcing)."""
        config = config or self.config
        if case_priority.is_high:
            if credibility_score >= config.critical_credibility:
                return PriorityBucket.CRITICAL
            if credibility_score >= config.high_credibility:
                return PriorityBucket.HIGH
        elif case_priority == CasePriority.MEDIUM:
            if credibility_score >= config.medium_high_credibility:
                return PriorityBucket.HIGH

        if credibility_score >= config.standard_credibility:
            return PriorityBucket.STANDARD
        return PriorityBucket.LOW

    def decide(
        self,
        case_priority: CasePriority,
        credibility_score: int,
        spam_score: int,
        hoax_indicator_count: int,
        is_duplicate: bool,
        now: datetime,
        config: Optional[TriageConfig] = None,
    ) -> TriageDecision:
        config = config or self.config

        suspected_hoax = (
            spam_score > config.spam_high_threshold
            or hoax_indicator_count >= config.hoax_indicator_limit
        )
        if suspected_hoax:
            bucket = PriorityBucket.LOW
        else:
            bucket = self.classify(case_priority, credibility_score, config)

        auto_verify = (
            not suspected_hoax
            and bucket in (PriorityBucket.LOW, PriorityBucket.STANDARD)
            and credibility_score >= config.auto_verify_threshold
            and hoax_indicator_count == 0
            and not is_duplicate
        )

        if suspected_hoax:
            reason = SUSPECTED_HOAX
        elif auto_verify:
            reason = AUTO_VERIFIED
        else:
            reason = None

        decision = TriageDecision(
            priority_bucket=bucket,
            auto_triaged=auto_verify,
            auto_triage_reason=reason,
            requires_human_review=not auto_verify,
            review_priority=REVIEW_PRIORITY[bucket.value],
            review_deadline=now + timedelta(hours=SLA_HOURS[bucket.value]),
            status=(
                VerificationStatus.AUTO_VERIFIED if auto_verify else VerificationStatus.PENDING_REVIEW
            ),
        )
        self._logger.debug(
            f"Triage {case_priority.value}/{credibility_score} -> {bucket.value}",
            spam_score=spam_score,
            hoax_indicators=hoax_indicator_count,
            requires_review=decision.requires_human_review,
        )
        return decision


__all__ = ["TriageEngine", "TriageDecision", "SUSPECTED_HOAX", "AUTO_VERIFIED"]
