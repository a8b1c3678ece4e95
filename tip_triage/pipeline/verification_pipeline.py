"""Tip verification pipeline: load -> evaluate -> triage -> commit.

Stages:
1. Guard: reject a second verification unless forced; reject a forced one
   while the tip's review item is in_review.
2. Load the context (tip and case required, everything else optional).
3. Resolve per-request thresholds from THRESHOLD rules.
4. Run the three independent evaluators concurrently:
   credibility scoring, duplicate detection, hoax matching.
5. Triage, then ROUTING rules, then enrichment.
6. Commit: save the record, then enqueue (or reroute the pending item).
   A pending item whose tip no longer needs review is resolved as superseded.
   Any failure or cancellation after the save restores the previous record.
7. Bump scam pattern detection counters.

Nothing is persisted before stage 6, so a cancelled request leaves no trace.

Usage:
    from tip_triage.pipeline import VerificationPipeline

    pipeline = VerificationPipeline.from_repository(repo)
    outcome = await pipeline.verify("tip-001")
    outcome.record.priority_bucket
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from tip_triage.config.triage_config import DEFAULT_TRIAGE_CONFIG, TriageConfig
from tip_triage.data_management.case_repository import InMemoryCaseRepository
from tip_triage.data_management.queue_store import QueueStore
from tip_triage.data_management.schemas import (
    QueueItem,
    QueueStatus,
    VerificationContext,
    VerificationRecord,
    utc_now,
)
from tip_triage.data_management.verification_store import VerificationStore
from tip_triage.errors import (
    ConflictError,
    PersistenceError,
    TipTriageError,
    ValidationError,
)
from tip_triage.pipeline.context_loader import ContextLoader
from tip_triage.pipeline.enrichment import QUEUED, REROUTED, Enrichment, ResultEnricher
from tip_triage.sifters.credibility import CredibilityAssessment, CredibilityScoringEngine
from tip_triage.sifters.crossref import DuplicateDetector, DuplicateResult
from tip_triage.sifters.hoax import HoaxMatcher, HoaxResult
from tip_triage.sifters.triage import RuleSet, TriageDecision, TriageEngine, pre_score_facts
from tip_triage.utils.logging import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
    get_structured_logger,
)


@dataclass
class VerificationOutcome:
    """Everything produced by one verification.

    Attributes:
        record: The committed VerificationRecord
        queue_item: Queue item created or rerouted, if review is required
        assessment: Credibility breakdown
        duplicates: Duplicate and cross-reference result
        hoax: Hoax matching result
        decision: Final triage decision (after routing rules)
        applied_rules: Names of rules that changed thresholds or routing
        correlation_id: Request correlation id
    """

    record: VerificationRecord
    queue_item: Optional[QueueItem]
    assessment: CredibilityAssessment
    duplicates: DuplicateResult
    hoax: HoaxResult
    decision: TriageDecision
    applied_rules: List[str] = field(default_factory=list)
    correlation_id: Optional[str] = None


class VerificationPipeline:
    """Orchestrates one tip verification end to end."""

    def __init__(
        self,
        loader: ContextLoader,
        verification_store: Optional[VerificationStore] = None,
        queue_store: Optional[QueueStore] = None,
        scoring_engine: Optional[CredibilityScoringEngine] = None,
        duplicate_detector: Optional[DuplicateDetector] = None,
        hoax_matcher: Optional[HoaxMatcher] = None,
        triage_engine: Optional[TriageEngine] = None,
        enricher: Optional[ResultEnricher] = None,
        base_config: TriageConfig = DEFAULT_TRIAGE_CONFIG,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize VerificationPipeline.

        Args:
            loader: Context loader over the read-side collaborators.
            verification_store: Shared record store.
            queue_store: Shared review queue.
            scoring_engine: Credibility engine; built with the pipeline clock if None.
            duplicate_detector: Duplicate detector.
            hoax_matcher: Hoax matcher.
            triage_engine: Triage decision table.
            enricher: Result enrichment.
            base_config: Thresholds before rule overrides.
            clock: Source of "now" for SLA deadlines and time plausibility.
        """
        self.loader = loader
        self.verification_store = verification_store or VerificationStore()
        self.queue_store = queue_store or QueueStore(clock=clock)
        self.scoring_engine = scoring_engine or CredibilityScoringEngine(clock=clock)
        self.duplicate_detector = duplicate_detector or DuplicateDetector()
        self.hoax_matcher = hoax_matcher or HoaxMatcher()
        self.triage_engine = triage_engine or TriageEngine()
        self.enricher = enricher or ResultEnricher()
        self.base_config = base_config
        self.clock = clock
        self._logger = get_structured_logger(__name__, component="VerificationPipeline")

    @classmethod
    def from_repository(
        cls,
        repository: InMemoryCaseRepository,
        **kwargs,
    ) -> "VerificationPipeline":
        return cls(ContextLoader.from_repository(repository), **kwargs)

    async def verify(self, tip_id: str, force: bool = False) -> VerificationOutcome:
        """Verify one tip.

        Args:
            tip_id: Tip to verify.
            force: Replace an existing record (forced re-verification).

        Returns:
            VerificationOutcome with the committed record.

        Raises:
            ValidationError: tip_id missing.
            NotFoundError: Tip or case does not exist.
            ConflictError: Already verified without force, or review in progress.
            PersistenceError: Required source or storage failed.
        """
        if not tip_id or not str(tip_id).strip():
            raise ValidationError("tipId is required", field_errors={"tipId": ["required"]})

        correlation_id = get_correlation_id()
        bind_request_context(correlation_id=correlation_id, tip_id=tip_id)
        try:
            return await self._verify(tip_id, force, correlation_id)
        finally:
            clear_request_context()

    async def _verify(self, tip_id: str, force: bool, correlation_id: str) -> VerificationOutcome:
        self._logger.info("verification_started", stage="guard", force=force)

        existing = await self.verification_store.get_by_tip(tip_id)
        open_item: Optional[QueueItem] = None
        if existing is not None:
            if not force:
                raise ConflictError(
                    f"Tip {tip_id} already has a verification record",
                    reason="already_verified",
                    details={"tip_id": tip_id, "verification_id": existing.id},
                )
            open_item = await self.queue_store.find_open_for_tip(tip_id)
            if open_item is not None and open_item.status == QueueStatus.IN_REVIEW:
                raise ConflictError(
                    f"Tip {tip_id} is under review by {open_item.assigned_to}",
                    reason="review_in_progress",
                    details={"queue_item_id": open_item.id, "assigned_to": open_item.assigned_to},
                )

        context = await self.loader.load(tip_id, correlation_id=correlation_id)
        self._logger.info(
            "context_ready",
            stage="load",
            case_id=context.case.id,
            degraded=sorted(context.degraded_sources),
        )

        facts = pre_score_facts(context)
        rules = RuleSet(context.rules)
        config, threshold_rules = rules.resolve_config(facts, self.base_config)

        assessment, duplicates, hoax = await asyncio.gather(
            self.scoring_engine.score(context, config),
            asyncio.to_thread(self.duplicate_detector.detect, context, config),
            asyncio.to_thread(self.hoax_matcher.match, context),
        )
        self._logger.info(
            "evaluators_complete",
            stage="evaluate",
            credibility_score=assessment.credibility_score,
            is_duplicate=duplicates.is_duplicate,
            spam_score=hoax.spam_score,
        )

        now = self.clock()
        decision = self.triage_engine.decide(
            case_priority=context.case.priority,
            credibility_score=assessment.credibility_score,
            spam_score=hoax.spam_score,
            hoax_indicator_count=len(hoax.hoax_indicators),
            is_duplicate=duplicates.is_duplicate,
            now=now,
            config=config,
        )
        decision, routing_rules = rules.apply_routing(
            decision,
            {
                **facts,
                "credibility_score": assessment.credibility_score,
                "spam_score": hoax.spam_score,
                "hoax_indicator_count": len(hoax.hoax_indicators),
                "is_duplicate": duplicates.is_duplicate,
                "priority_bucket": decision.priority_bucket.value,
            },
        )
        applied = [r.name for r in threshold_rules] + [r.name for r in routing_rules]

        reroute = open_item is not None and open_item.status == QueueStatus.PENDING
        enrichment = self.enricher.enrich(
            context,
            assessment,
            duplicates,
            hoax,
            decision,
            applied,
            REROUTED if reroute else QUEUED,
        )
        record = self._build_record(context, assessment, duplicates, hoax, decision, enrichment, now)

        record, queue_item = await self._commit(
            record,
            replace=existing is not None,
            open_item=open_item,
            decision=decision,
            correlation_id=correlation_id,
        )
        await self._record_detections(hoax, now)

        self._logger.info(
            "verification_complete",
            stage="complete",
            verification_id=record.id,
            version=record.version,
            priority_bucket=record.priority_bucket.value,
            requires_review=record.requires_human_review,
            queue_item_id=queue_item.id if queue_item else None,
        )
        return VerificationOutcome(
            record=record,
            queue_item=queue_item,
            assessment=assessment,
            duplicates=duplicates,
            hoax=hoax,
            decision=decision,
            applied_rules=applied,
            correlation_id=correlation_id,
        )

    @staticmethod
    def _build_record(
        context: VerificationContext,
        assessment: CredibilityAssessment,
        duplicates: DuplicateResult,
        hoax: HoaxResult,
        decision: TriageDecision,
        enrichment: Enrichment,
        now: datetime,
    ) -> VerificationRecord:
        return VerificationRecord(
            tip_id=context.tip.id,
            case_id=context.case.id,
            **assessment.sub_scores(),
            credibility_score=assessment.credibility_score,
            is_duplicate=duplicates.is_duplicate,
            duplicate_tip_ids=duplicates.duplicate_tip_ids,
            primary_duplicate_id=duplicates.primary_duplicate_id,
            similarity_scores=duplicates.similarity_scores,
            matches_existing_leads=duplicates.matches_existing_leads,
            matching_lead_ids=duplicates.matching_lead_ids,
            matches_known_locations=duplicates.matches_known_locations,
            matches_suspect_description=duplicates.matches_suspect_description,
            travel_time_feasible=assessment.travel_time_feasible,
            hoax_indicators=hoax.hoax_indicators,
            spam_score=hoax.spam_score,
            hoax_detection_notes=hoax.hoax_detection_notes,
            priority_bucket=decision.priority_bucket,
            auto_triaged=decision.auto_triaged,
            auto_triage_reason=decision.auto_triage_reason,
            requires_human_review=decision.requires_human_review,
            review_priority=decision.review_priority,
            review_deadline=decision.review_deadline,
            status=decision.status,
            auto_actions=enrichment.auto_actions,
            warnings=enrichment.warnings,
            suggestions=enrichment.suggestions,
            summary=enrichment.summary,
            verified_at=now,
            updated_at=now,
        )

    async def _commit(
        self,
        record: VerificationRecord,
        replace: bool,
        open_item: Optional[QueueItem],
        decision: TriageDecision,
        correlation_id: str,
    ) -> tuple[VerificationRecord, Optional[QueueItem]]:
        """Save the record, then enqueue or reroute; undo the save on any failure."""
        stage = "save_record"
        try:
            saved, previous = await self.verification_store.save(record, replace=replace)
        except PersistenceError:
            self._logger.error(
                "persistence_failed",
                tip_id=record.tip_id,
                stage=stage,
                correlation_id=correlation_id,
            )
            raise

        try:
            queue_item: Optional[QueueItem] = None
            if decision.requires_human_review:
                if open_item is not None and open_item.status == QueueStatus.PENDING:
                    stage = "reroute_queue_item"
                    queue_item = await self.queue_store.reroute(
                        open_item.id,
                        verification_id=saved.id,
                        queue_type=decision.queue_type,
                        priority=decision.review_priority,
                        sla_deadline=decision.review_deadline,
                    )
                else:
                    stage = "enqueue"
                    queue_item = await self.queue_store.enqueue(
                        QueueItem(
                            tip_id=saved.tip_id,
                            verification_id=saved.id,
                            case_id=saved.case_id,
                            queue_type=decision.queue_type,
                            priority=decision.review_priority,
                            sla_deadline=decision.review_deadline,
                            created_at=saved.verified_at,
                        )
                    )
            elif open_item is not None:
                stage = "supersede_queue_item"
                await self.queue_store.supersede(open_item.id, verification_id=saved.id)
        except BaseException as e:
            await asyncio.shield(self.verification_store.restore(saved.tip_id, previous))
            self._logger.error(
                "commit_rolled_back",
                tip_id=saved.tip_id,
                stage=stage,
                correlation_id=correlation_id,
                error=type(e).__name__,
            )
            if isinstance(e, Exception) and not isinstance(e, TipTriageError):
                raise PersistenceError(
                    f"Verification commit failed during {stage}: {e}",
                    tip_id=saved.tip_id,
                    stage=stage,
                ) from e
            raise

        return saved, queue_item

    async def _record_detections(self, hoax: HoaxResult, now: datetime) -> None:
        """Bump detection counters; the record is already committed, so failures only log."""
        if not hoax.matched_pattern_ids:
            return
        try:
            await self.loader.patterns.record_detections(hoax.matched_pattern_ids, now)
        except Exception as e:
            self._logger.warning(
                "pattern_counter_update_failed",
                stage="record_detections",
                pattern_ids=hoax.matched_pattern_ids,
                error=str(e),
            )


__all__ = ["VerificationPipeline", "VerificationOutcome"]
