"""End-to-end tests for VerificationPipeline.

Tests cover:
- Reference sightings: geotagged photo, vague anonymous tip, scam tip, resubmission
- Concurrent claims on a freshly queued tip
- One record per tip; forced re-verification replaces it in place
- Forced re-verification is refused while a reviewer holds the item
- A forced re-verification that no longer needs review closes the pending item
- Routing rules from the repository
- Commit rollback on cancellation and storage failure
- Scam pattern detection counters
"""

import asyncio
from datetime import timedelta

import pytest

from conftest import T0, north_of
from tip_triage.data_management.queue_store import SUPERSEDED, QueueStore
from tip_triage.data_management.case_repository import InMemoryCaseRepository
from tip_triage.data_management.schemas import (
    PriorityBucket,
    QueueStatus,
    QueueType,
    VerificationStatus,
)
from tip_triage.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from tip_triage.pipeline import VerificationPipeline
from tip_triage.pipeline.enrichment import SUGGEST_DETAILS, SUGGEST_PHOTOS
from tip_triage.sifters.triage import SUSPECTED_HOAX

PHOTO_VERIFIED_AT = T0 + timedelta(hours=1, minutes=10)
VAGUE_VERIFIED_AT = T0 + timedelta(hours=73)
SIGHTING = "red jacket girl at the bus stop on main street near the park"


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def pipeline(repository, clock) -> VerificationPipeline:
    return VerificationPipeline.from_repository(repository, clock=clock)


class FailingEnqueueStore(QueueStore):
    def __init__(self, error, **kwargs):
        super().__init__(**kwargs)
        self.error = error

    async def enqueue(self, item):
        raise self.error


class BrokenCounterRepository(InMemoryCaseRepository):
    async def record_detections(self, pattern_ids, detected_at):
        raise RuntimeError("counter table locked")


# ── Reference sightings ───────────────────────────────────────────────────


class TestReferenceSightings:
    @pytest.mark.asyncio
    async def test_geotagged_photo_critical_case(self, pipeline, clock):
        clock.now = PHOTO_VERIFIED_AT

        outcome = await pipeline.verify("tip-photo")
        record = outcome.record

        assert record.credibility_score >= 85
        assert record.priority_bucket == PriorityBucket.CRITICAL
        assert record.requires_human_review is True
        assert record.review_priority == 1
        assert record.review_deadline == PHOTO_VERIFIED_AT + timedelta(hours=1)
        assert record.travel_time_feasible is True
        assert outcome.queue_item.queue_type == QueueType.CRITICAL
        assert outcome.queue_item.verification_id == record.id
        assert "queued:critical" in record.auto_actions

    @pytest.mark.asyncio
    async def test_vague_anonymous_sighting(self, pipeline, clock):
        clock.now = VAGUE_VERIFIED_AT

        outcome = await pipeline.verify("tip-vague")
        record = outcome.record

        assert record.credibility_score == 38
        assert record.time_plausibility_score == 35
        assert record.tipster_reliability_score == 20
        assert record.priority_bucket == PriorityBucket.LOW
        assert record.auto_triage_reason is None
        assert record.requires_human_review is True
        assert record.status == VerificationStatus.PENDING_REVIEW
        assert record.review_priority == 8
        assert outcome.queue_item.queue_type == QueueType.LOW_PRIORITY
        assert outcome.queue_item.sla_deadline == VAGUE_VERIFIED_AT + timedelta(hours=72)
        assert SUGGEST_PHOTOS in record.suggestions
        assert SUGGEST_DETAILS in record.suggestions

    @pytest.mark.asyncio
    async def test_scam_tip_forced_low(self, pipeline, repository, clock):
        clock.now = T0 + timedelta(hours=3)

        outcome = await pipeline.verify("tip-scam")
        record = outcome.record

        assert record.spam_score == 100
        assert record.hoax_indicators == ["travel_expenses_scam", "payment_request"]
        assert record.priority_bucket == PriorityBucket.LOW
        assert record.auto_triage_reason == SUSPECTED_HOAX
        assert record.requires_human_review is True
        assert "flagged_suspected_hoax" in record.auto_actions
        assert {w.type for w in record.warnings} >= {"suspected_hoax", "high_spam_score"}

        pattern = await repository.get_pattern("scam-travel")
        assert pattern.times_detected == 1
        assert pattern.last_detected_at == clock.now

    @pytest.mark.asyncio
    async def test_resubmitted_sighting_is_duplicate(self, pipeline, repository, clock):
        lat, lon = north_of(1.0)
        base = {"case_id": "case-002", "latitude": lat, "longitude": lon, "is_anonymous": True}
        repository.add_row(
            "tips",
            {**base, "id": "tip-first", "content": SIGHTING, "created_at": (T0 + timedelta(hours=2)).isoformat()},
        )
        repository.add_row(
            "tips",
            {
                **base,
                "id": "tip-second",
                "content": SIGHTING + " today",
                "created_at": (T0 + timedelta(hours=2, minutes=20)).isoformat(),
            },
        )
        clock.now = T0 + timedelta(hours=3)

        outcome = await pipeline.verify("tip-second")
        record = outcome.record

        assert record.is_duplicate is True
        assert record.primary_duplicate_id == "tip-first"
        assert "tip-vague" not in record.duplicate_tip_ids
        assert "flagged_duplicate" in record.auto_actions
        assert "possible_duplicate" in {w.type for w in record.warnings}

    @pytest.mark.asyncio
    async def test_claim_race_on_queued_tip(self, pipeline, clock):
        clock.now = VAGUE_VERIFIED_AT
        item = (await pipeline.verify("tip-vague")).queue_item

        results = await asyncio.gather(
            pipeline.queue_store.claim(item.id, "reviewer-a"),
            pipeline.queue_store.claim(item.id, "reviewer-b"),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, ConflictError)) == 1
        stored = await pipeline.queue_store.get(item.id)
        assert stored.status == QueueStatus.IN_REVIEW
        assert stored.assigned_to in ("reviewer-a", "reviewer-b")

    @pytest.mark.asyncio
    async def test_missing_tip(self, pipeline):
        with pytest.raises(NotFoundError):
            await pipeline.verify("tip-missing")

    @pytest.mark.asyncio
    async def test_blank_tip_id(self, pipeline):
        with pytest.raises(ValidationError):
            await pipeline.verify("  ")


# ── Re-verification ───────────────────────────────────────────────────────


class TestReVerification:
    @pytest.mark.asyncio
    async def test_second_verification_conflicts(self, pipeline, clock):
        clock.now = VAGUE_VERIFIED_AT
        await pipeline.verify("tip-vague")

        with pytest.raises(ConflictError) as exc_info:
            await pipeline.verify("tip-vague")
        assert exc_info.value.reason == "already_verified"

    @pytest.mark.asyncio
    async def test_forced_replaces_in_place_and_reroutes(self, pipeline, clock):
        clock.now = VAGUE_VERIFIED_AT
        first = await pipeline.verify("tip-vague")
        clock.advance(hours=1)

        second = await pipeline.verify("tip-vague", force=True)

        assert second.record.id == first.record.id
        assert second.record.version == 2
        assert second.queue_item.id == first.queue_item.id
        assert second.queue_item.sla_deadline == clock.now + timedelta(hours=72)
        assert "rerouted:low_priority" in second.record.auto_actions

        items, total = await pipeline.queue_store.list_items(status=None)
        assert total == 1

    @pytest.mark.asyncio
    async def test_forced_auto_verify_closes_pending_item(self, pipeline, repository, clock):
        clock.now = VAGUE_VERIFIED_AT
        first = await pipeline.verify("tip-vague")
        repository.add_row(
            "rules",
            {
                "id": "rule-lenient",
                "rule_name": "lenient_auto_verify",
                "rule_type": "threshold",
                "conditions": {},
                "actions": {"thresholds": {"auto_verify_threshold": 30}},
            },
        )
        clock.advance(hours=1)

        second = await pipeline.verify("tip-vague", force=True)

        assert second.record.requires_human_review is False
        assert second.record.status == VerificationStatus.AUTO_VERIFIED
        assert second.queue_item is None
        closed = await pipeline.queue_store.get(first.queue_item.id)
        assert closed.status == QueueStatus.RESOLVED
        assert closed.outcome == SUPERSEDED
        assert closed.verification_id == second.record.id
        pending, total = await pipeline.queue_store.list_items(status=QueueStatus.PENDING)
        assert (pending, total) == ([], 0)
        with pytest.raises(ConflictError):
            await pipeline.queue_store.claim(first.queue_item.id, "reviewer-a")

    @pytest.mark.asyncio
    async def test_forced_refused_during_review(self, pipeline, clock):
        clock.now = VAGUE_VERIFIED_AT
        first = await pipeline.verify("tip-vague")
        await pipeline.queue_store.claim(first.queue_item.id, "reviewer-a")

        with pytest.raises(ConflictError) as exc_info:
            await pipeline.verify("tip-vague", force=True)

        assert exc_info.value.reason == "review_in_progress"
        assert (await pipeline.verification_store.get_by_tip("tip-vague")).version == 1


# ── Rules ─────────────────────────────────────────────────────────────────


class TestRules:
    @pytest.mark.asyncio
    async def test_routing_rule_raises_review_priority(self, repository, clock):
        repository.add_row(
            "rules",
            {
                "id": "rule-anon",
                "rule_name": "anonymous_priority",
                "rule_type": "routing",
                "conditions": {"field": "is_anonymous", "operator": "=", "value": True},
                "actions": {"review_priority": 2},
            },
        )
        pipeline = VerificationPipeline.from_repository(repository, clock=clock)
        clock.now = VAGUE_VERIFIED_AT

        outcome = await pipeline.verify("tip-vague")

        assert outcome.applied_rules == ["anonymous_priority"]
        assert outcome.record.review_priority == 2
        assert outcome.queue_item.priority == 2
        assert "rule_applied:anonymous_priority" in outcome.record.auto_actions


# ── Commit failures ───────────────────────────────────────────────────────


class TestCommitFailures:
    @pytest.mark.asyncio
    async def test_cancellation_leaves_no_record(self, repository, clock):
        queue = FailingEnqueueStore(asyncio.CancelledError(), clock=clock)
        pipeline = VerificationPipeline.from_repository(repository, queue_store=queue, clock=clock)
        clock.now = VAGUE_VERIFIED_AT

        with pytest.raises(asyncio.CancelledError):
            await pipeline.verify("tip-vague")

        assert await pipeline.verification_store.get_by_tip("tip-vague") is None

    @pytest.mark.asyncio
    async def test_persistence_error_restores_record(self, repository, clock):
        queue = FailingEnqueueStore(PersistenceError("disk full", stage="persist_queue"), clock=clock)
        pipeline = VerificationPipeline.from_repository(repository, queue_store=queue, clock=clock)
        clock.now = VAGUE_VERIFIED_AT

        with pytest.raises(PersistenceError):
            await pipeline.verify("tip-vague")

        assert await pipeline.verification_store.get_by_tip("tip-vague") is None

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, repository, clock):
        queue = FailingEnqueueStore(RuntimeError("queue offline"), clock=clock)
        pipeline = VerificationPipeline.from_repository(repository, queue_store=queue, clock=clock)
        clock.now = VAGUE_VERIFIED_AT

        with pytest.raises(PersistenceError) as exc_info:
            await pipeline.verify("tip-vague")

        assert exc_info.value.details == {"tip_id": "tip-vague", "stage": "enqueue"}
        assert await pipeline.verification_store.get_by_tip("tip-vague") is None

    @pytest.mark.asyncio
    async def test_forced_failure_restores_previous_version(self, repository, clock):
        pipeline = VerificationPipeline.from_repository(repository, clock=clock)
        clock.now = VAGUE_VERIFIED_AT
        first = await pipeline.verify("tip-vague")
        await pipeline.queue_store.claim(first.queue_item.id, "reviewer-a")
        await pipeline.queue_store.release(first.queue_item.id, "reviewer-a")

        async def broken_reroute(*args, **kwargs):
            raise PersistenceError("disk full", stage="persist_queue")

        pipeline.queue_store.reroute = broken_reroute

        with pytest.raises(PersistenceError):
            await pipeline.verify("tip-vague", force=True)

        restored = await pipeline.verification_store.get_by_tip("tip-vague")
        assert restored.version == 1
        assert (await pipeline.queue_store.get(first.queue_item.id)).status == QueueStatus.PENDING

    @pytest.mark.asyncio
    async def test_counter_failure_is_tolerated(self, clock):
        from conftest import sample_rows

        repository = BrokenCounterRepository(sample_rows())
        pipeline = VerificationPipeline.from_repository(repository, clock=clock)
        clock.now = T0 + timedelta(hours=3)

        outcome = await pipeline.verify("tip-scam")

        assert outcome.record.spam_score == 100
        assert await pipeline.verification_store.get_by_tip("tip-scam") is not None
