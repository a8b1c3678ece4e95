"""Application service: role checks in front of the pipeline and stores.

The HTTP routes and the CLI both go through TipVerificationService, so role
rules, pagination limits and review completion live in one place.

Usage:
    service = TipVerificationService.from_repository(repo)
    outcome = await service.verify(caller, "tip-001")
    await service.queue_action(caller, outcome.queue_item.id, "claim")
"""

import asyncio
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from tip_triage.auth import (
    ELEVATED_ROLES,
    INVESTIGATIVE_ROLES,
    Caller,
    require_role,
    require_verified,
)
from tip_triage.config.settings import settings
from tip_triage.data_management.case_repository import InMemoryCaseRepository, TipSource
from tip_triage.data_management.queue_store import QueueStore
from tip_triage.data_management.schemas import (
    PriorityBucket,
    QueueItem,
    QueueStats,
    QueueStatus,
    QueueType,
    ReviewOutcome,
    VerificationRecord,
    VerificationStatus,
    utc_now,
)
from tip_triage.data_management.verification_store import VerificationStore
from tip_triage.errors import ConflictError, ValidationError
from tip_triage.pipeline import VerificationOutcome, VerificationPipeline
from tip_triage.sifters.credibility import CredibilityScoringEngine
from tip_triage.utils.logging import get_structured_logger
from tip_triage.vision import PhotoAnalyzer

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20
QUEUE_ACTIONS = ("claim", "assign", "release")

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


@dataclass
class VerificationListing:
    record: VerificationRecord
    tip: Optional[Dict[str, Any]] = None


@dataclass
class QueueEntry:
    item: QueueItem
    sla_breached: bool


@dataclass
class QueueListing:
    page: Page[QueueEntry]
    stats: QueueStats


@dataclass
class ReviewResult:
    record: VerificationRecord
    queue_item: QueueItem
    escalation_item: Optional[QueueItem] = None


@dataclass
class EngineStats:
    verifications: Dict[str, Any] = field(default_factory=dict)
    queue: QueueStats = field(default_factory=QueueStats)


def _check_page(limit: int, offset: int) -> None:
    errors: Dict[str, List[str]] = {}
    if not 1 <= limit <= MAX_PAGE_SIZE:
        errors["limit"] = [f"must be between 1 and {MAX_PAGE_SIZE}"]
    if offset < 0:
        errors["offset"] = ["must be >= 0"]
    if errors:
        raise ValidationError("Invalid pagination", field_errors=errors)


class TipVerificationService:
    """Entry point for verification, queue actions, review and statistics."""

    def __init__(
        self,
        pipeline: VerificationPipeline,
        tips: Optional[TipSource] = None,
    ) -> None:
        self.pipeline = pipeline
        self.tips = tips or pipeline.loader.tips
        self.records: VerificationStore = pipeline.verification_store
        self.queue: QueueStore = pipeline.queue_store
        self._logger = get_structured_logger(__name__, component="TipVerificationService")

    @classmethod
    def from_repository(
        cls,
        repository: InMemoryCaseRepository,
        data_dir: Optional[str] = settings.data_dir,
        photo_analyzer: Optional[PhotoAnalyzer] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> "TipVerificationService":
        """Wire stores, scoring engine and pipeline over one repository.

        With a data_dir the stores persist to JSON files inside it.
        """
        records_path = os.path.join(data_dir, "verification_records.json") if data_dir else None
        queue_path = os.path.join(data_dir, "review_queue.json") if data_dir else None
        pipeline = VerificationPipeline.from_repository(
            repository,
            verification_store=VerificationStore(records_path),
            queue_store=QueueStore(queue_path, clock=clock),
            scoring_engine=CredibilityScoringEngine(photo_analyzer=photo_analyzer, clock=clock),
            clock=clock,
        )
        return cls(pipeline)

    @property
    def clock(self) -> Callable[[], datetime]:
        return self.pipeline.clock

    async def list_verifications(
        self,
        caller: Caller,
        case_id: Optional[str] = None,
        status: Optional[VerificationStatus] = None,
        priority_bucket: Optional[PriorityBucket] = None,
        requires_review: Optional[bool] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Page[VerificationListing]:
        require_role(caller, INVESTIGATIVE_ROLES, "list verifications")
        _check_page(limit, offset)

        records, total = await self.records.list_records(
            case_id=case_id,
            status=status,
            priority_bucket=priority_bucket,
            requires_review=requires_review,
            limit=limit,
            offset=offset,
        )
        listings = [
            VerificationListing(record=r, tip=await self.tips.get_tip_summary(r.tip_id))
            for r in records
        ]
        return Page(items=listings, total=total, limit=limit, offset=offset)

    async def verify(self, caller: Caller, tip_id: str, force: bool = False) -> VerificationOutcome:
        require_role(caller, INVESTIGATIVE_ROLES, "verify tips")
        self._logger.info("verification_requested", tip_id=tip_id, caller_id=caller.id, force=force)
        return await self.pipeline.verify(tip_id, force=force)

    async def list_queue(
        self,
        caller: Caller,
        queue_type: Optional[QueueType] = None,
        status: Optional[QueueStatus] = QueueStatus.PENDING,
        assigned_to: Optional[str] = None,
        my_queue: bool = False,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> QueueListing:
        require_role(caller, INVESTIGATIVE_ROLES, "view the review queue")
        _check_page(limit, offset)

        if my_queue:
            assigned_to = caller.id
        items, total = await self.queue.list_items(
            queue_type=queue_type,
            status=status,
            assigned_to=assigned_to,
            limit=limit,
            offset=offset,
        )
        entries = [QueueEntry(item=i, sla_breached=self.queue.is_sla_breached(i)) for i in items]
        return QueueListing(
            page=Page(items=entries, total=total, limit=limit, offset=offset),
            stats=await self.queue.stats(),
        )

    async def queue_action(
        self,
        caller: Caller,
        queue_item_id: str,
        action: str,
        assign_to: Optional[str] = None,
    ) -> QueueItem:
        """Claim, assign or release a queue item.

        Raises:
            ValidationError: Unknown action, or assign without assign_to.
            ForbiddenError: Role or verification requirement not met.
            ConflictError: Item not in a state that allows the action.
        """
        require_role(caller, INVESTIGATIVE_ROLES, "act on the review queue")
        require_verified(caller, "act on the review queue")
        if not queue_item_id:
            raise ValidationError("queueItemId is required", field_errors={"queueItemId": ["required"]})

        if action == "claim":
            return await self.queue.claim(queue_item_id, caller.id)
        if action == "release":
            return await self.queue.release(queue_item_id, caller.id)
        if action == "assign":
            require_role(caller, ELEVATED_ROLES, "assign review items")
            if not assign_to:
                raise ValidationError(
                    "assignTo is required for assign",
                    field_errors={"assignTo": ["required"]},
                )
            return await self.queue.assign(queue_item_id, assign_to)

        raise ValidationError(
            f"Unknown queue action '{action}'",
            field_errors={"action": [f"must be one of {', '.join(QUEUE_ACTIONS)}"]},
        )

    async def review(
        self,
        caller: Caller,
        queue_item_id: str,
        outcome: ReviewOutcome,
        notes: Optional[str] = None,
        override_score: Optional[int] = None,
        escalate_to: Optional[str] = None,
    ) -> ReviewResult:
        """Complete review of a claimed item; record and queue change together.

        Raises:
            ValidationError: override_score outside 0-100.
            ConflictError: Caller does not hold the item, or the record
                cannot move to the outcome's status.
        """
        require_role(caller, INVESTIGATIVE_ROLES, "review tips")
        require_verified(caller, "review tips")
        if override_score is not None and not 0 <= override_score <= 100:
            raise ValidationError(
                "overrideScore must be between 0 and 100",
                field_errors={"overrideScore": ["must be between 0 and 100"]},
            )

        item = await self.queue.get(queue_item_id)
        if item.status != QueueStatus.IN_REVIEW or item.assigned_to != caller.id:
            raise ConflictError(
                f"Queue item {queue_item_id} is not held by {caller.id}",
                reason="not_assignee",
                details={"status": item.status.value, "assigned_to": item.assigned_to},
            )

        record = await self.records.get(item.verification_id)
        record.apply_review(
            reviewer_id=caller.id,
            outcome=outcome,
            reviewed_at=self.clock(),
            notes=notes,
            override_score=override_score,
        )

        previous = await self.records.update(record)
        try:
            completed, follow_up = await self.queue.complete(
                queue_item_id, caller.id, outcome, escalate_to=escalate_to
            )
        except BaseException:
            await asyncio.shield(self.records.restore(record.tip_id, previous))
            raise

        self._logger.info(
            "review_completed",
            tip_id=record.tip_id,
            queue_item_id=queue_item_id,
            reviewer_id=caller.id,
            outcome=outcome.value,
        )
        return ReviewResult(record=record, queue_item=completed, escalation_item=follow_up)

    async def stats(self, caller: Caller) -> EngineStats:
        require_role(caller, INVESTIGATIVE_ROLES, "view verification statistics")
        return EngineStats(
            verifications=await self.records.get_stats(),
            queue=await self.queue.stats(),
        )


__all__ = [
    "TipVerificationService",
    "Page",
    "VerificationListing",
    "QueueEntry",
    "QueueListing",
    "ReviewResult",
    "EngineStats",
    "MAX_PAGE_SIZE",
    "DEFAULT_PAGE_SIZE",
    "QUEUE_ACTIONS",
]
