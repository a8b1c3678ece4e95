"""Review queue storage with single-owner claim semantics.

Every state change is a compare-and-set under one asyncio.Lock: the current
status (and assignee, where relevant) is checked and the new state written
without yielding in between. Concurrent claims on one pending item therefore
resolve to exactly one winner; the rest get ConflictError(reason="not_pending").

| Operation | Requires                          | Result                        |
|-----------|-----------------------------------|-------------------------------|
| claim     | status pending                    | in_review, assignee = caller  |
| assign    | status pending or in_review       | in_review, assignee = target  |
| release   | in_review AND caller is assignee  | pending, assignment cleared   |
| complete  | in_review AND caller is assignee  | resolved / escalated          |
| reroute   | status pending                    | new type, priority, deadline  |
| supersede | status pending                    | resolved, outcome superseded  |

Role checks for assign live in the service layer. Items are never deleted.
SLA breach is derived from the injected clock on every read.
"""

import asyncio
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from tip_triage.config.scoring_config import ESCALATION_PRIORITY, ESCALATION_SLA_HOURS
from tip_triage.data_management.mappers import queue_item_from_row, queue_item_to_row
from tip_triage.data_management.schemas import (
    QueueItem,
    QueueStats,
    QueueStatus,
    QueueType,
    ReviewOutcome,
    utc_now,
)
from tip_triage.errors import ConflictError, NotFoundError, PersistenceError
from tip_triage.utils.logging import get_structured_logger

SUPERSEDED = "superseded"


class QueueStore:
    """
    Queue items keyed by id, with an index of items per tip.

    Usage:
        store = QueueStore()
        item = await store.enqueue(item)
        claimed = await store.claim(item.id, "reviewer-1")
    """

    def __init__(
        self,
        persistence_path: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._items: dict[str, QueueItem] = {}
        self._tip_index: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._clock = clock
        self._logger = get_structured_logger(__name__, component="QueueStore")

        if self._persistence_path:
            self._load_from_file()

    def now(self) -> datetime:
        return self._clock()

    def is_sla_breached(self, item: QueueItem) -> bool:
        return item.is_sla_breached(self._clock())

    async def enqueue(self, item: QueueItem) -> QueueItem:
        async with self._lock:
            if item.id in self._items:
                raise ConflictError(f"Queue item {item.id} already exists", reason="duplicate_item")
            self._put(item.model_copy(deep=True))
            self._commit(lambda: self._drop(item.id))
            self._logger.info(
                "item_enqueued",
                item_id=item.id,
                tip_id=item.tip_id,
                queue_type=item.queue_type.value,
                priority=item.priority,
            )
            return item.model_copy(deep=True)

    async def get(self, item_id: str) -> QueueItem:
        async with self._lock:
            return self._require(item_id).model_copy(deep=True)

    async def find_open_for_tip(self, tip_id: str) -> Optional[QueueItem]:
        """Most recent pending or in_review item for a tip."""
        async with self._lock:
            open_items = [
                self._items[i] for i in self._tip_index.get(tip_id, []) if self._items[i].status.is_open
            ]
            if not open_items:
                return None
            return max(open_items, key=lambda i: i.created_at).model_copy(deep=True)

    async def claim(self, item_id: str, reviewer_id: str) -> QueueItem:
        """Take exclusive ownership of a pending item.

        Raises:
            NotFoundError: Unknown item.
            ConflictError: Item is not pending (reason "not_pending").
        """
        async with self._lock:
            item = self._require(item_id)
            if item.status != QueueStatus.PENDING:
                self._logger.info(
                    "claim_rejected",
                    item_id=item_id,
                    reviewer_id=reviewer_id,
                    status=item.status.value,
                    assigned_to=item.assigned_to,
                )
                raise ConflictError(
                    f"Queue item {item_id} is not pending",
                    reason="not_pending",
                    details={"status": item.status.value},
                )

            snapshot = item.model_copy(deep=True)
            now = self._clock()
            item.transition_to(QueueStatus.IN_REVIEW)
            item.assigned_to = reviewer_id
            item.assigned_at = now
            item.review_started_at = now
            self._commit(lambda: self._put(snapshot))

            self._logger.info("item_claimed", item_id=item_id, reviewer_id=reviewer_id)
            return item.model_copy(deep=True)

    async def assign(self, item_id: str, assignee_id: str) -> QueueItem:
        """Assign or reassign an open item regardless of current owner.

        Raises:
            NotFoundError: Unknown item.
            ConflictError: Item is resolved or escalated.
        """
        async with self._lock:
            item = self._require(item_id)
            if not item.status.is_open:
                raise ConflictError(
                    f"Queue item {item_id} is closed",
                    reason="not_open",
                    details={"status": item.status.value},
                )

            snapshot = item.model_copy(deep=True)
            now = self._clock()
            previous = item.assigned_to
            item.transition_to(QueueStatus.IN_REVIEW)
            item.assigned_to = assignee_id
            item.assigned_at = now
            if snapshot.status == QueueStatus.PENDING or item.review_started_at is None:
                item.review_started_at = now
            self._commit(lambda: self._put(snapshot))

            self._logger.info(
                "item_assigned",
                item_id=item_id,
                assigned_to=assignee_id,
                previous_assignee=previous,
            )
            return item.model_copy(deep=True)

    async def release(self, item_id: str, reviewer_id: str) -> QueueItem:
        """Return an in_review item to pending.

        Raises:
            NotFoundError: Unknown item.
            ConflictError: Caller is not the current assignee (reason "not_assignee").
        """
        async with self._lock:
            item = self._require(item_id)
            self._check_assignee(item, reviewer_id)

            snapshot = item.model_copy(deep=True)
            item.transition_to(QueueStatus.PENDING)
            item.assigned_to = None
            item.assigned_at = None
            item.review_started_at = None
            self._commit(lambda: self._put(snapshot))

            self._logger.info("item_released", item_id=item_id, reviewer_id=reviewer_id)
            return item.model_copy(deep=True)

    async def complete(
        self,
        item_id: str,
        reviewer_id: str,
        outcome: ReviewOutcome,
        escalate_to: Optional[str] = None,
    ) -> tuple[QueueItem, Optional[QueueItem]]:
        """Finish review of an item held by the caller.

        ESCALATED moves the item to escalated and creates a pending
        high_priority follow-up item; any other outcome resolves it. Both
        writes happen together or not at all.

        Returns:
            (completed item, escalation item or None)

        Raises:
            NotFoundError: Unknown item.
            ConflictError: Caller is not the current assignee (reason "not_assignee").
        """
        async with self._lock:
            item = self._require(item_id)
            self._check_assignee(item, reviewer_id)

            snapshot = item.model_copy(deep=True)
            now = self._clock()
            follow_up: Optional[QueueItem] = None

            if outcome == ReviewOutcome.ESCALATED:
                item.transition_to(QueueStatus.ESCALATED)
                item.escalated_to = escalate_to
                follow_up = QueueItem(
                    tip_id=item.tip_id,
                    verification_id=item.verification_id,
                    case_id=item.case_id,
                    queue_type=QueueType.HIGH_PRIORITY,
                    priority=ESCALATION_PRIORITY,
                    sla_deadline=now + timedelta(hours=ESCALATION_SLA_HOURS),
                    escalated_from=item.id,
                    created_at=now,
                )
                self._put(follow_up)
            else:
                item.transition_to(QueueStatus.RESOLVED)

            item.completed_at = now
            item.outcome = outcome.value

            def rollback() -> None:
                self._put(snapshot)
                if follow_up is not None:
                    self._drop(follow_up.id)

            self._commit(rollback)

            self._logger.info(
                "item_completed",
                item_id=item_id,
                reviewer_id=reviewer_id,
                outcome=outcome.value,
                escalation_item_id=follow_up.id if follow_up else None,
            )
            return item.model_copy(deep=True), follow_up.model_copy(deep=True) if follow_up else None

    async def supersede(self, item_id: str, verification_id: str) -> QueueItem:
        """Close a pending item whose tip no longer needs review.

        The item is resolved with outcome "superseded" and points at the
        verification that replaced its record.

        Raises:
            ConflictError: Item is no longer pending (reason "not_pending").
        """
        async with self._lock:
            item = self._require(item_id)
            if item.status != QueueStatus.PENDING:
                raise ConflictError(
                    f"Queue item {item_id} is not pending",
                    reason="not_pending",
                    details={"status": item.status.value},
                )

            snapshot = item.model_copy(deep=True)
            item.transition_to(QueueStatus.RESOLVED)
            item.verification_id = verification_id
            item.completed_at = self._clock()
            item.outcome = SUPERSEDED
            self._commit(lambda: self._put(snapshot))

            self._logger.info("item_superseded", item_id=item_id, verification_id=verification_id)
            return item.model_copy(deep=True)

    async def reroute(
        self,
        item_id: str,
        verification_id: str,
        queue_type: QueueType,
        priority: int,
        sla_deadline: datetime,
    ) -> QueueItem:
        """Re-target a pending item after forced re-verification.

        Raises:
            ConflictError: Item is no longer pending (reason "not_pending").
        """
        async with self._lock:
            item = self._require(item_id)
            if item.status != QueueStatus.PENDING:
                raise ConflictError(
                    f"Queue item {item_id} is not pending",
                    reason="not_pending",
                    details={"status": item.status.value},
                )

            snapshot = item.model_copy(deep=True)
            item.verification_id = verification_id
            item.queue_type = queue_type
            item.priority = priority
            item.sla_deadline = sla_deadline
            self._commit(lambda: self._put(snapshot))

            self._logger.info(
                "item_rerouted",
                item_id=item_id,
                queue_type=queue_type.value,
                priority=priority,
            )
            return item.model_copy(deep=True)

    async def list_items(
        self,
        queue_type: Optional[QueueType] = None,
        status: Optional[QueueStatus] = None,
        assigned_to: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[QueueItem], int]:
        """Filtered items ordered by priority, then earliest SLA deadline.

        Returns:
            (page of items, total matching)
        """
        async with self._lock:
            matching = [
                item
                for item in self._items.values()
                if (queue_type is None or item.queue_type == queue_type)
                and (status is None or item.status == status)
                and (assigned_to is None or item.assigned_to == assigned_to)
            ]
            matching.sort(key=lambda i: (*i.sort_key(), i.created_at, i.id))
            page = matching[offset : offset + limit]
            return [i.model_copy(deep=True) for i in page], len(matching)

    async def stats(self) -> QueueStats:
        """Counts over pending items only."""
        async with self._lock:
            now = self._clock()
            pending = [i for i in self._items.values() if i.status == QueueStatus.PENDING]
            by_type = {queue_type: 0 for queue_type in QueueType}
            for item in pending:
                by_type[item.queue_type] += 1
            return QueueStats(
                total_pending=len(pending),
                critical_pending=by_type[QueueType.CRITICAL],
                high_priority_pending=by_type[QueueType.HIGH_PRIORITY],
                standard_pending=by_type[QueueType.STANDARD],
                low_priority_pending=by_type[QueueType.LOW_PRIORITY],
                sla_breached=sum(1 for i in pending if i.is_sla_breached(now)),
            )

    def _require(self, item_id: str) -> QueueItem:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError("QueueItem", item_id)
        return item

    @staticmethod
    def _check_assignee(item: QueueItem, reviewer_id: str) -> None:
        if item.status != QueueStatus.IN_REVIEW or item.assigned_to != reviewer_id:
            raise ConflictError(
                f"Queue item {item.id} is not held by {reviewer_id}",
                reason="not_assignee",
                details={"status": item.status.value, "assigned_to": item.assigned_to},
            )

    def _put(self, item: QueueItem) -> None:
        self._items[item.id] = item
        ids = self._tip_index.setdefault(item.tip_id, [])
        if item.id not in ids:
            ids.append(item.id)

    def _drop(self, item_id: str) -> None:
        item = self._items.pop(item_id, None)
        if item is not None:
            ids = self._tip_index.get(item.tip_id, [])
            if item_id in ids:
                ids.remove(item_id)

    def _commit(self, rollback: Callable[[], None]) -> None:
        """Persist the in-memory change, undoing it if the write fails."""
        try:
            self._persist()
        except PersistenceError:
            rollback()
            raise

    def _persist(self) -> None:
        if self._persistence_path:
            self._save_to_file()

    def _save_to_file(self) -> None:
        """Save to JSON file (synchronous).

        Raises:
            PersistenceError: Directory or file could not be written.
        """
        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = {"items": [queue_item_to_row(i) for i in self._items.values()]}
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            self._logger.error("persistence_failed", path=str(self._persistence_path), error=str(e))
            raise PersistenceError(f"Failed to write review queue: {e}", stage="persist_queue") from e

    def _load_from_file(self) -> None:
        """Load items from JSON file (synchronous)."""
        if not self._persistence_path.exists():
            return
        try:
            with open(self._persistence_path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to read review queue: {e}", stage="load_queue") from e

        for row in data.get("items", []):
            self._put(queue_item_from_row(row))
        self._logger.info("queue_loaded", path=str(self._persistence_path), count=len(self._items))


__all__ = ["QueueStore", "SUPERSEDED"]
