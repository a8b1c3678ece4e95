"""Verification record storage, one active record per tip.

Follows the same patterns as QueueStore:
- O(1) lookup by tip_id and by record id
- asyncio.Lock around every read-modify-write
- Optional JSON persistence of storage rows (via mappers)
- Callers always receive copies; mutation goes through save/update/restore

Usage:
    from tip_triage.data_management.verification_store import VerificationStore

    store = VerificationStore()
    saved, previous = await store.save(record)
    record = await store.get_by_tip("tip-001")
"""

import asyncio
import json
from collections import Counter
from pathlib import Path
from typing import Any, Optional

from tip_triage.data_management.mappers import record_from_row, record_to_row
from tip_triage.data_management.schemas import (
    PriorityBucket,
    VerificationRecord,
    VerificationStatus,
    utc_now,
)
from tip_triage.errors import ConflictError, NotFoundError, PersistenceError
from tip_triage.utils.logging import get_structured_logger

TOP_HOAX_INDICATORS = 5


class VerificationStore:
    """Storage for verification records keyed by tip.

    Data structure:
    {
        tip_id: VerificationRecord,
        ...
    }
    plus an index record.id -> tip_id.
    """

    def __init__(self, persistence_path: Optional[str] = None) -> None:
        """Initialize VerificationStore.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.
        """
        self._records: dict[str, VerificationRecord] = {}
        self._id_index: dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._logger = get_structured_logger(__name__, component="VerificationStore")

        if self._persistence_path:
            self._load_from_file()

    async def get_by_tip(self, tip_id: str) -> Optional[VerificationRecord]:
        async with self._lock:
            record = self._records.get(tip_id)
            return record.model_copy(deep=True) if record else None

    async def get(self, verification_id: str) -> VerificationRecord:
        """Get a record by its id.

        Raises:
            NotFoundError: No record with that id.
        """
        async with self._lock:
            tip_id = self._id_index.get(verification_id)
            if tip_id is None:
                raise NotFoundError("VerificationRecord", verification_id)
            return self._records[tip_id].model_copy(deep=True)

    async def save(
        self,
        record: VerificationRecord,
        replace: bool = False,
    ) -> tuple[VerificationRecord, Optional[VerificationRecord]]:
        """Store a new record for a tip, or replace the existing one in place.

        A replacement keeps the existing record id and bumps its version.

        Args:
            record: Record to store.
            replace: Allow replacing an existing record (forced re-verification).

        Returns:
            (stored record, previous record or None) so the caller can roll back.

        Raises:
            ConflictError: A record exists and replace is False.
            PersistenceError: Writing the JSON file failed (memory is rolled back).
        """
        async with self._lock:
            previous = self._records.get(record.tip_id)
            if previous is not None and not replace:
                raise ConflictError(
                    f"Tip {record.tip_id} already has a verification record",
                    reason="already_verified",
                    details={"tip_id": record.tip_id, "verification_id": previous.id},
                )

            stored = record.model_copy(deep=True)
            if previous is not None:
                stored.id = previous.id
                stored.version = previous.version + 1
            stored.updated_at = utc_now()

            self._put(stored)
            try:
                self._persist()
            except PersistenceError:
                self._remove(stored.tip_id)
                if previous is not None:
                    self._put(previous)
                raise

            self._logger.info(
                "record_saved",
                tip_id=stored.tip_id,
                verification_id=stored.id,
                version=stored.version,
                replaced=previous is not None,
            )
            return stored.model_copy(deep=True), previous

    async def update(self, record: VerificationRecord) -> VerificationRecord:
        """Overwrite an existing record (review completion).

        Returns:
            The previous state of the record, for rollback.

        Raises:
            NotFoundError: No record for that id.
            PersistenceError: Writing the JSON file failed (memory is rolled back).
        """
        async with self._lock:
            previous = self._records.get(record.tip_id)
            if previous is None or previous.id != record.id:
                raise NotFoundError("VerificationRecord", record.id)

            self._put(record.model_copy(deep=True))
            try:
                self._persist()
            except PersistenceError:
                self._put(previous)
                raise

            self._logger.info(
                "record_updated",
                tip_id=record.tip_id,
                verification_id=record.id,
                status=record.status.value,
            )
            return previous

    async def restore(self, tip_id: str, previous: Optional[VerificationRecord]) -> None:
        """Put back the state returned by save/update; None removes the record."""
        async with self._lock:
            self._remove(tip_id)
            if previous is not None:
                self._put(previous)
            self._persist()
            self._logger.warning(
                "record_restored",
                tip_id=tip_id,
                verification_id=previous.id if previous else None,
            )

    async def list_records(
        self,
        case_id: Optional[str] = None,
        status: Optional[VerificationStatus] = None,
        priority_bucket: Optional[PriorityBucket] = None,
        requires_review: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[VerificationRecord], int]:
        """Filtered records, newest first.

        Returns:
            (page of records, total matching)
        """
        async with self._lock:
            matching = [
                r
                for r in self._records.values()
                if (case_id is None or r.case_id == case_id)
                and (status is None or r.status == status)
                and (priority_bucket is None or r.priority_bucket == priority_bucket)
                and (requires_review is None or r.requires_human_review == requires_review)
            ]
            matching.sort(key=lambda r: (r.verified_at, r.id), reverse=True)
            page = matching[offset : offset + limit]
            return [r.model_copy(deep=True) for r in page], len(matching)

    async def get_stats(self) -> dict[str, Any]:
        """Aggregate statistics over all records."""
        async with self._lock:
            records = list(self._records.values())
            if not records:
                return {
                    "total": 0,
                    "status_counts": {},
                    "average_credibility": None,
                    "bucket_distribution": {},
                    "auto_verified": 0,
                    "duplicates": 0,
                    "top_hoax_indicators": [],
                }

            status_counts = Counter(r.status.value for r in records)
            buckets = Counter(r.priority_bucket.value for r in records)
            indicators = Counter(i for r in records for i in r.hoax_indicators)
            average = sum(r.credibility_score for r in records) / len(records)

            return {
                "total": len(records),
                "status_counts": dict(status_counts),
                "average_credibility": round(average, 1),
                "bucket_distribution": dict(buckets),
                "auto_verified": sum(1 for r in records if r.auto_triaged),
                "duplicates": sum(1 for r in records if r.is_duplicate),
                "top_hoax_indicators": [
                    {"indicator": name, "count": count}
                    for name, count in indicators.most_common(TOP_HOAX_INDICATORS)
                ],
            }

    def _put(self, record: VerificationRecord) -> None:
        self._records[record.tip_id] = record
        self._id_index[record.id] = record.tip_id

    def _remove(self, tip_id: str) -> None:
        record = self._records.pop(tip_id, None)
        if record is not None:
            self._id_index.pop(record.id, None)

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
            data = {"records": [record_to_row(r) for r in self._records.values()]}
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            self._logger.error("persistence_failed", path=str(self._persistence_path), error=str(e))
            raise PersistenceError(f"Failed to write verification records: {e}", stage="persist_records") from e

    def _load_from_file(self) -> None:
        """Load records from JSON file (synchronous)."""
        if not self._persistence_path.exists():
            return
        try:
            with open(self._persistence_path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to read verification records: {e}", stage="load_records") from e

        for row in data.get("records", []):
            self._put(record_from_row(row))
        self._logger.info("records_loaded", path=str(self._persistence_path), count=len(self._records))


__all__ = ["VerificationStore"]
