"""Read-side collaborators the context loader depends on.

The surrounding case-management system owns tips, cases, leads, tipster
history, scam patterns and rules. The engine sees them only through these
protocols; InMemoryCaseRepository implements all five over storage rows
(as exported by that system) and is used by the CLI and the tests.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, runtime_checkable

from tip_triage.data_management import mappers
from tip_triage.data_management.schemas import (
    CaseContext,
    Lead,
    ScamPattern,
    Tip,
    TipsterProfile,
    VerificationRule,
)
from tip_triage.errors import PersistenceError
from tip_triage.utils.logging import get_structured_logger

FIXTURE_COLLECTIONS = ("tips", "cases", "leads", "tipsters", "scam_patterns", "rules")


@runtime_checkable
class TipSource(Protocol):
    async def get_tip(self, tip_id: str) -> Optional[Tip]: ...

    async def list_case_tips(self, case_id: str) -> List[Tip]: ...

    async def get_tip_summary(self, tip_id: str) -> Optional[Dict[str, Any]]: ...


@runtime_checkable
class CaseSource(Protocol):
    async def get_case(self, case_id: str) -> Optional[CaseContext]: ...

    async def list_leads(self, case_id: str) -> List[Lead]: ...


@runtime_checkable
class TipsterHistorySource(Protocol):
    async def get_tipster(self, tipster_id: str) -> Optional[TipsterProfile]: ...


@runtime_checkable
class ScamPatternRegistry(Protocol):
    async def list_active_patterns(self) -> List[ScamPattern]: ...

    async def record_detections(self, pattern_ids: Iterable[str], detected_at: datetime) -> None: ...


@runtime_checkable
class RuleRegistry(Protocol):
    async def list_active_rules(self, jurisdiction: Optional[str]) -> List[VerificationRule]: ...


class InMemoryCaseRepository:
    """
    All five read-side sources over in-memory storage rows.

    Usage:
        repo = InMemoryCaseRepository.from_fixture("examples/sample_case.json")
        tip = await repo.get_tip("tip-001")
    """

    def __init__(self, rows: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None):
        rows = rows or {}
        self._rows: Dict[str, Dict[str, Dict[str, Any]]] = {
            collection: {str(r["id"]): dict(r) for r in rows.get(collection, [])}
            for collection in FIXTURE_COLLECTIONS
        }
        self._lock = asyncio.Lock()
        self._logger = get_structured_logger(__name__, component="InMemoryCaseRepository")

    @classmethod
    def from_fixture(cls, path: str) -> "InMemoryCaseRepository":
        """Load storage rows from a JSON fixture file.

        Raises:
            PersistenceError: File missing or not valid JSON.
        """
        try:
            with open(Path(path), "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot load fixture {path}: {e}", stage="load_fixture") from e
        return cls(data)

    def add_row(self, collection: str, row: Mapping[str, Any]) -> None:
        self._rows[collection][str(row["id"])] = dict(row)

    def tip_ids(self) -> List[str]:
        return list(self._rows["tips"])

    async def get_tip(self, tip_id: str) -> Optional[Tip]:
        row = self._rows["tips"].get(tip_id)
        return mappers.tip_from_row(row) if row else None

    async def list_case_tips(self, case_id: str) -> List[Tip]:
        return [
            mappers.tip_from_row(row)
            for row in self._rows["tips"].values()
            if row.get("case_id") == case_id
        ]

    async def get_tip_summary(self, tip_id: str) -> Optional[Dict[str, Any]]:
        row = self._rows["tips"].get(tip_id)
        return mappers.tip_summary(row) if row else None

    async def get_case(self, case_id: str) -> Optional[CaseContext]:
        row = self._rows["cases"].get(case_id)
        return mappers.case_from_row(row) if row else None

    async def list_leads(self, case_id: str) -> List[Lead]:
        return [
            mappers.lead_from_row(row)
            for row in self._rows["leads"].values()
            if row.get("case_id") == case_id
        ]

    async def get_tipster(self, tipster_id: str) -> Optional[TipsterProfile]:
        row = self._rows["tipsters"].get(tipster_id)
        return mappers.tipster_from_row(row) if row else None

    async def list_active_patterns(self) -> List[ScamPattern]:
        patterns = [mappers.scam_pattern_from_row(row) for row in self._rows["scam_patterns"].values()]
        return [p for p in patterns if p.is_active]

    async def get_pattern(self, pattern_id: str) -> Optional[ScamPattern]:
        row = self._rows["scam_patterns"].get(pattern_id)
        return mappers.scam_pattern_from_row(row) if row else None

    async def record_detections(self, pattern_ids: Iterable[str], detected_at: datetime) -> None:
        """Increment detection counters and stamp last-detected time."""
        async with self._lock:
            for pattern_id in pattern_ids:
                row = self._rows["scam_patterns"].get(pattern_id)
                if row is None:
                    continue
                pattern = mappers.scam_pattern_from_row(row)
                updated = pattern.model_copy(
                    update={
                        "times_detected": pattern.times_detected + 1,
                        "last_detected_at": detected_at,
                    }
                )
                self._rows["scam_patterns"][pattern_id] = mappers.scam_pattern_to_row(updated)
                self._logger.info(
                    "pattern_detected",
                    pattern_id=pattern_id,
                    times_detected=updated.times_detected,
                )

    async def list_active_rules(self, jurisdiction: Optional[str]) -> List[VerificationRule]:
        rules = [mappers.rule_from_row(row) for row in self._rows["rules"].values()]
        return [
            r
            for r in rules
            if r.is_active and (r.jurisdiction is None or r.jurisdiction == jurisdiction)
        ]


__all__ = [
    "TipSource",
    "CaseSource",
    "TipsterHistorySource",
    "ScamPatternRegistry",
    "RuleRegistry",
    "InMemoryCaseRepository",
    "FIXTURE_COLLECTIONS",
]
