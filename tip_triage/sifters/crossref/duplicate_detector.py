"""Duplicate and cross-reference detection for incoming tips.

A prior tip for the same case is a duplicate when

    combined = renorm(0.5 * text + 0.3 * geo + 0.2 * time) >= 0.75
    AND text >= 0.5

where geo is 1.0 within ~500 m and time is 1.0 within 3 hours (both decaying
linearly beyond). The text floor keeps two different reports of the same
corner at the same time from collapsing into one: those are corroboration,
not duplicates.

All qualifying ids are recorded in descending similarity; only the single
best match (primary_duplicate_id) is used for display and summaries.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from tip_triage.config.triage_config import DEFAULT_TRIAGE_CONFIG, TriageConfig
from tip_triage.data_management.schemas import VerificationContext
from tip_triage.data_management.schemas.context_schema import SOURCE_CASE_TIPS
from tip_triage.sifters.crossref.corroboration import (
    CorroborationAnalyzer,
    duplicate_breakdown,
    is_duplicate_pair,
)


@dataclass
class DuplicateResult:
    """Result of duplicate and cross-reference detection.

    Attributes:
        is_duplicate: True when at least one prior tip exceeds the threshold
        duplicate_tip_ids: All qualifying tip ids, best match first
        primary_duplicate_id: Highest-similarity duplicate (display only)
        similarity_scores: "tip:<id>" / "lead:<id>" -> combined similarity, for audit
        matches_existing_leads: Tip corroborates at least one curated lead
        matching_lead_ids: Those leads
        matches_known_locations: Tip location matches a lead or known place
        matches_suspect_description: Tip matches suspect or vehicle description
        evaluated: False when existing tips could not be loaded
    """

    is_duplicate: bool = False
    duplicate_tip_ids: List[str] = field(default_factory=list)
    primary_duplicate_id: Optional[str] = None
    similarity_scores: Dict[str, float] = field(default_factory=dict)
    matches_existing_leads: bool = False
    matching_lead_ids: List[str] = field(default_factory=list)
    matches_known_locations: bool = False
    matches_suspect_description: bool = False
    evaluated: bool = True


class DuplicateDetector:
    """
    Compares a tip against existing tips and leads for the same case.

    Usage:
        detector = DuplicateDetector()
        result = detector.detect(context)
        if result.is_duplicate:
            print(result.primary_duplicate_id)
    """

    def __init__(
        self,
        config: TriageConfig = DEFAULT_TRIAGE_CONFIG,
        corroboration: Optional[CorroborationAnalyzer] = None,
    ):
        self.config = config
        self.corroboration = corroboration or CorroborationAnalyzer(config)
        self._logger = logger.bind(component="DuplicateDetector")

    def detect(
        self,
        context: VerificationContext,
        config: Optional[TriageConfig] = None,
    ) -> DuplicateResult:
        config = config or self.config
        tip = context.tip
        result = DuplicateResult(evaluated=not context.is_degraded(SOURCE_CASE_TIPS))

        scored: List[tuple[float, str]] = []
        if result.evaluated:
            for other in context.case_tips:
                if other.id == tip.id:
                    continue
                breakdown = duplicate_breakdown(tip, other, config)
                result.similarity_scores[f"tip:{other.id}"] = round(breakdown.combined, 3)
                if is_duplicate_pair(breakdown, config):
                    scored.append((breakdown.combined, other.id))

        # Highest similarity first; id breaks exact ties deterministically
        scored.sort(key=lambda pair: (-pair[0], pair[1]))
        result.duplicate_tip_ids = [tip_id for _, tip_id in scored]
        result.is_duplicate = bool(scored)
        result.primary_duplicate_id = scored[0][1] if scored else None

        corroboration = self.corroboration.analyze(context, config)
        for lead_id, similarity in corroboration.lead_similarity.items():
            result.similarity_scores[f"lead:{lead_id}"] = similarity
        result.matching_lead_ids = list(corroboration.matching_lead_ids)
        result.matches_existing_leads = bool(corroboration.matching_lead_ids)
        result.matches_known_locations = corroboration.matches_known_locations
        result.matches_suspect_description = corroboration.matches_suspect_description

        if result.is_duplicate:
            self._logger.info(
                f"Tip {tip.id} duplicates {result.primary_duplicate_id}",
                duplicates=len(result.duplicate_tip_ids),
            )
        return result


__all__ = ["DuplicateDetector", "DuplicateResult"]
