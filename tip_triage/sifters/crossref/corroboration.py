"""Corroboration of a tip against curated leads, other tips and known places.

Curated leads weigh more than other unverified tips:

    score = 35
          + min(30, 20 + 5 * (matching_leads - 1))     if any lead matches
          + min(16,  8 + 4 * (corroborating_tips - 1)) if any tip corroborates
          + 10                                          if a known location matches

With nothing to compare against the score is the neutral default.
Tips that are duplicates of this one do not count as corroboration: a
resubmission is not an independent source.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from tip_triage.config.scoring_config import (
    CORROBORATION_COMPONENT_WEIGHTS,
    CROSS_REFERENCE_BASE,
    DUPLICATE_COMPONENT_WEIGHTS,
    KNOWN_LOCATION_BONUS,
    LEAD_BONUS_CAP,
    LEAD_EXTRA_BONUS,
    LEAD_FIRST_BONUS,
    NEUTRAL_SCORE,
    TIP_BONUS_CAP,
    TIP_EXTRA_BONUS,
    TIP_FIRST_BONUS,
)
from tip_triage.config.triage_config import DEFAULT_TRIAGE_CONFIG, TriageConfig
from tip_triage.data_management.schemas import CaseContext, Lead, Tip, VerificationContext
from tip_triage.data_management.schemas.context_schema import SOURCE_CASE_TIPS, SOURCE_LEADS
from tip_triage.sifters.crossref.similarity import SimilarityBreakdown, compare
from tip_triage.utils.geo import clamp_score, distance_between
from tip_triage.utils.text import compare_descriptors, extract_descriptors, text_similarity

_PLATE_TOKEN_RE = re.compile(r"[A-Za-z0-9]+")


@dataclass
class CorroborationResult:
    """Outcome of corroboration analysis.

    Attributes:
        has_reference_data: Whether anything was available to compare against
        matching_lead_ids: Leads the tip corroborates
        corroborating_tip_ids: Non-duplicate tips converging on the same place/time
        matches_known_locations: Tip location matches a lead or known place
        matches_suspect_description: Tip matches suspect or vehicle description
        lead_similarity: lead id -> combined corroboration similarity
        tip_similarity: tip id -> combined corroboration similarity
        score: cross_reference_score contribution (0-100)
    """

    has_reference_data: bool = False
    matching_lead_ids: List[str] = field(default_factory=list)
    corroborating_tip_ids: List[str] = field(default_factory=list)
    matches_known_locations: bool = False
    matches_suspect_description: bool = False
    lead_similarity: Dict[str, float] = field(default_factory=dict)
    tip_similarity: Dict[str, float] = field(default_factory=dict)
    score: int = NEUTRAL_SCORE


def duplicate_breakdown(tip: Tip, other: Tip, config: TriageConfig) -> SimilarityBreakdown:
    """Similarity of two tips under the duplicate weighting."""
    return compare(
        tip.content,
        other.content,
        tip.latitude,
        tip.longitude,
        other.latitude,
        other.longitude,
        tip.event_time,
        other.event_time,
        distance_threshold_km=config.duplicate_distance_km,
        time_window_hours=config.duplicate_time_window_hours,
        weights=DUPLICATE_COMPONENT_WEIGHTS,
    )


def is_duplicate_pair(breakdown: SimilarityBreakdown, config: TriageConfig) -> bool:
    return (
        breakdown.combined >= config.duplicate_similarity_threshold
        and breakdown.text >= config.duplicate_min_text_similarity
    )


class CorroborationAnalyzer:
    """
    Scores how strongly a tip corroborates what the case already knows.

    Usage:
        analyzer = CorroborationAnalyzer()
        result = analyzer.analyze(context)
        result.score  # cross_reference_score
    """

    def __init__(self, config: TriageConfig = DEFAULT_TRIAGE_CONFIG):
        self.config = config
        self._logger = logger.bind(component="CorroborationAnalyzer")

    def analyze(
        self,
        context: VerificationContext,
        config: Optional[TriageConfig] = None,
    ) -> CorroborationResult:
        config = config or self.config
        tip, case = context.tip, context.case
        leads = [] if context.is_degraded(SOURCE_LEADS) else context.leads
        case_tips = [] if context.is_degraded(SOURCE_CASE_TIPS) else context.case_tips

        result = CorroborationResult(
            has_reference_data=bool(leads or case_tips or case.known_locations),
        )

        for lead in leads:
            breakdown = self._lead_breakdown(tip, lead, config)
            result.lead_similarity[lead.id] = round(breakdown.combined, 3)
            if breakdown.combined >= config.lead_match_threshold:
                result.matching_lead_ids.append(lead.id)

        for other in case_tips:
            if other.id == tip.id or is_duplicate_pair(duplicate_breakdown(tip, other, config), config):
                continue
            breakdown = self._tip_breakdown(tip, other, config)
            result.tip_similarity[other.id] = round(breakdown.combined, 3)
            if breakdown.combined >= config.corroboration_threshold:
                result.corroborating_tip_ids.append(other.id)

        matching_leads = [lead for lead in leads if lead.id in result.matching_lead_ids]
        result.matches_known_locations = self._matches_known_location(
            tip, case, leads, matching_leads, config
        )
        result.matches_suspect_description = self.matches_suspect_description(tip, case)
        result.score = self._score(result)

        self._logger.debug(
            f"Corroboration for {tip.id}: score={result.score}",
            leads=len(result.matching_lead_ids),
            tips=len(result.corroborating_tip_ids),
            known_location=result.matches_known_locations,
        )
        return result

    def _lead_breakdown(self, tip: Tip, lead: Lead, config: TriageConfig) -> SimilarityBreakdown:
        return compare(
            tip.content,
            lead.text,
            tip.latitude,
            tip.longitude,
            lead.latitude,
            lead.longitude,
            tip.event_time,
            lead.occurred_at,
            distance_threshold_km=config.lead_match_radius_km,
            time_window_hours=config.lead_time_window_hours,
            weights=CORROBORATION_COMPONENT_WEIGHTS,
        )

    def _tip_breakdown(self, tip: Tip, other: Tip, config: TriageConfig) -> SimilarityBreakdown:
        return compare(
            tip.content,
            other.content,
            tip.latitude,
            tip.longitude,
            other.latitude,
            other.longitude,
            tip.event_time,
            other.event_time,
            distance_threshold_km=config.corroboration_radius_km,
            time_window_hours=config.corroboration_time_window_hours,
            weights=CORROBORATION_COMPONENT_WEIGHTS,
        )

    def _matches_known_location(
        self,
        tip: Tip,
        case: CaseContext,
        leads: List[Lead],
        matching_leads: List[Lead],
        config: TriageConfig,
    ) -> bool:
        points = [(lead.latitude, lead.longitude) for lead in matching_leads]
        points += [(place.latitude, place.longitude) for place in case.known_locations]
        for lat, lon in points:
            distance = distance_between(tip.latitude, tip.longitude, lat, lon)
            if distance is not None and distance <= config.known_location_radius_km:
                return True

        if tip.location_text:
            labels = [lead.location_text for lead in leads if lead.location_text]
            labels += [place.label for place in case.known_locations]
            return any(
                text_similarity(tip.location_text, label) >= config.location_text_match_threshold
                for label in labels
            )
        return False

    @staticmethod
    def matches_suspect_description(tip: Tip, case: CaseContext) -> bool:
        """Shared descriptor with the suspect description, or a plate-like vehicle token."""
        if case.suspect_description:
            matches, _ = compare_descriptors(
                extract_descriptors(tip.content),
                extract_descriptors(case.suspect_description),
            )
            if matches:
                return True

        if case.vehicle_description:
            plates = {
                token.upper()
                for token in _PLATE_TOKEN_RE.findall(case.vehicle_description)
                if len(token) >= 5 and any(ch.isdigit() for ch in token)
            }
            tip_tokens = {token.upper() for token in _PLATE_TOKEN_RE.findall(tip.content)}
            if plates & tip_tokens:
                return True
        return False

    @staticmethod
    def _score(result: CorroborationResult) -> int:
        if not result.has_reference_data:
            return NEUTRAL_SCORE

        score = CROSS_REFERENCE_BASE
        lead_count = len(result.matching_lead_ids)
        if lead_count:
            score += min(LEAD_BONUS_CAP, LEAD_FIRST_BONUS + LEAD_EXTRA_BONUS * (lead_count - 1))
        tip_count = len(result.corroborating_tip_ids)
        if tip_count:
            score += min(TIP_BONUS_CAP, TIP_FIRST_BONUS + TIP_EXTRA_BONUS * (tip_count - 1))
        if result.matches_known_locations:
            score += KNOWN_LOCATION_BONUS
        return clamp_score(score)


__all__ = [
    "CorroborationAnalyzer",
    "CorroborationResult",
    "duplicate_breakdown",
    "is_duplicate_pair",
]
