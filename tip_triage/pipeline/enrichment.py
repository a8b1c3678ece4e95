"""Reviewer-facing enrichment of a verification result.

Turns the raw evaluator outputs into auto_actions, warnings, suggestions and
a one-paragraph summary. Pure functions of their inputs; nothing here reads
storage or the clock.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from tip_triage.config.scoring_config import (
    DETAIL_SUGGESTION_CHARS,
    HIGH_SPAM_WARNING,
    LOW_CREDIBILITY_WARNING,
    NEW_LEAD_SUGGESTION_CREDIBILITY,
)
from tip_triage.data_management.schemas import (
    VerificationContext,
    VerificationWarning,
    WarningSeverity,
)
from tip_triage.sifters.credibility import CredibilityAssessment
from tip_triage.sifters.crossref import DuplicateResult
from tip_triage.sifters.hoax import HoaxResult
from tip_triage.sifters.triage import TriageDecision

QUEUED = "queued"
REROUTED = "rerouted"

SUGGEST_LOCATION = "Request the precise sighting location from the tipster"
SUGGEST_PHOTOS = "Request photos of the sighting if any were taken"
SUGGEST_DETAILS = "Ask the tipster for more detail: clothing, direction of travel, companions"
SUGGEST_NEW_LEAD = "Consider opening a new lead from this tip"


@dataclass
class Enrichment:
    auto_actions: List[str] = field(default_factory=list)
    warnings: List[VerificationWarning] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    summary: str = ""


class ResultEnricher:
    """
    Builds auto actions, warnings, suggestions and the summary for a record.

    Usage:
        enrichment = ResultEnricher().enrich(context, assessment, duplicates,
                                             hoax, decision, applied_rules, "queued")
    """

    def enrich(
        self,
        context: VerificationContext,
        assessment: CredibilityAssessment,
        duplicates: DuplicateResult,
        hoax: HoaxResult,
        decision: TriageDecision,
        applied_rules: List[str],
        queue_action: Optional[str],
    ) -> Enrichment:
        return Enrichment(
            auto_actions=self.auto_actions(duplicates, decision, applied_rules, queue_action),
            warnings=self.warnings(context, assessment, duplicates, hoax, decision),
            suggestions=self.suggestions(context, assessment, duplicates),
            summary=self.summary(assessment, duplicates, hoax, decision),
        )

    @staticmethod
    def auto_actions(
        duplicates: DuplicateResult,
        decision: TriageDecision,
        applied_rules: List[str],
        queue_action: Optional[str],
    ) -> List[str]:
        actions = []
        if decision.auto_triaged:
            actions.append("auto_verified")
        if duplicates.is_duplicate:
            actions.append("flagged_duplicate")
        if decision.suspected_hoax:
            actions.append("flagged_suspected_hoax")
        actions.extend(f"rule_applied:{name}" for name in applied_rules)
        if decision.requires_human_review and queue_action:
            actions.append(f"{queue_action}:{decision.queue_type.value}")
        return actions

    @staticmethod
    def warnings(
        context: VerificationContext,
        assessment: CredibilityAssessment,
        duplicates: DuplicateResult,
        hoax: HoaxResult,
        decision: TriageDecision,
    ) -> List[VerificationWarning]:
        warnings = []
        if duplicates.is_duplicate:
            warnings.append(
                VerificationWarning(
                    type="possible_duplicate",
                    message=f"Possible duplicate of tip {duplicates.primary_duplicate_id}",
                )
            )
        if decision.suspected_hoax:
            warnings.append(
                VerificationWarning(
                    type="suspected_hoax",
                    message=f"Suspected hoax: {', '.join(hoax.hoax_indicators) or 'high spam score'}",
                    severity=WarningSeverity.CRITICAL,
                )
            )
        if hoax.spam_score > HIGH_SPAM_WARNING:
            warnings.append(
                VerificationWarning(
                    type="high_spam_score",
                    message=f"Spam score {hoax.spam_score}/100",
                )
            )
        if assessment.credibility_score < LOW_CREDIBILITY_WARNING:
            warnings.append(
                VerificationWarning(
                    type="low_credibility",
                    message=f"Credibility {assessment.credibility_score}/100",
                )
            )
        if assessment.travel_time_feasible is False:
            warnings.append(
                VerificationWarning(
                    type="travel_time_infeasible",
                    message="Claimed sighting is not reachable from the last-seen point in the time elapsed",
                )
            )
        if assessment.blocked_tipster:
            warnings.append(
                VerificationWarning(
                    type="blocked_tipster",
                    message="Tip submitted by a blocked tipster",
                    severity=WarningSeverity.CRITICAL,
                )
            )
        for source in sorted(context.degraded_sources) + assessment.degraded_signals:
            warnings.append(
                VerificationWarning(
                    type="degraded_source",
                    message=f"{source} unavailable; neutral defaults used",
                    severity=WarningSeverity.INFO,
                )
            )
        for component in assessment.failed_components:
            warnings.append(
                VerificationWarning(
                    type="scoring_component_failed",
                    message=f"{component} could not be computed; neutral default used",
                )
            )
        return warnings

    @staticmethod
    def suggestions(
        context: VerificationContext,
        assessment: CredibilityAssessment,
        duplicates: DuplicateResult,
    ) -> List[str]:
        tip = context.tip
        suggestions = []
        if not tip.has_coordinates and not tip.location_text:
            suggestions.append(SUGGEST_LOCATION)
        if not tip.attachments:
            suggestions.append(SUGGEST_PHOTOS)
        if len(tip.content or "") < DETAIL_SUGGESTION_CHARS:
            suggestions.append(SUGGEST_DETAILS)
        if (
            assessment.credibility_score >= NEW_LEAD_SUGGESTION_CREDIBILITY
            and not duplicates.matches_existing_leads
        ):
            suggestions.append(SUGGEST_NEW_LEAD)
        return suggestions

    @staticmethod
    def summary(
        assessment: CredibilityAssessment,
        duplicates: DuplicateResult,
        hoax: HoaxResult,
        decision: TriageDecision,
    ) -> str:
        parts = [
            f"Credibility {assessment.credibility_score}/100, "
            f"{decision.priority_bucket.value} priority."
        ]
        if decision.auto_triaged:
            parts.append("Auto-verified with high confidence.")
        elif decision.suspected_hoax:
            parts.append(f"Suspected hoax (spam score {hoax.spam_score}).")
        if duplicates.is_duplicate:
            parts.append(f"Likely duplicate of tip {duplicates.primary_duplicate_id}.")
        if duplicates.matching_lead_ids:
            parts.append(f"Corroborates {len(duplicates.matching_lead_ids)} existing lead(s).")
        if duplicates.matches_suspect_description:
            parts.append("Mentions details matching the suspect or vehicle description.")
        if decision.requires_human_review:
            parts.append(f"Human review due by {decision.review_deadline.isoformat()}.")
        return " ".join(parts)


__all__ = [
    "Enrichment",
    "ResultEnricher",
    "QUEUED",
    "REROUTED",
    "SUGGEST_LOCATION",
    "SUGGEST_PHOTOS",
    "SUGGEST_DETAILS",
    "SUGGEST_NEW_LEAD",
]
