"""Loaded verification context handed to every evaluator."""

from dataclasses import dataclass, field
from typing import List, Optional, Set

from tip_triage.data_management.schemas.tip_schema import (
    CaseContext,
    Lead,
    ScamPattern,
    Tip,
    TipsterProfile,
    VerificationRule,
)

# Optional context sources; a degraded source falls back to neutral scoring
SOURCE_TIPSTER = "tipster_profile"
SOURCE_LEADS = "existing_leads"
SOURCE_CASE_TIPS = "existing_tips"
SOURCE_SCAM_PATTERNS = "scam_patterns"
SOURCE_RULES = "verification_rules"


@dataclass
class VerificationContext:
    """Everything the engine needs to verify one tip.

    Attributes:
        tip: The tip under verification
        case: Its case
        tipster: Tipster profile, None when anonymous, unknown or degraded
        leads: Investigator-curated leads for the case
        case_tips: Other tips for the same case (the tip itself excluded)
        scam_patterns: Active scam patterns
        rules: Active verification rules for the case's jurisdiction
        degraded_sources: Optional sources that timed out or failed to load
        correlation_id: Request correlation id for logs
    """

    tip: Tip
    case: CaseContext
    tipster: Optional[TipsterProfile] = None
    leads: List[Lead] = field(default_factory=list)
    case_tips: List[Tip] = field(default_factory=list)
    scam_patterns: List[ScamPattern] = field(default_factory=list)
    rules: List[VerificationRule] = field(default_factory=list)
    degraded_sources: Set[str] = field(default_factory=set)
    correlation_id: Optional[str] = None

    def is_degraded(self, source: str) -> bool:
        return source in self.degraded_sources


__all__ = [
    "VerificationContext",
    "SOURCE_TIPSTER",
    "SOURCE_LEADS",
    "SOURCE_CASE_TIPS",
    "SOURCE_SCAM_PATTERNS",
    "SOURCE_RULES",
]
