"""Duplicate detection and corroboration against existing tips and leads.

- DuplicateDetector: flags resubmissions of the same sighting
- CorroborationAnalyzer: cross_reference_score and corroboration flags
"""

from tip_triage.sifters.crossref.corroboration import (
    CorroborationAnalyzer,
    CorroborationResult,
)
from tip_triage.sifters.crossref.duplicate_detector import DuplicateDetector, DuplicateResult

__all__ = [
    "CorroborationAnalyzer",
    "CorroborationResult",
    "DuplicateDetector",
    "DuplicateResult",
]
