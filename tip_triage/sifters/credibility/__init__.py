"""Credibility scoring for tips.

- PhotoScorer: attachment metadata and optional vision signal
- PlausibilityScorer: location and time plausibility against the case timeline
- TextAnalyzer: detail, coherence, neutrality, case consistency
- CredibilityScoringEngine: six sub-scores and the weighted aggregate
"""

from tip_triage.sifters.credibility.credibility_engine import (
    CredibilityAssessment,
    CredibilityScoringEngine,
)
from tip_triage.sifters.credibility.photo_scorer import PhotoScore, PhotoScorer
from tip_triage.sifters.credibility.plausibility_scorer import PlausibilityScorer, TimeScore
from tip_triage.sifters.credibility.text_analyzer import TextAnalysis, TextAnalyzer

__all__ = [
    "CredibilityAssessment",
    "CredibilityScoringEngine",
    "PhotoScore",
    "PhotoScorer",
    "PlausibilityScorer",
    "TimeScore",
    "TextAnalysis",
    "TextAnalyzer",
]
