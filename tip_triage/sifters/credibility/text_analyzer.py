"""Text analysis of tip content.

text_analysis_score = 0.45 * detail + 0.15 * coherence
                    + 0.10 * neutrality + 0.30 * consistency

- detail: 10 + 15 per detail category (date, time of day, place, physical,
  clothing, vehicle, direction) + length bonuses, minus 10 per hedge
- coherence: sentence structure, shouting, repeated punctuation
- neutrality: penalises emotionally charged or over-assertive phrasing
- consistency: descriptor pairs ("red jacket") against the case's physical
  description; conflicts (same item, different colour) weigh more than matches
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from tip_triage.config.patterns import CHARGED_PATTERNS, DETAIL_PATTERNS, HEDGE_PATTERNS
from tip_triage.config.scoring_config import NEUTRAL_SCORE, TEXT_COMPONENT_WEIGHTS
from tip_triage.data_management.schemas import CaseContext
from tip_triage.utils.geo import clamp_score
from tip_triage.utils.text import compare_descriptors, extract_descriptors

_WORD_RE = re.compile(r"\w+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_REPEATED_PUNCT_RE = re.compile(r"[!?]{3,}")


@dataclass
class TextAnalysis:
    """Component breakdown of a text analysis.

    Attributes:
        score: Blended 0-100 text_analysis_score
        detail: Specificity / detail richness 0-100
        coherence: Internal coherence 0-100
        neutrality: Sentiment neutrality 0-100
        consistency: Consistency with known case facts 0-100
        detail_categories: Detail categories found
        hedge_count: Hedging phrases found
        descriptor_matches: Descriptor pairs agreeing with the case
        descriptor_conflicts: Descriptor pairs contradicting the case
    """

    score: int
    detail: int
    coherence: int
    neutrality: int
    consistency: int
    detail_categories: List[str] = field(default_factory=list)
    hedge_count: int = 0
    descriptor_matches: int = 0
    descriptor_conflicts: int = 0


class TextAnalyzer:
    """
    Scores tip text for specificity, coherence, neutrality and case consistency.

    Usage:
        analyzer = TextAnalyzer()
        analysis = analyzer.analyze("Saw a girl in a red jacket ...", case)
        analysis.score
    """

    DETAIL_BASE = 10
    DETAIL_PER_CATEGORY = 15
    HEDGE_PENALTY = 10
    LENGTH_BONUSES = ((15, 10), (40, 10), (100, 10))

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = weights or TEXT_COMPONENT_WEIGHTS
        self.detail_patterns = {
            category: [re.compile(p, re.IGNORECASE) for p in patterns]
            for category, patterns in DETAIL_PATTERNS.items()
        }
        self.hedge_patterns = [re.compile(p, re.IGNORECASE) for p in HEDGE_PATTERNS]
        self.charged_patterns = [re.compile(p, re.IGNORECASE) for p in CHARGED_PATTERNS]
        self.logger = logger.bind(component="TextAnalyzer")

    def analyze(self, content: str, case: Optional[CaseContext] = None) -> TextAnalysis:
        content = content or ""
        words = _WORD_RE.findall(content)

        categories = [
            category
            for category, patterns in self.detail_patterns.items()
            if any(p.search(content) for p in patterns)
        ]
        hedges = sum(len(p.findall(content)) for p in self.hedge_patterns)
        detail = self._detail(len(words), categories, hedges)
        coherence = self._coherence(content, words)
        neutrality = self._neutrality(content)
        consistency, matches, conflicts = self._consistency(content, case)

        blended = (
            self.weights["detail"] * detail
            + self.weights["coherence"] * coherence
            + self.weights["neutrality"] * neutrality
            + self.weights["consistency"] * consistency
        )
        return TextAnalysis(
            score=clamp_score(blended),
            detail=detail,
            coherence=coherence,
            neutrality=neutrality,
            consistency=consistency,
            detail_categories=categories,
            hedge_count=hedges,
            descriptor_matches=matches,
            descriptor_conflicts=conflicts,
        )

    def _detail(self, word_count: int, categories: List[str], hedges: int) -> int:
        score = self.DETAIL_BASE + self.DETAIL_PER_CATEGORY * len(categories)
        for min_words, bonus in self.LENGTH_BONUSES:
            if word_count >= min_words:
                score += bonus
        score -= self.HEDGE_PENALTY * hedges
        return clamp_score(score)

    @staticmethod
    def _coherence(content: str, words: List[str]) -> int:
        if not words:
            return 0
        sentences = [s for s in _SENTENCE_SPLIT_RE.split(content) if s.strip()]
        avg_words = len(words) / max(1, len(sentences))

        score = 50
        if 5 <= avg_words <= 30:
            score += 30
        elif avg_words < 3 or avg_words > 60:
            score -= 20
        if len(words) < 8:
            score -= 15

        letters = [ch for ch in content if ch.isalpha()]
        if len(letters) > 20 and all(ch.isupper() for ch in letters):
            score -= 20
        if _REPEATED_PUNCT_RE.search(content):
            score -= 10
        return clamp_score(score)

    def _neutrality(self, content: str) -> int:
        charged = sum(len(p.findall(content)) for p in self.charged_patterns)
        extra_exclamations = max(0, content.count("!") - 1)
        return clamp_score(100 - 20 * charged - 10 * extra_exclamations)

    @staticmethod
    def _consistency(content: str, case: Optional[CaseContext]) -> tuple[int, int, int]:
        if case is None or not case.physical_description:
            return NEUTRAL_SCORE, 0, 0
        tip_descriptors = extract_descriptors(content)
        case_descriptors = extract_descriptors(case.physical_description)
        if not tip_descriptors or not case_descriptors:
            return NEUTRAL_SCORE, 0, 0
        matches, conflicts = compare_descriptors(tip_descriptors, case_descriptors)
        return clamp_score(NEUTRAL_SCORE + 15 * matches - 20 * conflicts), matches, conflicts


__all__ = ["TextAnalyzer", "TextAnalysis"]
