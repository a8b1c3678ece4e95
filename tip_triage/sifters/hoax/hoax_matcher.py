"""Hoax and scam pattern matching for tip content and attachments.

Two independent layers, both additive into spam_score (capped at 100):

| Layer        | Trigger                                              | Points                     |
|--------------|------------------------------------------------------|----------------------------|
| Scam pattern | confidence >= pattern.confidence_threshold           | 60 + round(25 * confidence)|
| Heuristic    | payment request, urgency pressure, identity claim    | see HEURISTIC_POINTS       |
|              | while anonymous, link spam, low content, shouting,   |                            |
|              | AI-generated / stock / manipulated attachments       |                            |

Pattern confidence: exact phrase 1.0, regex hit 0.9, keywords = fraction
present. Only active patterns are evaluated.

Matching is pure: detection counters on the matched patterns are bumped by
the pipeline only after the verification record is committed.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from tip_triage.config.patterns import (
    IDENTITY_CLAIM_PATTERNS,
    PAYMENT_REQUEST_PATTERNS,
    URGENCY_PRESSURE_PATTERNS,
    URL_PATTERN,
)
from tip_triage.config.scoring_config import (
    HEURISTIC_POINTS,
    LINK_SPAM_MIN_URLS,
    LOW_CONTENT_CHARS,
    MANIPULATION_CONFIDENCE_THRESHOLD,
    MAX_SCORE,
    PHRASE_MATCH_CONFIDENCE,
    REGEX_MATCH_CONFIDENCE,
    SCAM_PATTERN_BASE_POINTS,
    SCAM_PATTERN_CONFIDENCE_POINTS,
)
from tip_triage.data_management.schemas import ScamPattern, Tip, VerificationContext
from tip_triage.data_management.schemas.context_schema import SOURCE_SCAM_PATTERNS
from tip_triage.utils.geo import round_half_up


@dataclass
class HoaxResult:
    """Result of hoax matching.

    Attributes:
        hoax_indicators: Matched pattern names, then heuristic indicator names
        spam_score: 0-100 additive score
        hoax_detection_notes: Human-readable summary of what matched
        matched_pattern_ids: Pattern ids whose detection counters should be bumped
        pattern_confidence: pattern name -> match confidence
        evaluated_patterns: False when scam patterns could not be loaded
    """

    hoax_indicators: List[str] = field(default_factory=list)
    spam_score: int = 0
    hoax_detection_notes: str = ""
    matched_pattern_ids: List[str] = field(default_factory=list)
    pattern_confidence: Dict[str, float] = field(default_factory=dict)
    evaluated_patterns: bool = True


class HoaxMatcher:
    """
    Matches a tip against known scam patterns and spam heuristics.

    Each check is independent; a tip can trip several of them.

    Usage:
        matcher = HoaxMatcher()
        result = matcher.match(context)
        result.spam_score, result.hoax_indicators
    """

    SHOUTING_MIN_LETTERS = 20

    def __init__(
        self,
        heuristic_points: Optional[Dict[str, int]] = None,
        low_content_chars: int = LOW_CONTENT_CHARS,
        link_spam_min_urls: int = LINK_SPAM_MIN_URLS,
        manipulation_threshold: float = MANIPULATION_CONFIDENCE_THRESHOLD,
    ):
        self.heuristic_points = dict(heuristic_points or HEURISTIC_POINTS)
        self.low_content_chars = low_content_chars
        self.link_spam_min_urls = link_spam_min_urls
        self.manipulation_threshold = manipulation_threshold
        self.payment_patterns = [re.compile(p, re.IGNORECASE) for p in PAYMENT_REQUEST_PATTERNS]
        self.urgency_patterns = [re.compile(p, re.IGNORECASE) for p in URGENCY_PRESSURE_PATTERNS]
        self.identity_patterns = [re.compile(p, re.IGNORECASE) for p in IDENTITY_CLAIM_PATTERNS]
        self.url_pattern = re.compile(URL_PATTERN, re.IGNORECASE)
        self._logger = logger.bind(component="HoaxMatcher")

    def match(self, context: VerificationContext) -> HoaxResult:
        tip = context.tip
        result = HoaxResult(evaluated_patterns=not context.is_degraded(SOURCE_SCAM_PATTERNS))
        points = 0

        if result.evaluated_patterns:
            for pattern in context.scam_patterns:
                if not pattern.is_active:
                    continue
                confidence = self.pattern_confidence(pattern, tip.content)
                if confidence > 0 and confidence >= pattern.confidence_threshold:
                    result.hoax_indicators.append(pattern.name)
                    result.matched_pattern_ids.append(pattern.id)
                    result.pattern_confidence[pattern.name] = round(confidence, 3)
                    points += SCAM_PATTERN_BASE_POINTS + round_half_up(
                        SCAM_PATTERN_CONFIDENCE_POINTS * confidence
                    )

        heuristics = self.heuristic_indicators(tip)
        result.hoax_indicators.extend(heuristics)
        points += sum(self.heuristic_points[name] for name in heuristics)

        result.spam_score = min(MAX_SCORE, points)
        result.hoax_detection_notes = self._notes(result, heuristics)

        if result.hoax_indicators:
            self._logger.info(
                f"Tip {tip.id} hoax indicators: {', '.join(result.hoax_indicators)}",
                spam_score=result.spam_score,
            )
        return result

    def pattern_confidence(self, pattern: ScamPattern, content: str) -> float:
        """Best confidence across the pattern's phrases, regexes and keywords."""
        text = (content or "").lower()
        data = pattern.pattern_data
        best = 0.0

        if any(phrase.lower() in text for phrase in data.get("phrases", []) if phrase):
            best = PHRASE_MATCH_CONFIDENCE

        if best < REGEX_MATCH_CONFIDENCE:
            for expression in data.get("regex", []):
                try:
                    if re.search(expression, content or "", re.IGNORECASE):
                        best = REGEX_MATCH_CONFIDENCE
                        break
                except re.error as e:
                    self._logger.warning(
                        f"Skipping invalid regex in pattern {pattern.id}: {e}",
                        pattern=pattern.name,
                    )

        keywords = [k.lower() for k in data.get("keywords", []) if k]
        if keywords:
            present = sum(1 for k in keywords if re.search(rf"\b{re.escape(k)}\b", text))
            best = max(best, present / len(keywords))

        return best

    def heuristic_indicators(self, tip: Tip) -> List[str]:
        """Names of spam heuristics the tip trips, in HEURISTIC_POINTS order."""
        content = tip.content or ""
        hits = set()

        if any(p.search(content) for p in self.payment_patterns):
            hits.add("payment_request")
        if any(p.search(content) for p in self.urgency_patterns):
            hits.add("urgency_pressure")
        if (tip.is_anonymous or not tip.tipster_id) and any(
            p.search(content) for p in self.identity_patterns
        ):
            hits.add("identity_inconsistency")
        if len(self.url_pattern.findall(content)) >= self.link_spam_min_urls:
            hits.add("link_spam")
        if len(content.strip()) < self.low_content_chars:
            hits.add("low_content")

        letters = [ch for ch in content if ch.isalpha()]
        if len(letters) > self.SHOUTING_MIN_LETTERS and all(ch.isupper() for ch in letters):
            hits.add("shouting")

        for attachment in tip.attachments:
            if attachment.is_ai_generated:
                hits.add("ai_generated_content")
            if attachment.is_stock_photo:
                hits.add("stock_photo_detected")
            if attachment.is_manipulated and (
                attachment.manipulation_confidence is None
                or attachment.manipulation_confidence >= self.manipulation_threshold
            ):
                hits.add("manipulated_media")

        return [name for name in self.heuristic_points if name in hits]

    @staticmethod
    def _notes(result: HoaxResult, heuristics: List[str]) -> str:
        parts = []
        if result.pattern_confidence:
            matched = ", ".join(
                f"{name} ({confidence:.2f})" for name, confidence in result.pattern_confidence.items()
            )
            parts.append(f"Matched scam patterns: {matched}.")
        if heuristics:
            parts.append(f"Spam heuristics: {', '.join(heuristics)}.")
        if not result.evaluated_patterns:
            parts.append("Scam patterns unavailable; heuristics only.")
        return " ".join(parts)


__all__ = ["HoaxMatcher", "HoaxResult"]
