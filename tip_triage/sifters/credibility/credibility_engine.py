"""Credibility scoring engine: six sub-scores and their weighted aggregate.

    credibility = round_half_up(0.20 * photo + 0.20 * location + 0.15 * time
                                + 0.15 * text + 0.15 * cross_reference
                                + 0.15 * tipster)

Every sub-score is an int clamped to [0, 100]. A sub-score whose input is
absent is the neutral default 50, never dropped, so the weights never need
renormalising. A sub-computation that raises is logged and replaced by the
neutral default; the assessment as a whole never fails on one signal.

Optional vision analysis runs before photo scoring, bounded by a timeout and
a concurrency limit. Timeouts and provider failures are UpstreamDegradation:
logged, recorded in degraded_signals, and scored as if no provider existed.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from loguru import logger

from tip_triage.config.scoring_config import (
    BLOCKED_TIPSTER_SCORE,
    NEUTRAL_SCORE,
    SCORE_WEIGHTS,
    TIPSTER_SPAM_PENALTY,
    TIPSTER_TRAIT_BONUS,
)
from tip_triage.config.settings import settings
from tip_triage.config.triage_config import DEFAULT_TRIAGE_CONFIG, TriageConfig
from tip_triage.data_management.schemas import Tip, VerificationContext, utc_now
from tip_triage.errors import UpstreamDegradation
from tip_triage.sifters.credibility.photo_scorer import PhotoScore, PhotoScorer
from tip_triage.sifters.credibility.plausibility_scorer import PlausibilityScorer, TimeScore
from tip_triage.sifters.credibility.text_analyzer import TextAnalysis, TextAnalyzer
from tip_triage.sifters.crossref.corroboration import CorroborationAnalyzer, CorroborationResult
from tip_triage.utils.geo import clamp_score
from tip_triage.vision.photo_analysis import FaceQualitySignal, PhotoAnalyzer

VISION_SIGNAL = "vision_analysis"


@dataclass
class CredibilityAssessment:
    """All sub-scores, the aggregate and the evidence behind them.

    Attributes:
        photo_verification_score .. tipster_reliability_score: sub-scores 0-100
        credibility_score: Weighted aggregate 0-100
        travel_time_feasible: Result of the travel feasibility check, if run
        photo_details: Per-attachment photo scores
        text_analysis: Text component breakdown
        corroboration: Cross-reference breakdown
        failed_components: Sub-scores that raised and fell back to neutral
        degraded_signals: Optional upstream signals that were unavailable
        blocked_tipster: Tipster profile is blocked
    """

    photo_verification_score: int
    location_verification_score: int
    time_plausibility_score: int
    text_analysis_score: int
    cross_reference_score: int
    tipster_reliability_score: int
    credibility_score: int
    travel_time_feasible: Optional[bool] = None
    photo_details: List[PhotoScore] = field(default_factory=list)
    text_analysis: Optional[TextAnalysis] = None
    corroboration: Optional[CorroborationResult] = None
    failed_components: List[str] = field(default_factory=list)
    degraded_signals: List[str] = field(default_factory=list)
    blocked_tipster: bool = False

    def sub_scores(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in SCORE_WEIGHTS}


class CredibilityScoringEngine:
    """
    Computes the six credibility sub-scores for a loaded verification context.

    Collaborators are injected with defaults, so tests can swap any of them:

    Usage:
        engine = CredibilityScoringEngine(photo_analyzer=build_photo_analyzer())
        assessment = await engine.score(context)
        assessment.credibility_score
    """

    def __init__(
        self,
        photo_scorer: Optional[PhotoScorer] = None,
        plausibility_scorer: Optional[PlausibilityScorer] = None,
        text_analyzer: Optional[TextAnalyzer] = None,
        corroboration: Optional[CorroborationAnalyzer] = None,
        photo_analyzer: Optional[PhotoAnalyzer] = None,
        vision_timeout: float = settings.vision_timeout_seconds,
        vision_max_concurrency: int = settings.vision_max_concurrency,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.photo_scorer = photo_scorer or PhotoScorer()
        self.plausibility_scorer = plausibility_scorer or PlausibilityScorer()
        self.text_analyzer = text_analyzer or TextAnalyzer()
        self.corroboration = corroboration or CorroborationAnalyzer()
        self.photo_analyzer = photo_analyzer
        self.vision_timeout = vision_timeout
        self.vision_max_concurrency = vision_max_concurrency
        self.clock = clock
        self.logger = logger.bind(component="CredibilityScoringEngine")

    @staticmethod
    def aggregate(sub_scores: Mapping[str, int], weights: Mapping[str, float] = SCORE_WEIGHTS) -> int:
        """Weighted sum of sub-scores, rounded half-up and clamped to [0, 100]."""
        return clamp_score(sum(weights[name] * sub_scores[name] for name in weights))

    async def score(
        self,
        context: VerificationContext,
        config: TriageConfig = DEFAULT_TRIAGE_CONFIG,
    ) -> CredibilityAssessment:
        tip, case = context.tip, context.case
        failed: List[str] = []
        signals, vision_degraded = await self._collect_vision_signals(tip)

        photo = self._safe(
            "photo_verification_score",
            lambda: self.photo_scorer.score(tip, signals),
            (NEUTRAL_SCORE, []),
            failed,
            tip.id,
        )
        location = self._safe(
            "location_verification_score",
            lambda: self.plausibility_scorer.score_location(tip, case),
            NEUTRAL_SCORE,
            failed,
            tip.id,
        )
        timing: TimeScore = self._safe(
            "time_plausibility_score",
            lambda: self.plausibility_scorer.score_time(tip, case, self.clock()),
            TimeScore(score=NEUTRAL_SCORE),
            failed,
            tip.id,
        )
        text: Optional[TextAnalysis] = self._safe(
            "text_analysis_score",
            lambda: self.text_analyzer.analyze(tip.content, case),
            None,
            failed,
            tip.id,
        )
        corroboration: Optional[CorroborationResult] = self._safe(
            "cross_reference_score",
            lambda: self.corroboration.analyze(context, config),
            None,
            failed,
            tip.id,
        )
        tipster = self._safe(
            "tipster_reliability_score",
            lambda: self._tipster_score(context, config),
            NEUTRAL_SCORE,
            failed,
            tip.id,
        )

        sub_scores = {
            "photo_verification_score": photo[0],
            "location_verification_score": location,
            "time_plausibility_score": timing.score,
            "text_analysis_score": text.score if text else NEUTRAL_SCORE,
            "cross_reference_score": corroboration.score if corroboration else NEUTRAL_SCORE,
            "tipster_reliability_score": tipster,
        }
        assessment = CredibilityAssessment(
            **sub_scores,
            credibility_score=self.aggregate(sub_scores),
            travel_time_feasible=timing.travel_time_feasible,
            photo_details=photo[1],
            text_analysis=text,
            corroboration=corroboration,
            failed_components=failed,
            degraded_signals=[VISION_SIGNAL] if vision_degraded else [],
            blocked_tipster=bool(context.tipster and context.tipster.is_blocked and not tip.is_anonymous),
        )
        self.logger.info(
            f"Tip {tip.id} credibility {assessment.credibility_score}",
            **sub_scores,
        )
        return assessment

    def _safe(
        self,
        name: str,
        compute: Callable[[], Any],
        fallback: Any,
        failed: List[str],
        tip_id: str,
    ) -> Any:
        try:
            return compute()
        except Exception as e:
            self.logger.opt(exception=e).warning(
                f"{name} failed for tip {tip_id}, using neutral default: {type(e).__name__}"
            )
            failed.append(name)
            return fallback

    def _tipster_score(self, context: VerificationContext, config: TriageConfig) -> int:
        tip = context.tip
        if tip.is_anonymous or not tip.tipster_id:
            return config.anonymous_tipster_score

        profile = context.tipster
        if profile is None:
            return NEUTRAL_SCORE
        if profile.is_blocked:
            return BLOCKED_TIPSTER_SCORE

        traits = sum(
            [
                profile.provides_photos,
                profile.provides_detailed_info,
                profile.consistent_location_reporting,
            ]
        )
        raw = (
            profile.reliability_score
            + TIPSTER_TRAIT_BONUS * traits
            - TIPSTER_SPAM_PENALTY * profile.spam_tips
        )
        return clamp_score(raw)

    async def _collect_vision_signals(self, tip: Tip) -> tuple[Dict[str, FaceQualitySignal], bool]:
        """Run optional vision analysis for every image with a file URL.

        Returns:
            (signals keyed by attachment id, whether any call degraded)
        """
        if self.photo_analyzer is None:
            return {}, False

        targets = [a for a in tip.image_attachments if a.file_url]
        if not targets:
            return {}, False

        semaphore = asyncio.Semaphore(self.vision_max_concurrency)

        async def analyze(attachment) -> Optional[FaceQualitySignal]:
            async with semaphore:
                try:
                    return await asyncio.wait_for(
                        self.photo_analyzer.analyze_photo(attachment),
                        timeout=self.vision_timeout,
                    )
                except asyncio.TimeoutError:
                    self.logger.warning(
                        f"Vision analysis timed out for attachment {attachment.id}",
                        tip_id=tip.id,
                        timeout=self.vision_timeout,
                    )
                except UpstreamDegradation as e:
                    self.logger.warning(
                        f"Vision analysis degraded for attachment {attachment.id}: {e.message}",
                        tip_id=tip.id,
                        provider=e.provider,
                    )
                return None

        results = await asyncio.gather(*(analyze(a) for a in targets))
        signals = {a.id: r for a, r in zip(targets, results) if r is not None}
        return signals, len(signals) < len(targets)


__all__ = [
    "CredibilityScoringEngine",
    "CredibilityAssessment",
    "VISION_SIGNAL",
]
