"""Photo verification scoring from attachment metadata.

Each image attachment starts at 50 and is adjusted by metadata signals:

| Signal                                  | Adjustment |
|-----------------------------------------|------------|
| EXIF present / missing                  | +10 / -10  |
| GPS present / missing                   | +10 / -5   |
| GPS vs claimed point <1km / <5km / >50km| +10 / +5 / -15 |
| Capture vs sighting <=2h / <=24h / >7d  | +10 / +5 / -15 |
| Stock photo match                       | -30        |
| AI-generated                            | -40        |
| Manipulated (confidence >= 0.7)         | -25        |
| Zero faces detected                     | -10        |
| Matches missing person                  | +20        |

An optional vision signal supplies the face count when the attachment does
not carry one. It also adds a small quality adjustment and a subject match
when the attachment flags did not already report one. The photo
sub-score is the best-scoring image; tips without images get the neutral
default.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from loguru import logger

from tip_triage.config.scoring_config import (
    EXIF_TIMESTAMP_FORMAT,
    MANIPULATION_CONFIDENCE_THRESHOLD,
    NEUTRAL_SCORE,
    PHOTO_ADJUSTMENTS,
    PHOTO_BASE_SCORE,
)
from tip_triage.data_management.schemas import Attachment, Tip
from tip_triage.utils.geo import clamp_score, distance_between, hours_between
from tip_triage.vision.photo_analysis import FaceQualitySignal

EXIF_CAPTURE_TAGS = ("DateTimeOriginal", "DateTime")


@dataclass
class PhotoScore:
    """Score for one image attachment.

    Attributes:
        attachment_id: Attachment scored
        score: Clamped 0-100 score
        adjustments: Signal name -> points applied
        gps_distance_km: Distance between photo GPS and claimed sighting, if both known
    """

    attachment_id: str
    score: int
    adjustments: Dict[str, int] = field(default_factory=dict)
    gps_distance_km: Optional[float] = None


class PhotoScorer:
    """
    Scores image attachments from their metadata and detector flags.

    Usage:
        scorer = PhotoScorer()
        score, details = scorer.score(tip, signals={})
    """

    def __init__(
        self,
        adjustments: Optional[Mapping[str, int]] = None,
        manipulation_threshold: float = MANIPULATION_CONFIDENCE_THRESHOLD,
    ):
        self.adjustments = dict(adjustments or PHOTO_ADJUSTMENTS)
        self.manipulation_threshold = manipulation_threshold
        self.logger = logger.bind(component="PhotoScorer")

    def score(
        self,
        tip: Tip,
        signals: Optional[Mapping[str, FaceQualitySignal]] = None,
    ) -> tuple[int, List[PhotoScore]]:
        """
        Score all image attachments of a tip.

        Args:
            tip: Tip whose attachments are scored
            signals: Vision signals keyed by attachment id (missing = unavailable)

        Returns:
            (photo_verification_score, per-attachment scores)

        Raises:
            ValueError: EXIF capture timestamp present but malformed
        """
        images = tip.image_attachments
        if not images:
            return NEUTRAL_SCORE, []

        signals = signals or {}
        scored = [self.score_attachment(a, tip, signals.get(a.id)) for a in images]
        best = max(scored, key=lambda s: s.score)
        self.logger.debug(
            f"Photo score {best.score} from {len(scored)} image(s)",
            tip_id=tip.id,
            attachment_id=best.attachment_id,
        )
        return best.score, scored

    def score_attachment(
        self,
        attachment: Attachment,
        tip: Tip,
        signal: Optional[FaceQualitySignal] = None,
    ) -> PhotoScore:
        applied: Dict[str, int] = {}

        def apply(name: str) -> None:
            applied[name] = self.adjustments[name]

        apply("exif_present" if attachment.has_exif else "exif_missing")
        apply("gps_present" if attachment.has_gps else "gps_missing")

        distance = distance_between(
            attachment.gps_latitude, attachment.gps_longitude, tip.latitude, tip.longitude
        )
        if distance is not None:
            if distance < 1.0:
                apply("gps_within_1km")
            elif distance < 5.0:
                apply("gps_within_5km")
            elif distance > 50.0:
                apply("gps_beyond_50km")

        gap = hours_between(self.capture_time(attachment), tip.sighting_time)
        if gap is not None:
            gap = abs(gap)
            if gap <= 2:
                apply("capture_within_2h")
            elif gap <= 24:
                apply("capture_within_24h")
            elif gap > 24 * 7:
                apply("capture_beyond_7d")

        if attachment.is_stock_photo:
            apply("stock_photo")
        if attachment.is_ai_generated:
            apply("ai_generated")
        if self.is_manipulated(attachment):
            apply("manipulated")
        faces = attachment.faces_detected
        if faces is None and signal is not None:
            faces = signal.face_count
        if faces == 0:
            apply("no_faces")
        if attachment.matches_missing_person:
            apply("matches_subject")

        if signal is not None:
            if signal.quality >= 0.7:
                apply("vision_high_quality")
            elif signal.quality < 0.3:
                apply("vision_low_quality")
            if signal.matches_subject and not attachment.matches_missing_person:
                apply("vision_matches_subject")

        return PhotoScore(
            attachment_id=attachment.id,
            score=clamp_score(PHOTO_BASE_SCORE + sum(applied.values())),
            adjustments=applied,
            gps_distance_km=distance,
        )

    def is_manipulated(self, attachment: Attachment) -> bool:
        if not attachment.is_manipulated:
            return False
        confidence = attachment.manipulation_confidence
        return confidence is None or confidence >= self.manipulation_threshold

    @staticmethod
    def capture_time(attachment: Attachment) -> Optional[datetime]:
        """Capture timestamp, falling back to the EXIF DateTimeOriginal tag.

        Raises:
            ValueError: EXIF timestamp tag present but not in EXIF format
        """
        if attachment.capture_timestamp is not None:
            return attachment.capture_timestamp
        for tag in EXIF_CAPTURE_TAGS:
            raw = attachment.exif_data.get(tag)
            if raw:
                parsed = datetime.strptime(str(raw), EXIF_TIMESTAMP_FORMAT)
                return parsed.replace(tzinfo=timezone.utc)
        return None


__all__ = ["PhotoScorer", "PhotoScore"]
