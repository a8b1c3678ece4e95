"""Tests for PhotoScorer metadata adjustments."""

from datetime import timedelta

import pytest

from conftest import T0, make_attachment, make_tip, north_of
from tip_triage.sifters.credibility import PhotoScorer
from tip_triage.vision import FaceQualitySignal


@pytest.fixture
def scorer():
    return PhotoScorer()


class TestPhotoScorer:
    """Tests for per-attachment scoring and best-of selection."""

    def test_no_images_is_neutral(self, scorer):
        tip = make_tip(attachments=[make_attachment(mime_type="application/pdf")])
        score, details = scorer.score(tip)
        assert score == 50
        assert details == []

    def test_bare_image_penalised_for_missing_metadata(self, scorer):
        tip = make_tip(attachments=[make_attachment()])
        score, details = scorer.score(tip)
        # exif missing -10, gps missing -5
        assert score == 35
        assert details[0].adjustments == {"exif_missing": -10, "gps_missing": -5}

    def test_far_gps_and_old_capture(self, scorer):
        lat, lon = north_of(60.0)
        tip = make_tip(
            latitude=40.0,
            longitude=-74.0,
            sighting_time=T0 + timedelta(days=10),
            attachments=[
                make_attachment(
                    exif_data={"Make": "Canon"},
                    gps_latitude=lat,
                    gps_longitude=lon,
                    capture_timestamp=T0,
                )
            ],
        )
        score, details = scorer.score(tip)
        # +10 exif, +10 gps, -15 beyond 50km, -15 capture beyond 7 days
        assert score == 40
        assert details[0].gps_distance_km == pytest.approx(60.0, abs=0.01)

    def test_detector_flags_stack(self, scorer):
        tip = make_tip(
            attachments=[
                make_attachment(
                    is_stock_photo=True,
                    is_ai_generated=True,
                    is_manipulated=True,
                    manipulation_confidence=0.9,
                )
            ]
        )
        score, _ = scorer.score(tip)
        assert score == 0

    def test_low_confidence_manipulation_ignored(self, scorer):
        attachment = make_attachment(is_manipulated=True, manipulation_confidence=0.5)
        assert scorer.is_manipulated(attachment) is False

    def test_exif_capture_time_fallback(self, scorer):
        attachment = make_attachment(exif_data={"DateTimeOriginal": "2024:05:01 13:00:00"})
        assert scorer.capture_time(attachment) == T0 + timedelta(hours=1)

    def test_best_image_wins(self, scorer):
        tip = make_tip(
            attachments=[
                make_attachment(id="att-bad", is_stock_photo=True),
                make_attachment(id="att-good", exif_data={"Make": "Apple"}, matches_missing_person=True),
            ]
        )
        score, details = scorer.score(tip)
        assert score == max(d.score for d in details)
        assert {d.attachment_id for d in details} == {"att-bad", "att-good"}

    def test_vision_low_quality(self, scorer):
        tip = make_tip(attachments=[make_attachment()])
        signal = FaceQualitySignal(face_count=1, quality=0.1)
        score, _ = scorer.score(tip, {"att-1": signal})
        assert score == 30

    def test_vision_match_not_double_counted(self, scorer):
        tip = make_tip(attachments=[make_attachment(matches_missing_person=True)])
        signal = FaceQualitySignal(face_count=1, quality=0.5, matches_subject=True)
        _, details = scorer.score(tip, {"att-1": signal})
        assert "vision_matches_subject" not in details[0].adjustments

    def test_vision_reports_no_faces(self, scorer):
        tip = make_tip(attachments=[make_attachment()])
        signal = FaceQualitySignal(face_count=0, quality=0.5)
        _, details = scorer.score(tip, {"att-1": signal})
        assert details[0].adjustments["no_faces"] == -10
        assert details[0].score == 25

    def test_attachment_face_count_wins_over_vision(self, scorer):
        tip = make_tip(attachments=[make_attachment(faces_detected=2)])
        signal = FaceQualitySignal(face_count=0, quality=0.5)
        _, details = scorer.score(tip, {"att-1": signal})
        assert "no_faces" not in details[0].adjustments
