"""Optional photo analysis collaborators."""

from tip_triage.vision.photo_analysis import (
    FaceQualitySignal,
    HttpPhotoAnalyzer,
    PhotoAnalyzer,
    build_photo_analyzer,
)

__all__ = ["FaceQualitySignal", "HttpPhotoAnalyzer", "PhotoAnalyzer", "build_photo_analyzer"]
