"""Tests for duplicate detection and corroboration.

Tests cover:
- Resubmission of the same sighting is flagged as a duplicate
- Duplicate ordering: best match first, id ascending on exact ties
- Different reports of the same place corroborate instead
- Duplicates never count as corroboration
- Leads, known locations and suspect vehicle plates
- Unavailable case tips leave duplicates unevaluated
"""

from datetime import timedelta

import pytest

from conftest import T0, make_case, make_context, make_tip, north_of
from tip_triage.config.triage_config import TriageConfig
from tip_triage.data_management.schemas import KnownLocation, Lead
from tip_triage.data_management.schemas.context_schema import SOURCE_CASE_TIPS
from tip_triage.sifters.crossref import CorroborationAnalyzer, DuplicateDetector
from tip_triage.sifters.crossref.similarity import combine

SIGHTING = "red jacket girl at the bus stop on main street near the park"
POINT = north_of(1.0)


def sighting_tip(tip_id, content=SIGHTING, minutes=0, point=POINT):
    return make_tip(
        id=tip_id,
        content=content,
        latitude=point[0],
        longitude=point[1],
        sighting_time=T0 + timedelta(hours=1, minutes=minutes),
    )


@pytest.fixture
def detector():
    return DuplicateDetector()


class TestDuplicates:
    def test_resubmission_is_duplicate(self, detector):
        """Near-identical text, same place, twenty minutes apart."""
        earlier = sighting_tip("tip-earlier")
        tip = sighting_tip("tip-new", content=SIGHTING + " today", minutes=20)

        result = detector.detect(make_context(tip=tip, case_tips=[earlier]))

        assert result.is_duplicate is True
        assert result.primary_duplicate_id == "tip-earlier"
        assert result.duplicate_tip_ids == ["tip-earlier"]
        assert result.similarity_scores["tip:tip-earlier"] == pytest.approx(0.962, abs=0.001)

    def test_best_match_first_and_ties_by_id(self, detector):
        tip = sighting_tip("tip-new")
        exact_b = sighting_tip("tip-b")
        exact_a = sighting_tip("tip-a")
        close = sighting_tip("tip-0", content=SIGHTING + " today")

        result = detector.detect(make_context(tip=tip, case_tips=[exact_b, close, exact_a]))

        assert result.duplicate_tip_ids == ["tip-a", "tip-b", "tip-0"]
        assert result.primary_duplicate_id == "tip-a"

    def test_same_place_different_report_is_not_duplicate(self, detector):
        other = sighting_tip("tip-other", content="A man in a truck was parked outside the pharmacy")
        result = detector.detect(make_context(tip=sighting_tip("tip-new"), case_tips=[other]))

        assert result.is_duplicate is False
        assert result.primary_duplicate_id is None
        assert "tip:tip-other" in result.similarity_scores

    def test_far_apart_same_text_is_not_duplicate(self, detector):
        other = sighting_tip("tip-far", point=north_of(40.0))
        result = detector.detect(
            make_context(tip=sighting_tip("tip-new"), case_tips=[other]),
        )
        # text 1.0 alone cannot reach the combined threshold
        assert result.is_duplicate is False

    def test_tip_itself_is_ignored(self, detector):
        tip = sighting_tip("tip-new")
        result = detector.detect(make_context(tip=tip, case_tips=[tip]))
        assert result.is_duplicate is False
        assert result.similarity_scores == {}

    def test_degraded_case_tips_not_evaluated(self, detector):
        context = make_context(
            tip=sighting_tip("tip-new"),
            case_tips=[sighting_tip("tip-earlier")],
            degraded_sources={SOURCE_CASE_TIPS},
        )
        result = detector.detect(context)
        assert result.evaluated is False
        assert result.is_duplicate is False

    def test_config_override_narrows_radius(self, detector):
        earlier = sighting_tip("tip-earlier", point=north_of(1.4))
        context = make_context(tip=sighting_tip("tip-new"), case_tips=[earlier])

        assert detector.detect(context).is_duplicate is True
        strict = TriageConfig().with_overrides({"duplicate_distance_km": 0.05})
        assert detector.detect(context, strict).is_duplicate is False


class TestCorroboration:
    @pytest.fixture
    def analyzer(self):
        return CorroborationAnalyzer()

    def test_nothing_to_compare_is_neutral(self, analyzer):
        result = analyzer.analyze(make_context(tip=sighting_tip("tip-new")))
        assert result.has_reference_data is False
        assert result.score == 50

    def test_independent_report_corroborates(self, analyzer):
        other = sighting_tip("tip-other", content="A man in a truck was parked outside the pharmacy")
        result = analyzer.analyze(make_context(tip=sighting_tip("tip-new"), case_tips=[other]))

        assert result.corroborating_tip_ids == ["tip-other"]
        assert result.score == 35 + 8

    def test_duplicate_does_not_corroborate(self, analyzer):
        duplicate = sighting_tip("tip-dup")
        result = analyzer.analyze(make_context(tip=sighting_tip("tip-new"), case_tips=[duplicate]))

        assert result.corroborating_tip_ids == []
        assert result.score == 35

    def test_matching_lead_and_known_location(self, analyzer):
        lead = Lead(
            id="lead-1",
            case_id="case-001",
            title="Bus stop camera",
            description="Camera footage near Main Street",
            latitude=POINT[0],
            longitude=POINT[1],
            occurred_at=T0 + timedelta(hours=2),
        )
        result = analyzer.analyze(make_context(tip=sighting_tip("tip-new"), leads=[lead]))

        assert result.matching_lead_ids == ["lead-1"]
        assert result.matches_known_locations is True
        # base 35, first lead 20, known location 10
        assert result.score == 65

    def test_known_place_by_label(self, analyzer):
        case = make_case(known_locations=[KnownLocation(label="Lincoln Middle School")])
        tip = make_tip(content="Saw her outside the school", location_text="lincoln middle school gate")
        result = analyzer.analyze(make_context(tip=tip, case=case))
        assert result.matches_known_locations is True

    def test_vehicle_plate_matches_suspect(self):
        case = make_case(vehicle_description="Silver sedan, plate 7KDX219")
        tip = make_tip(content="A silver car with plate 7kdx219 pulled over by the school")
        assert CorroborationAnalyzer.matches_suspect_description(tip, case) is True

    def test_suspect_descriptor_matches(self):
        case = make_case(suspect_description="Tall man with a black hoodie")
        tip = make_tip(content="She was walking with a man in a black hoodie")
        assert CorroborationAnalyzer.matches_suspect_description(tip, case) is True


class TestCombine:
    def test_missing_components_renormalise(self):
        weights = {"text": 0.5, "geo": 0.3, "time": 0.2}
        assert combine({"text": 1.0, "geo": None, "time": 1.0}, weights) == pytest.approx(1.0)
        assert combine({"text": 0.0, "geo": None, "time": 1.0}, weights) == pytest.approx(0.2 / 0.7)

    def test_nothing_available(self):
        assert combine({"text": None}, {"text": 1.0}) == 0.0
