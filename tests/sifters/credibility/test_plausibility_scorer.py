"""Tests for location and time plausibility."""

from datetime import timedelta

import pytest

from conftest import T0, make_case, make_tip, north_of
from tip_triage.sifters.credibility import PlausibilityScorer


@pytest.fixture
def scorer():
    return PlausibilityScorer()


class TestLocation:
    def test_missing_coordinates_neutral(self, scorer):
        assert scorer.score_location(make_tip(), make_case()) == 50

    def test_same_point_scores_top(self, scorer):
        tip = make_tip(latitude=40.0, longitude=-74.0, sighting_time=T0)
        assert scorer.score_location(tip, make_case()) == 90

    def test_distance_decays(self, scorer):
        case = make_case()
        scores = []
        for km in (1.0, 10.0, 50.0, 200.0):
            lat, lon = north_of(km)
            scores.append(
                scorer.score_location(make_tip(latitude=lat, longitude=lon, sighting_time=T0), case)
            )
        assert scores == sorted(scores, reverse=True)
        assert scores[-1] == 15

    def test_elapsed_time_softens_distance(self, scorer):
        lat, lon = north_of(30.0)
        case = make_case()
        soon = make_tip(latitude=lat, longitude=lon, sighting_time=T0 + timedelta(hours=1))
        later = make_tip(latitude=lat, longitude=lon, sighting_time=T0 + timedelta(days=4))
        assert scorer.score_location(later, case) > scorer.score_location(soon, case)


class TestTime:
    def test_no_sighting_time_neutral(self, scorer):
        result = scorer.score_time(make_tip(), make_case(), now=T0)
        assert result.score == 50
        assert result.travel_time_feasible is None

    def test_future_sighting_impossible(self, scorer):
        tip = make_tip(sighting_time=T0 + timedelta(hours=1))
        result = scorer.score_time(tip, make_case(), now=T0)
        assert result.score == 10
        assert result.travel_time_feasible is False

    def test_small_clock_skew_tolerated(self, scorer):
        tip = make_tip(sighting_time=T0 + timedelta(minutes=3))
        result = scorer.score_time(tip, make_case(), now=T0)
        assert result.score > 10

    def test_sighting_before_last_seen_impossible(self, scorer):
        tip = make_tip(sighting_time=T0 - timedelta(hours=2))
        result = scorer.score_time(tip, make_case(), now=T0 + timedelta(hours=1))
        assert result.score == 10
        assert result.lag_hours == pytest.approx(-2.0)

    def test_feasible_recent_sighting(self, scorer):
        lat, lon = north_of(2.0)
        tip = make_tip(latitude=lat, longitude=lon, sighting_time=T0 + timedelta(hours=1))
        result = scorer.score_time(tip, make_case(), now=T0 + timedelta(hours=2))
        # 50 + 10 feasible + 30 within 6h
        assert result.score == 90
        assert result.travel_time_feasible is True

    def test_infeasible_travel(self, scorer):
        lat, lon = north_of(500.0)
        tip = make_tip(latitude=lat, longitude=lon, sighting_time=T0 + timedelta(hours=1))
        result = scorer.score_time(tip, make_case(), now=T0 + timedelta(hours=2))
        # 50 - 35 + 30
        assert result.score == 45
        assert result.travel_time_feasible is False

    @pytest.mark.parametrize(
        "hours,expected",
        [(5, 80), (20, 65), (40, 55), (100, 25)],
    )
    def test_lag_adjustment_without_coordinates(self, scorer, hours, expected):
        tip = make_tip(sighting_time=T0 + timedelta(hours=hours))
        result = scorer.score_time(tip, make_case(), now=T0 + timedelta(hours=200))
        assert result.score == expected

    def test_reference_falls_back_to_case_creation(self, scorer):
        case = make_case(last_seen_at=None, created_at=T0 + timedelta(hours=10))
        tip = make_tip(sighting_time=T0 + timedelta(hours=5))
        result = scorer.score_time(tip, case, now=T0 + timedelta(hours=12))
        assert result.score == 10
