"""Tests for HoaxMatcher scam patterns and spam heuristics."""

import pytest

from conftest import make_attachment, make_context, make_tip
from tip_triage.data_management.schemas import ScamPattern
from tip_triage.data_management.schemas.context_schema import SOURCE_SCAM_PATTERNS
from tip_triage.sifters.hoax import HoaxMatcher

TRAVEL_SCAM = ScamPattern(
    id="scam-travel",
    name="travel_expenses_scam",
    pattern_data={"phrases": ["send money for travel expenses"]},
)


@pytest.fixture
def matcher():
    return HoaxMatcher()


class TestScamPatterns:
    """Tests for matching against known scam patterns."""

    def test_phrase_match_with_payment_request(self, matcher):
        """Known scam phrase plus a payment request saturates the score."""
        tip = make_tip(
            content="I know where she is. Send money for travel expenses and I will bring her home."
        )
        result = matcher.match(make_context(tip=tip, scam_patterns=[TRAVEL_SCAM]))

        assert result.hoax_indicators == ["travel_expenses_scam", "payment_request"]
        assert result.spam_score == 100
        assert result.matched_pattern_ids == ["scam-travel"]
        assert result.pattern_confidence == {"travel_expenses_scam": 1.0}
        assert "travel_expenses_scam (1.00)" in result.hoax_detection_notes

    def test_regex_match(self, matcher):
        pattern = ScamPattern(id="scam-reward", name="reward_claim", pattern_data={"regex": [r"reward\s+of\s+\$\d+"]})
        tip = make_tip(content="She is at the lake house on Pine Road, I want the reward of $5000 for the info")

        result = matcher.match(make_context(tip=tip, scam_patterns=[pattern]))

        assert result.pattern_confidence == {"reward_claim": 0.9}
        # 60 + round(25 * 0.9)
        assert result.spam_score == 83

    def test_invalid_regex_is_skipped(self, matcher):
        pattern = ScamPattern(id="scam-bad", name="broken", pattern_data={"regex": ["(unclosed"]})
        tip = make_tip(content="Saw her near the school on Elm Street this morning")

        result = matcher.match(make_context(tip=tip, scam_patterns=[pattern]))

        assert result.hoax_indicators == []
        assert result.spam_score == 0

    def test_keyword_fraction(self, matcher):
        pattern = ScamPattern(
            id="scam-psychic",
            name="psychic_vision",
            pattern_data={"keywords": ["psychic", "vision", "dream"]},
            confidence_threshold=0.6,
        )
        tip = make_tip(content="I had a dream and a vision that she is near the river")

        assert matcher.pattern_confidence(pattern, tip.content) == pytest.approx(2 / 3)
        result = matcher.match(make_context(tip=tip, scam_patterns=[pattern]))
        assert result.spam_score == 77

    def test_below_threshold_not_matched(self, matcher):
        pattern = ScamPattern(
            id="scam-psychic",
            name="psychic_vision",
            pattern_data={"keywords": ["psychic", "vision", "dream"]},
            confidence_threshold=0.8,
        )
        tip = make_tip(content="I had a dream and a vision that she is near the river")
        result = matcher.match(make_context(tip=tip, scam_patterns=[pattern]))
        assert result.hoax_indicators == []

    def test_inactive_pattern_ignored(self, matcher):
        inactive = TRAVEL_SCAM.model_copy(update={"is_active": False})
        tip = make_tip(content="Please send money for travel expenses to get the details")
        result = matcher.match(make_context(tip=tip, scam_patterns=[inactive]))
        assert "travel_expenses_scam" not in result.hoax_indicators

    def test_degraded_patterns_use_heuristics_only(self, matcher):
        tip = make_tip(content="Send money for travel expenses and I will bring her home.")
        context = make_context(
            tip=tip,
            scam_patterns=[TRAVEL_SCAM],
            degraded_sources={SOURCE_SCAM_PATTERNS},
        )
        result = matcher.match(context)

        assert result.evaluated_patterns is False
        assert result.hoax_indicators == ["payment_request"]
        assert "heuristics only" in result.hoax_detection_notes


class TestHeuristics:
    """Tests for the independent spam heuristics."""

    def test_indicators_in_fixed_order(self, matcher):
        tip = make_tip(content="ACT NOW AND SEND MONEY VIA WESTERN UNION TO FIND HER")
        result = matcher.match(make_context(tip=tip))

        assert result.hoax_indicators == ["payment_request", "urgency_pressure", "shouting"]
        assert result.spam_score == 55

    def test_identity_claim_only_when_anonymous(self, matcher):
        content = "I am her father and she was taken by her mother to Ohio last week"
        anonymous = matcher.heuristic_indicators(make_tip(content=content, is_anonymous=True))
        known = matcher.heuristic_indicators(
            make_tip(content=content, is_anonymous=False, tipster_id="tipster-1")
        )
        assert anonymous == ["identity_inconsistency"]
        assert known == []

    def test_link_spam_and_low_content(self, matcher):
        assert matcher.heuristic_indicators(make_tip(content="she's here")) == ["low_content"]
        links = "Details at https://a.example/x and more at www.b.example/y about the girl"
        assert matcher.heuristic_indicators(make_tip(content=links)) == ["link_spam"]

    def test_attachment_flags(self, matcher):
        tip = make_tip(
            content="Photo of her at the park taken by my phone this afternoon",
            attachments=[
                make_attachment(id="att-1", is_ai_generated=True),
                make_attachment(id="att-2", is_stock_photo=True),
                make_attachment(id="att-3", is_manipulated=True, manipulation_confidence=0.95),
            ],
        )
        assert matcher.heuristic_indicators(tip) == [
            "ai_generated_content",
            "stock_photo_detected",
            "manipulated_media",
        ]

    def test_clean_tip(self, matcher):
        tip = make_tip(content="Saw a girl in a red jacket at the bus stop on Main Street around 3:15 pm")
        result = matcher.match(make_context(tip=tip, scam_patterns=[TRAVEL_SCAM]))
        assert result.hoax_indicators == []
        assert result.spam_score == 0
        assert result.hoax_detection_notes == ""
