"""Tests for tipping/utils/scoring.py - margin bands and pick scoring."""

from collections import namedtuple

import pytest

from tipping.utils.scoring import (
    DRAW,
    NO_SCORE,
    DrawPolicy,
    PickScore,
    ScoringEngine,
    calculate_pick_score,
    get_margin_band,
)

FakeResult = namedtuple("FakeResult", ["winning_team", "margin_band"])
FakePick = namedtuple("FakePick", ["picked_team", "margin"])


class TestGetMarginBand:
    """Tests for the margin band classifier."""

    @pytest.mark.parametrize("margin", [1, 5, 12, 1.0, 12.0])
    def test_one_to_twelve(self, margin):
        assert get_margin_band(margin) == "1-12"

    @pytest.mark.parametrize("margin", [13, 20, 55, 13.0])
    def test_thirteen_plus(self, margin):
        assert get_margin_band(margin) == "13+"

    @pytest.mark.parametrize("margin", [None, 0, -3, 0.5, "7", True, float("nan")])
    def test_no_band(self, margin):
        assert get_margin_band(margin) is None

    def test_fraction_between_bands(self):
        """12.5 is neither 1-12 nor 13+."""
        assert get_margin_band(12.5) is None


class TestCalculatePickScore:
    """Tests for single pick scoring."""

    def test_winner_and_band(self):
        score = calculate_pick_score("CRU", 1, FakeResult("CRU", "1-12"))
        assert score == PickScore(5, 3, 8)

    def test_winner_wrong_band(self):
        score = calculate_pick_score("CRU", 13, FakeResult("CRU", "1-12"))
        assert score.total_points == 5
        assert score.margin_points == 0

    def test_wrong_winner(self):
        assert calculate_pick_score("CRU", 1, FakeResult("BLU", "1-12")) == NO_SCORE

    def test_winner_when_result_has_no_band(self):
        assert calculate_pick_score("BLU", 13, FakeResult("BLU", None)).total_points == 5

    def test_correct_draw_flat_bonus(self):
        score = calculate_pick_score(DRAW, 0, FakeResult(DRAW, None), DrawPolicy.FLAT_BONUS)
        assert score.total_points == 24

    def test_correct_draw_winner_only(self):
        score = calculate_pick_score(DRAW, 0, FakeResult(DRAW, None), DrawPolicy.WINNER_ONLY)
        assert score.total_points == 5

    def test_team_pick_on_drawn_fixture(self):
        assert calculate_pick_score("CRU", 1, FakeResult(DRAW, None)) == NO_SCORE

    def test_draw_pick_on_decided_fixture(self):
        assert calculate_pick_score(DRAW, 0, FakeResult("CRU", "13+")) == NO_SCORE

    def test_pure(self):
        """Identical inputs give identical output."""
        result = FakeResult("CRU", "13+")
        assert calculate_pick_score("CRU", 13, result) == calculate_pick_score("CRU", 13, result)

    def test_default_policy_is_flat_bonus(self):
        assert calculate_pick_score(DRAW, 0, FakeResult(DRAW, None)).total_points == 24


class TestDrawPolicy:
    """Tests for the versioned draw scoring policy."""

    def test_versions(self):
        assert DrawPolicy.WINNER_ONLY.version == 1
        assert DrawPolicy.FLAT_BONUS.version == 2

    def test_from_config_string(self):
        assert DrawPolicy("winner_only") is DrawPolicy.WINNER_ONLY

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            DrawPolicy("half_points")


class TestScoringEngine:
    """Tests for the policy-bound scoring engine."""

    def test_scores_pick_objects(self):
        engine = ScoringEngine(DrawPolicy.FLAT_BONUS)
        assert engine.calculate_pick_score(FakePick("CRU", 1), FakeResult("CRU", "1-12")).total_points == 8

    def test_no_result_scores_nothing(self):
        engine = ScoringEngine()
        assert engine.calculate_pick_score(FakePick("CRU", 1), None) == NO_SCORE

    def test_policy_applies(self):
        engine = ScoringEngine("winner_only")
        assert engine.score(DRAW, 0, FakeResult(DRAW, None)).total_points == 5
