"""
Scoring Engine for the tipping application

This module handles the margin band classifier and the points calculation
for a single pick. The same rules are reused by the leaderboard and the
decisiveness analysis; see tipping.services for the aggregated views.
"""

from collections import namedtuple
from enum import Enum

DRAW = "DRAW"

BAND_1_12 = "1-12"
BAND_13_PLUS = "13+"
MARGIN_BANDS = (BAND_1_12, BAND_13_PLUS)

# Margin indicators a pick may carry: 0 only for DRAW, 1 for "1-12", 13 for "13+"
NO_MARGIN = 0
MARGIN_1_12 = 1
MARGIN_13_PLUS = 13
PICK_MARGINS = (MARGIN_1_12, MARGIN_13_PLUS)

WINNER_POINTS = 5
MARGIN_POINTS = 3
DRAW_BONUS_POINTS = 24


class DrawPolicy(str, Enum):
    """How a correctly called DRAW is scored"""

    # v1: a correct DRAW is ordinary winner credit
    WINNER_ONLY = "winner_only"
    # v2: a correct DRAW earns a flat bonus
    FLAT_BONUS = "flat_bonus"

    @property
    def version(self):
        return DRAW_POLICY_VERSIONS[self]

    @property
    def draw_points(self):
        if self is DrawPolicy.FLAT_BONUS:
            return DRAW_BONUS_POINTS
        return WINNER_POINTS


DRAW_POLICY_VERSIONS = {
    DrawPolicy.WINNER_ONLY: 1,
    DrawPolicy.FLAT_BONUS: 2,
}

PickScore = namedtuple("PickScore", ["winner_points", "margin_points", "total_points"])

NO_SCORE = PickScore(0, 0, 0)


def get_margin_band(margin):
    """
    Convert a numeric margin to a margin band.

    Returns:
        "1-12" for 1..12, "13+" for 13 and above, None when the margin is
        missing, not a number, or below 1.
    """
    if margin is None or isinstance(margin, bool):
        return None
    if not isinstance(margin, (int, float)):
        return None
    if margin != margin or margin < 1:  # NaN or below range
        return None
    if margin <= 12:
        return BAND_1_12
    if margin >= 13:
        return BAND_13_PLUS
    # Fractional margins between 12 and 13 fall in neither band
    return None


def calculate_pick_score(picked_team, margin, result, draw_policy=DrawPolicy.FLAT_BONUS):
    """
    Calculate points for a pick against a result.

    Rules, first match wins:
        1. Result is DRAW: a DRAW pick scores the draw policy value, anything
           else scores 0.
        2. Picked team is not the winner: 0.
        3. Picked team is the winner: 5, plus 3 when the pick's margin band
           matches the result's margin band.

    Args:
        picked_team: Team code or "DRAW"
        margin: Margin indicator stored on the pick (0, 1 or 13)
        result: Any object with ``winning_team`` and ``margin_band``
        draw_policy: DrawPolicy in force
    """
    winning_team = result.winning_team
    draw_policy = DrawPolicy(draw_policy)

    if winning_team == DRAW:
        if picked_team == DRAW:
            points = draw_policy.draw_points
            return PickScore(points, 0, points)
        return NO_SCORE

    if picked_team != winning_team:
        return NO_SCORE

    margin_points = 0
    if (
        picked_team != DRAW
        and result.margin_band
        and get_margin_band(margin) == result.margin_band
    ):
        margin_points = MARGIN_POINTS

    return PickScore(WINNER_POINTS, margin_points, WINNER_POINTS + margin_points)


class ScoringEngine:
    """Scoring rules bound to one draw policy, shared by every scoring consumer"""

    def __init__(self, draw_policy=DrawPolicy.FLAT_BONUS):
        self.draw_policy = DrawPolicy(draw_policy)

    def score(self, picked_team, margin, result):
        return calculate_pick_score(picked_team, margin, result, self.draw_policy)

    def calculate_pick_score(self, pick, result):
        """Score a pick-like object (Pick or PickEvent)"""
        if result is None:
            return NO_SCORE
        return self.score(pick.picked_team, pick.margin, result)
