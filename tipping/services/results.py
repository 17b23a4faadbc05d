"""
Result recording

Recording a result is the terminal event for a fixture: from that moment
every submission for it is rejected with RESULT_LOCKED. An administrator may
correct the values of an existing result, which never lifts the lock.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from tipping import db
from tipping.errors import (
    INVALID_MARGIN,
    INVALID_TEAM,
    NOT_FOUND,
    RESULT_LOCKED,
    PickRejected,
    StorageFailure,
)
from tipping.models import Fixture, Result
from tipping.utils.cache_utils import invalidate_model_cache
from tipping.utils.scoring import DRAW, MARGIN_BANDS, get_margin_band

logger = logging.getLogger(__name__)


def resolve_margin_band(winning_team, margin_band=None, margin=None):
    """
    Work out the stored margin band for a result.

    A numeric ``margin`` (points difference) is classified into a band; an
    explicit ``margin_band`` must be "1-12", "13+" or None. DRAW results
    never carry a band.
    """
    if winning_team == DRAW:
        return None

    if margin is not None:
        if isinstance(margin, str):
            try:
                margin = float(margin)
            except ValueError:
                raise PickRejected(INVALID_MARGIN, "margin must be a number of at least 1")
        band = get_margin_band(margin)
        if band is None:
            raise PickRejected(INVALID_MARGIN, "margin must be a number of at least 1")
        if margin_band is not None and margin_band != band:
            raise PickRejected(INVALID_MARGIN, "margin and margin_band disagree")
        return band

    if margin_band is not None and margin_band not in MARGIN_BANDS:
        raise PickRejected(INVALID_MARGIN, "margin_band must be null, '1-12', or '13+'")

    return margin_band


class ResultRecorder:
    """One-time result transition for fixtures"""

    def __init__(self, settings):
        self.settings = settings

    def record(self, fixture_id, winning_team, margin_band=None, margin=None, correct=False):
        """
        Record the final result of a fixture.

        Args:
            fixture_id: Fixture to close
            winning_team: Home code, away code, or "DRAW"
            margin_band: "1-12", "13+" or None
            margin: Optional numeric winning margin, classified into a band
            correct: Allow overwriting an existing result (administrative correction)

        Raises:
            PickRejected: NOT_FOUND, INVALID_TEAM, INVALID_MARGIN, or
                RESULT_LOCKED when a result exists and ``correct`` is False
            StorageFailure: the write failed and was rolled back
        """
        try:
            fixture = (
                Fixture.query.filter(Fixture.id == fixture_id).with_for_update().first()
            )
            if fixture is None:
                raise PickRejected(NOT_FOUND, "Fixture not found")

            if not fixture.is_valid_pick_code(winning_team):
                raise PickRejected(
                    INVALID_TEAM, "winning_team must be the home team, the away team, or DRAW"
                )

            band = resolve_margin_band(winning_team, margin_band, margin)

            result = db.session.get(Result, fixture.id)
            if result is not None and not correct:
                raise PickRejected(RESULT_LOCKED, "A result is already recorded for this fixture")

            if result is None:
                result = Result(fixture_id=fixture.id, winning_team=winning_team, margin_band=band)
                db.session.add(result)
                action = "recorded"
            else:
                # Clear the band first so a switch to DRAW passes validation
                result.margin_band = None
                result.winning_team = winning_team
                result.margin_band = band
                action = "corrected"

            db.session.commit()
        except PickRejected:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to save result for fixture {fixture_id}: {e}")
            raise StorageFailure() from e

        invalidate_model_cache("leaderboard")
        logger.info(
            f"Result {action} for fixture {fixture.id}: {winning_team} {band or ''}".rstrip()
        )
        return result
