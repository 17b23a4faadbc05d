"""
Paper bets ("Paper Punter")

Every accepted pick is mirrored as a simulated 10-unit wager on the matching
outcome of the fixture's published odds. The quote is captured when the bet
is synthesized and never follows later odds changes. Synthesis only happens
while the fixture is open; failures here are logged on this module's logger
and never undo the pick that triggered them.
"""

import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from tipping import db
from tipping.errors import (
    SKIP_FIXTURE_LOCKED,
    SKIP_NO_ODDS,
    SKIP_NO_OUTCOME,
    SKIP_ODDS_BELOW_FLOOR,
    PaperBetSkipped,
    StorageFailure,
)
from tipping.models import Fixture, MatchOdds, PaperBet, Participant, Pick, Result
from tipping.models.odds import (
    OUTCOME_AWAY_1_12,
    OUTCOME_AWAY_13_PLUS,
    OUTCOME_DRAW,
    OUTCOME_HOME_1_12,
    OUTCOME_HOME_13_PLUS,
)
from tipping.utils.scoring import BAND_1_12, BAND_13_PLUS, DRAW, MARGIN_1_12, MARGIN_13_PLUS

logger = logging.getLogger(__name__)

SyncReport = namedtuple("SyncReport", ["upserted_count", "skipped_fixture_ids"])


def outcome_for_pick(picked_team, margin, home_team_code, away_team_code):
    """Map a pick to its paper bet outcome label (None if it has no bucket)"""
    if picked_team == DRAW:
        return OUTCOME_DRAW
    if picked_team == home_team_code:
        if margin == MARGIN_1_12:
            return OUTCOME_HOME_1_12
        if margin == MARGIN_13_PLUS:
            return OUTCOME_HOME_13_PLUS
    if picked_team == away_team_code:
        if margin == MARGIN_1_12:
            return OUTCOME_AWAY_1_12
        if margin == MARGIN_13_PLUS:
            return OUTCOME_AWAY_13_PLUS
    return None


def outcome_for_result(winning_team, margin_band, home_team_code, away_team_code):
    """Map a recorded result to the outcome label that pays out"""
    if winning_team == DRAW:
        return OUTCOME_DRAW
    if winning_team == home_team_code:
        if margin_band == BAND_1_12:
            return OUTCOME_HOME_1_12
        if margin_band == BAND_13_PLUS:
            return OUTCOME_HOME_13_PLUS
    if winning_team == away_team_code:
        if margin_band == BAND_1_12:
            return OUTCOME_AWAY_1_12
        if margin_band == BAND_13_PLUS:
            return OUTCOME_AWAY_13_PLUS
    return None


def resolve_paper_bet(pick, fixture, odds, min_odds):
    """
    Work out the outcome label and quote for a pick.

    Returns:
        (outcome, quote)

    Raises:
        PaperBetSkipped: no bucket for the pick, no quote, or quote below the floor
    """
    outcome = outcome_for_pick(
        pick.picked_team, pick.margin, fixture.home_team_code, fixture.away_team_code
    )
    if outcome is None:
        raise PaperBetSkipped(SKIP_NO_OUTCOME, fixture.id)

    quote = odds.quote_for(outcome) if odds is not None else None
    if quote is None or isinstance(quote, bool) or not isinstance(quote, (int, float)):
        raise PaperBetSkipped(SKIP_NO_ODDS, fixture.id)

    if not quote >= min_odds:
        raise PaperBetSkipped(SKIP_ODDS_BELOW_FLOOR, fixture.id)

    return outcome, float(quote)


def synthesize_paper_bet(pick, fixture, odds, settings):
    """
    Write or overwrite the paper bet mirroring ``pick``.

    Returns the PaperBet, or None when synthesis was skipped. Must only be
    called while the fixture is open; the caller owns the transaction.
    """
    try:
        outcome, quote = resolve_paper_bet(pick, fixture, odds, settings.paper_bet_min_odds)
    except PaperBetSkipped as skip:
        logger.info(
            f"Paper bet skipped ({skip.reason}) for participant {pick.participant_id} "
            f"fixture {fixture.id}"
        )
        return None

    bet = PaperBet.query.filter_by(
        participant_id=pick.participant_id, fixture_id=fixture.id
    ).first()

    if bet is None:
        bet = PaperBet(
            participant_id=pick.participant_id,
            fixture_id=fixture.id,
            league_id=pick.league_id,
            outcome=outcome,
            stake=settings.paper_bet_stake,
            odds=quote,
        )
        db.session.add(bet)
    else:
        bet.outcome = outcome
        bet.stake = settings.paper_bet_stake
        bet.odds = quote

    logger.debug(
        f"Paper bet {outcome} @ {quote} for participant {pick.participant_id} fixture {fixture.id}"
    )
    return bet


def sync_paper_bets(participant, settings, round_id=None, now=None):
    """
    Re-synthesize a participant's paper bets from their current picks.

    Only fixtures that are still open are touched; bets on locked fixtures
    keep their frozen snapshot and are reported as skipped.
    """
    query = Pick.query.filter(Pick.participant_id == participant.id)
    if round_id is not None:
        query = query.join(Fixture, Fixture.id == Pick.fixture_id).filter(
            Fixture.round_id == round_id
        )
    picks = query.all()

    fixture_ids = [pick.fixture_id for pick in picks]
    locked_ids = {
        row.fixture_id
        for row in Result.query.filter(Result.fixture_id.in_(fixture_ids)).all()
    }

    upserted = 0
    skipped = []

    try:
        for pick in picks:
            fixture = pick.fixture
            if not fixture.is_pickable(now, result_exists=fixture.id in locked_ids):
                logger.info(
                    f"Paper bet skipped ({SKIP_FIXTURE_LOCKED}) for participant "
                    f"{participant.id} fixture {fixture.id}"
                )
                skipped.append(fixture.id)
                continue

            bet = synthesize_paper_bet(pick, fixture, fixture.odds, settings)
            if bet is None:
                skipped.append(fixture.id)
            else:
                upserted += 1

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Paper bet sync failed for participant {participant.id}: {e}")
        raise StorageFailure() from e

    logger.info(
        f"Paper bets synced for participant {participant.id}: "
        f"{upserted} upserted, {len(skipped)} skipped"
    )
    return SyncReport(upserted, skipped)


def settle_paper_bets(bets, fixtures_by_id, results_by_id, team_names=None):
    """
    Settle frozen paper bets against recorded results.

    Bets on fixtures without a result are ignored. Returns one row per
    participant sorted by profit, then prophet score, both descending.
    """
    team_names = team_names or {}
    totals = {}

    for bet in bets:
        result = results_by_id.get(bet.fixture_id)
        fixture = fixtures_by_id.get(bet.fixture_id)
        if result is None or fixture is None:
            continue

        row = totals.setdefault(
            bet.participant_id,
            {
                "participant_id": bet.participant_id,
                "team_name": team_names.get(bet.participant_id, "Unknown"),
                "bets": 0,
                "winning_bets": 0,
                "staked": 0.0,
                "returned": 0.0,
                "biggest_hit": 0.0,
                "prophet_score": 0.0,
            },
        )
        row["bets"] += 1
        row["staked"] += bet.stake

        winning_outcome = outcome_for_result(
            result.winning_team,
            result.margin_band,
            fixture.home_team_code,
            fixture.away_team_code,
        )
        if winning_outcome is not None and bet.outcome == winning_outcome:
            row["winning_bets"] += 1
            row["returned"] += bet.stake * bet.odds
            row["biggest_hit"] = max(row["biggest_hit"], bet.stake * (bet.odds - 1))
            row["prophet_score"] += bet.odds - 1

    standings = []
    for row in totals.values():
        row["profit"] = row["returned"] - row["staked"]
        row["roi"] = (row["profit"] / row["staked"] * 100) if row["staked"] > 0 else 0
        standings.append(row)

    standings.sort(key=lambda x: (x["profit"], x["prophet_score"]), reverse=True)
    return standings


def paper_punter_standings(league_id, settings, round_id=None):
    """Settled paper bet standings for a league, optionally for one round"""
    participants = Participant.query.filter_by(league_id=league_id).all()
    team_names = {
        p.id: p.team_name for p in participants if not settings.is_admin(p)
    }
    if not team_names:
        return []

    query = PaperBet.query.filter(PaperBet.participant_id.in_(list(team_names)))
    if round_id is not None:
        query = query.join(Fixture, Fixture.id == PaperBet.fixture_id).filter(
            Fixture.round_id == round_id
        )
    bets = query.all()

    fixture_ids = {bet.fixture_id for bet in bets}
    fixtures_by_id = {
        f.id: f for f in Fixture.query.filter(Fixture.id.in_(fixture_ids)).all()
    }
    results_by_id = {
        r.fixture_id: r
        for r in Result.query.filter(Result.fixture_id.in_(fixture_ids)).all()
    }

    return settle_paper_bets(bets, fixtures_by_id, results_by_id, team_names)


def load_odds(fixture_id, **quotes):
    """Create or replace the odds row for a fixture (external data load)"""
    odds = db.session.get(MatchOdds, fixture_id)
    if odds is None:
        odds = MatchOdds(fixture_id=fixture_id)
        db.session.add(odds)
    odds.set_quotes(**quotes)
    return odds
