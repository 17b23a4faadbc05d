"""
Decisiveness ("gut feel vs second guess") statistics

Compares the first pick a participant made for each resulted fixture with
the pick that stood at kickoff, using the PickEvent history.
"""

import logging

from tipping import db
from tipping.models import Fixture, Participant, PickEvent, Result
from tipping.utils.scoring import ScoringEngine, get_margin_band
from tipping.utils.timezone_utils import ensure_utc, isoformat_utc

logger = logging.getLogger(__name__)


def _event_order(event):
    return (ensure_utc(event.created_at), event.id)


def select_first_and_final(events, kickoff_at):
    """
    Pick the first and final events of one fixture's history.

    The first event is the earliest. The final event is the latest one made
    at or before kickoff; when none qualifies it falls back to the earliest.
    Without a kickoff the latest event is final.

    Returns:
        (first, final), or (None, None) for an empty history
    """
    ordered = sorted(events, key=_event_order)
    if not ordered:
        return None, None

    first = ordered[0]
    if kickoff_at is None:
        return first, ordered[-1]

    kickoff = ensure_utc(kickoff_at)
    in_time = [e for e in ordered if ensure_utc(e.created_at) <= kickoff]
    final = in_time[-1] if in_time else first
    return first, final


def _pick_summary(event):
    return {"picked_team": event.picked_team, "margin": event.margin}


def empty_report():
    return {
        "fixtures_scored": 0,
        "gut_feel_wins": 0,
        "second_guess_wins": 0,
        "unchanged": 0,
        "points_gained": 0,
        "points_lost": 0,
        "total_revisions": 0,
        "most_indecisive": None,
    }


def analyze_decisiveness(events_by_fixture, fixtures_by_id, results_by_id, scoring, detail=False):
    """
    Build the decisiveness report for one participant.

    Args:
        events_by_fixture: dict of fixture id -> PickEvents for that fixture
        fixtures_by_id: dict of fixture id -> Fixture
        results_by_id: dict of fixture id -> Result
        scoring: ScoringEngine applying the configured draw policy
        detail: include a per-fixture breakdown under "fixtures"

    Returns:
        dict report; fixtures without a result or without events are ignored
    """
    report = empty_report()
    fixture_rows = []

    for fixture_id in sorted(results_by_id):
        result = results_by_id[fixture_id]
        fixture = fixtures_by_id.get(fixture_id)
        events = events_by_fixture.get(fixture_id) or []
        if fixture is None or not events:
            continue

        first, final = select_first_and_final(events, fixture.kickoff_at)

        first_points = scoring.calculate_pick_score(first, result).total_points
        final_points = scoring.calculate_pick_score(final, result).total_points
        delta = final_points - first_points
        revisions = len(events) - 1

        report["fixtures_scored"] += 1
        report["total_revisions"] += revisions

        if delta > 0:
            report["second_guess_wins"] += 1
            report["points_gained"] += delta
        elif delta < 0:
            report["gut_feel_wins"] += 1
            report["points_lost"] += abs(delta)
        else:
            report["unchanged"] += 1

        leader = report["most_indecisive"]
        if leader is None or revisions > leader["revisions"]:
            report["most_indecisive"] = {
                "fixture_id": fixture_id,
                "revisions": revisions,
                "first_pick": _pick_summary(first),
                "final_pick": _pick_summary(final),
                "first_points": first_points,
                "final_points": final_points,
                "delta": delta,
            }

        if detail:
            fixture_rows.append(
                {
                    "fixture_id": fixture_id,
                    "kickoff_at": isoformat_utc(fixture.kickoff_at),
                    "winning_team": result.winning_team,
                    "result_margin_band": result.margin_band,
                    "events_count": len(events),
                    "first_pick": {
                        "picked_team": first.picked_team,
                        "margin_band": get_margin_band(first.margin),
                        "created_at": isoformat_utc(first.created_at),
                    },
                    "final_pick": {
                        "picked_team": final.picked_team,
                        "margin_band": get_margin_band(final.margin),
                        "created_at": isoformat_utc(final.created_at),
                    },
                    "first_points": first_points,
                    "final_points": final_points,
                    "delta": delta,
                }
            )

    if detail:
        report["fixtures"] = fixture_rows

    return report


class DecisivenessAnalyzer:
    """Loads a participant's history and runs the decisiveness report"""

    def __init__(self, settings):
        self.settings = settings
        self.scoring = ScoringEngine(settings.draw_policy)

    def analyze(self, participant_id, round_id=None, competition_id=None, detail=False):
        """
        Report for one round, or for every round of a competition.

        With neither scope given the participant's own competition is used.
        """
        participant = db.session.get(Participant, participant_id)
        if participant is None:
            return None

        mode = "round" if round_id is not None else "season"
        query = Fixture.query
        if round_id is not None:
            query = query.filter(Fixture.round_id == round_id)
        else:
            competition_id = competition_id or participant.competition_id
            query = query.filter(Fixture.competition_id == competition_id)

        fixtures_by_id = {fixture.id: fixture for fixture in query.all()}
        if not fixtures_by_id:
            return dict(empty_report(), mode=mode)

        results_by_id = {
            result.fixture_id: result
            for result in Result.query.filter(Result.fixture_id.in_(list(fixtures_by_id))).all()
        }

        events_by_fixture = {}
        for event in PickEvent.history(participant_id, results_by_id.keys()):
            events_by_fixture.setdefault(event.fixture_id, []).append(event)

        report = analyze_decisiveness(
            events_by_fixture, fixtures_by_id, results_by_id, self.scoring, detail=detail
        )
        report["mode"] = mode
        logger.debug(
            f"Decisiveness for participant {participant_id}: "
            f"{report['fixtures_scored']} fixtures, {report['total_revisions']} revisions"
        )
        return report

