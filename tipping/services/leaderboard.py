"""
Leaderboard aggregation

Points come from the current picks of fixtures that have a result, scored
with the same ScoringEngine used everywhere else. Ranking is standard
competition ranking: tied participants share a rank and the next distinct
score resumes at its position (1, 1, 3).
"""

from collections import namedtuple

from tipping import db
from tipping.models import Fixture, Participant, Pick, Result
from tipping.utils.cache_utils import cached_query
from tipping.utils.scoring import ScoringEngine

RankedEntry = namedtuple("RankedEntry", ["participant_id", "display_name", "points", "rank"])


def rank_entries(entries):
    """
    Rank leaderboard entries.

    Args:
        entries: iterable of dicts with ``participant_id``, ``display_name``
            and ``points``

    Returns:
        list of RankedEntry ordered by points descending, then display name
    """
    ordered = sorted(
        entries,
        key=lambda e: (-e["points"], e["display_name"] or "", e["participant_id"]),
    )

    ranked = []
    rank = 0
    previous_points = None
    for index, entry in enumerate(ordered):
        if entry["points"] != previous_points:
            rank = index + 1
            previous_points = entry["points"]
        ranked.append(
            RankedEntry(entry["participant_id"], entry["display_name"], entry["points"], rank)
        )
    return ranked


class Leaderboard:
    """League standings under the configured scoring rules"""

    def __init__(self, settings):
        self.settings = settings
        self.scoring = ScoringEngine(settings.draw_policy)

    def __repr__(self):
        # Part of the cache key: standings depend on the policy and the admin list
        admins = ",".join(sorted(self.settings.admin_emails))
        return f"Leaderboard({self.scoring.draw_policy.value};{admins})"

    @cached_query("leaderboard", timeout=300)
    def overall(self, league_id):
        """Season standings for a league"""
        return self._standings(league_id)

    @cached_query("leaderboard", timeout=300)
    def for_round(self, league_id, round_id):
        """Standings for one round of a league"""
        return self._standings(league_id, round_id=round_id)

    def points_by_participant(self, participant_ids, round_id=None):
        """Total points per participant from scored current picks"""
        points = {participant_id: 0 for participant_id in participant_ids}
        if not points:
            return points

        query = (
            db.session.query(Pick, Result)
            .join(Result, Result.fixture_id == Pick.fixture_id)
            .filter(Pick.participant_id.in_(list(points)))
        )
        if round_id is not None:
            query = query.join(Fixture, Fixture.id == Pick.fixture_id).filter(
                Fixture.round_id == round_id
            )

        for pick, result in query.all():
            points[pick.participant_id] += self.scoring.calculate_pick_score(
                pick, result
            ).total_points

        return points

    def _standings(self, league_id, round_id=None):
        participants = [
            p
            for p in Participant.query.filter_by(league_id=league_id).all()
            if not self.settings.is_admin(p)
        ]
        points = self.points_by_participant([p.id for p in participants], round_id)

        entries = [
            {
                "participant_id": p.id,
                "display_name": p.team_name,
                "points": points[p.id],
            }
            for p in participants
        ]

        return [
            {
                "rank": entry.rank,
                "participant_id": entry.participant_id,
                "team_name": entry.display_name,
                "total_points": entry.points,
            }
            for entry in rank_entries(entries)
        ]
