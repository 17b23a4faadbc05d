"""
Fixture and odds import from CSV

Columns: round, home, away, kickoff, venue, plus optional quote columns
named after the paper bet outcomes (draw, home_1_12, home_13_plus,
away_1_12, away_13_plus). Kickoff times without an offset are read in the
application timezone. Re-importing a file updates fixtures in place, keyed
by (round, home, away).
"""

import csv
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from tipping import db
from tipping.models import Fixture, Round
from tipping.models.odds import OUTCOMES
from tipping.services.paper_bets import load_odds
from tipping.utils.scoring import DRAW
from tipping.utils.timezone_utils import ensure_utc, get_app_timezone

logger = logging.getLogger(__name__)


def parse_kickoff(value):
    """Parse an ISO-8601 kickoff; blank means no kickoff"""
    if value is None or not value.strip():
        return None

    kickoff = datetime.fromisoformat(value.strip())
    if kickoff.tzinfo is None:
        kickoff = get_app_timezone().localize(kickoff)
    return ensure_utc(kickoff)


def _parse_quote(value):
    if value is None or not str(value).strip():
        return None
    return float(value)


class FixtureImporter:
    """Creates or updates rounds, fixtures and odds for one competition"""

    def __init__(self, competition):
        self.competition = competition
        self.rounds = {
            r.round_number: r
            for r in Round.query.filter_by(competition_id=competition.id).all()
        }

    def import_file(self, path):
        with open(path, newline="", encoding="utf-8") as handle:
            return self.import_rows(csv.DictReader(handle))

    def import_rows(self, rows):
        """
        Import parsed CSV rows.

        Returns:
            dict with created, updated and odds counts

        Raises:
            ValueError: a row is malformed (nothing is written)
        """
        stats = {"created": 0, "updated": 0, "odds": 0}

        try:
            for line_number, row in enumerate(rows, start=2):
                try:
                    self._import_row(row, stats)
                except (KeyError, ValueError) as e:
                    raise ValueError(f"Line {line_number}: {e}") from e

            db.session.commit()
        except (SQLAlchemyError, ValueError):
            db.session.rollback()
            raise

        logger.info(
            f"Imported fixtures for {self.competition.name} {self.competition.season}: "
            f"{stats['created']} created, {stats['updated']} updated, {stats['odds']} with odds"
        )
        return stats

    def _round(self, round_number):
        round_ = self.rounds.get(round_number)
        if round_ is None:
            round_ = Round(
                competition_id=self.competition.id,
                round_number=round_number,
                season=self.competition.season,
            )
            db.session.add(round_)
            db.session.flush()
            self.rounds[round_number] = round_
        return round_

    def _import_row(self, row, stats):
        home = row["home"].strip().upper()
        away = row["away"].strip().upper()
        if not home or not away or home == away or DRAW in (home, away):
            raise ValueError(f"invalid teams '{home}' v '{away}'")

        round_ = self._round(int(row["round"]))

        fixture = Fixture.query.filter_by(
            competition_id=self.competition.id,
            round_id=round_.id,
            home_team_code=home,
            away_team_code=away,
        ).first()

        if fixture is None:
            fixture = Fixture(
                competition_id=self.competition.id,
                round_id=round_.id,
                home_team_code=home,
                away_team_code=away,
            )
            db.session.add(fixture)
            stats["created"] += 1
        else:
            stats["updated"] += 1

        fixture.kickoff_at = parse_kickoff(row.get("kickoff"))
        fixture.venue = (row.get("venue") or "").strip() or None

        quotes = {outcome: _parse_quote(row.get(outcome)) for outcome in OUTCOMES}
        if any(value is not None for value in quotes.values()):
            db.session.flush()
            load_odds(fixture.id, **quotes)
            stats["odds"] += 1
