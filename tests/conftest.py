"""Shared fixtures: app under TestingConfig, model factories and a fixed clock."""

from datetime import datetime, timedelta, timezone

import pytest

from tipping import create_app, db
from tipping.models import Competition, Fixture, League, MatchOdds, Participant, Round
from tipping.services.pick_ledger import PickLedger
from tipping.settings import get_engine_settings

NOW = datetime(2025, 3, 1, 6, 0, tzinfo=timezone.utc)
ADMIN_EMAIL = "admin@example.com"


class FixedClock:
    """Clock the tests move by hand."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def settings(app):
    return get_engine_settings()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def ledger(settings, clock):
    return PickLedger(settings, clock=clock)


@pytest.fixture
def competition(app):
    comp = Competition(name="Super Rugby Pacific", season=2025)
    db.session.add(comp)
    db.session.commit()
    return comp


@pytest.fixture
def other_competition(app):
    comp = Competition(name="Bunnings NPC", season=2025)
    db.session.add(comp)
    db.session.commit()
    return comp


@pytest.fixture
def round_one(competition):
    round_ = Round(competition_id=competition.id, round_number=1, season=2025)
    db.session.add(round_)
    db.session.commit()
    return round_


@pytest.fixture
def round_two(competition):
    round_ = Round(competition_id=competition.id, round_number=2, season=2025)
    db.session.add(round_)
    db.session.commit()
    return round_


@pytest.fixture
def league(competition):
    league = League(name="Office League", competition_id=competition.id)
    db.session.add(league)
    db.session.commit()
    return league


@pytest.fixture
def make_participant(league):
    def _make(team_name, email=None, league_id=None):
        person = Participant(
            team_name=team_name,
            email=email or f"{team_name.lower().replace(' ', '.')}@example.com",
            league_id=league_id or league.id,
        )
        db.session.add(person)
        db.session.commit()
        return person

    return _make


@pytest.fixture
def alice(make_participant):
    return make_participant("Alpha")


@pytest.fixture
def bob(make_participant):
    return make_participant("Beta")


@pytest.fixture
def admin(make_participant):
    return make_participant("Commissioner", email=ADMIN_EMAIL)


@pytest.fixture
def make_fixture(competition, round_one):
    def _make(home="BLU", away="CRU", kickoff=NOW + timedelta(days=1), round_=None, comp=None):
        fixture = Fixture(
            competition_id=(comp or competition).id,
            round_id=(round_ or round_one).id if comp is None else None,
            home_team_code=home,
            away_team_code=away,
            kickoff_at=kickoff,
        )
        db.session.add(fixture)
        db.session.commit()
        return fixture

    return _make


@pytest.fixture
def fixture(make_fixture):
    return make_fixture()


@pytest.fixture
def make_odds():
    def _make(fixture, **quotes):
        defaults = {
            "home_1_12": 2.50,
            "home_13_plus": 4.00,
            "draw": 21.00,
            "away_1_12": 2.80,
            "away_13_plus": 5.50,
        }
        defaults.update(quotes)
        odds = MatchOdds(fixture_id=fixture.id)
        odds.set_quotes(**defaults)
        db.session.add(odds)
        db.session.commit()
        return odds

    return _make
