#!/usr/bin/env python3
"""
Tipping Management CLI

Command-line management for the tipping engine: competitions, participants,
fixtures and odds loading, results and leaderboards.
"""

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tipping import create_app, db
from tipping.errors import PickError
from tipping.models import Competition, Fixture, League, Participant
from tipping.services.leaderboard import Leaderboard
from tipping.services.paper_bets import load_odds
from tipping.services.results import ResultRecorder
from tipping.settings import get_engine_settings
from tipping.utils.cache_utils import invalidate_model_cache
from tipping.utils.data_sync import FixtureImporter


@click.group()
def cli():
    """Tipping Management CLI"""
    pass


# Database Commands
@cli.group("db")
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
@with_appcontext
def init_db():
    """Create all database tables"""
    db.create_all()
    click.echo("✅ Database tables created")


# Competition Commands
@cli.group()
def competition():
    """Competition management commands"""
    pass


@competition.command("create")
@click.argument("name")
@click.argument("season", type=int)
@click.option("--league", "leagues", multiple=True, help="League to create (repeatable)")
@with_appcontext
def create_competition(name, season, leagues):
    """Create a competition season and its leagues"""
    try:
        comp = Competition(name=name, season=season)
        db.session.add(comp)
        db.session.flush()

        for league_name in leagues or (f"{name} {season}",):
            db.session.add(League(name=league_name, competition_id=comp.id))

        db.session.commit()
        click.echo(f"✅ Created competition {name} {season} (id {comp.id})")
        for league in comp.leagues.order_by(League.id):
            click.echo(f"   League {league.id}: {league.name}")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Competition {name} {season} already exists!")
        logging.error(f"Competition creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating competition: {str(e)}")
        logging.error(f"Competition creation failed - SQL error: {e}")


# Participant Commands
@cli.group()
def participant():
    """Participant management commands"""
    pass


@participant.command("create")
@click.argument("team_name")
@click.argument("email")
@click.option("--league-id", type=int, required=True, help="League to enrol in")
@click.option("--category", help="Participant category")
@with_appcontext
def create_participant(team_name, email, league_id, category):
    """Enrol a participant in a league and print their API token"""
    league = db.session.get(League, league_id)
    if league is None:
        click.echo(f"❌ League {league_id} not found!")
        return

    try:
        person = Participant(
            team_name=team_name,
            email=email.strip().lower(),
            league_id=league.id,
            category=category,
        )
        db.session.add(person)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ A participant with email {email} already exists!")
        logging.error(f"Participant creation failed - integrity error: {e}")
        return

    # Standings list every participant, scored or not
    invalidate_model_cache("leaderboard")
    click.echo(f"✅ Created participant {team_name} (id {person.id}) in {league.name}")
    click.echo(f"   Token: {person.generate_auth_token()}")


@participant.command("token")
@click.argument("email")
@click.option("--revoke", is_flag=True, help="Invalidate previously issued tokens first")
@with_appcontext
def participant_token(email, revoke):
    """Issue an API token for a participant"""
    person = Participant.query.filter_by(email=email.strip().lower()).first()
    if person is None:
        click.echo(f"❌ Participant {email} not found!")
        return

    if revoke:
        person.revoke_tokens()
        db.session.commit()
        click.echo("✅ Previous tokens revoked")

    click.echo(person.generate_auth_token())


# Fixture Commands
@cli.group()
def fixtures():
    """Fixture and odds loading commands"""
    pass


@fixtures.command("import")
@click.argument("competition_id", type=int)
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_fixtures(competition_id, csv_path):
    """Import fixtures (and optional odds) from a CSV file"""
    comp = db.session.get(Competition, competition_id)
    if comp is None:
        click.echo(f"❌ Competition {competition_id} not found!")
        return

    try:
        stats = FixtureImporter(comp).import_file(csv_path)
    except (ValueError, SQLAlchemyError) as e:
        click.echo(f"❌ Import failed: {str(e)}")
        logging.error(f"Fixture import failed: {e}")
        return

    click.echo(
        f"✅ Fixtures imported: {stats['created']} created, "
        f"{stats['updated']} updated, {stats['odds']} with odds"
    )


@cli.group()
def odds():
    """Odds commands"""
    pass


@odds.command("set")
@click.argument("fixture_id", type=int)
@click.option("--draw", type=float)
@click.option("--home-1-12", "home_1_12", type=float)
@click.option("--home-13-plus", "home_13_plus", type=float)
@click.option("--away-1-12", "away_1_12", type=float)
@click.option("--away-13-plus", "away_13_plus", type=float)
@with_appcontext
def set_odds(fixture_id, **quotes):
    """Set the published quotes for a fixture"""
    if db.session.get(Fixture, fixture_id) is None:
        click.echo(f"❌ Fixture {fixture_id} not found!")
        return

    load_odds(fixture_id, **{k: v for k, v in quotes.items() if v is not None})
    db.session.commit()
    click.echo(f"✅ Odds updated for fixture {fixture_id}")


# Result Commands
@cli.group()
def result():
    """Result commands"""
    pass


@result.command("record")
@click.argument("fixture_id", type=int)
@click.argument("winning_team")
@click.option("--band", type=click.Choice(["1-12", "13+"]), help="Winning margin band")
@click.option("--margin", type=float, help="Winning margin in points")
@click.option("--correct", is_flag=True, help="Overwrite an existing result")
@with_appcontext
def record_result(fixture_id, winning_team, band, margin, correct):
    """Record the final result of a fixture"""
    recorder = ResultRecorder(get_engine_settings())
    try:
        saved = recorder.record(
            fixture_id, winning_team.upper(), margin_band=band, margin=margin, correct=correct
        )
    except PickError as e:
        click.echo(f"❌ {e.code}: {e.message}")
        return

    click.echo(
        f"✅ Result recorded for fixture {fixture_id}: "
        f"{saved.winning_team} {saved.margin_band or ''}".rstrip()
    )


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command("show")
@click.argument("league_id", type=int)
@click.option("--round-id", type=int, help="Show one round only")
@with_appcontext
def show_leaderboard(league_id, round_id):
    """Print league standings"""
    board = Leaderboard(get_engine_settings())
    rows = board.for_round(league_id, round_id) if round_id else board.overall(league_id)

    if not rows:
        click.echo("No participants in this league")
        return

    for row in rows:
        click.echo(f"{row['rank']:>3}. {row['team_name']:<30} {row['total_points']:>5}")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()
