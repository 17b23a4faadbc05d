from datetime import datetime, timezone

from tipping import db
from tipping.utils.lockout import LOCK_KICKOFF, LOCK_OPEN, LOCK_RESULT, lock_state
from tipping.utils.scoring import DRAW
from tipping.utils.timezone_utils import format_kickoff, isoformat_utc


class Fixture(db.Model):
    __tablename__ = "fixtures"

    id = db.Column(db.Integer, primary_key=True)

    # Fixture identification
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=False
    )
    round_id = db.Column(db.Integer, db.ForeignKey("rounds.id"), nullable=True)

    # Teams
    home_team_code = db.Column(db.String(10), nullable=False)
    away_team_code = db.Column(db.String(10), nullable=False)

    # Fixture timing (no kickoff = never locked by time)
    kickoff_at = db.Column(db.DateTime(timezone=True), nullable=True)
    venue = db.Column(db.String(100))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    result = db.relationship(
        "Result", backref="fixture", uselist=False, cascade="all, delete-orphan"
    )
    odds = db.relationship(
        "MatchOdds", backref="fixture", uselist=False, cascade="all, delete-orphan"
    )
    picks = db.relationship(
        "Pick", backref="fixture", lazy="dynamic", cascade="all, delete-orphan"
    )

    # Indexes
    __table_args__ = (
        db.Index("idx_fixture_competition", "competition_id"),
        db.Index("idx_fixture_round", "round_id"),
        db.Index("idx_fixture_kickoff", "kickoff_at"),
        db.CheckConstraint("home_team_code != away_team_code", name="different_teams"),
        db.CheckConstraint(
            "home_team_code != 'DRAW' AND away_team_code != 'DRAW'",
            name="team_code_not_draw",
        ),
    )

    def __repr__(self):
        return f"<Fixture {self.home_team_code} v {self.away_team_code}>"

    @property
    def valid_pick_codes(self):
        """Codes a pick may name for this fixture"""
        return (self.home_team_code, self.away_team_code, DRAW)

    def is_valid_pick_code(self, team_code):
        return team_code in self.valid_pick_codes

    @property
    def has_result(self):
        return self.result is not None

    def lock_state(self, now=None, result_exists=None):
        """Why the fixture is closed ("result", "kickoff") or "open" """
        if result_exists is None:
            result_exists = self.has_result
        return lock_state(self.kickoff_at, result_exists, now)

    def is_pickable(self, now=None, result_exists=None):
        """Check if fixture is available for picks"""
        return self.lock_state(now, result_exists) == LOCK_OPEN

    @property
    def status(self):
        """Get fixture status as string"""
        state = self.lock_state()
        if state == LOCK_RESULT:
            return "completed"
        if state == LOCK_KICKOFF:
            return "in_progress"
        return "scheduled"

    def format_kickoff_local(self, format_str="%a %d/%m at %I:%M %p"):
        """Format kickoff in the application's timezone"""
        return format_kickoff(self.kickoff_at, format_str)

    def to_dict(self):
        """Convert fixture to dictionary for API responses"""
        return {
            "id": self.id,
            "competition_id": self.competition_id,
            "round_id": self.round_id,
            "home_team_code": self.home_team_code,
            "away_team_code": self.away_team_code,
            "kickoff_at": isoformat_utc(self.kickoff_at),
            "kickoff_local": self.format_kickoff_local() if self.kickoff_at else None,
            "venue": self.venue,
            "status": self.status,
            "result": self.result.to_dict() if self.result else None,
        }
