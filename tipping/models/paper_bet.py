from datetime import datetime, timezone

from sqlalchemy.orm import validates

from tipping import db
from tipping.models.odds import OUTCOMES
from tipping.utils.timezone_utils import isoformat_utc


class PaperBet(db.Model):
    """Simulated wager derived from a pick; odds are a snapshot taken pre-lock"""

    __tablename__ = "paper_bets"

    id = db.Column(db.Integer, primary_key=True)

    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id"), nullable=False
    )
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=True)

    outcome = db.Column(db.String(20), nullable=False)
    stake = db.Column(db.Float, nullable=False, default=10.0)
    odds = db.Column(db.Float, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    fixture = db.relationship("Fixture")

    __table_args__ = (
        db.UniqueConstraint(
            "participant_id", "fixture_id", name="paper_bets_participant_fixture_unique"
        ),
        db.CheckConstraint(
            "outcome IN ('home_1_12', 'home_13_plus', 'draw', 'away_1_12', 'away_13_plus')",
            name="paper_bets_outcome_check",
        ),
        db.CheckConstraint("stake > 0", name="paper_bets_stake_positive"),
        db.CheckConstraint("odds >= 1.01", name="paper_bets_odds_min"),
        db.Index("idx_paper_bet_fixture", "fixture_id"),
        db.Index("idx_paper_bet_league", "league_id"),
    )

    def __repr__(self):
        return f"<PaperBet participant_id={self.participant_id} fixture_id={self.fixture_id} {self.outcome}@{self.odds}>"

    @validates("outcome")
    def validate_outcome(self, key, outcome):
        if outcome not in OUTCOMES:
            raise ValueError(f"Unknown paper bet outcome '{outcome}'")
        return outcome

    @validates("stake")
    def validate_stake(self, key, stake):
        if stake is None or stake <= 0:
            raise ValueError("stake must be positive")
        return stake

    @property
    def potential_return(self):
        return self.stake * self.odds

    def to_dict(self):
        return {
            "participant_id": self.participant_id,
            "fixture_id": self.fixture_id,
            "outcome": self.outcome,
            "stake": self.stake,
            "odds": self.odds,
            "potential_return": self.potential_return,
            "updated_at": isoformat_utc(self.updated_at),
        }
