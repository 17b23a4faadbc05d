from datetime import datetime, timezone

from tipping import db

OUTCOME_DRAW = "draw"
OUTCOME_HOME_1_12 = "home_1_12"
OUTCOME_HOME_13_PLUS = "home_13_plus"
OUTCOME_AWAY_1_12 = "away_1_12"
OUTCOME_AWAY_13_PLUS = "away_13_plus"

OUTCOMES = (
    OUTCOME_HOME_1_12,
    OUTCOME_HOME_13_PLUS,
    OUTCOME_DRAW,
    OUTCOME_AWAY_1_12,
    OUTCOME_AWAY_13_PLUS,
)


class MatchOdds(db.Model):
    """Published decimal quotes for the five outcomes of a fixture (loaded externally)"""

    __tablename__ = "match_odds"

    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), primary_key=True)

    draw_odds = db.Column(db.Float)
    home_1_12_odds = db.Column(db.Float)
    home_13_plus_odds = db.Column(db.Float)
    away_1_12_odds = db.Column(db.Float)
    away_13_plus_odds = db.Column(db.Float)

    # Timestamps
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<MatchOdds fixture_id={self.fixture_id}>"

    def quote_for(self, outcome):
        """Decimal quote for an outcome label (None if unknown or not quoted)"""
        if outcome not in OUTCOMES:
            return None
        return getattr(self, f"{outcome}_odds")

    def set_quotes(self, **quotes):
        """Set quotes by outcome label, e.g. set_quotes(draw=21.0)"""
        for outcome, value in quotes.items():
            if outcome not in OUTCOMES:
                raise ValueError(f"Unknown outcome '{outcome}'")
            setattr(self, f"{outcome}_odds", None if value is None else float(value))

    def to_dict(self):
        return {
            "fixture_id": self.fixture_id,
            **{outcome: self.quote_for(outcome) for outcome in OUTCOMES},
        }
