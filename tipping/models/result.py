from datetime import datetime, timezone

from sqlalchemy.orm import validates

from tipping import db
from tipping.utils.scoring import DRAW, MARGIN_BANDS


class Result(db.Model):
    """Final outcome of a fixture; its existence permanently locks picks"""

    __tablename__ = "results"

    # One result per fixture
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), primary_key=True)

    winning_team = db.Column(db.String(10), nullable=False)
    margin_band = db.Column(db.String(8), nullable=True)  # "1-12", "13+" or NULL

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint(
            "margin_band IS NULL OR margin_band IN ('1-12', '13+')",
            name="result_margin_band_values",
        ),
        db.CheckConstraint(
            "winning_team != 'DRAW' OR margin_band IS NULL",
            name="result_draw_has_no_margin",
        ),
    )

    def __repr__(self):
        return f"<Result fixture_id={self.fixture_id} {self.winning_team} {self.margin_band or ''}>"

    @validates("margin_band")
    def validate_margin_band(self, key, margin_band):
        if margin_band is not None and margin_band not in MARGIN_BANDS:
            raise ValueError(f"margin_band must be one of {MARGIN_BANDS} or None")
        if margin_band is not None and self.winning_team == DRAW:
            raise ValueError("A DRAW result cannot carry a margin band")
        return margin_band

    @validates("winning_team")
    def validate_winning_team(self, key, winning_team):
        if not winning_team:
            raise ValueError("winning_team is required")
        if winning_team == DRAW and self.margin_band is not None:
            raise ValueError("A DRAW result cannot carry a margin band")
        return winning_team

    @property
    def is_draw(self):
        return self.winning_team == DRAW

    def to_dict(self):
        return {
            "fixture_id": self.fixture_id,
            "winning_team": self.winning_team,
            "margin_band": self.margin_band,
        }
