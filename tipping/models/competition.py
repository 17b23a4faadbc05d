from datetime import datetime, timezone

from tipping import db


class Competition(db.Model):
    __tablename__ = "competitions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)  # e.g., "Super Rugby Pacific"
    season = db.Column(db.Integer, nullable=False, index=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    rounds = db.relationship(
        "Round", backref="competition", lazy="dynamic", cascade="all, delete-orphan"
    )
    leagues = db.relationship("League", backref="competition", lazy="dynamic")
    fixtures = db.relationship("Fixture", backref="competition", lazy="dynamic")

    __table_args__ = (
        db.UniqueConstraint("name", "season", name="unique_competition_season"),
    )

    def __repr__(self):
        return f"<Competition {self.name} {self.season}>"

    def to_dict(self):
        return {"id": self.id, "name": self.name, "season": self.season}


class Round(db.Model):
    __tablename__ = "rounds"

    id = db.Column(db.Integer, primary_key=True)
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=False
    )
    round_number = db.Column(db.Integer, nullable=False)
    season = db.Column(db.Integer, nullable=False)

    fixtures = db.relationship("Fixture", backref="round", lazy="dynamic")

    __table_args__ = (
        db.UniqueConstraint(
            "competition_id", "round_number", name="unique_competition_round"
        ),
        db.Index("idx_round_season", "season"),
    )

    def __repr__(self):
        return f"<Round {self.round_number} competition_id={self.competition_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "competition_id": self.competition_id,
            "round_number": self.round_number,
            "season": self.season,
        }


class League(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=False
    )

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    participants = db.relationship("Participant", backref="league", lazy="dynamic")

    __table_args__ = (db.Index("idx_league_competition", "competition_id"),)

    def __repr__(self):
        return f"<League {self.name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "competition_id": self.competition_id,
        }
