from datetime import datetime, timezone

from sqlalchemy.orm import validates

from tipping import db
from tipping.utils.scoring import DRAW, NO_MARGIN, PICK_MARGINS, get_margin_band
from tipping.utils.timezone_utils import isoformat_utc

PICK_VALUES_CHECK = (
    "(picked_team = 'DRAW' AND margin = 0) "
    "OR (picked_team != 'DRAW' AND margin IN (1, 13))"
)


def check_pick_values(picked_team, margin):
    """Enforce the DRAW <=> margin 0 invariant shared by picks and pick events"""
    if not picked_team:
        raise ValueError("picked_team is required")
    if picked_team == DRAW:
        if margin != NO_MARGIN:
            raise ValueError("A DRAW pick must carry margin 0")
    elif margin not in PICK_MARGINS:
        raise ValueError("A team pick must carry margin 1 or 13")


class Pick(db.Model):
    """Current pick for one (participant, fixture); kept in step with PickEvent"""

    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id"), nullable=False
    )
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=True)

    # Pick details
    picked_team = db.Column(db.String(10), nullable=False)
    margin = db.Column(db.Integer, nullable=False, default=NO_MARGIN)

    # Timestamps (set explicitly by the ledger from its clock)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint(
            "participant_id", "fixture_id", name="unique_participant_fixture_pick"
        ),
        db.CheckConstraint(PICK_VALUES_CHECK, name="pick_margin_matches_team"),
        db.Index("idx_pick_fixture", "fixture_id"),
        db.Index("idx_pick_league", "league_id"),
    )

    def __init__(self, **kwargs):
        super(Pick, self).__init__(**kwargs)
        check_pick_values(self.picked_team, self.margin)

    def __repr__(self):
        return f"<Pick participant_id={self.participant_id} fixture_id={self.fixture_id} {self.picked_team}/{self.margin}>"

    @validates("margin")
    def validate_margin(self, key, margin):
        if margin not in (NO_MARGIN,) + PICK_MARGINS:
            raise ValueError("margin must be 0, 1 or 13")
        return margin

    def apply(self, picked_team, margin, at):
        """Overwrite the pick values; both fields change together"""
        check_pick_values(picked_team, margin)
        self.picked_team = picked_team
        self.margin = margin
        self.updated_at = at

    @property
    def margin_band(self):
        return get_margin_band(self.margin)

    def to_dict(self):
        """Convert pick to dictionary for API responses"""
        return {
            "id": self.id,
            "participant_id": self.participant_id,
            "fixture_id": self.fixture_id,
            "picked_team": self.picked_team,
            "margin": self.margin,
            "margin_band": self.margin_band,
            "updated_at": isoformat_utc(self.updated_at),
        }


class PickEvent(db.Model):
    """Append-only audit record of one accepted submission"""

    __tablename__ = "pick_events"

    id = db.Column(db.Integer, primary_key=True)

    participant_id = db.Column(
        db.Integer, db.ForeignKey("participants.id"), nullable=False
    )
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), nullable=False)

    # Identity that made the submission (differs from participant on admin override)
    actor_id = db.Column(db.Integer, db.ForeignKey("participants.id"), nullable=False)

    picked_team = db.Column(db.String(10), nullable=False)
    margin = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        db.CheckConstraint(PICK_VALUES_CHECK, name="pick_event_margin_matches_team"),
        db.Index("idx_pick_event_participant_fixture", "participant_id", "fixture_id"),
        db.Index("idx_pick_event_created", "created_at"),
    )

    def __init__(self, **kwargs):
        super(PickEvent, self).__init__(**kwargs)
        check_pick_values(self.picked_team, self.margin)

    def __repr__(self):
        return f"<PickEvent participant_id={self.participant_id} fixture_id={self.fixture_id} {self.picked_team}/{self.margin}>"

    @property
    def is_override(self):
        return self.actor_id != self.participant_id

    @staticmethod
    def history(participant_id, fixture_ids=None):
        """Events for a participant in chronological order"""
        query = PickEvent.query.filter(PickEvent.participant_id == participant_id)
        if fixture_ids is not None:
            query = query.filter(PickEvent.fixture_id.in_(list(fixture_ids)))
        return query.order_by(PickEvent.created_at, PickEvent.id).all()

    def to_dict(self):
        return {
            "id": self.id,
            "participant_id": self.participant_id,
            "fixture_id": self.fixture_id,
            "actor_id": self.actor_id,
            "picked_team": self.picked_team,
            "margin": self.margin,
            "created_at": isoformat_utc(self.created_at),
        }
