import secrets
from datetime import datetime, timezone

from flask import current_app
from flask_login import UserMixin
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from tipping import db

TOKEN_SALT = "participant-auth"


class Participant(UserMixin, db.Model):
    __tablename__ = "participants"

    id = db.Column(db.Integer, primary_key=True)
    team_name = db.Column(db.String(100), nullable=False)  # Display name
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    category = db.Column(db.String(50))

    # Subject issued by the identity provider; rotated to revoke tokens
    auth_user_id = db.Column(
        db.String(64),
        unique=True,
        nullable=False,
        default=lambda: secrets.token_hex(16),
    )

    # Enrollment scope
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    picks = db.relationship(
        "Pick", backref="participant", lazy="dynamic", cascade="all, delete-orphan"
    )
    paper_bets = db.relationship(
        "PaperBet", backref="participant", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (db.Index("idx_participant_league", "league_id"),)

    def __repr__(self):
        return f"<Participant {self.team_name}>"

    @property
    def competition_id(self):
        """Competition the participant is enrolled in, via their league"""
        return self.league.competition_id if self.league else None

    def generate_auth_token(self):
        """Issue a signed bearer token for this participant"""
        serializer = URLSafeTimedSerializer(
            current_app.config["SECRET_KEY"], salt=TOKEN_SALT
        )
        return serializer.dumps(self.auth_user_id)

    @staticmethod
    def verify_auth_token(token, max_age=None):
        """Resolve a bearer token to a participant (None if invalid or expired)"""
        if not token:
            return None

        serializer = URLSafeTimedSerializer(
            current_app.config["SECRET_KEY"], salt=TOKEN_SALT
        )
        if max_age is None:
            max_age = current_app.config.get("AUTH_TOKEN_MAX_AGE")
        try:
            auth_user_id = serializer.loads(token, max_age=max_age)
        except (SignatureExpired, BadSignature):
            return None

        return Participant.query.filter_by(auth_user_id=auth_user_id).first()

    def revoke_tokens(self):
        """Invalidate every token issued so far"""
        self.auth_user_id = secrets.token_hex(16)

    def to_dict(self):
        return {
            "id": self.id,
            "team_name": self.team_name,
            "category": self.category,
            "league_id": self.league_id,
        }
