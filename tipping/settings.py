"""
Engine settings for the tipping application

Everything the pick engine needs to know about the deployment (which
identities are privileged, which draw scoring rule is in force, paper bet
stake and odds floor) is resolved once from the Flask config and passed to
the services explicitly.
"""

from dataclasses import dataclass, field

from tipping.utils.scoring import DrawPolicy

DEFAULT_STAKE = 10.0
DEFAULT_MIN_ODDS = 1.01


@dataclass(frozen=True)
class EngineSettings:
    draw_policy: DrawPolicy = DrawPolicy.FLAT_BONUS
    admin_emails: frozenset = field(default_factory=frozenset)
    paper_bet_stake: float = DEFAULT_STAKE
    paper_bet_min_odds: float = DEFAULT_MIN_ODDS

    @classmethod
    def from_config(cls, config):
        """Build settings from a Flask config mapping"""
        return cls(
            draw_policy=DrawPolicy(config.get("DRAW_SCORING", DrawPolicy.FLAT_BONUS.value)),
            admin_emails=frozenset(
                email.strip().lower() for email in config.get("ADMIN_EMAILS", []) if email
            ),
            paper_bet_stake=float(config.get("PAPER_BET_STAKE", DEFAULT_STAKE)),
            paper_bet_min_odds=float(config.get("PAPER_BET_MIN_ODDS", DEFAULT_MIN_ODDS)),
        )

    def is_admin(self, participant):
        """Check whether a participant is a privileged identity"""
        if participant is None or not participant.email:
            return False
        return participant.email.strip().lower() in self.admin_emails


def get_engine_settings(app=None):
    """Get the engine settings registered on the Flask application"""
    if app is None:
        from flask import current_app

        app = current_app
    return app.extensions["tipping"]
