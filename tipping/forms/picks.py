"""
Request forms for the JSON API

Flask-WTF reads JSON bodies as form data. The forms only check that the
required fields are present; the pick rules themselves (valid team, margin,
lock state) are enforced by the services so every caller gets the same
error codes.
"""

from flask_wtf import FlaskForm
from wtforms import BooleanField, SelectField, StringField
from wtforms.validators import DataRequired

ACTION_UPSERT = "upsert"
ACTION_DELETE = "delete"


class JSONForm(FlaskForm):
    """API forms are authenticated by bearer token, not by CSRF"""

    class Meta:
        csrf = False


class PickSubmissionForm(JSONForm):
    fixture_id = StringField("Fixture", validators=[DataRequired()])
    # Team and margin are checked by the ledger in a fixed order
    picked_team = StringField("Picked Team")
    margin = StringField("Margin")
    participant_id = StringField("Participant")


class OverridePickForm(JSONForm):
    participant_id = StringField("Participant", validators=[DataRequired()])
    fixture_id = StringField("Fixture", validators=[DataRequired()])
    picked_team = StringField("Picked Team")
    margin = StringField("Margin")
    action = SelectField(
        "Action",
        choices=[(ACTION_UPSERT, "Upsert"), (ACTION_DELETE, "Delete")],
        default=ACTION_UPSERT,
    )


class ResultForm(JSONForm):
    fixture_id = StringField("Fixture", validators=[DataRequired()])
    winning_team = StringField("Winning Team", validators=[DataRequired()])
    margin_band = StringField("Margin Band")
    margin = StringField("Margin")
    correct = BooleanField(
        "Correct Existing Result", false_values=(False, "false", "", None)
    )


class SyncPaperBetsForm(JSONForm):
    participant_id = StringField("Participant", validators=[DataRequired()])
    round_id = StringField("Round")
