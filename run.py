from tipping import create_app, db
from tipping.models import (
    Competition,
    Fixture,
    League,
    MatchOdds,
    PaperBet,
    Participant,
    Pick,
    PickEvent,
    Result,
)

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Competition": Competition,
        "League": League,
        "Participant": Participant,
        "Fixture": Fixture,
        "Result": Result,
        "MatchOdds": MatchOdds,
        "Pick": Pick,
        "PickEvent": PickEvent,
        "PaperBet": PaperBet,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
