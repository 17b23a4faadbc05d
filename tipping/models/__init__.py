from tipping import db  # noqa: F401 - imported for model imports

from .competition import Competition, League, Round
from .fixture import Fixture
from .odds import MatchOdds
from .paper_bet import PaperBet
from .participant import Participant
from .pick import Pick, PickEvent
from .result import Result

__all__ = [
    "Competition",
    "Round",
    "League",
    "Participant",
    "Fixture",
    "Result",
    "MatchOdds",
    "Pick",
    "PickEvent",
    "PaperBet",
]
