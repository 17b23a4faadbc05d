"""
Error taxonomy for the pick engine

Validation failures are terminal and safe to show to the caller verbatim.
StorageFailure is the only retryable class; the engine itself never retries.
"""

INVALID_TEAM = "INVALID_TEAM"
INVALID_MARGIN = "INVALID_MARGIN"
RESULT_LOCKED = "RESULT_LOCKED"
KICKOFF_LOCKED = "KICKOFF_LOCKED"
SCOPE_MISMATCH = "SCOPE_MISMATCH"
NOT_FOUND = "NOT_FOUND"
FORBIDDEN = "FORBIDDEN"
STORAGE_FAILURE = "STORAGE_FAILURE"

# Default messages reported alongside the code
MESSAGES = {
    INVALID_TEAM: "Picked team must be the home team, the away team, or DRAW",
    INVALID_MARGIN: "Margin must be 1 (1-12) or 13 (13+) for non-DRAW picks",
    RESULT_LOCKED: "Fixture is locked (final result recorded)",
    KICKOFF_LOCKED: "Fixture is locked (kickoff has passed)",
    SCOPE_MISMATCH: "Fixture does not belong to your competition",
    NOT_FOUND: "Not found",
    FORBIDDEN: "Not allowed to act for this participant",
    STORAGE_FAILURE: "Storage temporarily unavailable, please retry",
}

# HTTP status used by the API error handlers
HTTP_STATUS = {
    INVALID_TEAM: 400,
    INVALID_MARGIN: 400,
    RESULT_LOCKED: 403,
    KICKOFF_LOCKED: 403,
    SCOPE_MISMATCH: 403,
    FORBIDDEN: 403,
    NOT_FOUND: 404,
    STORAGE_FAILURE: 503,
}


class PickError(Exception):
    """Base class for pick engine errors"""

    retryable = False

    def __init__(self, code, message=None):
        self.code = code
        self.message = message or MESSAGES.get(code, code)
        super().__init__(f"{code}: {self.message}")

    @property
    def http_status(self):
        return HTTP_STATUS.get(self.code, 400)

    def to_dict(self):
        return {"error": self.code, "message": self.message}


class PickRejected(PickError):
    """A deterministic validation failure; never retried"""


class StorageFailure(PickError):
    """A transient storage failure; the write left no partial state"""

    retryable = True

    def __init__(self, message=None):
        super().__init__(STORAGE_FAILURE, message)


# Paper-bet synthesis skip reasons; logged only, never surfaced by submit
SKIP_NO_OUTCOME = "NO_OUTCOME"
SKIP_NO_ODDS = "NO_ODDS"
SKIP_ODDS_BELOW_FLOOR = "ODDS_BELOW_FLOOR"
SKIP_FIXTURE_LOCKED = "FIXTURE_LOCKED"


class PaperBetSkipped(Exception):
    """Paper-bet synthesis declined; the enclosing pick write is unaffected"""

    def __init__(self, reason, fixture_id=None):
        self.reason = reason
        self.fixture_id = fixture_id
        super().__init__(f"{reason} (fixture {fixture_id})")
