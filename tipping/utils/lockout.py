"""
Fixture lock clock

A fixture is closed to picks once its result is recorded (permanent) or once
its kickoff time has passed. Fixtures without a kickoff time are only ever
closed by a result. Always evaluate with the current instant; never cache.
"""

from tipping.utils.timezone_utils import ensure_utc, get_utc_time

LOCK_OPEN = "open"
LOCK_KICKOFF = "kickoff"
LOCK_RESULT = "result"


def lock_state(kickoff_at, result_exists, now=None):
    """Return why a fixture is closed, or LOCK_OPEN"""
    if result_exists:
        return LOCK_RESULT

    if kickoff_at is not None:
        now = ensure_utc(now) if now is not None else get_utc_time()
        if now >= ensure_utc(kickoff_at):
            return LOCK_KICKOFF

    return LOCK_OPEN


def is_fixture_open(kickoff_at, result_exists, now=None):
    """Check if a fixture accepts picks at ``now``"""
    return lock_state(kickoff_at, result_exists, now) == LOCK_OPEN
