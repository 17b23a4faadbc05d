"""Tests for tipping/utils/lockout.py - the fixture lock clock."""

from datetime import datetime, timedelta, timezone

from tipping.utils.lockout import LOCK_KICKOFF, LOCK_OPEN, LOCK_RESULT, is_fixture_open, lock_state

KICKOFF = datetime(2025, 3, 1, 7, 35, tzinfo=timezone.utc)


class TestLockState:
    """Tests for lock_state."""

    def test_open_before_kickoff(self):
        assert lock_state(KICKOFF, False, KICKOFF - timedelta(seconds=1)) == LOCK_OPEN

    def test_closed_at_kickoff(self):
        """Kickoff is inclusive."""
        assert lock_state(KICKOFF, False, KICKOFF) == LOCK_KICKOFF

    def test_closed_after_kickoff(self):
        assert lock_state(KICKOFF, False, KICKOFF + timedelta(hours=2)) == LOCK_KICKOFF

    def test_result_beats_kickoff(self):
        """A result closes the fixture even before kickoff."""
        assert lock_state(KICKOFF, True, KICKOFF - timedelta(days=1)) == LOCK_RESULT

    def test_no_kickoff_never_closes_by_time(self):
        assert lock_state(None, False, datetime(2099, 1, 1, tzinfo=timezone.utc)) == LOCK_OPEN

    def test_no_kickoff_with_result(self):
        assert lock_state(None, True) == LOCK_RESULT

    def test_naive_values_are_utc(self):
        naive_kickoff = KICKOFF.replace(tzinfo=None)
        assert lock_state(naive_kickoff, False, KICKOFF) == LOCK_KICKOFF


class TestIsFixtureOpen:
    def test_open(self):
        assert is_fixture_open(KICKOFF, False, KICKOFF - timedelta(minutes=5)) is True

    def test_closed(self):
        assert is_fixture_open(KICKOFF, True, KICKOFF - timedelta(minutes=5)) is False
