"""Tests for tipping/services/results.py - the one-time result transition."""

import pytest

from tipping.errors import INVALID_MARGIN, INVALID_TEAM, NOT_FOUND, RESULT_LOCKED, PickRejected
from tipping.models import Result
from tipping.services.results import ResultRecorder, resolve_margin_band


class TestResolveMarginBand:
    def test_draw_never_has_band(self):
        assert resolve_margin_band("DRAW", "1-12", 5) is None

    def test_numeric_margin_classified(self):
        assert resolve_margin_band("CRU", margin=7) == "1-12"
        assert resolve_margin_band("CRU", margin=21) == "13+"

    def test_numeric_string_margin(self):
        assert resolve_margin_band("CRU", margin="7") == "1-12"
        assert resolve_margin_band("CRU", "13+", "21") == "13+"

    def test_explicit_band(self):
        assert resolve_margin_band("CRU", "13+") == "13+"
        assert resolve_margin_band("CRU") is None

    def test_disagreement(self):
        with pytest.raises(PickRejected) as excinfo:
            resolve_margin_band("CRU", "13+", 4)
        assert excinfo.value.code == INVALID_MARGIN

    @pytest.mark.parametrize(
        "band,margin",
        [("1-20", None), (None, 0), (None, "seven"), (None, ""), (None, "0")],
    )
    def test_invalid(self, band, margin):
        with pytest.raises(PickRejected) as excinfo:
            resolve_margin_band("CRU", band, margin)
        assert excinfo.value.code == INVALID_MARGIN


class TestResultRecorder:
    """Tests for recording and correcting results."""

    def _code(self, callable_, *args, **kwargs):
        with pytest.raises(PickRejected) as excinfo:
            callable_(*args, **kwargs)
        return excinfo.value.code

    def test_record(self, settings, fixture):
        result = ResultRecorder(settings).record(fixture.id, "CRU", margin=15)
        assert (result.winning_team, result.margin_band) == ("CRU", "13+")
        assert Result.query.count() == 1

    def test_record_draw(self, settings, fixture):
        result = ResultRecorder(settings).record(fixture.id, "DRAW")
        assert result.is_draw
        assert result.margin_band is None

    def test_second_record_is_locked(self, settings, fixture):
        recorder = ResultRecorder(settings)
        recorder.record(fixture.id, "CRU", margin_band="1-12")
        assert self._code(recorder.record, fixture.id, "BLU", margin_band="1-12") == RESULT_LOCKED
        assert Result.query.one().winning_team == "CRU"

    def test_correction(self, settings, fixture):
        recorder = ResultRecorder(settings)
        recorder.record(fixture.id, "CRU", margin_band="1-12")
        corrected = recorder.record(fixture.id, "DRAW", correct=True)

        assert corrected.winning_team == "DRAW"
        assert corrected.margin_band is None
        assert Result.query.count() == 1

    def test_invalid_team(self, settings, fixture):
        assert self._code(ResultRecorder(settings).record, fixture.id, "CHI", margin_band="1-12") == INVALID_TEAM

    def test_unknown_fixture(self, settings, app):
        assert self._code(ResultRecorder(settings).record, 4040, "CRU") == NOT_FOUND

    def test_result_locks_picks(self, settings, ledger, alice, fixture):
        ResultRecorder(settings).record(fixture.id, "BLU", margin_band="13+")
        with pytest.raises(PickRejected) as excinfo:
            ledger.submit(alice, fixture.id, "BLU", 13)
        assert excinfo.value.code == RESULT_LOCKED
