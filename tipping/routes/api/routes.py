from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from tipping import db, limiter
from tipping.errors import FORBIDDEN, NOT_FOUND, PickRejected
from tipping.forms.picks import (
    ACTION_DELETE,
    OverridePickForm,
    PickSubmissionForm,
    ResultForm,
    SyncPaperBetsForm,
)
from tipping.models import Fixture, Participant, Pick, PickEvent
from tipping.routes.api import bp
from tipping.services.decisiveness import DecisivenessAnalyzer
from tipping.services.leaderboard import Leaderboard
from tipping.services.paper_bets import paper_punter_standings, sync_paper_bets
from tipping.services.pick_ledger import PickLedger
from tipping.services.results import ResultRecorder
from tipping.settings import get_engine_settings
from tipping.utils.scoring import ScoringEngine


def add_security_headers(f):
    """Add no-store caching headers to API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if hasattr(response, "headers"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def admin_required(f):
    """Restrict an endpoint to the configured admin identities"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_engine_settings().is_admin(current_user):
            raise PickRejected(FORBIDDEN, "Admin access required")
        return f(*args, **kwargs)

    return decorated_function


def bad_request(form):
    return jsonify({"error": "BAD_REQUEST", "message": "Invalid request", "fields": form.errors}), 400


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _int_or_404(value, what):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise PickRejected(NOT_FOUND, f"{what} not found")


@bp.route("/fixtures")
@login_required
def fixtures():
    """Fixtures of the caller's competition, optionally one round"""
    query = Fixture.query.filter_by(competition_id=current_user.competition_id)
    round_id = request.args.get("round_id", type=int)
    if round_id is not None:
        query = query.filter_by(round_id=round_id)
    return jsonify([f.to_dict() for f in query.order_by(Fixture.kickoff_at, Fixture.id).all()])


@bp.route("/picks", methods=["GET"])
@login_required
@add_security_headers
def user_picks():
    """The caller's current picks, scored where a result exists"""
    scoring = ScoringEngine(get_engine_settings().draw_policy)

    query = Pick.query.filter_by(participant_id=current_user.id)
    round_id = request.args.get("round_id", type=int)
    if round_id is not None:
        query = query.join(Fixture, Fixture.id == Pick.fixture_id).filter(
            Fixture.round_id == round_id
        )

    picks = []
    for pick in query.order_by(Pick.fixture_id).all():
        data = pick.to_dict()
        result = pick.fixture.result
        data["points"] = (
            scoring.calculate_pick_score(pick, result).total_points if result else None
        )
        picks.append(data)

    return jsonify(picks)


@bp.route("/picks", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
@add_security_headers
def submit_pick():
    """Create or replace a pick"""
    form = PickSubmissionForm()
    if not form.validate_on_submit():
        return bad_request(form)

    ledger = PickLedger(get_engine_settings())
    ack = ledger.submit(
        current_user,
        form.fixture_id.data,
        _blank_to_none(form.picked_team.data),
        _blank_to_none(form.margin.data),
        participant_id=_blank_to_none(form.participant_id.data),
    )
    return jsonify(ack.to_dict())


@bp.route("/picks/<int:fixture_id>", methods=["DELETE"])
@login_required
@add_security_headers
def withdraw_pick(fixture_id):
    """Withdraw the caller's pick for a fixture"""
    ledger = PickLedger(get_engine_settings())
    ack = ledger.withdraw(
        current_user, fixture_id, participant_id=request.args.get("participant_id")
    )
    return jsonify(ack.to_dict())


@bp.route("/pick-events")
@login_required
@add_security_headers
def pick_events():
    """The caller's submission history"""
    fixture_id = request.args.get("fixture_id", type=int)
    events = PickEvent.history(
        current_user.id, [fixture_id] if fixture_id is not None else None
    )
    return jsonify([event.to_dict() for event in events])


@bp.route("/leaderboard")
@login_required
def leaderboard():
    """Standings for the caller's league, season or one round"""
    board = Leaderboard(get_engine_settings())
    round_id = request.args.get("round_id", type=int)
    if round_id is not None:
        rows = board.for_round(current_user.league_id, round_id)
        mode = "round"
    else:
        rows = board.overall(current_user.league_id)
        mode = "season"
    return jsonify({"mode": mode, "league_id": current_user.league_id, "entries": rows})


@bp.route("/fun-stats")
@login_required
def fun_stats():
    """Gut feel vs second guess statistics for the caller"""
    analyzer = DecisivenessAnalyzer(get_engine_settings())
    report = analyzer.analyze(
        current_user.id,
        round_id=request.args.get("round_id", type=int),
        detail=request.args.get("detail") in ("1", "true"),
    )
    return jsonify(report)


@bp.route("/paper-punter")
@login_required
def paper_punter():
    """Paper bet standings for the caller's league"""
    round_id = request.args.get("round_id", type=int)
    standings = paper_punter_standings(
        current_user.league_id, get_engine_settings(), round_id=round_id
    )
    return jsonify(
        {"mode": "round" if round_id is not None else "season", "standings": standings}
    )


@bp.route("/admin/results", methods=["POST"])
@login_required
@admin_required
@add_security_headers
def record_result():
    """Record (or correct) a fixture result"""
    form = ResultForm()
    if not form.validate_on_submit():
        return bad_request(form)

    result = ResultRecorder(get_engine_settings()).record(
        _int_or_404(form.fixture_id.data, "Fixture"),
        form.winning_team.data,
        margin_band=_blank_to_none(form.margin_band.data),
        margin=_blank_to_none(form.margin.data),
        correct=form.correct.data,
    )
    return jsonify({"ok": True, "result": result.to_dict()})


@bp.route("/admin/override-pick", methods=["POST"])
@login_required
@admin_required
@add_security_headers
def override_pick():
    """Submit or withdraw a pick on behalf of a participant"""
    form = OverridePickForm()
    if not form.validate_on_submit():
        return bad_request(form)

    ledger = PickLedger(get_engine_settings())
    if form.action.data == ACTION_DELETE:
        ack = ledger.withdraw(
            current_user, form.fixture_id.data, participant_id=form.participant_id.data
        )
    else:
        ack = ledger.submit(
            current_user,
            form.fixture_id.data,
            _blank_to_none(form.picked_team.data),
            _blank_to_none(form.margin.data),
            participant_id=form.participant_id.data,
        )
    return jsonify(ack.to_dict())


@bp.route("/admin/sync-paper-bets", methods=["POST"])
@login_required
@admin_required
@add_security_headers
def admin_sync_paper_bets():
    """Re-synthesize a participant's paper bets for open fixtures"""
    form = SyncPaperBetsForm()
    if not form.validate_on_submit():
        return bad_request(form)

    participant = db.session.get(
        Participant, _int_or_404(form.participant_id.data, "Participant")
    )
    if participant is None:
        raise PickRejected(NOT_FOUND, "Participant not found")

    round_id = _blank_to_none(form.round_id.data)
    report = sync_paper_bets(
        participant,
        get_engine_settings(),
        round_id=_int_or_404(round_id, "Round") if round_id is not None else None,
    )
    return jsonify(
        {
            "ok": True,
            "upserted": report.upserted_count,
            "skipped_fixture_ids": report.skipped_fixture_ids,
        }
    )
