"""Tests for tipping/routes/api - the JSON endpoints."""

from datetime import datetime, timedelta, timezone

import pytest
from flask import g

from tipping.models import Pick, PickEvent, Result


class ApiClient:
    """Test client that sends a participant's bearer token."""

    def __init__(self, client, participant=None):
        self.client = client
        self.headers = {}
        if participant is not None:
            self.headers["Authorization"] = f"Bearer {participant.generate_auth_token()}"

    def _send(self, method, url, **kwargs):
        # flask-login caches the user on g, which the test's app context shares
        g.pop("_login_user", None)
        return getattr(self.client, method)(url, headers=self.headers, **kwargs)

    def get(self, url, **kwargs):
        return self._send("get", url, **kwargs)

    def post(self, url, **kwargs):
        return self._send("post", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._send("delete", url, **kwargs)


@pytest.fixture
def upcoming(make_fixture):
    return make_fixture(kickoff=datetime.now(timezone.utc) + timedelta(days=2))


@pytest.fixture
def as_alice(app, alice):
    return ApiClient(app.test_client(), alice)


@pytest.fixture
def as_admin(app, admin):
    return ApiClient(app.test_client(), admin)


class TestAuthentication:
    def test_missing_token(self, app, upcoming):
        response = ApiClient(app.test_client()).post(
            "/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 1}
        )
        assert response.status_code == 401
        assert response.get_json()["error"] == "UNAUTHORIZED"

    def test_bad_token(self, app, upcoming):
        client = ApiClient(app.test_client())
        client.headers["Authorization"] = "Bearer nope"
        assert client.get("/api/picks").status_code == 401


class TestPicksEndpoints:
    """Submission, listing and withdrawal over HTTP."""

    def test_submit(self, as_alice, alice, upcoming):
        response = as_alice.post(
            "/api/picks", json={"fixture_id": upcoming.id, "picked_team": "CRU", "margin": 13}
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body["ok"] is True
        assert body["pick"]["margin_band"] == "13+"
        assert Pick.query.filter_by(participant_id=alice.id).count() == 1

    def test_draw_without_margin(self, as_alice, upcoming):
        response = as_alice.post(
            "/api/picks", json={"fixture_id": upcoming.id, "picked_team": "DRAW"}
        )
        assert response.status_code == 200
        assert response.get_json()["pick"]["margin"] == 0

    def test_invalid_team(self, as_alice, upcoming):
        response = as_alice.post(
            "/api/picks", json={"fixture_id": upcoming.id, "picked_team": "CHI", "margin": 1}
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "INVALID_TEAM"

    def test_invalid_margin(self, as_alice, upcoming):
        response = as_alice.post(
            "/api/picks", json={"fixture_id": upcoming.id, "picked_team": "CRU", "margin": 5}
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "INVALID_MARGIN"

    def test_missing_fixture_field(self, as_alice):
        response = as_alice.post("/api/picks", json={"picked_team": "CRU", "margin": 1})
        assert response.status_code == 400
        assert "fixture_id" in response.get_json()["fields"]

    def test_result_locked(self, as_alice, upcoming):
        from tipping import db

        db.session.add(Result(fixture_id=upcoming.id, winning_team="BLU", margin_band="1-12"))
        db.session.commit()

        response = as_alice.post(
            "/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 1}
        )
        assert response.status_code == 403
        assert response.get_json()["error"] == "RESULT_LOCKED"

    def test_kickoff_locked(self, as_alice, make_fixture):
        started = make_fixture(kickoff=datetime.now(timezone.utc) - timedelta(minutes=1))
        response = as_alice.post(
            "/api/picks", json={"fixture_id": started.id, "picked_team": "BLU", "margin": 1}
        )
        assert response.status_code == 403
        assert response.get_json()["error"] == "KICKOFF_LOCKED"

    def test_cannot_pick_for_others(self, as_alice, bob, upcoming):
        response = as_alice.post(
            "/api/picks",
            json={
                "fixture_id": upcoming.id,
                "picked_team": "BLU",
                "margin": 1,
                "participant_id": bob.id,
            },
        )
        assert response.status_code == 403
        assert response.get_json()["error"] == "FORBIDDEN"
        assert Pick.query.count() == 0

    def test_list_and_withdraw(self, as_alice, upcoming):
        as_alice.post("/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 1})

        listed = as_alice.get("/api/picks").get_json()
        assert [p["fixture_id"] for p in listed] == [upcoming.id]
        assert listed[0]["points"] is None

        response = as_alice.delete(f"/api/picks/{upcoming.id}")
        assert response.status_code == 200
        assert response.get_json()["withdrawn"] is True
        assert as_alice.get("/api/picks").get_json() == []

        events = as_alice.get(f"/api/pick-events?fixture_id={upcoming.id}").get_json()
        assert len(events) == 1

    def test_withdraw_nothing(self, as_alice, upcoming):
        response = as_alice.delete(f"/api/picks/{upcoming.id}")
        assert response.status_code == 404
        assert response.get_json()["error"] == "NOT_FOUND"


class TestReadEndpoints:
    def test_fixtures(self, as_alice, upcoming):
        fixtures = as_alice.get("/api/fixtures").get_json()
        assert fixtures[0]["home_team_code"] == "BLU"
        assert fixtures[0]["status"] == "scheduled"

    def test_leaderboard(self, as_alice, as_admin, alice, bob, upcoming):
        as_alice.post("/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 1})
        as_admin.post(
            "/api/admin/results",
            json={"fixture_id": upcoming.id, "winning_team": "BLU", "margin_band": "1-12"},
        )

        body = as_alice.get("/api/leaderboard").get_json()

        assert body["mode"] == "season"
        assert [(e["team_name"], e["total_points"], e["rank"]) for e in body["entries"]] == [
            ("Alpha", 8, 1),
            ("Beta", 0, 2),
        ]

    def test_fun_stats(self, as_alice, as_admin, upcoming):
        as_alice.post("/api/picks", json={"fixture_id": upcoming.id, "picked_team": "CRU", "margin": 1})
        as_alice.post("/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 1})
        as_admin.post(
            "/api/admin/results",
            json={"fixture_id": upcoming.id, "winning_team": "BLU", "margin_band": "1-12"},
        )

        body = as_alice.get("/api/fun-stats?detail=1").get_json()

        assert body["second_guess_wins"] == 1
        assert body["points_gained"] == 8
        assert len(body["fixtures"]) == 1

    def test_paper_punter(self, as_alice, as_admin, upcoming, make_odds):
        make_odds(upcoming)
        as_alice.post("/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 1})
        as_admin.post(
            "/api/admin/results",
            json={"fixture_id": upcoming.id, "winning_team": "BLU", "margin_band": "1-12"},
        )

        body = as_alice.get("/api/paper-punter").get_json()
        assert body["standings"][0]["profit"] == 15.0


class TestAdminEndpoints:
    """Privileged endpoints."""

    def test_results_require_admin(self, as_alice, upcoming):
        response = as_alice.post(
            "/api/admin/results", json={"fixture_id": upcoming.id, "winning_team": "BLU"}
        )
        assert response.status_code == 403
        assert Result.query.count() == 0

    def test_record_and_lock(self, as_admin, upcoming):
        payload = {"fixture_id": upcoming.id, "winning_team": "CRU", "margin": 14}
        first = as_admin.post("/api/admin/results", json=payload)
        second = as_admin.post("/api/admin/results", json=payload)

        assert first.status_code == 200
        assert first.get_json()["result"]["margin_band"] == "13+"
        assert second.status_code == 403
        assert second.get_json()["error"] == "RESULT_LOCKED"

    def test_margin_sent_as_string(self, as_admin, upcoming):
        response = as_admin.post(
            "/api/admin/results",
            json={"fixture_id": upcoming.id, "winning_team": "CRU", "margin": "7"},
        )

        assert response.status_code == 200
        assert response.get_json()["result"]["margin_band"] == "1-12"

    def test_correct_result(self, as_admin, upcoming):
        as_admin.post(
            "/api/admin/results",
            json={"fixture_id": upcoming.id, "winning_team": "CRU", "margin_band": "1-12"},
        )
        response = as_admin.post(
            "/api/admin/results",
            json={"fixture_id": upcoming.id, "winning_team": "DRAW", "correct": True},
        )
        assert response.status_code == 200
        assert Result.query.one().winning_team == "DRAW"

    def test_override_pick(self, as_admin, admin, alice, upcoming):
        response = as_admin.post(
            "/api/admin/override-pick",
            json={
                "participant_id": alice.id,
                "fixture_id": upcoming.id,
                "picked_team": "CRU",
                "margin": 1,
            },
        )
        assert response.status_code == 200
        event_ = PickEvent.query.one()
        assert (event_.participant_id, event_.actor_id) == (alice.id, admin.id)

    def test_override_delete(self, as_admin, as_alice, alice, upcoming):
        as_alice.post("/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 1})
        response = as_admin.post(
            "/api/admin/override-pick",
            json={"participant_id": alice.id, "fixture_id": upcoming.id, "action": "delete"},
        )
        assert response.status_code == 200
        assert Pick.query.count() == 0

    def test_sync_paper_bets(self, as_admin, as_alice, alice, upcoming, make_odds):
        make_odds(upcoming)
        as_alice.post("/api/picks", json={"fixture_id": upcoming.id, "picked_team": "BLU", "margin": 13})

        response = as_admin.post("/api/admin/sync-paper-bets", json={"participant_id": alice.id})

        assert response.status_code == 200
        assert response.get_json()["upserted"] == 1
