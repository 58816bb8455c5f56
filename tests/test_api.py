"""
Tests for the HTTP API (request handling only, see test_main.py for startup)
"""
import pytest
from fastapi.testclient import TestClient

from database import get_settings
from main import app
from models import Track
from api.dependencies import get_clock, get_repository


@pytest.fixture
def client(repository, settings, clock):
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def bet_payload(**overrides):
    payload = {"track": "30s", "bet_type": "color", "bet_value": "green", "amount": 20, "multiplier": 3}
    payload.update(overrides)
    return payload


class TestStatus:

    def test_empty_before_any_round(self, client):
        response = client.get("/api/game/status")
        assert response.status_code == 200
        assert response.json() == {}

    def test_current_round_per_track(self, client, round_manager, clock):
        round_manager.ensure_round(Track.THIRTY_SECONDS)
        clock.set(10, 0, 31)
        round_manager.tick(Track.THIRTY_SECONDS)
        clock.set(10, 0, 36)

        data = client.get("/api/game/status").json()

        assert set(data) == {"30s"}
        status = data["30s"]
        assert status["period"] == "20250115301202"
        assert status["status"] == "open"
        assert status["time_left"] == 24
        assert status["results"] == [{"number": 7, "period": "20250115301201"}]

    def test_time_left_is_rounded_up_and_floored_at_zero(self, client, round_manager, clock):
        round_manager.ensure_round(Track.THIRTY_SECONDS)

        clock.set(10, 0, 7.2)
        assert client.get("/api/game/status").json()["30s"]["time_left"] == 23

        clock.set(10, 0, 45)
        assert client.get("/api/game/status").json()["30s"]["time_left"] == 0


class TestHistory:

    def test_settled_rounds_only(self, client, round_manager, clock):
        round_manager.ensure_round(Track.THIRTY_SECONDS)
        clock.set(10, 0, 31)
        round_manager.tick(Track.THIRTY_SECONDS)

        history = client.get("/api/game/history/30s").json()

        assert len(history) == 1
        assert history[0]["period"] == "20250115301201"
        assert history[0]["status"] == "settled"
        assert history[0]["result_color"] == "green"
        assert history[0]["result_size"] == "big"

    def test_unknown_track(self, client):
        response = client.get("/api/game/history/45s")
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "validation_error"


class TestPlaceBet:

    def test_accepted(self, client, round_manager):
        round_obj = round_manager.ensure_round(Track.THIRTY_SECONDS)

        response = client.post("/api/game/bet", json=bet_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["bet"]["round_id"] == round_obj.id
        assert body["bet"]["total_amount"] == 60
        assert body["bet"]["result"] == "pending"

    def test_below_minimum(self, client, round_manager):
        round_manager.ensure_round(Track.THIRTY_SECONDS)

        response = client.post("/api/game/bet", json=bet_payload(amount=5))

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "validation_error"
        assert "Minimum bet" in response.json()["detail"]["message"]

    def test_invalid_color(self, client, round_manager):
        round_manager.ensure_round(Track.THIRTY_SECONDS)

        response = client.post("/api/game/bet", json=bet_payload(bet_value="purple"))

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "validation_error"
        assert response.json()["detail"]["message"].startswith("Invalid bet")

    def test_unknown_bet_type(self, client, round_manager):
        round_manager.ensure_round(Track.THIRTY_SECONDS)

        response = client.post("/api/game/bet", json=bet_payload(bet_type="parity", bet_value="odd"))

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "validation_error"

    def test_betting_closed(self, client, round_manager, clock):
        round_manager.ensure_round(Track.THIRTY_SECONDS)
        clock.set(10, 0, 27)

        response = client.post("/api/game/bet", json=bet_payload())

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "state_conflict"

    def test_no_open_round(self, client):
        response = client.post("/api/game/bet", json=bet_payload())
        assert response.status_code == 409


class TestMyBets:

    def test_lists_latest_bets(self, client, round_manager):
        round_manager.ensure_round(Track.THIRTY_SECONDS)
        round_manager.ensure_round(Track.ONE_MINUTE)
        client.post("/api/game/bet", json=bet_payload())
        client.post("/api/game/bet", json=bet_payload(track="60s", bet_type="number", bet_value=4))

        everything = client.get("/api/game/my-bets").json()
        only_60 = client.get("/api/game/my-bets", params={"track": "60s"}).json()

        assert len(everything) == 2
        assert everything[0]["track"] == "60s"
        assert [b["bet_value"] for b in only_60] == ["4"]

    def test_unknown_track(self, client):
        assert client.get("/api/game/my-bets", params={"track": "1h"}).status_code == 400


class TestInternalErrors:

    def test_repository_failure_is_not_leaked(self, client, repository):
        def broken(track):
            raise RuntimeError("connection string with password")

        repository.find_latest_round = broken

        response = client.get("/api/game/status")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal error"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "db": "connected"}
