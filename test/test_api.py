"""
API tests: lobby flow, commands, refusals and error mapping, through
FastAPI's TestClient against a temporary sqlite database.
"""

import json
from contextlib import contextmanager
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from dice_catan.api import main
from dice_catan.api.database import SessionLocal
from dice_catan.api.main import app
from dice_catan.api.models import Game


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as c:
        yield c


def create_solo(client, bots=0, **extra):
    res = client.post("/games/create", json={
        "name": "Solo", "player_id": "host", "player_name": "Host", "bots": bots, **extra,
    })
    assert res.status_code == 200
    return res.json()["game_id"]


def create_lobby(client, host="host"):
    res = client.post("/games/create", json={
        "name": "Lobby", "player_id": host, "player_name": "Host", "is_multiplayer": True,
    })
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "lobby"
    return body["game_id"], body["game_code"]


def rival_joins_before_lock(rival_id):
    """
    Stand-in for game_lock: another player's seat is committed from a separate
    session just before the lock is taken, as a concurrent join would.
    """
    real_lock = main.game_lock

    @contextmanager
    def lock(game_id):
        db = SessionLocal()
        try:
            row = db.query(Game).filter(Game.id == game_id).first()
            seats = json.loads(row.players)
            seats.append({"player_id": rival_id, "name": rival_id.title(), "is_bot": False})
            row.players = json.dumps(seats)
            db.commit()
        finally:
            db.close()
        with real_lock(game_id):
            yield

    return lock


class TestLobby:
    def test_root(self, client):
        assert client.get("/").json()["message"] == "Dice Catan API"

    def test_definitions(self, client):
        body = client.get("/definitions").json()
        assert body["builds"]["city"]["requirement"] == ["ore", "ore", "ore", "wheat", "wheat"]
        assert body["bonuses"]["longest_road"]["threshold"] == 5

    def test_solo_game_is_active(self, client):
        game_id = create_solo(client, bots=1)
        body = client.get(f"/games/{game_id}", params={"player_id": "host"}).json()
        assert body["status"] == "active"
        assert body["can_act"] is True
        assert [p["is_bot"] for p in body["state"]["players"]] == [False, True]

    def test_join_add_bot_and_start(self, client):
        game_id, code = create_lobby(client)
        assert len(code) == 4
        res = client.post("/games/join", json={"game_code": code.lower(), "player_id": "guest", "player_name": "Guest"})
        assert res.status_code == 200
        res = client.post(f"/games/{game_id}/add-bot", json={"player_id": "host"})
        assert res.json()["bot"]["name"] == "Bot 1"
        meta = client.get(f"/games/{game_id}/meta").json()
        assert [p["player_id"] for p in meta["players"]][:2] == ["host", "guest"]

        res = client.post(f"/games/{game_id}/start", json={"player_id": "guest"})
        assert res.status_code == 200
        assert res.json()["state"]["current_player_id"] == "host"

        res = client.post("/games/join", json={"game_code": code, "player_id": "late", "player_name": "Late"})
        assert res.status_code == 400

    def test_lobby_is_capped_at_four(self, client):
        game_id, code = create_lobby(client)
        for i in range(3):
            assert client.post(f"/games/{game_id}/add-bot", json={"player_id": "host"}).status_code == 200
        res = client.post("/games/join", json={"game_code": code, "player_id": "fifth", "player_name": "Fifth"})
        assert res.status_code == 400
        assert client.post(f"/games/{game_id}/add-bot", json={"player_id": "host"}).status_code == 400

    def test_join_keeps_seat_taken_while_waiting_for_lock(self, client):
        game_id, code = create_lobby(client)
        with patch("dice_catan.api.main.game_lock", rival_joins_before_lock("rival")):
            res = client.post("/games/join", json={"game_code": code, "player_id": "guest", "player_name": "Guest"})
        assert res.status_code == 200
        seats = [p["player_id"] for p in client.get(f"/games/{game_id}/meta").json()["players"]]
        assert seats == ["host", "rival", "guest"]

    def test_join_respects_cap_filled_while_waiting_for_lock(self, client):
        game_id, code = create_lobby(client)
        for _ in range(2):
            client.post(f"/games/{game_id}/add-bot", json={"player_id": "host"})
        with patch("dice_catan.api.main.game_lock", rival_joins_before_lock("rival")):
            res = client.post("/games/join", json={"game_code": code, "player_id": "guest", "player_name": "Guest"})
        assert res.status_code == 400
        assert len(client.get(f"/games/{game_id}/meta").json()["players"]) == 4

    def test_commands_before_start_rejected(self, client):
        game_id, _ = create_lobby(client)
        assert client.post(f"/games/{game_id}/roll", json={"player_id": "host"}).status_code == 400

    def test_unknown_game_code(self, client):
        res = client.post("/games/join", json={"game_code": "ZZZZ", "player_id": "x", "player_name": "X"})
        assert res.status_code in (400, 404)


class TestCommands:
    def test_roll_lock_and_end_turn(self, client):
        game_id = create_solo(client)
        res = client.post(f"/games/{game_id}/roll", json={"player_id": "host"})
        assert res.status_code == 200
        body = res.json()
        assert body["state"]["roll_count"] == 1
        assert body["events"][0]["type"] == "dice_rolled"
        assert body["can_act"] is True

        res = client.post(f"/games/{game_id}/toggle-lock", json={"player_id": "host", "die_index": 0})
        assert res.json()["state"]["dice"][0]["locked"] is True

        res = client.post(f"/games/{game_id}/end-turn", json={"player_id": "host"})
        state = res.json()["state"]
        assert state["turn_number"] == 2
        assert state["roll_count"] == 0

    def test_rule_refusal_is_200_with_event(self, client):
        game_id = create_solo(client)
        for _ in range(3):
            client.post(f"/games/{game_id}/roll", json={"player_id": "host"})
        res = client.post(f"/games/{game_id}/roll", json={"player_id": "host"})
        assert res.status_code == 200
        event = res.json()["events"][0]
        assert event["type"] == "action_rejected"
        assert event["payload"]["reason"] == "max_rolls_reached"
        assert res.json()["state"]["roll_count"] == 3

    def test_bad_input_is_400(self, client):
        game_id = create_solo(client)
        res = client.post(f"/games/{game_id}/toggle-lock", json={"player_id": "host", "die_index": 9})
        assert res.status_code == 400
        res = client.post(f"/games/{game_id}/build", json={"player_id": "host", "build_kind": "castle"})
        assert res.status_code == 400

    def test_not_seated_and_not_on_turn_are_403(self, client):
        game_id = create_solo(client, bots=1)
        assert client.post(f"/games/{game_id}/roll", json={"player_id": "stranger"}).status_code == 403
        client.post(f"/games/{game_id}/end-turn", json={"player_id": "host"})
        assert client.post(f"/games/{game_id}/roll", json={"player_id": "host"}).status_code == 403

    def test_unknown_game_is_404(self, client):
        assert client.get("/games/does-not-exist").status_code == 404
        assert client.post("/games/does-not-exist/roll", json={"player_id": "host"}).status_code == 404

    def test_available_actions(self, client):
        game_id = create_solo(client)
        body = client.get(f"/games/{game_id}/available-actions").json()
        assert body["player_id"] == "host"
        assert body["phase"] == "not_rolled"
        assert body["rolls_remaining"] == 3
        assert {o["build_kind"] for o in body["build_options"]} == {"road", "settlement", "city", "knight"}

    def test_bot_step_and_turn(self, client):
        game_id = create_solo(client, bots=1)
        assert client.post(f"/games/{game_id}/bot-step", json={"player_id": "stranger"}).status_code == 403
        # host's turn: bot-step refused
        assert client.post(f"/games/{game_id}/bot-step", json={"player_id": "host"}).status_code == 400
        client.post(f"/games/{game_id}/end-turn", json={"player_id": "host"})
        res = client.post(f"/games/{game_id}/bot-step", json={"player_id": "host"})
        assert res.status_code == 200
        assert res.json()["decisions"][0]["action"] == "roll"
        res = client.post(f"/games/{game_id}/bot-step", json={"player_id": "host", "play_turn": True})
        assert res.status_code == 200
        assert res.json()["decisions"][-1]["action"] == "end_turn"
        assert res.json()["state"]["current_player_id"] == "host"

    def test_turn_limit_finishes_game_row(self, client):
        game_id = create_solo(client, max_turns=1)
        res = client.post(f"/games/{game_id}/end-turn", json={"player_id": "host"})
        assert res.json()["state"]["status"] == "finished"
        assert client.get(f"/games/{game_id}/meta").json()["status"] == "finished"
        res = client.post(f"/games/{game_id}/roll", json={"player_id": "host"})
        assert res.json()["events"][0]["payload"]["reason"] == "game_finished"

    def test_reset_and_delete(self, client):
        game_id = create_solo(client)
        client.post(f"/games/{game_id}/roll", json={"player_id": "host"})
        res = client.post(f"/games/{game_id}/reset", json={"player_id": "host"})
        assert res.json()["state"]["roll_count"] == 0
        assert client.delete(f"/games/{game_id}", params={"player_id": "stranger"}).status_code == 403
        assert client.delete(f"/games/{game_id}", params={"player_id": "host"}).status_code == 200
        assert client.get(f"/games/{game_id}").status_code == 404
