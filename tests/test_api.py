"""Tests for the FastAPI tic-tac-toe interface."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tictactoe import ui
from tictactoe.ui import app


client = TestClient(app)
ui.COMPUTER_MOVE_DELAY = 0.0


def _new_game(**payload) -> dict:
    response = client.post("/api/game", json=payload)
    assert response.status_code == 200
    return response.json()


def _move(game_id: str, cell_index: int):
    return client.post(f"/api/game/{game_id}/move", json={"cellIndex": cell_index})


def test_create_game_defaults_to_two_players():
    payload = _new_game()
    assert payload["mode"] == "two_player"
    assert payload["difficulty"] == "easy"
    assert payload["currentPlayer"] == "X"
    assert payload["status"] == "in_progress"
    assert payload["cells"] == [""] * 9
    assert payload["legalMoves"] == list(range(9))
    assert payload["moveLog"] == []
    assert payload["computerPending"] is False


def test_two_player_game_until_win():
    game_id = _new_game(mode="two_player")["id"]

    for cell_index in (0, 3, 1, 4):
        assert _move(game_id, cell_index).status_code == 200

    response = _move(game_id, 2)
    assert response.status_code == 200
    state = response.json()
    assert state["status"] == "won"
    assert state["winner"] == "X"
    assert state["winningLine"] == [0, 1, 2]
    assert state["legalMoves"] == []
    assert state["lastMove"] == {"player": "X", "cellIndex": 2}
    assert [entry["player"] for entry in state["moveLog"]] == ["X", "O", "X", "O", "X"]

    finished = _move(game_id, 8)
    assert finished.status_code == 400
    assert finished.json()["detail"] == "Game already finished"


def test_two_player_draw():
    game_id = _new_game()["id"]
    for cell_index in (0, 1, 2, 4, 3, 5, 7, 6, 8):
        response = _move(game_id, cell_index)
        assert response.status_code == 200
    state = response.json()
    assert state["status"] == "drawn"
    assert state["drawn"] is True
    assert state["winner"] is None


def test_computer_replies_after_human_move():
    payload = _new_game(mode="computer", difficulty="hard")
    assert payload["mode"] == "computer"
    game_id = payload["id"]

    move_response = _move(game_id, 0)
    assert move_response.status_code == 200
    state = move_response.json()
    assert state["cells"][0] == "X"
    assert state["currentPlayer"] == "O"
    assert state["computerPending"] is True

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["computerPending"] is False
    assert final_state["currentPlayer"] == "X"
    assert final_state["cells"][4] == "O"
    assert final_state["moveLog"][-1] == {"player": "O", "cellIndex": 4}


def test_invalid_move_rejected():
    game_id = _new_game()["id"]
    assert _move(game_id, 0).status_code == 200

    duplicate_move = _move(game_id, 0)
    assert duplicate_move.status_code == 400
    assert duplicate_move.json()["detail"]


def test_out_of_range_cell_rejected():
    game_id = _new_game()["id"]
    assert _move(game_id, 9).status_code == 422
    assert _move(game_id, -1).status_code == 422


def test_rejects_unsupported_difficulty():
    response = client.post("/api/game", json={"mode": "computer", "difficulty": "insane"})
    assert response.status_code == 422


def test_reset_switches_settings_and_clears_board():
    game_id = _new_game()["id"]
    _move(game_id, 4)
    _move(game_id, 0)

    response = client.post(
        f"/api/game/{game_id}/reset", json={"mode": "computer", "difficulty": "medium"}
    )
    assert response.status_code == 200
    state = response.json()
    assert state["id"] == game_id
    assert state["mode"] == "computer"
    assert state["difficulty"] == "medium"
    assert state["cells"] == [""] * 9
    assert state["currentPlayer"] == "X"
    assert state["moveLog"] == []


def test_reset_without_body_keeps_settings():
    game_id = _new_game(mode="computer", difficulty="hard")["id"]
    _move(game_id, 0)

    response = client.post(f"/api/game/{game_id}/reset")
    assert response.status_code == 200
    state = response.json()
    assert state["mode"] == "computer"
    assert state["difficulty"] == "hard"
    assert state["status"] == "in_progress"
    assert state["cells"] == [""] * 9


def test_stale_computer_turn_is_dropped_after_reset():
    game_id, session = ui._create_session(ui.GameMode.COMPUTER, ui.Difficulty.HARD)
    ui._apply_player_move(game_id, session, 0)
    assert session.computer_pending is True
    stale_generation = session.generation

    ui._reset_session(session)
    ui._run_computer_turn(game_id, stale_generation)

    assert session.game.board == [" "] * 9
    assert session.move_log == []
    assert session.computer_pending is False


def test_human_cannot_move_while_computer_pending():
    game_id, session = ui._create_session(ui.GameMode.COMPUTER, ui.Difficulty.EASY)
    ui._apply_player_move(game_id, session, 0)

    blocked = _move(game_id, 1)
    assert blocked.status_code == 400

    ui._run_computer_turn(game_id, session.generation)
    state = client.get(f"/api/game/{game_id}").json()
    assert state["currentPlayer"] == "X"
    assert sum(1 for cell in state["cells"] if cell == "O") == 1


def test_missing_game_returns_404():
    assert client.get("/api/game/unknown").status_code == 404
    assert _move("unknown", 0).status_code == 404


def test_index_serves_page():
    response = client.get("/")
    assert response.status_code == 200
    assert "Tic-Tac-Toe" in response.text


def test_idle_sessions_expire_on_next_create():
    stale_id, stale = ui._create_session(ui.GameMode.TWO_PLAYER, ui.Difficulty.EASY)
    fresh_id, _ = ui._create_session(ui.GameMode.TWO_PLAYER, ui.Difficulty.EASY)
    stale.last_active -= ui.SESSION_TTL_SECONDS + 1

    new_id = _new_game()["id"]

    assert stale_id not in ui.SESSIONS
    assert fresh_id in ui.SESSIONS
    assert new_id in ui.SESSIONS
    assert client.get(f"/api/game/{stale_id}").status_code == 404


def test_move_delay_accepts_fractional_milliseconds(monkeypatch):
    monkeypatch.setenv("TICTACTOE_MOVE_DELAY_MS", "250.5")
    assert ui._move_delay_from_env() == pytest.approx(0.2505)

    monkeypatch.delenv("TICTACTOE_MOVE_DELAY_MS")
    assert ui._move_delay_from_env() == pytest.approx(0.5)
