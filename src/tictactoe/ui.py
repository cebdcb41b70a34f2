"""FastAPI-powered web UI for playing tic-tac-toe in the browser."""

from __future__ import annotations

import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import threading

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field

from .ai import ComputerPlayer, Difficulty
from .game import GameStatus, IllegalMove, Mark, TicTacToeGame

logger = logging.getLogger(__name__)


class GameMode(str, Enum):
    TWO_PLAYER = "two_player"
    COMPUTER = "computer"


def _move_delay_from_env() -> float:
    """Seconds the computer "thinks" before replying, from milliseconds in the env."""
    return float(os.environ.get("TICTACTOE_MOVE_DELAY_MS", "500")) / 1000


COMPUTER_MOVE_DELAY: float = _move_delay_from_env()
COMPUTER_MARK = Mark.O
SESSION_TTL_SECONDS = 60 * 60  # 1 hour idle


@dataclass
class GameSession:
    """Container for an active game and, in computer mode, its opponent."""

    game: TicTacToeGame
    mode: GameMode
    difficulty: Difficulty
    computer: Optional[ComputerPlayer]
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    computer_pending: bool = False
    # Bumped on reset so a computer turn scheduled earlier is dropped.
    generation: int = 0
    last_active: float = field(default_factory=lambda: time.time())
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(
    title="Tic-Tac-Toe",
    description="Tic-tac-toe against a friend or the computer, in the browser",
)


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    mode: GameMode = Field(
        default=GameMode.TWO_PLAYER,
        description="Hot-seat two player game or a game against the computer",
    )
    difficulty: Difficulty = Field(
        default=Difficulty.EASY,
        description="Computer strength, ignored in two player mode",
    )


class ResetRequest(BaseModel):
    """Optional settings to switch while resetting a game."""

    mode: Optional[GameMode] = None
    difficulty: Optional[Difficulty] = None


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


def _cleanup_sessions() -> None:
    """Drop sessions that have been idle longer than the TTL."""

    now = time.time()
    expired = [
        game_id
        for game_id, session in list(SESSIONS.items())
        if now - session.last_active >= SESSION_TTL_SECONDS
    ]
    for game_id in expired:
        SESSIONS.pop(game_id, None)
    if expired:
        logger.info("Expired %d idle game(s)", len(expired))


def _make_computer(mode: GameMode, difficulty: Difficulty) -> Optional[ComputerPlayer]:
    if mode is GameMode.COMPUTER:
        return ComputerPlayer(mark=COMPUTER_MARK, difficulty=difficulty)
    return None


def _create_session(mode: GameMode, difficulty: Difficulty) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    session = GameSession(
        game=TicTacToeGame(),
        mode=mode,
        difficulty=difficulty,
        computer=_make_computer(mode, difficulty),
    )
    _cleanup_sessions()
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("Created %s game %s (%s)", mode.value, session_id, difficulty.value)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        session = SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    session.last_active = time.time()
    return session


def _run_computer_turn(game_id: str, generation: int) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, COMPUTER_MOVE_DELAY))

    with session.lock:
        if session.generation != generation:
            logger.debug("Dropping stale computer turn for game %s", game_id)
            return
        try:
            if not session.computer:
                return
            game = session.game
            if game.finished:
                return
            if game.current_player != session.computer.mark:
                return
            cell_index = session.computer.choose(game)
            game.play_move(cell_index)
            session.move_log.append(
                {"player": session.computer.mark.value, "cellIndex": cell_index}
            )
            logger.debug("Computer played %d in game %s", cell_index, game_id)
        finally:
            session.computer_pending = False


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        state: Dict[str, object] = {
            "id": game_id,
            "mode": session.mode.value,
            "difficulty": session.difficulty.value,
            "cells": [c if c in ("X", "O") else "" for c in game.board],
            "currentPlayer": game.current_player.value,
            "status": game.status.value,
            "winner": game.winner.value if game.winner else None,
            "winningLine": list(game.winning_line) if game.winning_line else None,
            "drawn": game.status is GameStatus.DRAWN,
            "legalMoves": game.available_moves(),
            "moveLog": list(session.move_log),
            "computerPending": session.computer_pending,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    should_schedule_computer = False
    with session.lock:
        game = session.game
        if game.finished:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.computer_pending:
            raise HTTPException(
                status_code=400, detail="Computer is completing its move"
            )

        if session.computer and game.current_player == session.computer.mark:
            raise HTTPException(status_code=400, detail="It is the computer's turn")

        player = game.current_player
        try:
            game.play_move(cell_index)
        except IllegalMove as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        session.move_log.append({"player": player.value, "cellIndex": cell_index})
        if game.finished:
            logger.info(
                "Game %s finished: %s%s",
                game_id,
                game.status.value,
                f" by {game.winner.value}" if game.winner else "",
            )

        should_schedule_computer = bool(
            session.computer
            and not game.finished
            and game.current_player == session.computer.mark
        )
        if should_schedule_computer:
            session.computer_pending = True
        generation = session.generation

    if should_schedule_computer and background_tasks is not None:
        background_tasks.add_task(_run_computer_turn, game_id, generation)


def _reset_session(
    session: GameSession,
    mode: Optional[GameMode] = None,
    difficulty: Optional[Difficulty] = None,
) -> None:
    with session.lock:
        if mode is not None:
            session.mode = mode
        if difficulty is not None:
            session.difficulty = difficulty
        session.computer = _make_computer(session.mode, session.difficulty)
        session.game.reset()
        session.move_log.clear()
        session.computer_pending = False
        session.generation += 1


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request.mode, request.difficulty)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.cell_index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(
    game_id: str, request: Optional[ResetRequest] = None
) -> Dict[str, object]:
    session = _get_session(game_id)
    if request is None:
        _reset_session(session)
    else:
        _reset_session(session, request.mode, request.difficulty)
    logger.info("Reset game %s", game_id)
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic-Tac-Toe</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem 3rem;
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: clamp(1.5rem, 4vw, 2.5rem);
        width: min(460px, 100%);
        text-align: center;
      }
      h1 {
        margin: 0 0 1.25rem;
        letter-spacing: 0.06em;
      }
      .controls {
        display: flex;
        flex-wrap: wrap;
        gap: 0.75rem;
        justify-content: center;
        align-items: center;
        margin-bottom: 1.25rem;
      }
      button,
      select {
        font-size: 1rem;
        padding: 0.55rem 0.95rem;
        border-radius: 999px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
        cursor: pointer;
        font-family: inherit;
      }
      .hidden {
        display: none;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.5rem;
        margin: 0 auto 1rem;
        width: min(320px, 100%);
      }
      .board.thinking {
        opacity: 0.75;
      }
      .cell {
        aspect-ratio: 1;
        border-radius: 14px;
        font-size: 2.4rem;
        font-weight: 700;
        padding: 0;
      }
      .cell.x {
        color: #3a66ff;
      }
      .cell.o {
        color: #ff5a7a;
      }
      .cell.winning {
        background: #ffe27a;
      }
      .cell:disabled {
        cursor: default;
      }
      #status {
        font-weight: 600;
        min-height: 1.5rem;
      }
      #message {
        color: #b4233c;
        min-height: 1.25rem;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>Tic-Tac-Toe</h1>
      <div class=\"controls\">
        <label for=\"gameMode\">Mode</label>
        <select id=\"gameMode\">
          <option value=\"two_player\">Two players</option>
          <option value=\"computer\">Against the computer</option>
        </select>
        <span class=\"computer-only hidden\">
          <label for=\"difficulty\">Difficulty</label>
          <select id=\"difficulty\">
            <option value=\"easy\">Easy</option>
            <option value=\"medium\">Medium</option>
            <option value=\"hard\">Hard</option>
          </select>
        </span>
      </div>
      <div id=\"board\" class=\"board\"></div>
      <p id=\"status\">Player X's turn</p>
      <p id=\"message\"></p>
      <button id=\"reset\" type=\"button\">Reset</button>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const messageEl = document.getElementById('message');
      const modeEl = document.getElementById('gameMode');
      const difficultyEl = document.getElementById('difficulty');
      const computerOnly = document.querySelector('.computer-only');
      const resetButton = document.getElementById('reset');

      let gameId = null;
      let gameState = null;
      let pollHandle = null;
      let isRequestPending = false;

      function stopPolling() {
        if (pollHandle !== null) {
          clearTimeout(pollHandle);
          pollHandle = null;
        }
      }

      function ensurePolling() {
        if (pollHandle !== null) return;
        pollHandle = window.setTimeout(pollState, 250);
      }

      function updateStatus() {
        if (!gameState) return;
        if (gameState.status === 'won') {
          statusEl.textContent =
            gameState.mode === 'computer' && gameState.winner === 'O'
              ? 'Computer wins!'
              : `Player ${gameState.winner} wins!`;
        } else if (gameState.status === 'drawn') {
          statusEl.textContent = 'Game ended in a draw!';
        } else if (gameState.computerPending) {
          statusEl.textContent = "Computer's turn...";
        } else {
          statusEl.textContent = `Player ${gameState.currentPlayer}'s turn`;
        }
      }

      function renderBoard() {
        boardEl.innerHTML = '';
        if (!gameState) return;
        const legal = new Set(gameState.legalMoves || []);
        const winning = new Set(gameState.winningLine || []);
        boardEl.classList.toggle('thinking', Boolean(gameState.computerPending));
        gameState.cells.forEach((value, index) => {
          const cell = document.createElement('button');
          cell.type = 'button';
          cell.classList.add('cell');
          cell.dataset.cell = String(index);
          cell.textContent = value;
          if (value) {
            cell.classList.add(value.toLowerCase());
          }
          if (winning.has(index)) {
            cell.classList.add('winning');
          }
          cell.disabled = !legal.has(index) || gameState.computerPending;
          cell.addEventListener('click', () => sendMove(index));
          boardEl.appendChild(cell);
        });
      }

      function setState(data) {
        gameId = data.id;
        gameState = data;
        renderBoard();
        updateStatus();
        if (gameState.computerPending && gameState.status === 'in_progress') {
          ensurePolling();
        } else {
          stopPolling();
        }
      }

      async function postJson(url, body) {
        const response = await fetch(url, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify(body),
        });
        if (!response.ok) {
          const payload = await response.json().catch(() => ({}));
          throw new Error(payload?.detail || 'Request failed');
        }
        return response.json();
      }

      function currentSettings() {
        return { mode: modeEl.value, difficulty: difficultyEl.value };
      }

      async function startGame() {
        stopPolling();
        messageEl.textContent = '';
        try {
          setState(await postJson('/api/game', currentSettings()));
        } catch (error) {
          messageEl.textContent = error.message || 'Network error. Please try again.';
        }
      }

      async function resetGame() {
        if (!gameId) {
          await startGame();
          return;
        }
        stopPolling();
        messageEl.textContent = '';
        try {
          setState(await postJson(`/api/game/${gameId}/reset`, currentSettings()));
        } catch (error) {
          messageEl.textContent = error.message || 'Network error. Please try again.';
        }
      }

      async function pollState() {
        pollHandle = null;
        if (!gameId) return;
        try {
          const response = await fetch(`/api/game/${gameId}`);
          if (!response.ok) return;
          setState(await response.json());
        } catch (error) {
          console.error('Polling failed', error);
        } finally {
          if (gameState?.computerPending && gameState.status === 'in_progress') {
            ensurePolling();
          }
        }
      }

      async function sendMove(index) {
        if (!gameState || gameState.status !== 'in_progress' || isRequestPending) {
          return;
        }
        isRequestPending = true;
        messageEl.textContent = '';
        try {
          setState(await postJson(`/api/game/${gameId}/move`, { cellIndex: index }));
        } catch (error) {
          messageEl.textContent = error.message || 'Invalid move';
        } finally {
          isRequestPending = false;
        }
      }

      modeEl.addEventListener('change', () => {
        computerOnly.classList.toggle('hidden', modeEl.value !== 'computer');
        resetGame();
      });
      difficultyEl.addEventListener('change', resetGame);
      resetButton.addEventListener('click', resetGame);

      startGame();
    </script>
  </body>
</html>
"""
