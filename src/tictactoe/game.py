"""Core rules and game state for classic 3x3 tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

EMPTY = " "
BOARD_SIZE = 9

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

# Server-internal: 'X', 'O', or ' ' (space) for empty
Board = List[str]


class Mark(str, Enum):
    X = "X"
    O = "O"

    @property
    def opponent(self) -> "Mark":
        return Mark.O if self is Mark.X else Mark.X


class GameStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    WON = "won"
    DRAWN = "drawn"


class IllegalMove(ValueError):
    """Raised when a move targets an invalid or occupied cell, or a finished game."""


class NoLegalMove(RuntimeError):
    """Raised when a move is requested for a board that is full or already won."""


# ---------- Board rules ----------


def new_board() -> Board:
    return [EMPTY] * BOARD_SIZE


def apply_move(board: Board, index: int, mark: Mark | str) -> None:
    """Place ``mark`` on ``board[index]`` in place."""
    if isinstance(index, bool) or not isinstance(index, int):
        raise IllegalMove(f"Cell index must be an integer, got {index!r}")
    if not 0 <= index < BOARD_SIZE:
        raise IllegalMove(f"Cell index {index} is outside the board")
    if board[index] != EMPTY:
        raise IllegalMove("Cell already occupied")
    board[index] = Mark(mark).value


def check_win(board: Board, mark: Mark | str) -> bool:
    return winning_line(board, mark) is not None


def winning_line(board: Board, mark: Mark | str) -> Optional[Tuple[int, int, int]]:
    """First line fully held by ``mark``, or None."""
    value = Mark(mark).value
    for line in WINNING_LINES:
        a, b, c = line
        if board[a] == board[b] == board[c] == value:
            return line
    return None


def check_draw(board: Board) -> bool:
    # Full board only; a full board holding a line is a win, so check that first.
    return all(cell != EMPTY for cell in board)


def legal_moves(board: Board) -> List[int]:
    return [index for index, cell in enumerate(board) if cell == EMPTY]


def outcome(board: Board) -> Tuple[GameStatus, Optional[Mark]]:
    for mark in Mark:
        if check_win(board, mark):
            return GameStatus.WON, mark
    if check_draw(board):
        return GameStatus.DRAWN, None
    return GameStatus.IN_PROGRESS, None


# ---------- Game ----------


@dataclass
class TicTacToeGame:
    board: Board = field(default_factory=new_board)
    current_player: Mark = Mark.X
    status: GameStatus = GameStatus.IN_PROGRESS
    winner: Optional[Mark] = None
    winning_line: Optional[Tuple[int, int, int]] = None

    @property
    def finished(self) -> bool:
        return self.status is not GameStatus.IN_PROGRESS

    def available_moves(self) -> List[int]:
        if self.finished:
            return []
        return legal_moves(self.board)

    def play_move(self, index: int) -> GameStatus:
        """Apply the current player's move, update the result, and pass the turn."""
        if self.finished:
            raise IllegalMove("Game already finished")

        player = self.current_player
        apply_move(self.board, index, player)

        line = winning_line(self.board, player)
        if line is not None:
            self.status = GameStatus.WON
            self.winner = player
            self.winning_line = line
        elif check_draw(self.board):
            self.status = GameStatus.DRAWN
        else:
            self.current_player = player.opponent
        return self.status

    def reset(self) -> None:
        self.board = new_board()
        self.current_player = Mark.X
        self.status = GameStatus.IN_PROGRESS
        self.winner = None
        self.winning_line = None

    def clone(self) -> "TicTacToeGame":
        return TicTacToeGame(
            board=self.board.copy(),
            current_player=self.current_player,
            status=self.status,
            winner=self.winner,
            winning_line=self.winning_line,
        )
