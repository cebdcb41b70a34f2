"""Exhaustive minimax opponent with difficulty blending for tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging
import math
import random

from .game import (
    EMPTY,
    Board,
    Mark,
    NoLegalMove,
    TicTacToeGame,
    check_draw,
    check_win,
    legal_moves,
)

logger = logging.getLogger(__name__)

WIN_SCORE = 1
LOSS_SCORE = -1
DRAW_SCORE = 0


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def _ensure_playable(board: Board) -> None:
    if check_win(board, Mark.X) or check_win(board, Mark.O):
        raise NoLegalMove("Game already decided")
    if check_draw(board):
        raise NoLegalMove("No valid moves available")


# ---- core search ----


def minimax_value(
    board: Board, maximizing: bool, computer: Mark | str = Mark.O
) -> int:
    """Score ``board`` for ``computer`` assuming perfect play from here.

    ``maximizing`` is True when the computer is the side to move. Leaves score
    +1 for a computer win, -1 for an opponent win and 0 for a draw. The board
    is mutated during the search and restored before returning.
    """
    me = Mark(computer)
    opp = me.opponent

    if check_win(board, me):
        return WIN_SCORE
    if check_win(board, opp):
        return LOSS_SCORE
    if check_draw(board):
        return DRAW_SCORE

    if maximizing:
        best = -math.inf
        for index in legal_moves(board):
            board[index] = me.value
            score = minimax_value(board, False, me)
            board[index] = EMPTY
            best = max(best, score)
    else:
        best = math.inf
        for index in legal_moves(board):
            board[index] = opp.value
            score = minimax_value(board, True, me)
            board[index] = EMPTY
            best = min(best, score)
    return int(best)


def best_move(board: Board, computer_mark: Mark | str) -> int:
    """Optimal cell for ``computer_mark``; ties go to the lowest index."""
    _ensure_playable(board)
    me = Mark(computer_mark)

    best_score = -math.inf
    best_index = -1
    for index in legal_moves(board):
        board[index] = me.value
        try:
            score = minimax_value(board, False, me)
        finally:
            board[index] = EMPTY
        if score > best_score:
            best_score, best_index = score, index

    logger.debug("best move for %s is %d (score %d)", me.value, best_index, best_score)
    return best_index


def random_move(board: Board, rng: Optional[random.Random] = None) -> int:
    _ensure_playable(board)
    chooser = rng or random
    return chooser.choice(legal_moves(board))


def select_move(
    board: Board,
    mark: Mark | str,
    difficulty: Difficulty | str,
    rng: Optional[random.Random] = None,
) -> int:
    """Pick a move for ``mark`` according to ``difficulty``.

    Easy always plays randomly, hard always plays the minimax move and medium
    flips a fair coin on every call.
    """
    level = Difficulty(difficulty)
    chooser = rng or random
    if level is Difficulty.EASY:
        return random_move(board, chooser)
    if level is Difficulty.HARD:
        return best_move(board, mark)
    # Medium
    if chooser.random() < 0.5:
        return best_move(board, mark)
    return random_move(board, chooser)


@dataclass
class ComputerPlayer:
    """Computer opponent bound to a mark and a difficulty level."""

    mark: Mark = Mark.O
    difficulty: Difficulty = Difficulty.EASY
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def choose(self, game: TicTacToeGame) -> int:
        if game.current_player != self.mark:
            raise ValueError("It is not this computer player's turn")
        return select_move(game.board, self.mark, self.difficulty, self.rng)
