"""Tic-tac-toe package exposing game rules, the minimax opponent, and the web application."""

from .ai import ComputerPlayer, Difficulty, best_move, random_move, select_move
from .game import IllegalMove, Mark, NoLegalMove, TicTacToeGame
from .ui import app

__all__ = [
    "ComputerPlayer",
    "Difficulty",
    "IllegalMove",
    "Mark",
    "NoLegalMove",
    "TicTacToeGame",
    "app",
    "best_move",
    "random_move",
    "select_move",
]
