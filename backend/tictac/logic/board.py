"""
Win and draw detection on a 3x3 board.

The board is a flat list of 9 cells indexed row by row. An empty cell is
the empty string, an occupied cell holds a Mark value.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from tictac.logic.enums import Mark

BOARD_SIZE = 9
EMPTY = ""

# Checked in this order; only the first uniform line is reported.
WINNING_LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


@dataclass(frozen=True)
class WinResult:
    won: bool
    winner: Mark | None = None
    winning_cells: tuple[int, int, int] | None = None


NO_WIN = WinResult(won=False)


def new_board() -> list[str]:
    return [EMPTY] * BOARD_SIZE


def check_win(board: Sequence[str]) -> WinResult:
    """Return the first line whose three cells are non-empty and equal."""
    for line in WINNING_LINES:
        a, b, c = line
        value = board[a]
        if value != EMPTY and value == board[b] == board[c]:
            return WinResult(won=True, winner=Mark(value), winning_cells=line)
    return NO_WIN


def check_draw(board: Sequence[str]) -> bool:
    """True when no cell is empty.

    A full board can also be a win, so callers must rule out check_win first.
    """
    return all(cell != EMPTY for cell in board)
