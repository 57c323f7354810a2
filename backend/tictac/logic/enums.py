"""
String enum definitions for tic-tac-toe game concepts.
"""

from enum import StrEnum


class Mark(StrEnum):
    """Symbol a player places on the board. Also used as the player's role."""

    X = "X"
    O = "O"  # noqa: E741

    @property
    def opponent(self) -> "Mark":
        return Mark.O if self is Mark.X else Mark.X


class MoveOutcome(StrEnum):
    """Result of applying a legal move."""

    CONTINUE = "continue"
    WIN = "win"
    DRAW = "draw"


class MoveRejection(StrEnum):
    """Reasons a move is refused. Reported to the acting player only."""

    GAME_NOT_ACTIVE = "game_not_active"
    NOT_YOUR_TURN = "not_your_turn"
    CELL_OUT_OF_RANGE = "cell_out_of_range"
    CELL_OCCUPIED = "cell_occupied"
