"""
Per-room game state and the two operations that mutate it: applying a move
and starting a new round.
"""

from dataclasses import dataclass, field

from tictac.logic.board import BOARD_SIZE, EMPTY, check_draw, check_win, new_board
from tictac.logic.enums import Mark, MoveOutcome, MoveRejection
from tictac.logic.exceptions import InvalidMoveError


@dataclass
class Scores:
    """Round results for the lifetime of a room. Never reset."""

    wins_x: int = 0
    wins_o: int = 0
    draws: int = 0

    def record_win(self, mark: Mark) -> None:
        if mark is Mark.X:
            self.wins_x += 1
        else:
            self.wins_o += 1


@dataclass
class GameState:
    board: list[str] = field(default_factory=new_board)
    current_player: Mark = Mark.X
    game_active: bool = True
    scores: Scores = field(default_factory=Scores)
    winning_cells: tuple[int, int, int] | None = None
    last_starting_player: Mark = Mark.X


def validate_move(state: GameState, mark: Mark, cell_index: int) -> None:
    """Raise InvalidMoveError unless ``mark`` may play ``cell_index`` now."""
    if not state.game_active:
        raise InvalidMoveError(MoveRejection.GAME_NOT_ACTIVE, cell_index)
    if mark is not state.current_player:
        raise InvalidMoveError(MoveRejection.NOT_YOUR_TURN, cell_index)
    if not 0 <= cell_index < BOARD_SIZE:
        raise InvalidMoveError(MoveRejection.CELL_OUT_OF_RANGE, cell_index)
    if state.board[cell_index] != EMPTY:
        raise InvalidMoveError(MoveRejection.CELL_OCCUPIED, cell_index)


def apply_move(state: GameState, mark: Mark, cell_index: int) -> MoveOutcome:
    """Place ``mark`` and resolve the round.

    A win freezes the game, records the winning line and bumps the winner's
    score. A draw (full board, no win) freezes the game and bumps draws.
    Otherwise the turn passes to the other mark.
    """
    validate_move(state, mark, cell_index)
    state.board[cell_index] = mark.value

    result = check_win(state.board)
    if result.won and result.winner is not None:
        state.game_active = False
        state.winning_cells = result.winning_cells
        state.scores.record_win(result.winner)
        return MoveOutcome.WIN

    if check_draw(state.board):
        state.game_active = False
        state.scores.draws += 1
        return MoveOutcome.DRAW

    state.current_player = state.current_player.opponent
    return MoveOutcome.CONTINUE


def reset_round(state: GameState) -> None:
    """Start a new round; the opening move alternates between marks.

    Scores are untouched. Calling this mid-round abandons the round without
    recording a result.
    """
    state.board = new_board()
    state.winning_cells = None
    state.game_active = True
    state.current_player = state.last_starting_player.opponent
    state.last_starting_player = state.current_player
