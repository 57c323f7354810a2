"""Typed domain exceptions for game rule violations and room lookups.

Rule violations raised by the engine derive from GameRuleError and are
converted to an ``invalidMove`` notice for the acting player by
MessageRouter. Room errors derive from RoomError and are converted to a
``roomError`` reply by SessionManager. Neither is ever broadcast.
"""

from tictac.logic.enums import MoveRejection


class GameRuleError(Exception):
    """Base exception for game rule violations."""


class InvalidMoveError(GameRuleError):
    """A move was refused (wrong turn, occupied cell, inactive game, bad index)."""

    def __init__(self, reason: MoveRejection, cell_index: int | None = None) -> None:
        self.reason = reason
        self.cell_index = cell_index
        super().__init__(f"invalid move at cell {cell_index}: {reason.value}")


class RoomError(Exception):
    """Base exception for room lookup and admission failures."""

    code: str = "room_error"
    user_message: str = "Room error."


class RoomNotFoundError(RoomError):
    code = "room_not_found"
    user_message = "Room not found."

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"room {room_id!r} does not exist")


class RoomFullError(RoomError):
    code = "room_full"
    user_message = "Room is full."

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"room {room_id!r} already has two players")


class RoomCapacityError(RoomError):
    """The registry cannot hold another room (limit reached or no free id)."""

    code = "server_at_capacity"
    user_message = "Server is at capacity, try again later."
