"""Room registry: owns every live room, keyed by its short shareable id."""

import secrets
from collections.abc import Callable

import structlog

from tictac.logic.exceptions import RoomCapacityError
from tictac.session.models import Room

logger = structlog.get_logger()

# No I, O, 0 or 1: ids are read aloud and typed by hand.
ROOM_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_ID_LENGTH = 4

_MAX_ID_ATTEMPTS = 64


def generate_room_id() -> str:
    return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))


class RoomRegistry:
    """In-memory map of room id -> Room.

    None of these methods await, so id generation and insertion cannot
    interleave with another coroutine's create(). Per-room state is guarded
    by each room's own lock, not by the registry.
    """

    def __init__(
        self,
        *,
        max_rooms: int | None = None,
        id_factory: Callable[[], str] = generate_room_id,
    ) -> None:
        self._rooms: dict[str, Room] = {}
        self._max_rooms = max_rooms
        self._id_factory = id_factory

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def at_capacity(self) -> bool:
        return self._max_rooms is not None and len(self._rooms) >= self._max_rooms

    def create(self) -> Room:
        """Create and register a room under a fresh id. Raises RoomCapacityError."""
        if self.at_capacity:
            raise RoomCapacityError(f"room limit {self._max_rooms} reached")
        for _ in range(_MAX_ID_ATTEMPTS):
            room_id = self._id_factory()
            if room_id not in self._rooms:
                room = Room(room_id=room_id)
                self._rooms[room_id] = room
                logger.info("room created", room_id=room_id, room_count=len(self._rooms))
                return room
            logger.debug("room id collision, regenerating", room_id=room_id)
        raise RoomCapacityError(f"no free room id after {_MAX_ID_ATTEMPTS} attempts")

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def delete(self, room_id: str) -> Room | None:
        room = self._rooms.pop(room_id, None)
        if room is not None:
            logger.info(
                "room deleted",
                room_id=room_id,
                room_count=len(self._rooms),
                age_seconds=round(room.age_seconds, 1),
            )
        return room

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def find_by_token(self, token: str) -> Room | None:
        """Linear scan for the room holding a player with ``token``."""
        for room in list(self._rooms.values()):
            if room.player_by_token(token) is not None:
                return room
        return None

    def clear(self) -> None:
        self._rooms.clear()
