from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from tictac.logic.enums import Mark
from tictac.logic.exceptions import RoomFullError
from tictac.logic.round import GameState

if TYPE_CHECKING:
    from tictac.session.eviction import EvictionHandle

MAX_PLAYERS = 2


@dataclass
class Player:
    """A room member.

    ``connection_id`` is the current identity and changes on reconnect.
    ``token`` is issued once on admission and is the only way to reclaim the
    seat after the connection drops.
    """

    connection_id: str
    name: str
    role: Mark
    token: str = field(default_factory=lambda: str(uuid4()))


@dataclass
class ChatEntry:
    player_id: str
    player_name: str
    message: str


@dataclass
class Room:
    """One two-player game session.

    All mutation happens while holding ``lock``. ``players`` is keyed by
    connection id; a disconnected player keeps their entry (under the old
    connection id) until reconnect or eviction.
    """

    room_id: str
    game: GameState = field(default_factory=GameState)
    players: dict[str, Player] = field(default_factory=dict)  # connection_id -> Player
    messages: list[ChatEntry] = field(default_factory=list)
    pending_evictions: dict[str, EvictionHandle] = field(default_factory=dict)  # connection_id -> handle
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    created_at: float = field(default_factory=time.monotonic)

    @property
    def age_seconds(self) -> float:
        return time.monotonic() - self.created_at

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def is_full(self) -> bool:
        return self.player_count >= MAX_PLAYERS

    def free_role(self) -> Mark | None:
        """Return the first unassigned mark, X before O."""
        taken = {p.role for p in self.players.values()}
        for mark in Mark:
            if mark not in taken:
                return mark
        return None

    def add_player(self, connection_id: str, name: str) -> Player:
        """Admit a player on the first free mark. Raises RoomFullError."""
        role = self.free_role()
        if self.is_full or role is None:
            raise RoomFullError(self.room_id)
        player = Player(connection_id=connection_id, name=name, role=role)
        self.players[connection_id] = player
        return player

    def remove_player(self, connection_id: str) -> Player | None:
        return self.players.pop(connection_id, None)

    def player_by_token(self, token: str) -> Player | None:
        for player in self.players.values():
            if player.token == token:
                return player
        return None

    def rebind_player(self, player: Player, connection_id: str) -> None:
        """Move ``player`` to a new connection id. Token, name and role are kept."""
        self.players.pop(player.connection_id, None)
        player.connection_id = connection_id
        self.players[connection_id] = player

    def append_message(self, player: Player, message: str) -> ChatEntry:
        entry = ChatEntry(player_id=player.connection_id, player_name=player.name, message=message)
        self.messages.append(entry)
        return entry
