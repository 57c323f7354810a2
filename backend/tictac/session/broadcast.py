"""Canonical room snapshot and room-scoped broadcast."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

from tictac.logic.enums import Mark
from tictac.messaging.types import ChatEntryView, PlayerView, RoomStateMessage, ScoresView

if TYPE_CHECKING:
    from collections.abc import Mapping

    from tictac.messaging.protocol import ConnectionProtocol
    from tictac.session.models import ChatEntry, Room


def chat_views(messages: list[ChatEntry]) -> list[ChatEntryView]:
    return [
        ChatEntryView(player_id=entry.player_id, player_name=entry.player_name, message=entry.message)
        for entry in messages
    ]


def build_room_state(room: Room) -> RoomStateMessage:
    """Build the full snapshot every client renders from. Tokens are left out."""
    game = room.game
    players = sorted(room.players.values(), key=lambda p: p.role is not Mark.X)
    return RoomStateMessage(
        room_id=room.room_id,
        players=[PlayerView(id=p.connection_id, name=p.name, role=p.role) for p in players],
        board=list(game.board),
        current_player=game.current_player,
        game_active=game.game_active,
        scores=ScoresView(
            wins_x=game.scores.wins_x,
            wins_o=game.scores.wins_o,
            draws=game.scores.draws,
        ),
        messages=chat_views(room.messages),
        winning_cells=list(game.winning_cells) if game.winning_cells is not None else None,
    )


async def broadcast_to_room(
    room: Room,
    connections: Mapping[str, ConnectionProtocol],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> None:
    """Send a message to every room member that still has a live connection.

    Members waiting out a grace period have no entry in ``connections`` and
    are skipped. Snapshot the player ids via list() since a send may yield
    to a coroutine that mutates the room.
    """
    for connection_id in list(room.players):
        if connection_id == exclude_connection_id:
            continue
        connection = connections.get(connection_id)
        if connection is None:
            continue
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.send_message(message)
