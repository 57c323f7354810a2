from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog

from shared.text import escape_markup
from tictac.logic.enums import MoveOutcome
from tictac.logic.exceptions import RoomCapacityError, RoomError, RoomFullError, RoomNotFoundError
from tictac.logic.round import apply_move, reset_round
from tictac.messaging.types import (
    MessageReceivedMessage,
    OpponentFoundMessage,
    PlayerDisconnectedMessage,
    PongMessage,
    ReconnectFailedMessage,
    ReconnectSuccessMessage,
    RoomCreatedMessage,
    RoomErrorCode,
    RoomErrorMessage,
    RoomJoinedMessage,
    WaitingForOpponentMessage,
)
from tictac.session.broadcast import broadcast_to_room, build_room_state, chat_views
from tictac.session.eviction import DEFAULT_GRACE_SECONDS, EvictionHandle, EvictionScheduler
from tictac.session.matchmaking import MatchmakingQueue
from tictac.session.registry import RoomRegistry

if TYPE_CHECKING:
    from tictac.messaging.protocol import ConnectionProtocol
    from tictac.messaging.types import WireModel
    from tictac.session.models import Room

logger = structlog.get_logger()


class SessionManager:
    """
    Connection identity, room membership and the per-room state machine.

    Every room mutation and the broadcast that follows it happen under that
    room's lock. Registry and matchmaking queue operations never await, so
    they need no lock of their own and never hold a room lock.
    """

    def __init__(
        self,
        *,
        disconnect_grace_seconds: float = DEFAULT_GRACE_SECONDS,
        max_rooms: int | None = None,
        registry: RoomRegistry | None = None,
    ) -> None:
        self._registry = registry if registry is not None else RoomRegistry(max_rooms=max_rooms)
        self._queue = MatchmakingQueue()
        self._connections: dict[str, ConnectionProtocol] = {}
        self._memberships: dict[str, str] = {}  # connection_id -> room_id
        self._evictions = EvictionScheduler(self._expire_player, grace_seconds=disconnect_grace_seconds)

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        # A connection displaced by reconnect was already replaced; keep the new one.
        if self._connections.get(connection.connection_id) is connection:
            del self._connections[connection.connection_id]
        self._memberships.pop(connection.connection_id, None)

    def get_room(self, room_id: str) -> Room | None:
        return self._registry.get(room_id)

    def room_of(self, connection_id: str) -> str | None:
        return self._memberships.get(connection_id)

    @property
    def room_count(self) -> int:
        return self._registry.room_count

    @property
    def waiting_count(self) -> int:
        return len(self._queue)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def pending_eviction_count(self) -> int:
        return self._evictions.pending_count

    @property
    def oldest_room_age_seconds(self) -> float:
        return max((room.age_seconds for room in self._registry.rooms()), default=0.0)

    # --- Sending ---

    async def _send(self, connection: ConnectionProtocol, message: WireModel) -> None:
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.send_message(message.to_wire())

    async def _send_room_error(self, connection: ConnectionProtocol, code: RoomErrorCode, message: str) -> None:
        logger.warning("room error sent to client", error_code=code.value, error_message=message)
        await self._send(connection, RoomErrorMessage(code=code, message=message))

    async def _send_room_exception(self, connection: ConnectionProtocol, error: RoomError) -> None:
        await self._send_room_error(connection, RoomErrorCode(error.code), error.user_message)

    async def _broadcast_state(self, room: Room) -> None:
        """Push the canonical snapshot to every connected member. Call under ``room.lock``."""
        await broadcast_to_room(room, self._connections, build_room_state(room).to_wire())

    async def _reject_if_busy(self, connection: ConnectionProtocol) -> bool:
        """Refuse create/join/find from a connection already seated or queued."""
        connection_id = connection.connection_id
        if connection_id in self._memberships or connection_id in self._queue:
            await self._send_room_error(
                connection,
                RoomErrorCode.ALREADY_IN_ROOM,
                "Already in a room or waiting for an opponent.",
            )
            return True
        return False

    def _is_live(self, room: Room) -> bool:
        """True while ``room`` is still the registered room under its id."""
        return self._registry.get(room.room_id) is room

    # --- Rooms ---

    async def create_room(self, connection: ConnectionProtocol, name: str) -> None:
        if await self._reject_if_busy(connection):
            return
        try:
            room = self._registry.create()
        except RoomCapacityError as e:
            await self._send_room_exception(connection, e)
            return

        async with room.lock:
            player = room.add_player(connection.connection_id, escape_markup(name))
            self._memberships[connection.connection_id] = room.room_id
            structlog.contextvars.bind_contextvars(room_id=room.room_id)
            logger.info("player created room", player=player.name, role=player.role)
            await self._send(
                connection,
                RoomCreatedMessage(room_id=room.room_id, player_token=player.token, role=player.role),
            )
            await self._broadcast_state(room)

    async def join_room(self, connection: ConnectionProtocol, room_id: str, name: str) -> None:
        if await self._reject_if_busy(connection):
            return
        room = self._registry.get(room_id)
        if room is None:
            await self._send_room_exception(connection, RoomNotFoundError(room_id))
            return

        async with room.lock:
            # the room may have been evicted while we waited for the lock
            if not self._is_live(room):
                await self._send_room_exception(connection, RoomNotFoundError(room_id))
                return
            try:
                player = room.add_player(connection.connection_id, escape_markup(name))
            except RoomFullError as e:
                await self._send_room_exception(connection, e)
                return
            self._memberships[connection.connection_id] = room.room_id
            structlog.contextvars.bind_contextvars(room_id=room.room_id)
            logger.info("player joined room", player=player.name, role=player.role)
            await self._send(
                connection,
                RoomJoinedMessage(room_id=room.room_id, player_token=player.token, role=player.role),
            )
            await self._broadcast_state(room)

    # --- Matchmaking ---

    async def find_opponent(self, connection: ConnectionProtocol, name: str) -> None:
        """Pair with the longest-waiting player, or wait in the queue.

        The waiter becomes X and the arrival O.
        """
        if await self._reject_if_busy(connection):
            return
        name = escape_markup(name)

        while True:
            waiter = self._queue.enqueue_or_pair(connection.connection_id, name)
            if waiter is None:
                logger.info("player waiting for opponent", player=name, waiting=len(self._queue))
                await self._send(connection, WaitingForOpponentMessage())
                return
            waiter_connection = self._connections.get(waiter.connection_id)
            if waiter_connection is not None:
                break
            logger.warning("dropping matchmaking entry without a connection", connection_id=waiter.connection_id)

        try:
            room = self._registry.create()
        except RoomCapacityError as e:
            self._queue.push_front(waiter)
            await self._send_room_exception(connection, e)
            return

        async with room.lock:
            first = room.add_player(waiter.connection_id, waiter.name)
            second = room.add_player(connection.connection_id, name)
            self._memberships[waiter.connection_id] = room.room_id
            self._memberships[connection.connection_id] = room.room_id
            structlog.contextvars.bind_contextvars(room_id=room.room_id)
            logger.info("players paired", first=first.name, second=second.name)
            await self._send(
                waiter_connection,
                OpponentFoundMessage(room_id=room.room_id, player_token=first.token, role=first.role),
            )
            await self._send(
                connection,
                OpponentFoundMessage(room_id=room.room_id, player_token=second.token, role=second.role),
            )
            await self._broadcast_state(room)

    async def cancel_find_opponent(self, connection: ConnectionProtocol) -> None:
        if self._queue.cancel(connection.connection_id):
            logger.info("matchmaking cancelled", waiting=len(self._queue))

    # --- Gameplay ---

    async def make_move(self, connection: ConnectionProtocol, room_id: str, cell_index: int) -> None:
        """Apply a move for the caller's mark.

        Unknown rooms and non-members are ignored. Rule violations raise
        InvalidMoveError for the router to report to the caller.
        """
        room = self._registry.get(room_id)
        if room is None:
            return
        async with room.lock:
            player = room.players.get(connection.connection_id)
            if player is None or not self._is_live(room):
                return
            outcome = apply_move(room.game, player.role, cell_index)
            if outcome is MoveOutcome.WIN:
                logger.info("round won", winner=player.name, role=player.role, room_id=room.room_id)
            elif outcome is MoveOutcome.DRAW:
                logger.info("round drawn", room_id=room.room_id)
            await self._broadcast_state(room)

    async def send_message(self, connection: ConnectionProtocol, room_id: str, text: str) -> None:
        room = self._registry.get(room_id)
        if room is None:
            return
        async with room.lock:
            player = room.players.get(connection.connection_id)
            if player is None or not self._is_live(room):
                return
            room.append_message(player, escape_markup(text))
            await broadcast_to_room(
                room,
                self._connections,
                MessageReceivedMessage(messages=chat_views(room.messages)).to_wire(),
            )

    async def reset_game(self, connection: ConnectionProtocol, room_id: str) -> None:
        room = self._registry.get(room_id)
        if room is None:
            return
        async with room.lock:
            player = room.players.get(connection.connection_id)
            if player is None or not self._is_live(room):
                return
            reset_round(room.game)
            logger.info("round reset", player=player.name, starting_player=room.game.current_player)
            await self._broadcast_state(room)

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await self._send(connection, PongMessage())

    # --- Reconnection ---

    async def reconnect(self, connection: ConnectionProtocol, token: str) -> None:
        """Reclaim a seat with its token.

        The player's connection id is swapped for the caller's; name, role
        and token are kept. A connection still bound to the old id is
        displaced and closed outside the room lock.
        """
        connection_id = connection.connection_id
        room = self._registry.find_by_token(token)
        if room is None:
            logger.info("reconnect failed, unknown token")
            await self._send(connection, ReconnectFailedMessage())
            return

        current_room_id = self._memberships.get(connection_id)
        if current_room_id is not None and current_room_id != room.room_id:
            logger.warning("reconnect refused, connection seated elsewhere", current_room_id=current_room_id)
            await self._send(connection, ReconnectFailedMessage())
            return

        stale_connections: list[ConnectionProtocol] = []
        try:
            async with room.lock:
                # Revalidate inside the lock: the seat may have been evicted,
                # or reclaimed by a concurrent reconnect, while we waited.
                player = room.player_by_token(token)
                if player is None or not self._is_live(room):
                    logger.info("reconnect failed, seat no longer held", room_id=room.room_id)
                    await self._send(connection, ReconnectFailedMessage())
                    return

                seated = room.players.get(connection_id)
                if seated is not None and seated is not player:
                    logger.warning("reconnect refused, connection holds the other seat", room_id=room.room_id)
                    await self._send(connection, ReconnectFailedMessage())
                    return

                old_connection_id = player.connection_id
                if old_connection_id != connection_id:
                    self._evictions.cancel(room, old_connection_id)
                    self._memberships.pop(old_connection_id, None)
                    stale = self._connections.pop(old_connection_id, None)
                    if stale is not None:
                        stale_connections.append(stale)
                    room.rebind_player(player, connection_id)
                self._queue.cancel(connection_id)
                self._memberships[connection_id] = room.room_id

                structlog.contextvars.bind_contextvars(room_id=room.room_id)
                logger.info("player reconnected", player=player.name, role=player.role)
                await self._send(connection, ReconnectSuccessMessage(room_id=room.room_id))
                await self._broadcast_state(room)
        finally:
            for stale_connection in stale_connections:
                with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                    await stale_connection.close(code=1000, reason="replaced_by_reconnect")

    # --- Disconnection ---

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Start the grace period for a dropped connection.

        The matchmaking entry goes first so nobody is paired with a dead
        connection. A seated player keeps their seat until the eviction fires.
        """
        connection_id = connection.connection_id
        if self._queue.cancel(connection_id):
            logger.info("waiting player disconnected", waiting=len(self._queue))

        room_id = self._memberships.pop(connection_id, None)
        if room_id is None:
            return
        room = self._registry.get(room_id)
        if room is None:
            return

        async with room.lock:
            player = room.players.get(connection_id)
            if player is None or not self._is_live(room):
                return
            logger.info("player disconnected, holding seat", player=player.name, room_id=room_id)
            self._evictions.schedule(room, player)
            await broadcast_to_room(
                room,
                self._connections,
                PlayerDisconnectedMessage(player_name=player.name).to_wire(),
                exclude_connection_id=connection_id,
            )

    async def _expire_player(self, handle: EvictionHandle) -> None:
        """Eviction callback: remove the player if the handle still applies."""
        room = self._registry.get(handle.room_id)
        if room is None:
            return
        async with room.lock:
            if room.pending_evictions.get(handle.connection_id) is not handle:
                return
            del room.pending_evictions[handle.connection_id]
            player = room.players.get(handle.connection_id)
            if player is None or player.token != handle.token:
                return
            room.remove_player(handle.connection_id)
            logger.info("player evicted after grace period", player=player.name, room_id=room.room_id)
            if room.is_empty:
                self._registry.delete(room.room_id)
                return
            await self._broadcast_state(room)

    def shutdown(self) -> None:
        """Cancel pending evictions and drop all rooms and waiters."""
        pending = self._evictions.pending_count
        self._evictions.cancel_all()
        self._queue.clear()
        self._registry.clear()
        self._memberships.clear()
        logger.info("session manager shut down", cancelled_evictions=pending)
