from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from tictac.logic.exceptions import InvalidMoveError
from tictac.messaging.types import (
    CancelFindOpponentMessage,
    CreateRoomMessage,
    ErrorMessage,
    FindOpponentMessage,
    InvalidMoveMessage,
    JoinRoomMessage,
    MakeMoveMessage,
    PingMessage,
    ReconnectGameMessage,
    ResetGameMessage,
    SendMessageMessage,
    SessionErrorCode,
    parse_client_message,
)

if TYPE_CHECKING:
    from tictac.messaging.protocol import ConnectionProtocol
    from tictac.session.manager import SessionManager

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes incoming messages to appropriate handlers.

    This class contains pure business logic and can be tested
    without real WebSocket connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await self._send_error(connection, SessionErrorCode.INVALID_MESSAGE, str(e))
            return

        try:
            await self._dispatch(connection, message)
        except InvalidMoveError as e:
            logger.info("move rejected for %s: %s", connection.connection_id, e)
            await connection.send_message(
                InvalidMoveMessage(reason=e.reason, cell_index=e.cell_index).to_wire(),
            )
        except Exception:
            logger.exception("error handling %s from %s", type(message).__name__, connection.connection_id)
            await self._send_error(connection, SessionErrorCode.INTERNAL_ERROR, "Internal server error")

    async def _dispatch(self, connection: ConnectionProtocol, message: Any) -> None:
        manager = self._session_manager
        if isinstance(message, CreateRoomMessage):
            await manager.create_room(connection, message.name)
        elif isinstance(message, JoinRoomMessage):
            await manager.join_room(connection, message.room_id, message.player_name)
        elif isinstance(message, FindOpponentMessage):
            await manager.find_opponent(connection, message.name)
        elif isinstance(message, CancelFindOpponentMessage):
            await manager.cancel_find_opponent(connection)
        elif isinstance(message, MakeMoveMessage):
            await manager.make_move(connection, message.room_id, message.cell_index)
        elif isinstance(message, ResetGameMessage):
            await manager.reset_game(connection, message.room_id)
        elif isinstance(message, SendMessageMessage):
            await manager.send_message(connection, message.room_id, message.message)
        elif isinstance(message, ReconnectGameMessage):
            await manager.reconnect(connection, message.player_token)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection)

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        await connection.send_message(ErrorMessage(code=code, message=message).to_wire())

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)
        self._session_manager.unregister_connection(connection)
