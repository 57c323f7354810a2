from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from tictac.logic.enums import Mark, MoveRejection

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

MAX_NAME_LENGTH = 50
MAX_CHAT_LENGTH = 1000


class ClientMessageType(StrEnum):
    CREATE_ROOM = "createRoom"
    JOIN_ROOM = "joinRoom"
    FIND_OPPONENT = "findOpponent"
    CANCEL_FIND_OPPONENT = "cancelFindOpponent"
    MAKE_MOVE = "makeMove"
    RESET_GAME = "resetGame"
    SEND_MESSAGE = "sendMessage"
    RECONNECT_GAME = "reconnectGame"
    PING = "ping"


class ServerMessageType(StrEnum):
    ROOM_CREATED = "roomCreated"
    ROOM_JOINED = "roomJoined"
    ROOM_ERROR = "roomError"
    OPPONENT_FOUND = "opponentFound"
    WAITING_FOR_OPPONENT = "waitingForOpponent"
    ROOM_STATE = "roomState"
    MESSAGE_RECEIVED = "messageReceived"
    PLAYER_DISCONNECTED = "playerDisconnected"
    RECONNECT_SUCCESS = "reconnectSuccess"
    RECONNECT_FAILED = "reconnectFailed"
    INVALID_MOVE = "invalidMove"
    PONG = "pong"
    ERROR = "error"


class SessionErrorCode(StrEnum):
    """Protocol-level error codes carried by the ``error`` event."""

    INVALID_MESSAGE = "invalid_message"
    RATE_LIMITED = "rate_limited"
    INTERNAL_ERROR = "internal_error"


class RoomErrorCode(StrEnum):
    """Codes carried by the ``roomError`` event."""

    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    ALREADY_IN_ROOM = "already_in_room"
    SERVER_AT_CAPACITY = "server_at_capacity"


class WireModel(BaseModel):
    """Base for every message on the wire: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _reject_control_characters(value: str) -> str:
    if any((ord(c) < _SPACE_ORD and c not in ("\t", "\n", "\r")) or ord(c) == _DEL_ORD for c in value):
        raise ValueError("text must not contain control characters")
    return value


def _clean_name(value: str) -> str:
    value = _reject_control_characters(value).strip()
    if not value:
        raise ValueError("name must not be blank")
    return value


def _normalize_room_id(value: str) -> str:
    return value.upper()


# Room ids are matched case-insensitively.
RoomId = Annotated[str, Field(min_length=1, max_length=16, pattern=r"^[a-zA-Z0-9]+$"), AfterValidator(_normalize_room_id)]
DisplayName = Annotated[str, Field(min_length=1, max_length=MAX_NAME_LENGTH), AfterValidator(_clean_name)]
ChatText = Annotated[str, Field(min_length=1, max_length=MAX_CHAT_LENGTH), AfterValidator(_reject_control_characters)]


class _RoomScopedMessage(WireModel):
    room_id: RoomId


# --- Client -> server ---


class CreateRoomMessage(WireModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    name: DisplayName


class JoinRoomMessage(_RoomScopedMessage):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    player_name: DisplayName


class FindOpponentMessage(WireModel):
    type: Literal[ClientMessageType.FIND_OPPONENT] = ClientMessageType.FIND_OPPONENT
    name: DisplayName


class CancelFindOpponentMessage(WireModel):
    type: Literal[ClientMessageType.CANCEL_FIND_OPPONENT] = ClientMessageType.CANCEL_FIND_OPPONENT


class MakeMoveMessage(_RoomScopedMessage):
    # Range is checked by the engine so an out-of-range cell is an invalid
    # move, not a malformed message.
    type: Literal[ClientMessageType.MAKE_MOVE] = ClientMessageType.MAKE_MOVE
    cell_index: int = Field(strict=True)


class ResetGameMessage(_RoomScopedMessage):
    type: Literal[ClientMessageType.RESET_GAME] = ClientMessageType.RESET_GAME


class SendMessageMessage(_RoomScopedMessage):
    type: Literal[ClientMessageType.SEND_MESSAGE] = ClientMessageType.SEND_MESSAGE
    message: ChatText


class ReconnectGameMessage(WireModel):
    type: Literal[ClientMessageType.RECONNECT_GAME] = ClientMessageType.RECONNECT_GAME
    player_token: str = Field(min_length=1, max_length=100)


class PingMessage(WireModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    CreateRoomMessage
    | JoinRoomMessage
    | FindOpponentMessage
    | CancelFindOpponentMessage
    | MakeMoveMessage
    | ResetGameMessage
    | SendMessageMessage
    | ReconnectGameMessage
    | PingMessage,
    Field(discriminator="type"),
]

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a decoded frame into a typed client message.

    Raises pydantic.ValidationError for unknown types or bad payloads.
    """
    return _client_message_adapter.validate_python(data)


# --- Server -> client ---


class _SeatAssignment(WireModel):
    room_id: str
    player_token: str
    role: Mark


class RoomCreatedMessage(_SeatAssignment):
    type: Literal[ServerMessageType.ROOM_CREATED] = ServerMessageType.ROOM_CREATED


class RoomJoinedMessage(_SeatAssignment):
    type: Literal[ServerMessageType.ROOM_JOINED] = ServerMessageType.ROOM_JOINED


class OpponentFoundMessage(_SeatAssignment):
    type: Literal[ServerMessageType.OPPONENT_FOUND] = ServerMessageType.OPPONENT_FOUND


class RoomErrorMessage(WireModel):
    type: Literal[ServerMessageType.ROOM_ERROR] = ServerMessageType.ROOM_ERROR
    code: RoomErrorCode
    message: str


class WaitingForOpponentMessage(WireModel):
    type: Literal[ServerMessageType.WAITING_FOR_OPPONENT] = ServerMessageType.WAITING_FOR_OPPONENT


class PlayerView(WireModel):
    """Public view of a room member. The reconnection token is never included."""

    id: str
    name: str
    role: Mark


class ScoresView(WireModel):
    wins_x: int
    wins_o: int
    draws: int


class ChatEntryView(WireModel):
    player_id: str
    player_name: str
    message: str


class RoomStateMessage(WireModel):
    """Canonical room snapshot, re-sent wholesale after every mutation."""

    type: Literal[ServerMessageType.ROOM_STATE] = ServerMessageType.ROOM_STATE
    room_id: str
    players: list[PlayerView]
    board: list[str]
    current_player: Mark
    game_active: bool
    scores: ScoresView
    messages: list[ChatEntryView]
    winning_cells: list[int] | None


class MessageReceivedMessage(WireModel):
    type: Literal[ServerMessageType.MESSAGE_RECEIVED] = ServerMessageType.MESSAGE_RECEIVED
    messages: list[ChatEntryView]


class PlayerDisconnectedMessage(WireModel):
    type: Literal[ServerMessageType.PLAYER_DISCONNECTED] = ServerMessageType.PLAYER_DISCONNECTED
    player_name: str


class ReconnectSuccessMessage(WireModel):
    type: Literal[ServerMessageType.RECONNECT_SUCCESS] = ServerMessageType.RECONNECT_SUCCESS
    room_id: str


class ReconnectFailedMessage(WireModel):
    type: Literal[ServerMessageType.RECONNECT_FAILED] = ServerMessageType.RECONNECT_FAILED


class InvalidMoveMessage(WireModel):
    type: Literal[ServerMessageType.INVALID_MOVE] = ServerMessageType.INVALID_MOVE
    reason: MoveRejection
    cell_index: int | None = None


class PongMessage(WireModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG


class ErrorMessage(WireModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: SessionErrorCode
    message: str
