from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from game.wire.enums import ClientMessageType, Color, ServerMessageType, SessionErrorCode

_ROOM_ID_PATTERN = r"^[a-zA-Z0-9_-]+$"
_MAX_ROOM_ID_LENGTH = 50


class _WireModel(BaseModel):
    """Wire models use camelCase keys; Python code uses field names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MovePayload(_WireModel):
    from_square: str = Field(alias="from", min_length=2, max_length=8)
    to_square: str = Field(alias="to", min_length=2, max_length=8)
    new_position: str = Field(alias="newPosition", min_length=1, max_length=128)
    promotion: str | None = Field(default=None, max_length=1)


class JoinMessage(_WireModel):
    type: Literal[ClientMessageType.JOIN] = ClientMessageType.JOIN
    room_id: str = Field(alias="roomId", min_length=1, max_length=_MAX_ROOM_ID_LENGTH, pattern=_ROOM_ID_PATTERN)


class MoveMessage(_WireModel):
    type: Literal[ClientMessageType.MOVE] = ClientMessageType.MOVE
    room_id: str = Field(alias="roomId", min_length=1, max_length=_MAX_ROOM_ID_LENGTH)
    payload: MovePayload


class LeaveMessage(_WireModel):
    type: Literal[ClientMessageType.LEAVE] = ClientMessageType.LEAVE
    room_id: str | None = Field(default=None, alias="roomId", max_length=_MAX_ROOM_ID_LENGTH)


class PingMessage(_WireModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


class UnknownMessage(_WireModel):
    """Fallback for any `type` the relay does not recognize."""

    type: str | None = None


ClientMessage = JoinMessage | MoveMessage | LeaveMessage | PingMessage | UnknownMessage


class JoinedMessage(_WireModel):
    type: Literal[ServerMessageType.JOINED] = ServerMessageType.JOINED
    room_id: str = Field(alias="roomId")
    color: Color
    position: str
    turn: Color


class OpponentJoinedMessage(_WireModel):
    type: Literal[ServerMessageType.OPPONENT_JOINED] = ServerMessageType.OPPONENT_JOINED
    color: Color


class OpponentMoveMessage(_WireModel):
    type: Literal[ServerMessageType.OPPONENT_MOVE] = ServerMessageType.OPPONENT_MOVE
    payload: MovePayload


class OpponentLeftMessage(_WireModel):
    type: Literal[ServerMessageType.OPPONENT_LEFT] = ServerMessageType.OPPONENT_LEFT
    color: Color


class PongMessage(_WireModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG


class ErrorMessage(_WireModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: SessionErrorCode
    message: str


_KnownClientMessage = Annotated[
    JoinMessage | MoveMessage | LeaveMessage | PingMessage,
    Field(discriminator="type"),
]

_known_adapter = TypeAdapter(_KnownClientMessage)
_KNOWN_TYPES = frozenset(t.value for t in ClientMessageType)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage.

    Unrecognized `type` values become UnknownMessage rather than an error, so
    the router can answer them explicitly. Recognized types with bad fields
    raise pydantic.ValidationError.
    """
    msg_type = data.get("type")
    if not isinstance(msg_type, str) or msg_type not in _KNOWN_TYPES:
        return UnknownMessage(type=None if msg_type is None else str(msg_type))
    return _known_adapter.validate_python(data)
