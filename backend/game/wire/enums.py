"""Wire enums shared across the messaging and session layers.

Both game.messaging and game.session need these string values, so they live
in a leaf module to avoid an import cycle between the two layers.
"""

from __future__ import annotations

from enum import StrEnum


class Color(StrEnum):
    WHITE = "w"
    BLACK = "b"

    @property
    def opponent(self) -> Color:
        return Color.BLACK if self is Color.WHITE else Color.WHITE


class ClientMessageType(StrEnum):
    JOIN = "join"
    MOVE = "move"
    LEAVE = "leave"
    PING = "ping"


class ServerMessageType(StrEnum):
    JOINED = "joined"
    OPPONENT_JOINED = "opponentJoined"
    OPPONENT_MOVE = "opponentMove"
    OPPONENT_LEFT = "opponentLeft"
    PONG = "pong"
    ERROR = "error"


class SessionErrorCode(StrEnum):
    ROOM_FULL = "room_full"
    NOT_YOUR_TURN = "not_your_turn"
    NOT_IN_ROOM = "not_in_room"
    ALREADY_IN_ROOM = "already_in_room"
    UNKNOWN_COMMAND = "unknown_command"
    INVALID_MESSAGE = "invalid_message"
