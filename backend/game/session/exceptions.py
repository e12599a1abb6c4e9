"""Errors reported to the offending connection only; none of them mutate state."""

from __future__ import annotations

from game.wire.enums import Color, SessionErrorCode


class SessionError(Exception):
    """Base class for session rule violations. `code` goes on the wire."""

    code: SessionErrorCode


class RoomFullError(SessionError):
    code = SessionErrorCode.ROOM_FULL

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__("Room is full")


class NotYourTurnError(SessionError):
    code = SessionErrorCode.NOT_YOUR_TURN

    def __init__(self, color: Color, turn: Color) -> None:
        self.color = color
        self.turn = turn
        super().__init__("Not your turn")


class NotInRoomError(SessionError):
    code = SessionErrorCode.NOT_IN_ROOM

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__("You are not a participant of this room")


class AlreadyInRoomError(SessionError):
    code = SessionErrorCode.ALREADY_IN_ROOM

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__("You must leave your current room first")
