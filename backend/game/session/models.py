"""Two-party game session: participants, colors, position and turn."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

import chess

from game.session.exceptions import NotYourTurnError, RoomFullError
from game.wire.enums import Color

if TYPE_CHECKING:
    from game.messaging.protocol import ConnectionProtocol

MAX_PARTICIPANTS = 2
STARTING_POSITION = chess.STARTING_FEN

# seat order: the first joiner plays white
SEAT_ORDER = (Color.WHITE, Color.BLACK)


class SessionState(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Participant:
    """Membership record of one connection in one session."""

    connection: ConnectionProtocol
    color: Color
    room_id: str

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id


@dataclass
class Session:
    """Live state of one two-party game bound to a room.

    The session relays positions computed by the clients; it enforces join
    order, color assignment and turn alternation but not chess legality.
    """

    room_id: str
    participants: list[Participant] = field(default_factory=list)
    position: str = STARTING_POSITION
    turn: Color = Color.WHITE
    move_count: int = 0
    closed: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_empty(self) -> bool:
        return self.participant_count == 0

    @property
    def is_full(self) -> bool:
        return self.participant_count >= MAX_PARTICIPANTS

    @property
    def state(self) -> SessionState:
        if self.closed:
            return SessionState.CLOSED
        if self.is_full:
            return SessionState.ACTIVE
        return SessionState.WAITING

    def get_participant(self, connection_id: str) -> Participant | None:
        for participant in self.participants:
            if participant.connection_id == connection_id:
                return participant
        return None

    def add_participant(self, connection: ConnectionProtocol) -> Participant:
        """Seat a connection, taking the first free color in seat order."""
        if self.is_full:
            raise RoomFullError(self.room_id)
        taken = {p.color for p in self.participants}
        color = next(c for c in SEAT_ORDER if c not in taken)
        participant = Participant(connection=connection, color=color, room_id=self.room_id)
        self.participants.append(participant)
        return participant

    def remove_participant(self, connection_id: str) -> Participant | None:
        """Remove a connection if present. Returns the removed record, if any."""
        participant = self.get_participant(connection_id)
        if participant is not None:
            self.participants.remove(participant)
            if self.is_empty:
                self.closed = True
        return participant

    def apply_move(self, color: Color, new_position: str) -> None:
        """Accept a move by `color`: store the resulting position and pass the turn."""
        if color is not self.turn:
            raise NotYourTurnError(color, self.turn)
        self.position = new_position
        self.turn = self.turn.opponent
        self.move_count += 1
