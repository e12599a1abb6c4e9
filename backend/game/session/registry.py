"""Room registry: session lifecycle, turn enforcement and move relay."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.messaging.types import (
    ErrorMessage,
    JoinedMessage,
    OpponentJoinedMessage,
    OpponentLeftMessage,
    OpponentMoveMessage,
)
from game.session.broadcast import broadcast_to_participants
from game.session.exceptions import AlreadyInRoomError, NotInRoomError, SessionError
from game.session.models import Participant, Session
from game.session.types import RoomInfo

if TYPE_CHECKING:
    from game.messaging.protocol import ConnectionProtocol
    from game.messaging.types import MovePayload

logger = structlog.get_logger()


class RoomRegistry:
    """Map room ids to live sessions and route join/move/leave through them.

    Owns all relay state: `_sessions` (room_id -> Session) and
    `_memberships` (connection_id -> Participant). A session is created on the
    first join to an unseen room and removed as soon as its last participant
    leaves, so no empty room ever stays registered.

    State changes happen synchronously between awaits; only the accept and
    broadcast of a move holds the session lock, which keeps relayed moves in
    acceptance order.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._memberships: dict[str, Participant] = {}  # connection_id -> Participant

    # --- Queries ---

    def get_session(self, room_id: str) -> Session | None:
        return self._sessions.get(room_id)

    def get_membership(self, connection_id: str) -> Participant | None:
        return self._memberships.get(connection_id)

    def is_in_room(self, connection_id: str) -> bool:
        return connection_id in self._memberships

    @property
    def room_count(self) -> int:
        return len(self._sessions)

    def get_rooms_info(self) -> list[RoomInfo]:
        return [
            RoomInfo(
                room_id=session.room_id,
                state=session.state,
                participant_count=session.participant_count,
                colors=[p.color for p in session.participants],
                turn=session.turn,
                move_count=session.move_count,
            )
            for session in self._sessions.values()
        ]

    # --- Commands ---

    async def join(self, connection: ConnectionProtocol, room_id: str) -> None:
        """Seat a connection in a room, creating the session on first join."""
        existing = self._memberships.get(connection.connection_id)
        if existing is not None:
            await self._send_error(connection, AlreadyInRoomError(existing.room_id))
            return

        session = self._sessions.get(room_id)
        created = session is None
        if session is None:
            session = Session(room_id=room_id)
            self._sessions[room_id] = session

        try:
            participant = session.add_participant(connection)
        except SessionError as e:
            logger.info("join rejected", room_id=room_id, code=e.code)
            await self._send_error(connection, e)
            return

        self._memberships[connection.connection_id] = participant
        logger.info(
            "session created" if created else "participant joined",
            room_id=room_id,
            color=participant.color,
            state=session.state,
        )

        await connection.send_message(
            JoinedMessage(
                room_id=room_id,
                color=participant.color,
                position=session.position,
                turn=session.turn,
            ).to_wire()
        )
        await broadcast_to_participants(
            session.participants,
            OpponentJoinedMessage(color=participant.color).to_wire(),
            exclude_connection_id=connection.connection_id,
        )

    async def move(self, connection: ConnectionProtocol, room_id: str, payload: MovePayload) -> None:
        """Accept a move from the player whose turn it is and relay it to the opponent.

        Moves for rooms that do not exist are dropped silently.
        """
        session = self._sessions.get(room_id)
        if session is None:
            logger.debug("move for unknown room ignored", room_id=room_id)
            return

        async with session.lock:
            if session.closed:
                return

            participant = session.get_participant(connection.connection_id)
            if participant is None:
                await self._send_error(connection, NotInRoomError(room_id))
                return

            try:
                session.apply_move(participant.color, payload.new_position)
            except SessionError as e:
                logger.info("move rejected", room_id=room_id, color=participant.color, code=e.code)
                await self._send_error(connection, e)
                return

            logger.debug(
                "move accepted",
                room_id=room_id,
                color=participant.color,
                move=f"{payload.from_square}{payload.to_square}",
                move_count=session.move_count,
            )
            await broadcast_to_participants(
                session.participants,
                OpponentMoveMessage(payload=payload).to_wire(),
                exclude_connection_id=connection.connection_id,
            )

    async def leave(self, connection: ConnectionProtocol, room_id: str | None = None) -> None:
        """Remove a connection from its room. Safe to call repeatedly.

        When `room_id` is given and differs from the connection's room, nothing
        happens. The remaining participant, if any, is told which color left.
        """
        participant = self._memberships.get(connection.connection_id)
        if participant is None:
            return
        if room_id is not None and room_id != participant.room_id:
            return

        del self._memberships[connection.connection_id]
        session = self._sessions.get(participant.room_id)
        if session is None:
            return

        session.remove_participant(connection.connection_id)
        if session.is_empty:
            self._sessions.pop(session.room_id, None)
            logger.info("session closed", room_id=session.room_id, moves=session.move_count)
            return

        logger.info("participant left", room_id=session.room_id, color=participant.color)
        await broadcast_to_participants(
            session.participants,
            OpponentLeftMessage(color=participant.color).to_wire(),
        )

    async def _send_error(self, connection: ConnectionProtocol, error: SessionError) -> None:
        await connection.send_message(ErrorMessage(code=error.code, message=str(error)).to_wire())
