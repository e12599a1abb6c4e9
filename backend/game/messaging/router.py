from __future__ import annotations

from typing import TYPE_CHECKING, Any, assert_never

import structlog
from pydantic import ValidationError

from game.messaging.types import (
    ErrorMessage,
    JoinMessage,
    LeaveMessage,
    MoveMessage,
    PingMessage,
    PongMessage,
    UnknownMessage,
    parse_client_message,
)
from game.wire.enums import SessionErrorCode

if TYPE_CHECKING:
    from game.messaging.protocol import ConnectionProtocol
    from game.session.registry import RoomRegistry

logger = structlog.get_logger()


class MessageRouter:
    """
    Routes incoming messages to the room registry.

    This class contains pure business logic and can be tested
    without real WebSocket connections.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self._registry = registry

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except ValidationError as e:
            logger.warning("invalid message", error_count=e.error_count())
            await self._send_error(connection, SessionErrorCode.INVALID_MESSAGE, _summarize(e))
            return

        if isinstance(message, JoinMessage):
            await self._registry.join(connection, message.room_id)
        elif isinstance(message, MoveMessage):
            await self._registry.move(connection, message.room_id, message.payload)
        elif isinstance(message, LeaveMessage):
            await self._registry.leave(connection, message.room_id)
        elif isinstance(message, PingMessage):
            await connection.send_message(PongMessage().to_wire())
        elif isinstance(message, UnknownMessage):
            logger.info("unknown command", command=message.type)
            await self._send_error(
                connection,
                SessionErrorCode.UNKNOWN_COMMAND,
                f"Unknown command: {message.type}",
            )
        else:
            assert_never(message)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
        logger.info("connection opened")

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._registry.leave(connection)
        logger.info("connection closed")

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        await connection.send_message(ErrorMessage(code=code, message=message).to_wire())


def _summarize(error: ValidationError) -> str:
    """First validation problem as `field: reason`, without echoing input back."""
    first = error.errors(include_input=False, include_url=False)[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]
