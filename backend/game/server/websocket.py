from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from game.messaging.encoder import DecodeError, decode, split_lines
from game.messaging.protocol import ConnectionProtocol
from game.messaging.types import ErrorMessage
from game.wire.enums import SessionErrorCode

logger = structlog.get_logger()

if TYPE_CHECKING:
    from game.messaging.router import MessageRouter

# Disconnect after this many consecutive undecodable messages
_MAX_DECODE_ERRORS = 5


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send_text(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_text(self) -> str:
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise ConnectionError("WebSocket already disconnected")
        text = message.get("text")
        if text is None:
            # binary frames are tolerated as UTF-8 JSON
            text = (message.get("bytes") or b"").decode("utf-8", errors="replace")
        return text

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    await router.handle_connect(connection)

    decode_errors = 0

    try:
        while True:
            frame = await connection.receive_text()
            try:
                lines = list(split_lines(frame))
            except DecodeError as e:
                lines = []
                decode_errors += 1
                await _reject(connection, e, decode_errors)

            for line in lines:
                try:
                    data = decode(line)
                except DecodeError as e:
                    decode_errors += 1
                    await _reject(connection, e, decode_errors)
                    continue
                decode_errors = 0
                await router.handle_message(connection, data)

            if decode_errors >= _MAX_DECODE_ERRORS:
                logger.info("too many decode errors, disconnecting", strikes=decode_errors)
                await connection.close(code=4004, reason="too_many_decode_errors")
                return
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()


async def _reject(connection: WebSocketConnection, error: DecodeError, strikes: int) -> None:
    logger.warning("decode error", error=str(error), strikes=strikes)
    await connection.send_message(
        ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(error)).to_wire(),
    )
