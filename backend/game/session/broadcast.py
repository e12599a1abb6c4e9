"""Shared broadcast utility for sending messages to session participants."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from game.session.models import Participant


async def broadcast_to_participants(
    participants: list[Participant],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> int:
    """Send a message to every participant except the excluded one.

    Iterates over a snapshot so a concurrent leave cannot mutate the list
    while we yield on send_message. A peer whose socket is already gone is
    skipped. Returns the number of participants addressed.
    """
    sent = 0
    for participant in list(participants):
        if participant.connection_id == exclude_connection_id:
            continue
        sent += 1
        with contextlib.suppress(RuntimeError, OSError):
            await participant.connection.send_message(message)
    return sent
