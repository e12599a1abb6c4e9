"""
Pydantic models for the session layer.
"""

from pydantic import BaseModel

from game.session.models import SessionState
from game.wire.enums import Color


class RoomInfo(BaseModel):
    """Room information for the room listing endpoint."""

    room_id: str
    state: SessionState
    participant_count: int
    colors: list[Color]
    turn: Color
    move_count: int
