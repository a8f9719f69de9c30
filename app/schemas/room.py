"""Pydantic schemas for room operations."""

from typing import Any

from pydantic import BaseModel, Field

from app.schemas.game_engine import BotDifficulty, GameType
from app.schemas.ws import RoomSnapshot


class CreateRoomRequest(BaseModel):
    """Request body for creating a room."""

    name: str = Field(..., min_length=1, max_length=64, description="Room name shown in the lobby")
    game_type: GameType = Field(..., description="Game to play in this room")
    max_players: int | None = Field(
        None,
        ge=2,
        le=8,
        description="Seats available; defaults to the game's maximum",
    )
    display_name: str | None = Field(None, max_length=32)


class JoinRoomRequest(BaseModel):
    """Request body for joining a room."""

    as_spectator: bool = Field(False, description="Watch instead of taking a seat")
    display_name: str | None = Field(None, max_length=32)


class AddBotRequest(BaseModel):
    """Request body for adding a bot seat."""

    difficulty: BotDifficulty | None = Field(
        None, description="Bot strength; the server default is used when omitted"
    )


class RoomListResponse(BaseModel):
    """Active rooms for the lobby."""

    rooms: list[RoomSnapshot]


class RoomDetailResponse(BaseModel):
    """A room together with its current game state, if any."""

    room: RoomSnapshot
    game: dict[str, Any] | None = None
