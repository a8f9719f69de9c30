from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.game_engine import BotDifficulty, EndReason, GameType


class MessageType(str, Enum):
    """WebSocket message types."""

    # Core
    PING = "ping"
    PONG = "pong"
    CONNECTED = "connected"
    ERROR = "error"

    # Room
    ROOM_UPDATED = "room_updated"
    READY_TOGGLE = "ready_toggle"
    LEAVE_ROOM = "leave_room"
    ROOM_CLOSED = "room_closed"
    CHANGE_GAME_TYPE = "change_game_type"

    # Game
    START_GAME = "start_game"
    GAME_MOVE = "game_move"
    GAME_ACTION = "game_action"
    REMATCH_REQUEST = "rematch_request"
    GAME_STARTED = "game_started"
    GAME_UPDATED = "game_updated"
    GAME_ENDED = "game_ended"
    DRAW_OFFER = "draw_offer"


class WSCloseCode:
    """WebSocket close codes (RFC 6455 + custom)."""

    # Standard RFC 6455 codes
    NORMAL = 1000
    GOING_AWAY = 1001
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    INTERNAL_ERROR = 1011

    # Custom application codes (4000-4999)
    ROOM_NOT_FOUND = 4003
    ROOM_ACCESS_DENIED = 4004


class WSClientMessage(BaseModel):
    """Message sent from client to server."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


class WSServerMessage(BaseModel):
    """Message sent from server to client."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


# --- Payload schemas ---


class ParticipantSnapshot(BaseModel):
    """Snapshot of a single participant in a room."""

    user_id: str
    display_name: str | None = None
    seat: int | None = Field(None, description="Seat index, None for spectators")
    is_spectator: bool = False
    is_bot: bool = False
    bot_difficulty: BotDifficulty | None = None
    ready: bool = False
    connected: bool = False
    is_host: bool = False


class RoomSnapshot(BaseModel):
    """Authoritative room snapshot for lobby rendering.

    Used as payload for ROOM_UPDATED and CONNECTED messages and REST responses.
    """

    room_id: str
    name: str
    game_type: GameType
    status: str
    host_id: str
    max_players: int
    participants: list[ParticipantSnapshot]
    version: int = 0


class ConnectedPayload(BaseModel):
    """Payload for the 'connected' message."""

    connection_id: str
    user_id: str
    server_id: str
    room: RoomSnapshot
    game: dict[str, Any] | None = Field(None, description="Current game state, if a game is running")


class PongPayload(BaseModel):
    """Payload for the 'pong' message."""

    server_time: datetime = Field(default_factory=lambda: datetime.now())


class ErrorPayload(BaseModel):
    """Payload for error messages."""

    error_code: str
    message: str


class RoomClosedPayload(BaseModel):
    """Payload sent when host closes the room."""

    reason: str = "host_left"
    room_id: str


# --- Inbound payloads ---


class GameMovePayload(BaseModel):
    """Payload for GAME_MOVE messages: a `{kind, data}` move."""

    move: dict[str, Any]


class GameActionPayload(BaseModel):
    """Payload for GAME_ACTION messages."""

    action: Literal["forfeit", "draw_offer", "draw_accept", "draw_decline"]


class ChangeGameTypePayload(BaseModel):
    """Payload for CHANGE_GAME_TYPE messages from the host."""

    game_type: GameType


# --- Outbound game payloads ---


class GameStartedPayload(BaseModel):
    """Payload for GAME_STARTED messages: the full opening state."""

    state: dict[str, Any]
    events: list[dict[str, Any]] = []


class GameUpdatedPayload(BaseModel):
    """Payload for GAME_UPDATED messages after every accepted move."""

    model_config = ConfigDict(populate_by_name=True)

    state: dict[str, Any]
    current_turn: str = Field(..., alias="currentTurn")
    turn_number: int
    move: dict[str, Any] | None = None
    events: list[dict[str, Any]] = []


class GameEndedPayload(BaseModel):
    """Payload for GAME_ENDED messages."""

    reason: EndReason
    winner: str | None


class DrawOfferPayload(BaseModel):
    """Payload for DRAW_OFFER messages."""

    from_player: str
    status: Literal["offered", "declined"] = "offered"
