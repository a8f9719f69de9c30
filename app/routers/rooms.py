"""REST endpoints for room management."""

import logging

from fastapi import APIRouter, HTTPException, status

from app.config import get_settings
from app.dependencies.auth import CurrentUserId
from app.schemas.room import (
    AddBotRequest,
    CreateRoomRequest,
    JoinRoomRequest,
    RoomDetailResponse,
    RoomListResponse,
)
from app.schemas.ws import RoomSnapshot
from app.services.game.session import get_game_session_service
from app.services.room.service import RoomResult, get_room_service
from app.services.websocket.handlers.base import room_updated, snapshot_to_pydantic
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])

ERROR_STATUS_MAP = {
    "ROOM_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_HOST": status.HTTP_403_FORBIDDEN,
    "ROOM_FULL": status.HTTP_409_CONFLICT,
    "GAME_ALREADY_STARTED": status.HTTP_409_CONFLICT,
    "INVALID_PLAYER_COUNT": status.HTTP_400_BAD_REQUEST,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
}


def _raise_for(result: RoomResult, fallback: str) -> None:
    http_status = ERROR_STATUS_MAP.get(result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    raise HTTPException(status_code=http_status, detail=result.error_message or fallback)


async def _notify_room(result: RoomResult) -> None:
    """Push the new lobby snapshot to sockets already in the room."""
    if result.room_snapshot is not None:
        await get_connection_manager().send_to_room(
            result.room_snapshot.room_id, room_updated(result.room_snapshot)
        )


@router.get("", response_model=RoomListResponse)
async def list_rooms():
    """Active rooms, for the lobby list."""
    rooms = await get_room_service().list_rooms()
    return RoomListResponse(rooms=[snapshot_to_pydantic(room) for room in rooms])


@router.post("", response_model=RoomSnapshot, status_code=status.HTTP_201_CREATED)
async def create_room(user_id: CurrentUserId, request: CreateRoomRequest):
    """Create a room with the caller seated as host.

    Raises:
        HTTPException 400: If max_players is outside the game's range.
    """
    logger.info("POST /rooms - user: %s, game: %s", user_id, request.game_type.value)

    result = await get_room_service().create_room(
        user_id=user_id,
        name=request.name,
        game_type=request.game_type,
        max_players=request.max_players,
        display_name=request.display_name,
    )
    if not result.success:
        logger.warning(
            "Room creation failed for user %s: %s - %s",
            user_id,
            result.error_code,
            result.error_message,
        )
        _raise_for(result, "Failed to create room")

    return snapshot_to_pydantic(result.room_snapshot)


@router.get("/{room_id}", response_model=RoomDetailResponse)
async def get_room(room_id: str):
    """A room snapshot plus its current game state, if a game exists."""
    snapshot = await get_room_service().get_room_snapshot(room_id)
    if snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")

    record = await get_game_session_service().get_game(room_id)
    return RoomDetailResponse(
        room=snapshot_to_pydantic(snapshot),
        game=record.to_wire() if record else None,
    )


@router.post("/{room_id}/join", response_model=RoomSnapshot)
async def join_room(room_id: str, user_id: CurrentUserId, request: JoinRoomRequest):
    """Take a seat, or watch when asked to or when play has started.

    Raises:
        HTTPException 404: If the room does not exist.
        HTTPException 409: If every seat is taken.
    """
    logger.info("POST /rooms/%s/join - user: %s", room_id, user_id)

    result = await get_room_service().join_room(
        room_id,
        user_id,
        display_name=request.display_name,
        as_spectator=request.as_spectator,
    )
    if not result.success:
        logger.warning(
            "Join room failed for user %s, room %s: %s",
            user_id,
            room_id,
            result.error_code,
        )
        _raise_for(result, "Failed to join room")

    await _notify_room(result)
    return snapshot_to_pydantic(result.room_snapshot)


@router.post("/{room_id}/bots", response_model=RoomSnapshot, status_code=status.HTTP_201_CREATED)
async def add_bot(room_id: str, user_id: CurrentUserId, request: AddBotRequest):
    """Seat a bot. Host only, before the game starts."""
    difficulty = request.difficulty or get_settings().DEFAULT_BOT_DIFFICULTY
    result = await get_room_service().add_bot(room_id, user_id, difficulty)
    if not result.success:
        _raise_for(result, "Failed to add bot")

    logger.info("Bot (%s) added to room %s by %s", difficulty.value, room_id, user_id)
    await _notify_room(result)
    return snapshot_to_pydantic(result.room_snapshot)
