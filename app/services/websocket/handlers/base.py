"""Base types and helpers for WebSocket message handlers."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    ParticipantSnapshot,
    RoomSnapshot,
    WSClientMessage,
    WSServerMessage,
)
from app.services.room.service import RoomSnapshotData

if TYPE_CHECKING:
    from app.services.websocket.manager import ConnectionManager


@dataclass
class HandlerContext:
    """Context passed to each message handler."""

    connection_id: str
    user_id: str
    room_id: str
    message: WSClientMessage
    manager: "ConnectionManager"


@dataclass
class HandlerResult:
    """Result returned by message handlers.

    `broadcasts` go to the room in order; the sender only receives them when
    `include_sender` is set. `close_room` tells the endpoint to drop every
    socket in the room once the broadcasts are out.
    """

    success: bool
    response: WSServerMessage | None = None
    broadcasts: list[WSServerMessage] = field(default_factory=list)
    room_id: str | None = None
    include_sender: bool = False
    close_room: bool = False


T = TypeVar("T", bound=BaseModel)


def validate_payload(
    payload: dict | None,
    schema: type[T],
    request_id: str | None,
    error_type: MessageType = MessageType.ERROR,
) -> tuple[T | None, HandlerResult | None]:
    """Validate payload against a Pydantic schema.

    Returns:
        Tuple of (validated_payload, error_result). One will be None.
    """
    try:
        validated = schema.model_validate(payload or {})
        return validated, None
    except ValidationError as e:
        return None, error_response("VALIDATION_ERROR", str(e), error_type, request_id)


def error_response(
    error_code: str,
    message: str,
    error_type: MessageType = MessageType.ERROR,
    request_id: str | None = None,
) -> HandlerResult:
    """Build an error HandlerResult."""
    return HandlerResult(
        success=False,
        response=WSServerMessage(
            type=error_type,
            request_id=request_id,
            payload=ErrorPayload(
                error_code=error_code,
                message=message,
            ).model_dump(),
        ),
    )


def snapshot_to_pydantic(snapshot: RoomSnapshotData) -> RoomSnapshot:
    """Convert a dataclass RoomSnapshotData to a Pydantic RoomSnapshot."""
    return RoomSnapshot(
        room_id=snapshot.room_id,
        name=snapshot.name,
        game_type=snapshot.game_type,
        status=snapshot.status,
        host_id=snapshot.host_id,
        max_players=snapshot.max_players,
        participants=[
            ParticipantSnapshot(
                user_id=p.user_id,
                display_name=p.display_name,
                seat=p.seat,
                is_spectator=p.is_spectator,
                is_bot=p.is_bot,
                bot_difficulty=p.bot_difficulty,
                ready=p.ready,
                connected=p.connected,
                is_host=p.is_host,
            )
            for p in snapshot.participants
        ],
        version=snapshot.version,
    )


def room_updated(snapshot: RoomSnapshotData, request_id: str | None = None) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.ROOM_UPDATED,
        request_id=request_id,
        payload=snapshot_to_pydantic(snapshot).model_dump(mode="json"),
    )
