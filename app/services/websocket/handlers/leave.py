"""Handler for LEAVE_ROOM messages."""

import logging

from app.schemas.ws import MessageType, RoomClosedPayload, WSServerMessage
from app.services.game.session import get_game_session_service

from . import handler
from .base import HandlerContext, HandlerResult, error_response, room_updated

logger = logging.getLogger(__name__)


@handler(MessageType.LEAVE_ROOM)
async def handle_leave_room(ctx: HandlerContext) -> HandlerResult:
    """Handle LEAVE_ROOM message.

    A seated player leaving mid-game forfeits first. If the host leaves, the
    room closes and everyone gets ROOM_CLOSED; otherwise the rest of the
    room gets ROOM_UPDATED.
    """
    result = await get_game_session_service().leave(ctx.room_id, ctx.user_id)

    if not result.success:
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or "Failed to leave room",
            request_id=ctx.message.request_id,
        )

    if result.room_snapshot is None:
        logger.info("Host %s left room %s, broadcasting room_closed", ctx.user_id, ctx.room_id)
        closed = WSServerMessage(
            type=MessageType.ROOM_CLOSED,
            payload=RoomClosedPayload(reason="host_left", room_id=ctx.room_id).model_dump(),
        )
        return HandlerResult(
            success=True,
            broadcasts=[*result.messages, closed],
            room_id=ctx.room_id,
            include_sender=True,
            close_room=True,
        )

    logger.info("Player %s left room %s", ctx.user_id, ctx.room_id)
    return HandlerResult(
        success=True,
        response=WSServerMessage(
            type=MessageType.ROOM_CLOSED,
            request_id=ctx.message.request_id,
            payload=RoomClosedPayload(reason="left", room_id=ctx.room_id).model_dump(),
        ),
        broadcasts=[*result.messages, room_updated(result.room_snapshot)],
        room_id=ctx.room_id,
    )
