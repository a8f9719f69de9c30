"""Handler for READY_TOGGLE messages."""

import logging

from app.schemas.ws import MessageType
from app.services.room.service import get_room_service

from . import handler
from .base import HandlerContext, HandlerResult, error_response, room_updated

logger = logging.getLogger(__name__)


@handler(MessageType.READY_TOGGLE)
async def handle_ready_toggle(ctx: HandlerContext) -> HandlerResult:
    """Flip the sender's ready flag and broadcast the new room snapshot."""
    room_service = get_room_service()
    result = await room_service.toggle_ready(ctx.room_id, ctx.user_id)

    if not result.success:
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or "Failed to toggle ready",
            request_id=ctx.message.request_id,
        )

    snapshot = await room_service.get_room_snapshot(ctx.room_id)
    if not snapshot:
        return error_response(
            error_code="ROOM_NOT_FOUND",
            message="Room not found",
            request_id=ctx.message.request_id,
        )

    logger.info(
        "User %s toggled ready to %s in room %s",
        ctx.user_id,
        result.new_ready_state,
        ctx.room_id,
    )

    return HandlerResult(
        success=True,
        response=room_updated(snapshot, ctx.message.request_id),
        broadcasts=[room_updated(snapshot)],
        room_id=ctx.room_id,
    )
