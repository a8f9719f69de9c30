"""Handler for CHANGE_GAME_TYPE messages."""

import logging

from app.schemas.ws import ChangeGameTypePayload, MessageType
from app.services.room.service import get_room_service

from . import handler
from .base import HandlerContext, HandlerResult, error_response, room_updated, validate_payload

logger = logging.getLogger(__name__)


@handler(MessageType.CHANGE_GAME_TYPE)
async def handle_change_game_type(ctx: HandlerContext) -> HandlerResult:
    payload, error = validate_payload(
        ctx.message.payload, ChangeGameTypePayload, ctx.message.request_id
    )
    if error:
        return error

    result = await get_room_service().change_game_type(ctx.room_id, ctx.user_id, payload.game_type)
    if not result.success or result.room_snapshot is None:
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or "Failed to change game",
            request_id=ctx.message.request_id,
        )

    return HandlerResult(
        success=True,
        broadcasts=[room_updated(result.room_snapshot)],
        room_id=ctx.room_id,
        include_sender=True,
    )
