"""Handler for REMATCH_REQUEST messages."""

import logging

from app.schemas.ws import MessageType
from app.services.game.session import get_game_session_service

from . import handler
from .base import HandlerContext, HandlerResult, error_response, room_updated

logger = logging.getLogger(__name__)


@handler(MessageType.REMATCH_REQUEST)
async def handle_rematch_request(ctx: HandlerContext) -> HandlerResult:
    """Return a finished room to the lobby so it can be started again."""
    result = await get_game_session_service().rematch(ctx.room_id, ctx.user_id)
    if not result.success or result.room_snapshot is None:
        return error_response(
            error_code=result.error_code or "ROOM_NOT_FOUND",
            message=result.error_message or "Room not found",
            request_id=ctx.message.request_id,
        )

    return HandlerResult(
        success=True,
        broadcasts=[room_updated(result.room_snapshot)],
        room_id=ctx.room_id,
        include_sender=True,
    )
