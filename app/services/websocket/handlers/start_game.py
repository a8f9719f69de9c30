"""Handler for START_GAME messages."""

import logging

from app.schemas.ws import MessageType
from app.services.game.session import get_game_session_service
from app.services.room.service import get_room_service

from . import handler
from .base import HandlerContext, HandlerResult, error_response, room_updated

logger = logging.getLogger(__name__)


@handler(MessageType.START_GAME)
async def handle_start_game(ctx: HandlerContext) -> HandlerResult:
    """Handle START_GAME message from the host to begin the game.

    Flow:
    1. Session service checks host, room status, readiness and seat count
    2. Engine deals or sets up the opening state, which is stored
    3. Room flips to "playing"
    4. GAME_STARTED and the new room snapshot go to everyone in the room

    Bots on turn are scheduled by the session service, not here.
    """
    result = await get_game_session_service().start_game(ctx.room_id, ctx.user_id)
    if not result.success:
        logger.warning(
            "Start game rejected in room %s: %s (user=%s)",
            ctx.room_id,
            result.error_code,
            ctx.user_id,
        )
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or "Failed to start game",
            request_id=ctx.message.request_id,
        )

    broadcasts = list(result.messages)
    snapshot = await get_room_service().get_room_snapshot(ctx.room_id)
    if snapshot is not None:
        broadcasts.append(room_updated(snapshot))

    return HandlerResult(
        success=True,
        broadcasts=broadcasts,
        room_id=ctx.room_id,
        include_sender=True,
    )
