"""Handler for PING messages."""

import logging

from app.schemas.ws import MessageType, PongPayload, WSServerMessage
from app.services.room.service import get_room_service

from . import handler
from .base import HandlerContext, HandlerResult

logger = logging.getLogger(__name__)


@handler(MessageType.PING)
async def handle_ping(ctx: HandlerContext) -> HandlerResult:
    """Mark the socket alive, refresh the sender's room presence and answer PONG."""
    await ctx.manager.heartbeat(ctx.connection_id)
    present = await get_room_service().refresh_presence(ctx.room_id, ctx.user_id)

    logger.debug(
        "Ping from user %s on connection %s (in room: %s)",
        ctx.user_id[:8],
        ctx.connection_id[:8],
        present,
    )

    return HandlerResult(
        success=True,
        response=WSServerMessage(
            type=MessageType.PONG,
            request_id=ctx.message.request_id,
            payload=PongPayload().model_dump(),
        ),
    )
