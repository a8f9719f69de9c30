"""Handlers for in-game messages: GAME_MOVE and GAME_ACTION."""

import logging

from app.schemas.ws import GameActionPayload, GameMovePayload, MessageType
from app.services.game.session import SessionResult, get_game_session_service

from . import handler
from .base import HandlerContext, HandlerResult, error_response, validate_payload

logger = logging.getLogger(__name__)


def _to_handler_result(ctx: HandlerContext, result: SessionResult, fallback: str) -> HandlerResult:
    if not result.success:
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or fallback,
            request_id=ctx.message.request_id,
        )
    return HandlerResult(
        success=True,
        broadcasts=result.messages,
        room_id=ctx.room_id,
        include_sender=True,
    )


@handler(MessageType.GAME_MOVE)
async def handle_game_move(ctx: HandlerContext) -> HandlerResult:
    """Apply the sender's move and broadcast GAME_UPDATED to the room.

    A rejected move only reaches the sender, as an ERROR with the engine's
    error code. Nothing is stored or broadcast in that case.
    """
    payload, error = validate_payload(ctx.message.payload, GameMovePayload, ctx.message.request_id)
    if error:
        return error

    result = await get_game_session_service().apply_move(ctx.room_id, ctx.user_id, payload.move)
    if result.success:
        logger.info(
            "Move accepted in room %s: player=%s, turn_number=%d",
            ctx.room_id,
            ctx.user_id[:8],
            result.record.turn_number,
        )
    return _to_handler_result(ctx, result, "Move failed")


@handler(MessageType.GAME_ACTION)
async def handle_game_action(ctx: HandlerContext) -> HandlerResult:
    """Forfeit, offer a draw, or answer a draw offer."""
    payload, error = validate_payload(ctx.message.payload, GameActionPayload, ctx.message.request_id)
    if error:
        return error

    result = await get_game_session_service().apply_action(ctx.room_id, ctx.user_id, payload.action)
    if result.success:
        logger.info("Game action %s in room %s by %s", payload.action, ctx.room_id, ctx.user_id[:8])
    return _to_handler_result(ctx, result, "Action failed")
