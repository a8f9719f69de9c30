import json
import logging
import time
from collections import deque

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from app.config import get_settings
from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSCloseCode,
    WSServerMessage,
)
from app.services.game.session import get_game_session_service
from app.services.room.service import get_room_service
from app.services.websocket.handlers import HandlerContext, dispatch
from app.services.websocket.handlers.base import room_updated, snapshot_to_pydantic
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


class MessageWindow:
    """Sliding one-second window of inbound frames for a single socket."""

    def __init__(self, limit: int, window: float = 1.0, clock=time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._stamps: deque[float] = deque()

    def allow(self) -> bool:
        now = self._clock()
        while self._stamps and self._stamps[0] <= now - self.window:
            self._stamps.popleft()
        if len(self._stamps) >= self.limit:
            return False
        self._stamps.append(now)
        return True


def _error(code: str, message: str) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.ERROR,
        payload=ErrorPayload(error_code=code, message=message).model_dump(),
    )


def parse_frame(raw_text: str) -> WSClientMessage | WSServerMessage:
    """Decode one text frame into a client message, or the error to send back."""
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        return _error("INVALID_JSON", "Invalid JSON format")
    try:
        return WSClientMessage.model_validate(data)
    except ValidationError as e:
        logger.debug("Rejected frame: %s", e)
        return _error("INVALID_MESSAGE", "Invalid message format")


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    user_id: str = Query(..., min_length=1, description="Participant ID"),
    room_id: str = Query(..., min_length=1, description="Room to connect to"),
):
    """WebSocket endpoint for real-time room connections.

    Clients connect with: ws://host/api/v1/ws?user_id=<id>&room_id=<id>

    The user must already have joined the room (REST join) as a player or
    spectator. On success the server sends a 'connected' message with the
    room snapshot and, if a game is running, its current state.
    """
    room_service = get_room_service()
    snapshot = await room_service.get_room_snapshot(room_id)
    if snapshot is None:
        logger.warning("WS connection rejected for user %s: room %s not found", user_id, room_id)
        await websocket.close(code=WSCloseCode.ROOM_NOT_FOUND)
        return
    if snapshot.get_participant(user_id) is None:
        logger.warning("WS connection rejected for user %s: not in room %s", user_id, room_id)
        await websocket.close(code=WSCloseCode.ROOM_ACCESS_DENIED)
        return

    await room_service.update_connected(room_id, user_id, connected=True)
    snapshot = await room_service.get_room_snapshot(room_id)
    if snapshot is None:
        await websocket.close(code=WSCloseCode.ROOM_NOT_FOUND)
        return

    record = await get_game_session_service().get_game(room_id)

    await websocket.accept()
    logger.info("WS connection accepted for user %s in room %s", user_id, room_id)

    manager = get_connection_manager()
    connection = await manager.connect(
        websocket,
        user_id,
        room_id,
        snapshot_to_pydantic(snapshot),
        game=record.to_wire() if record else None,
    )

    await manager.send_to_room(
        room_id,
        room_updated(snapshot),
        exclude_connection=connection.connection_id,
    )

    settings = get_settings()
    window = MessageWindow(settings.WS_MAX_MESSAGES_PER_SECOND)
    conn_id = connection.connection_id
    room_closed = False
    try:
        while websocket.client_state == WebSocketState.CONNECTED:
            frame = await websocket.receive()
            if frame.get("type") == "websocket.disconnect":
                break

            raw_text = frame.get("text")
            if raw_text is None:
                if frame.get("bytes"):
                    await manager.send_to_connection(
                        conn_id, _error("INVALID_MESSAGE", "Binary frames are not supported")
                    )
                continue

            if len(raw_text.encode("utf-8")) > settings.WS_MAX_MESSAGE_BYTES:
                logger.warning("Oversized frame from connection %s", conn_id[:8])
                await manager.send_to_connection(
                    conn_id,
                    _error(
                        "MESSAGE_TOO_LARGE",
                        f"Message exceeds maximum size of {settings.WS_MAX_MESSAGE_BYTES} bytes",
                    ),
                )
                continue

            if not window.allow():
                logger.warning("Connection %s is sending too fast", conn_id[:8])
                await manager.send_to_connection(
                    conn_id, _error("RATE_LIMITED", "Too many messages, please slow down")
                )
                continue

            message = parse_frame(raw_text)
            if isinstance(message, WSServerMessage):
                await manager.send_to_connection(conn_id, message)
                continue

            result = await dispatch(
                HandlerContext(
                    connection_id=conn_id,
                    user_id=user_id,
                    room_id=room_id,
                    message=message,
                    manager=manager,
                )
            )
            if result is None:
                await manager.send_to_connection(
                    conn_id,
                    _error("INVALID_MESSAGE", f"Unsupported message type: {message.type.value}"),
                )
                continue

            if result.response:
                await manager.send_to_connection(conn_id, result.response)

            if result.room_id:
                exclude = None if result.include_sender else conn_id
                for broadcast in result.broadcasts:
                    await manager.send_to_room(result.room_id, broadcast, exclude_connection=exclude)

            if result.close_room:
                room_closed = True
                await manager.close_room(room_id)
                break

    except WebSocketDisconnect as e:
        logger.info("User %s left room %s (code %s)", user_id[:8], room_id[:8], e.code)
    except Exception:
        logger.exception("Socket loop failed for connection %s", conn_id[:8])
    finally:
        await manager.disconnect(conn_id)

        if not room_closed:
            if manager.get_user_connection_count(user_id) == 0:
                await room_service.update_connected(room_id, user_id, connected=False)
            updated = await room_service.get_room_snapshot(room_id)
            if updated:
                await manager.send_to_room(room_id, room_updated(updated))
