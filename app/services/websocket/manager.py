import asyncio
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import WebSocket
from upstash_redis.asyncio import Redis

from app.config import get_settings
from app.dependencies.redis import get_redis_client
from app.schemas.ws import (
    ConnectedPayload,
    MessageType,
    RoomSnapshot,
    WSCloseCode,
    WSServerMessage,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    """An open WebSocket bound to one user in one room."""

    connection_id: str
    websocket: WebSocket
    user_id: str
    room_id: str
    connected_at: datetime = field(default_factory=_utcnow)
    last_heartbeat: datetime = field(default_factory=_utcnow)


class ConnectionManager:
    """Tracks the sockets open on this server, grouped by room.

    A socket belongs to exactly one room for its whole life, fixed at
    connect time. Presence across servers is a Redis counter per user
    (``ws:user:{user_id}:conn_count``); the key is removed when it drops
    to zero.
    """

    def __init__(self, redis_client: Redis | None = None, server_id: str | None = None):
        self._redis = redis_client or get_redis_client()
        self._server_id = server_id or os.getenv("HOSTNAME", str(uuid.uuid4())[:8])
        self._settings = get_settings()

        self._connections: dict[str, Connection] = {}
        self._by_user: dict[str, set[str]] = {}
        self._by_room: dict[str, set[str]] = {}

        self._sweeper: asyncio.Task | None = None

        logger.info("ConnectionManager ready on server %s", self._server_id)

    @property
    def server_id(self) -> str:
        return self._server_id

    @staticmethod
    def _presence_key(user_id: str) -> str:
        return f"ws:user:{user_id}:conn_count"

    async def connect(
        self,
        websocket: WebSocket,
        user_id: str,
        room_id: str,
        room: RoomSnapshot,
        game: dict | None = None,
    ) -> Connection:
        """Register an accepted socket and greet it with CONNECTED.

        The greeting carries the room snapshot and, when a game is running,
        its wire state so a reconnecting player can resume immediately.
        """
        connection = Connection(
            connection_id=str(uuid.uuid4()),
            websocket=websocket,
            user_id=user_id,
            room_id=room_id,
        )
        conn_id = connection.connection_id

        self._connections[conn_id] = connection
        self._by_user.setdefault(user_id, set()).add(conn_id)
        self._by_room.setdefault(room_id, set()).add(conn_id)

        try:
            await self._redis.incr(self._presence_key(user_id))
        except Exception as e:
            logger.error("Presence increment failed for user %s: %s", user_id[:8], e)

        logger.info(
            "User %s joined room %s over connection %s (%d local sockets in room)",
            user_id[:8],
            room_id[:8],
            conn_id[:8],
            len(self._by_room[room_id]),
        )

        greeting = ConnectedPayload(
            connection_id=conn_id,
            user_id=user_id,
            server_id=self._server_id,
            room=room,
            game=game,
        )
        await self.send_to_connection(
            conn_id,
            WSServerMessage(type=MessageType.CONNECTED, payload=greeting.model_dump(mode="json")),
        )
        return connection

    async def disconnect(self, connection_id: str) -> None:
        """Forget a socket locally and release its presence count."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return

        for index, key in ((self._by_room, connection.room_id), (self._by_user, connection.user_id)):
            members = index.get(key)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del index[key]

        presence_key = self._presence_key(connection.user_id)
        try:
            remaining = await self._redis.decr(presence_key)
            if remaining is not None and int(remaining) <= 0:
                await self._redis.delete(presence_key)
        except Exception as e:
            logger.error("Presence decrement failed for user %s: %s", connection.user_id[:8], e)

        logger.info("Connection %s closed for user %s", connection_id[:8], connection.user_id[:8])

    async def _close(self, connection_id: str, code: int) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            try:
                await connection.websocket.close(code=code)
            except Exception as e:
                logger.debug("Socket %s was already gone: %s", connection_id[:8], e)
        await self.disconnect(connection_id)

    async def heartbeat(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection:
            connection.last_heartbeat = _utcnow()

    async def sweep_stale(self) -> int:
        """Close sockets that have not pinged within WS_CONNECTION_TIMEOUT."""
        cutoff = self._settings.WS_CONNECTION_TIMEOUT
        now = _utcnow()
        stale = [
            conn_id
            for conn_id, connection in self._connections.items()
            if (now - connection.last_heartbeat).total_seconds() > cutoff
        ]
        for conn_id in stale:
            logger.warning("Dropping silent connection %s", conn_id[:8])
            await self._close(conn_id, WSCloseCode.GOING_AWAY)
        return len(stale)

    async def start_cleanup_task(self) -> None:
        if self._sweeper is not None:
            logger.warning("Stale-connection sweep already running")
            return

        async def sweep_forever():
            interval = self._settings.WS_HEARTBEAT_INTERVAL
            while True:
                await asyncio.sleep(interval)
                try:
                    dropped = await self.sweep_stale()
                except Exception:
                    logger.exception("Stale-connection sweep failed")
                    continue
                if dropped:
                    logger.info("Swept %d stale connections", dropped)

        self._sweeper = asyncio.create_task(sweep_forever())
        logger.info("Stale-connection sweep every %ds", self._settings.WS_HEARTBEAT_INTERVAL)

    async def stop_cleanup_task(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def close_all_connections(self) -> None:
        logger.info("Closing %d connections for shutdown", len(self._connections))
        for conn_id in list(self._connections):
            await self._close(conn_id, WSCloseCode.GOING_AWAY)

    async def close_room(self, room_id: str, code: int = WSCloseCode.NORMAL) -> None:
        """Close every local socket in a room (host left, room deleted)."""
        for conn_id in list(self._by_room.get(room_id, ())):
            await self._close(conn_id, code)

    async def send_to_connection(self, connection_id: str, message: WSServerMessage) -> bool:
        """Send to one socket. A failed send drops the connection and returns False."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False

        try:
            await connection.websocket.send_json(message.model_dump(mode="json", exclude_none=True))
        except Exception as e:
            logger.warning("Send to connection %s failed: %s", connection_id[:8], e)
            await self.disconnect(connection_id)
            return False
        return True

    async def send_to_room(
        self, room_id: str, message: WSServerMessage, exclude_connection: str | None = None
    ) -> int:
        """Fan a message out to the room's sockets on this server; returns the delivery count."""
        delivered = 0
        for conn_id in list(self._by_room.get(room_id, ())):
            if conn_id != exclude_connection and await self.send_to_connection(conn_id, message):
                delivered += 1
        return delivered

    def get_user_connection_count(self, user_id: str) -> int:
        return len(self._by_user.get(user_id, ()))

    def get_room_connection_count(self, room_id: str) -> int:
        return len(self._by_room.get(room_id, ()))

    def get_total_connection_count(self) -> int:
        return len(self._connections)


_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager
