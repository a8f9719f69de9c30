"""Room service for managing game rooms."""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field

from upstash_redis.asyncio import Redis

from app.config import get_settings
from app.dependencies.redis import get_redis_client
from app.schemas.game_engine import BotDifficulty, GameType
from app.services.game.start_game import PLAYER_COUNT_LIMITS

logger = logging.getLogger(__name__)

ACTIVE_ROOMS_KEY = "rooms:active"

STATUS_WAITING = "waiting"
STATUS_PLAYING = "playing"
STATUS_FINISHED = "finished"

BOT_NAMES = ["Ada", "Babbage", "Turing", "Hopper", "Lovelace", "Knuth", "Dijkstra", "Ritchie"]


@dataclass
class ParticipantData:
    """Data for a single room participant (human, bot or spectator)."""

    user_id: str
    display_name: str | None = None
    seat: int | None = None
    is_spectator: bool = False
    is_bot: bool = False
    bot_difficulty: str | None = None
    ready: bool = False
    connected: bool = False
    is_host: bool = False
    joined_at_ms: int = 0


@dataclass
class RoomSnapshotData:
    """Complete room snapshot data."""

    room_id: str
    name: str
    game_type: str
    status: str
    host_id: str
    max_players: int
    participants: list[ParticipantData] = field(default_factory=list)
    version: int = 0

    @property
    def players(self) -> list[ParticipantData]:
        """Seated participants in seat order. Spectators are excluded."""
        seated = [p for p in self.participants if not p.is_spectator and p.seat is not None]
        return sorted(seated, key=lambda p: p.seat)

    @property
    def player_slots(self) -> list[str]:
        return [p.user_id for p in self.players]

    def get_participant(self, user_id: str) -> ParticipantData | None:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def bot_difficulties(self) -> dict[str, str]:
        """Bot slot -> difficulty for every seated bot."""
        return {
            p.user_id: p.bot_difficulty or get_settings().DEFAULT_BOT_DIFFICULTY.value
            for p in self.players
            if p.is_bot
        }


@dataclass
class RoomResult:
    """Result of a room operation."""

    success: bool
    room_snapshot: RoomSnapshotData | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, snapshot: RoomSnapshotData | None) -> "RoomResult":
        return cls(success=True, room_snapshot=snapshot)

    @classmethod
    def error(cls, code: str, message: str) -> "RoomResult":
        return cls(success=False, error_code=code, error_message=message)


@dataclass
class ToggleReadyResult:
    """Result of toggle_ready operation."""

    success: bool
    new_ready_state: bool | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass
class LeaveRoomResult:
    """Result of leave_room operation."""

    success: bool
    room_closed: bool = False
    room_snapshot: RoomSnapshotData | None = None
    error_code: str | None = None
    error_message: str | None = None


class RoomService:
    """Service for managing game rooms.

    All room state lives in Redis:
        - room:{room_id}:meta (Hash) - name, game type, status, host, limits, version
        - room:{room_id}:participants (Hash) - user:{user_id} -> participant JSON
        - room:{room_id}:seats (Hash) - seat index -> user id, claimed with HSETNX
        - room:{room_id}:presence (Set) - connected user ids
        - rooms:active (Set) - ids of rooms that have not been closed
    """

    def __init__(self, redis_client: Redis | None = None, room_ttl_seconds: int | None = None):
        self._redis = redis_client or get_redis_client()
        self._ttl = room_ttl_seconds or get_settings().ROOM_TTL_SECONDS

    def _redis_room_meta_key(self, room_id: str) -> str:
        return f"room:{room_id}:meta"

    def _redis_room_participants_key(self, room_id: str) -> str:
        return f"room:{room_id}:participants"

    def _redis_room_seats_key(self, room_id: str) -> str:
        return f"room:{room_id}:seats"

    def _redis_room_presence_key(self, room_id: str) -> str:
        return f"room:{room_id}:presence"

    @staticmethod
    def _participant_field(user_id: str) -> str:
        return f"user:{user_id}"

    async def _touch(self, room_id: str) -> None:
        """Bump the room version and refresh key expiry."""
        meta_key = self._redis_room_meta_key(room_id)
        await self._redis.hincrby(meta_key, "version", 1)
        await self._redis.expire(meta_key, self._ttl)
        await self._redis.expire(self._redis_room_participants_key(room_id), self._ttl)
        await self._redis.expire(self._redis_room_seats_key(room_id), self._ttl)

    async def _save_participant(self, room_id: str, participant: ParticipantData) -> None:
        await self._redis.hset(
            self._redis_room_participants_key(room_id),
            self._participant_field(participant.user_id),
            json.dumps(participant.__dict__),
        )

    async def _claim_seat(self, room_id: str, user_id: str, max_players: int) -> int | None:
        """Take the lowest free seat with HSETNX; None when every seat is held."""
        seats_key = self._redis_room_seats_key(room_id)
        for seat in range(max_players):
            if await self._redis.hsetnx(seats_key, str(seat), user_id):
                return seat
        return None

    async def _release_seat(self, room_id: str, seat: int | None) -> None:
        if seat is not None:
            await self._redis.hdel(self._redis_room_seats_key(room_id), str(seat))

    async def create_room(
        self,
        user_id: str,
        name: str,
        game_type: GameType | str,
        max_players: int | None = None,
        display_name: str | None = None,
    ) -> RoomResult:
        """Create a new game room with the creator seated as host.

        Args:
            user_id: The user creating the room.
            name: Lobby name.
            game_type: Game to play.
            max_players: Seats available; must fit the game's player-count
                limits. Defaults to the game's maximum.
            display_name: Name shown for the host.

        Returns:
            RoomResult with the new room snapshot, or error info on failure.
        """
        game_type = GameType(game_type)
        low, high = PLAYER_COUNT_LIMITS[game_type]
        max_players = max_players or high
        if not low <= max_players <= high:
            return RoomResult.error(
                "INVALID_PLAYER_COUNT",
                f"{game_type.value} rooms take between {low} and {high} players",
            )

        room_id = str(uuid.uuid4())
        now_ms = int(time.time() * 1000)

        try:
            await self._redis.hset(
                self._redis_room_meta_key(room_id),
                values={
                    "room_id": room_id,
                    "name": name,
                    "game_type": game_type.value,
                    "status": STATUS_WAITING,
                    "host_id": user_id,
                    "max_players": str(max_players),
                    "created_at_ms": str(now_ms),
                    "version": "0",
                },
            )
            await self._redis.hsetnx(self._redis_room_seats_key(room_id), "0", user_id)
            await self._save_participant(
                room_id,
                ParticipantData(
                    user_id=user_id,
                    display_name=display_name,
                    seat=0,
                    is_host=True,
                    joined_at_ms=now_ms,
                ),
            )
            await self._redis.sadd(ACTIVE_ROOMS_KEY, room_id)
            await self._touch(room_id)
        except Exception as e:
            logger.exception("Error creating room for user %s: %s", user_id, e)
            return RoomResult.error("INTERNAL_ERROR", "Failed to create room")

        logger.info(
            "Room created: room_id=%s, game=%s, max_players=%d, host=%s",
            room_id,
            game_type.value,
            max_players,
            user_id,
        )
        return RoomResult.ok(await self.get_room_snapshot(room_id))

    async def get_room_snapshot(self, room_id: str) -> RoomSnapshotData | None:
        """Get a complete room snapshot from Redis.

        Returns None if the room doesn't exist in Redis.
        """
        meta = await self._redis.hgetall(self._redis_room_meta_key(room_id))
        if not meta:
            logger.debug("Room %s not found in Redis", room_id)
            return None

        participants_raw = await self._redis.hgetall(self._redis_room_participants_key(room_id))
        participants: list[ParticipantData] = []
        for raw in (participants_raw or {}).values():
            try:
                participants.append(ParticipantData(**json.loads(raw)))
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning("Skipping malformed participant in room %s: %s", room_id, e)
        participants.sort(key=lambda p: p.joined_at_ms)

        return RoomSnapshotData(
            room_id=room_id,
            name=meta.get("name", ""),
            game_type=meta.get("game_type", GameType.CHESS.value),
            status=meta.get("status", STATUS_WAITING),
            host_id=meta.get("host_id", ""),
            max_players=int(meta.get("max_players", 2)),
            participants=participants,
            version=int(meta.get("version", 0)),
        )

    async def list_rooms(self) -> list[RoomSnapshotData]:
        """Snapshots of every active room, dropping ids whose keys expired."""
        room_ids = await self._redis.smembers(ACTIVE_ROOMS_KEY)
        rooms = []
        for room_id in sorted(room_ids or []):
            snapshot = await self.get_room_snapshot(room_id)
            if snapshot is None:
                await self._redis.srem(ACTIVE_ROOMS_KEY, room_id)
                continue
            rooms.append(snapshot)
        return rooms

    async def join_room(
        self,
        room_id: str,
        user_id: str,
        display_name: str | None = None,
        as_spectator: bool = False,
    ) -> RoomResult:
        """Join a room as a player or spectator.

        Rejoining is idempotent. Once a game is running, newcomers can only
        watch.
        """
        snapshot = await self.get_room_snapshot(room_id)
        if snapshot is None:
            return RoomResult.error("ROOM_NOT_FOUND", "Room not found")

        existing = snapshot.get_participant(user_id)
        if existing is not None:
            logger.info("User %s rejoined room %s", user_id, room_id)
            return RoomResult.ok(snapshot)

        now_ms = int(time.time() * 1000)
        if as_spectator or snapshot.status != STATUS_WAITING:
            participant = ParticipantData(
                user_id=user_id,
                display_name=display_name,
                is_spectator=True,
                joined_at_ms=now_ms,
            )
        else:
            seat = await self._claim_seat(room_id, user_id, snapshot.max_players)
            if seat is None:
                return RoomResult.error("ROOM_FULL", "Room is full")
            participant = ParticipantData(
                user_id=user_id,
                display_name=display_name,
                seat=seat,
                joined_at_ms=now_ms,
            )

        await self._save_participant(room_id, participant)
        await self._touch(room_id)
        logger.info(
            "User %s joined room %s as %s",
            user_id,
            room_id,
            "spectator" if participant.is_spectator else f"seat {participant.seat}",
        )
        return RoomResult.ok(await self.get_room_snapshot(room_id))

    async def add_bot(
        self,
        room_id: str,
        user_id: str,
        difficulty: BotDifficulty | str | None = None,
    ) -> RoomResult:
        """Seat a bot (host only, before the game starts). Bots are always ready."""
        snapshot = await self.get_room_snapshot(room_id)
        if snapshot is None:
            return RoomResult.error("ROOM_NOT_FOUND", "Room not found")
        if snapshot.host_id != user_id:
            return RoomResult.error("NOT_HOST", "Only the host can add bots")
        if snapshot.status != STATUS_WAITING:
            return RoomResult.error("GAME_ALREADY_STARTED", "Bots can only join before the game starts")
        difficulty = BotDifficulty(difficulty or get_settings().DEFAULT_BOT_DIFFICULTY)
        bot_id = f"bot-{uuid.uuid4().hex[:12]}"
        seat = await self._claim_seat(room_id, bot_id, snapshot.max_players)
        if seat is None:
            return RoomResult.error("ROOM_FULL", "Room is full")
        await self._save_participant(
            room_id,
            ParticipantData(
                user_id=bot_id,
                display_name=f"{BOT_NAMES[seat % len(BOT_NAMES)]} (bot)",
                seat=seat,
                is_bot=True,
                bot_difficulty=difficulty.value,
                ready=True,
                connected=True,
                joined_at_ms=int(time.time() * 1000),
            ),
        )
        await self._touch(room_id)
        logger.info("Bot %s (%s) added to room %s at seat %d", bot_id, difficulty.value, room_id, seat)
        return RoomResult.ok(await self.get_room_snapshot(room_id))

    async def toggle_ready(self, room_id: str, user_id: str) -> ToggleReadyResult:
        """Flip a seated human's ready flag."""
        snapshot = await self.get_room_snapshot(room_id)
        if snapshot is None:
            return ToggleReadyResult(False, error_code="ROOM_NOT_FOUND", error_message="Room not found")
        participant = snapshot.get_participant(user_id)
        if participant is None:
            return ToggleReadyResult(False, error_code="NOT_IN_ROOM", error_message="You are not in this room")
        if participant.is_spectator:
            return ToggleReadyResult(
                False, error_code="VALIDATION_ERROR", error_message="Spectators cannot ready up"
            )
        if snapshot.status != STATUS_WAITING:
            return ToggleReadyResult(
                False, error_code="GAME_ALREADY_STARTED", error_message="Game has already started"
            )

        participant.ready = not participant.ready
        await self._save_participant(room_id, participant)
        await self._touch(room_id)
        return ToggleReadyResult(True, new_ready_state=participant.ready)

    async def leave_room(self, room_id: str, user_id: str) -> LeaveRoomResult:
        """Remove a participant. The host leaving closes the room."""
        snapshot = await self.get_room_snapshot(room_id)
        if snapshot is None:
            return LeaveRoomResult(False, error_code="ROOM_NOT_FOUND", error_message="Room not found")
        leaving = snapshot.get_participant(user_id)
        if leaving is None:
            return LeaveRoomResult(False, error_code="NOT_IN_ROOM", error_message="You are not in this room")

        if snapshot.host_id == user_id:
            await self.close_room(room_id)
            logger.info("Host %s left, room %s closed", user_id, room_id)
            return LeaveRoomResult(True, room_closed=True)

        await self._redis.hdel(self._redis_room_participants_key(room_id), self._participant_field(user_id))
        await self._release_seat(room_id, leaving.seat)
        await self.remove_presence(user_id, room_id)
        await self._touch(room_id)
        logger.info("User %s left room %s", user_id, room_id)
        return LeaveRoomResult(True, room_snapshot=await self.get_room_snapshot(room_id))

    async def close_room(self, room_id: str) -> None:
        await self._redis.delete(
            self._redis_room_meta_key(room_id),
            self._redis_room_participants_key(room_id),
            self._redis_room_seats_key(room_id),
            self._redis_room_presence_key(room_id),
        )
        await self._redis.srem(ACTIVE_ROOMS_KEY, room_id)

    async def set_status(self, room_id: str, status: str) -> None:
        await self._redis.hset(self._redis_room_meta_key(room_id), "status", status)
        await self._touch(room_id)
        logger.info("Room %s status -> %s", room_id, status)

    async def reset_for_rematch(self, room_id: str) -> RoomSnapshotData | None:
        """Back to the lobby: status waiting, every human unready."""
        snapshot = await self.get_room_snapshot(room_id)
        if snapshot is None:
            return None
        for participant in snapshot.participants:
            if not participant.is_bot and participant.ready:
                participant.ready = False
                await self._save_participant(room_id, participant)
        await self.set_status(room_id, STATUS_WAITING)
        return await self.get_room_snapshot(room_id)

    async def change_game_type(
        self, room_id: str, user_id: str, game_type: GameType | str
    ) -> RoomResult:
        """Switch the room to another game (host only, waiting rooms only)."""
        game_type = GameType(game_type)
        snapshot = await self.get_room_snapshot(room_id)
        if snapshot is None:
            return RoomResult.error("ROOM_NOT_FOUND", "Room not found")
        if snapshot.host_id != user_id:
            return RoomResult.error("NOT_HOST", "Only the host can change the game")
        if snapshot.status != STATUS_WAITING:
            return RoomResult.error("GAME_ALREADY_STARTED", "The game type is locked once play starts")

        low, high = PLAYER_COUNT_LIMITS[game_type]
        if len(snapshot.players) > high:
            return RoomResult.error(
                "INVALID_PLAYER_COUNT",
                f"{game_type.value} seats at most {high} players",
            )

        # players keep their order but move down to seats 0..n-1
        seated = snapshot.players
        for seat, participant in enumerate(seated):
            participant.seat = seat
            if not participant.is_bot:
                participant.ready = False
            await self._save_participant(room_id, participant)
        seats_key = self._redis_room_seats_key(room_id)
        if seated:
            await self._redis.hset(
                seats_key, values={str(seat): p.user_id for seat, p in enumerate(seated)}
            )
        stale = [str(seat) for seat in range(len(seated), snapshot.max_players)]
        if stale:
            await self._redis.hdel(seats_key, *stale)
        await self._redis.hset(
            self._redis_room_meta_key(room_id),
            values={"game_type": game_type.value, "max_players": str(high)},
        )
        await self._touch(room_id)
        logger.info("Room %s switched to %s by %s", room_id, game_type.value, user_id)
        return RoomResult.ok(await self.get_room_snapshot(room_id))

    async def update_connected(self, room_id: str, user_id: str, connected: bool) -> None:
        """Update the connected flag and presence set for a participant."""
        snapshot = await self.get_room_snapshot(room_id)
        if snapshot is None:
            return
        participant = snapshot.get_participant(user_id)
        if participant is None:
            return
        participant.connected = connected
        await self._save_participant(room_id, participant)
        presence_key = self._redis_room_presence_key(room_id)
        if connected:
            await self._redis.sadd(presence_key, user_id)
            await self._redis.expire(presence_key, self._ttl)
        else:
            await self.remove_presence(user_id, room_id)
        await self._touch(room_id)

    async def refresh_presence(self, room_id: str, user_id: str) -> bool:
        """Keep a participant in the presence set and push back room expiry.

        Heartbeats do not bump the room version. Returns False for a user
        who is not in the room.
        """
        participants_key = self._redis_room_participants_key(room_id)
        if await self._redis.hget(participants_key, self._participant_field(user_id)) is None:
            return False
        presence_key = self._redis_room_presence_key(room_id)
        await self._redis.sadd(presence_key, user_id)
        for key in (
            presence_key,
            participants_key,
            self._redis_room_meta_key(room_id),
            self._redis_room_seats_key(room_id),
        ):
            await self._redis.expire(key, self._ttl)
        return True

    async def remove_presence(self, user_id: str, room_id: str) -> None:
        """Remove user presence from a room."""
        try:
            await self._redis.srem(self._redis_room_presence_key(room_id), user_id)
            logger.debug("Removed presence for user %s from room %s", user_id, room_id)
        except Exception as e:
            logger.warning(
                "Failed to remove presence for user %s from room %s: %s",
                user_id,
                room_id,
                e,
            )


# Singleton instance
_room_service: RoomService | None = None


def get_room_service() -> RoomService:
    """Get the singleton RoomService instance."""
    global _room_service
    if _room_service is None:
        _room_service = RoomService()
    return _room_service
