"""Redis persistence for running games.

One hash per room, game:{room_id}, written with a single HSET per change:
    - state: full game state JSON
    - current_turn: player slot on turn
    - turn_number: accepted-move counter, strictly increasing
    - game_id: identity of this game; a rematch gets a new one
    - game_type
"""

import json
import logging
import uuid
from dataclasses import dataclass

from upstash_redis.asyncio import Redis

from app.dependencies.redis import get_redis_client
from app.schemas.game_engine import parse_game_state

logger = logging.getLogger(__name__)


@dataclass
class GameRecord:
    """A stored game and its bookkeeping fields."""

    room_id: str
    game_id: str
    state: object
    current_turn: str
    turn_number: int

    def to_wire(self) -> dict:
        """Client-facing serialization of the state."""
        return self.state.model_dump(mode="json")


class GameStateStore:
    def __init__(self, redis_client: Redis | None = None, ttl_seconds: int | None = None):
        self._redis = redis_client or get_redis_client()
        self._ttl = ttl_seconds

    @staticmethod
    def _key(room_id: str) -> str:
        return f"game:{room_id}"

    async def _write(self, record: GameRecord) -> None:
        key = self._key(record.room_id)
        await self._redis.hset(
            key,
            values={
                "state": json.dumps(record.state.model_dump(mode="json")),
                "current_turn": record.current_turn,
                "turn_number": str(record.turn_number),
                "game_id": record.game_id,
                "game_type": record.state.game_type,
            },
        )
        if self._ttl:
            await self._redis.expire(key, self._ttl)

    async def create(self, room_id: str, state) -> GameRecord:
        record = GameRecord(
            room_id=room_id,
            game_id=str(uuid.uuid4()),
            state=state,
            current_turn=state.current_turn,
            turn_number=0,
        )
        await self._write(record)
        logger.info("Game %s stored for room %s (%s)", record.game_id, room_id, state.game_type)
        return record

    async def get(self, room_id: str) -> GameRecord | None:
        """Load the room's game, or None if there is none.

        Raises:
            ValueError: If the stored state no longer validates.
        """
        raw = await self._redis.hgetall(self._key(room_id))
        if not raw:
            return None
        state = parse_game_state(json.loads(raw["state"]))
        return GameRecord(
            room_id=room_id,
            game_id=raw["game_id"],
            state=state,
            current_turn=raw.get("current_turn", state.current_turn),
            turn_number=int(raw.get("turn_number", 0)),
        )

    async def update(self, record: GameRecord, state) -> GameRecord:
        """Persist a new state for the record's game, bumping the turn counter."""
        updated = GameRecord(
            room_id=record.room_id,
            game_id=record.game_id,
            state=state,
            current_turn=state.current_turn,
            turn_number=record.turn_number + 1,
        )
        await self._write(updated)
        logger.debug(
            "Game %s updated: turn_number=%d, current_turn=%s",
            record.game_id,
            updated.turn_number,
            updated.current_turn[:8],
        )
        return updated

    async def delete(self, room_id: str) -> None:
        await self._redis.delete(self._key(room_id))
        logger.info("Game state deleted for room %s", room_id)
