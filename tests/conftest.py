"""Shared fixtures for engine, bot and service tests."""

import os
import random

# Settings are read lazily, but anything that touches get_settings() needs these
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test-token")

import pytest  # noqa: E402

from app.schemas.game_engine import (  # noqa: E402
    Board,
    CheckersState,
    ChessState,
    Crazy8sState,
    GamePhase,
    GoFishState,
    HeartsState,
    PassDirection,
    SpadesState,
    Square,
)
from app.services.game.engine.actions import (  # noqa: E402
    BoardMoveData,
    CheckersMove,
    CheckersMoveData,
    ChessMove,
)

# Fixed player slots for deterministic testing
PLAYER_1_ID = "player-1"
PLAYER_2_ID = "player-2"
PLAYER_3_ID = "player-3"
PLAYER_4_ID = "player-4"

TWO_PLAYERS = [PLAYER_1_ID, PLAYER_2_ID]
FOUR_PLAYERS = [PLAYER_1_ID, PLAYER_2_ID, PLAYER_3_ID, PLAYER_4_ID]


class FakeRedis:
    """In-memory stand-in for the async Upstash client (hash, set and counter commands)."""

    def __init__(self):
        self.data: dict[str, object] = {}
        self.ttls: dict[str, int] = {}

    async def hset(self, key, field=None, value=None, values=None):
        bucket = self.data.setdefault(key, {})
        added = 0
        items = dict(values or {})
        if field is not None:
            items[field] = value
        for k, v in items.items():
            if k not in bucket:
                added += 1
            bucket[k] = str(v)
        return added

    async def hsetnx(self, key, field, value):
        bucket = self.data.setdefault(key, {})
        if field in bucket:
            return False
        bucket[field] = str(value)
        return True

    async def hget(self, key, field):
        return self.data.get(key, {}).get(field)

    async def hgetall(self, key):
        return dict(self.data.get(key, {}))

    async def hdel(self, key, *fields):
        bucket = self.data.get(key, {})
        removed = 0
        for field in fields:
            if bucket.pop(field, None) is not None:
                removed += 1
        return removed

    async def hincrby(self, key, field, increment):
        bucket = self.data.setdefault(key, {})
        bucket[field] = str(int(bucket.get(field, 0)) + increment)
        return int(bucket[field])

    async def sadd(self, key, *members):
        bucket = self.data.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def srem(self, key, *members):
        bucket = self.data.get(key, set())
        before = len(bucket)
        bucket.difference_update(members)
        return before - len(bucket)

    async def smembers(self, key):
        return list(self.data.get(key, set()))

    async def expire(self, key, seconds):
        if key not in self.data:
            return 0
        self.ttls[key] = seconds
        return 1

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = str(value)
        return True

    async def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])

    async def decr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) - 1)
        return int(self.data[key])


def empty_board() -> Board:
    return [[None] * 8 for _ in range(8)]


def chess_move(from_row: int, from_col: int, to_row: int, to_col: int) -> ChessMove:
    return ChessMove(
        data=BoardMoveData(
            from_square=Square(row=from_row, col=from_col),
            to_square=Square(row=to_row, col=to_col),
        )
    )


def checkers_move(
    from_row: int, from_col: int, to_row: int, to_col: int, captures: list[tuple[int, int]] | None = None
) -> CheckersMove:
    return CheckersMove(
        data=CheckersMoveData(
            from_square=Square(row=from_row, col=from_col),
            to_square=Square(row=to_row, col=to_col),
            captures=[Square(row=r, col=c) for r, c in captures or []],
        )
    )


def create_chess_state(board: Board, current_turn: str = PLAYER_1_ID) -> ChessState:
    """Chess state on an arbitrary board. Seat 0 is white."""
    return ChessState(
        players=list(TWO_PLAYERS),
        current_turn=current_turn,
        board=board,
        player_colors={PLAYER_1_ID: "white", PLAYER_2_ID: "black"},
    )


def create_checkers_state(board: Board, current_turn: str = PLAYER_1_ID) -> CheckersState:
    """Checkers state on an arbitrary board. Seat 0 is red."""
    return CheckersState(
        players=list(TWO_PLAYERS),
        current_turn=current_turn,
        board=board,
        player_colors={PLAYER_1_ID: "red", PLAYER_2_ID: "black"},
    )


def create_hearts_state(
    hands: dict[str, list[str]],
    current_turn: str = PLAYER_1_ID,
    scores: dict[str, int] | None = None,
    taken: dict[str, list[str]] | None = None,
    **fields,
) -> HeartsState:
    """Hearts state in the playing phase with the given hands."""
    return HeartsState(
        players=list(FOUR_PLAYERS),
        current_turn=current_turn,
        phase=GamePhase.PLAYING,
        hands=hands,
        lead_player=current_turn,
        taken=taken or {pid: [] for pid in FOUR_PLAYERS},
        scores=scores or {pid: 0 for pid in FOUR_PLAYERS},
        pass_direction=PassDirection.LEFT,
        **fields,
    )


def create_spades_state(
    hands: dict[str, list[str]],
    bids: dict[str, int],
    tricks: dict[str, int] | None = None,
    current_turn: str = PLAYER_1_ID,
    **fields,
) -> SpadesState:
    """Spades state in the playing phase with bids already in."""
    return SpadesState(
        players=list(FOUR_PLAYERS),
        current_turn=current_turn,
        phase=GamePhase.PLAYING,
        hands=hands,
        bids=bids,
        tricks=tricks or {pid: 0 for pid in FOUR_PLAYERS},
        lead_player=current_turn,
        taken={pid: [] for pid in FOUR_PLAYERS},
        **fields,
    )


def create_crazy8s_state(
    hands: dict[str, list[str]],
    discard_pile: list[str],
    draw_pile: list[str] | None = None,
    current_turn: str = PLAYER_1_ID,
    **fields,
) -> Crazy8sState:
    return Crazy8sState(
        players=list(hands),
        current_turn=current_turn,
        hands=hands,
        draw_pile=draw_pile or [],
        discard_pile=discard_pile,
        **fields,
    )


def create_gofish_state(
    hands: dict[str, list[str]],
    draw_pile: list[str] | None = None,
    books: dict[str, list[str]] | None = None,
    current_turn: str = PLAYER_1_ID,
) -> GoFishState:
    return GoFishState(
        players=list(hands),
        current_turn=current_turn,
        hands=hands,
        draw_pile=draw_pile or [],
        books=books or {pid: [] for pid in hands},
    )


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible deals and bot choices."""
    return random.Random(1234)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
