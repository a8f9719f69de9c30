"""Game event types - emitted during state transitions for WebSocket broadcasts.

Events describe what happened during a move, enabling:
- Client animations (a trick being collected, a round being scored)
- Action replay / audit logging
- Reconnection catch-up via the monotonically increasing seq
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import EndReason, GameType


class GameEvent(BaseModel):
    """Base class for all game events."""

    event_type: str
    seq: int = 0  # Sequence number assigned during processing


class GameStarted(GameEvent):
    """A new game state was created for the room."""

    event_type: Literal["game_started"] = "game_started"
    game_type: GameType
    player_order: list[str] = Field(..., description="Player slots in seat order")
    first_player_id: str


class MoveApplied(GameEvent):
    """A player's move was accepted."""

    event_type: Literal["move_applied"] = "move_applied"
    player_id: str
    move: dict = Field(..., description="The move in {kind, data} wire form")
    next_player_id: str


class TrickCompleted(GameEvent):
    """Every seat played to the trick; the winner leads next."""

    event_type: Literal["trick_completed"] = "trick_completed"
    winner_id: str
    cards: list[str]
    points: int = 0


class RoundScored(GameEvent):
    """A card-game round ended and scores were updated."""

    event_type: Literal["round_scored"] = "round_scored"
    round: int
    scores: dict[str, int] = Field(
        ..., description="Running totals keyed by player slot (or team index for spades)"
    )


class TurnSkipped(GameEvent):
    """The player on turn could not move and the turn passed on."""

    event_type: Literal["turn_skipped"] = "turn_skipped"
    player_id: str
    next_player_id: str


class GameEnded(GameEvent):
    """The game has finished."""

    event_type: Literal["game_ended"] = "game_ended"
    winner: str | None
    reason: EndReason


# Union of all event types for type checking
AnyGameEvent = Annotated[
    GameStarted | MoveApplied | TrickCompleted | RoundScored | TurnSkipped | GameEnded,
    Field(discriminator="event_type"),
]
