from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, computed_field

# Winner marker for drawn games
DRAW = "draw"

Board = list[list[str | None]]


class GameType(str, Enum):
    CHESS = "chess"
    CHECKERS = "checkers"
    HEARTS = "hearts"
    SPADES = "spades"
    CRAZY8S = "crazy8s"
    GOFISH = "gofish"


# Game phases
class GamePhase(str, Enum):
    PASSING = "passing"
    BIDDING = "bidding"
    PLAYING = "playing"
    SCORING = "scoring"
    FINISHED = "finished"


class EndReason(str, Enum):
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    FORFEIT = "forfeit"
    HAND_EMPTY = "hand_empty"
    NO_PIECES = "no_pieces"
    NO_MOVES = "no_moves"
    SCORE_LIMIT = "score_limit"
    ALL_BOOKS = "all_books"
    DRAW_AGREED = "draw_agreed"


class BotDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class PassDirection(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    ACROSS = "across"
    HOLD = "hold"


class Square(BaseModel):
    row: int = Field(..., ge=0, le=7)
    col: int = Field(..., ge=0, le=7)


class TrickPlay(BaseModel):
    player_id: str
    card: str


class BaseGameState(BaseModel):
    """Fields shared by every game.

    `current_turn` is the only stored turn pointer. The seat index is derived
    from it on demand so the two can never drift apart.
    """

    players: list[str]
    current_turn: str
    phase: GamePhase = GamePhase.PLAYING
    game_over: bool = False
    winner: str | None = None
    end_reason: EndReason | None = None
    move_count: int = 0
    event_seq: int = 0  # Next sequence number for events (monotonically increasing)

    @computed_field
    @property
    def turn(self) -> int:
        return self.players.index(self.current_turn)


# Board games
class ChessState(BaseGameState):
    game_type: Literal["chess"] = "chess"
    board: Board
    move_history: list[dict] = []
    captured_pieces: dict[str, list[str]] = Field(
        default_factory=lambda: {"white": [], "black": []}
    )
    in_check: bool = False
    player_colors: dict[str, str] = {}


class CheckersState(BaseGameState):
    game_type: Literal["checkers"] = "checkers"
    board: Board
    move_history: list[dict] = []
    captured_pieces: dict[str, int] = Field(default_factory=lambda: {"red": 0, "black": 0})
    player_colors: dict[str, str] = {}


# Card games
class HeartsState(BaseGameState):
    game_type: Literal["hearts"] = "hearts"
    hands: dict[str, list[str]]
    trick: list[TrickPlay] = []
    lead_player: str | None = None
    hearts_broken: bool = False
    taken: dict[str, list[str]]
    pending_passes: dict[str, list[str]] = {}
    pass_direction: PassDirection = PassDirection.LEFT
    scores: dict[str, int]
    round: int = 1
    last_trick_winner: str | None = None


class SpadesState(BaseGameState):
    game_type: Literal["spades"] = "spades"
    hands: dict[str, list[str]]
    bids: dict[str, int] = {}
    tricks: dict[str, int]
    trick: list[TrickPlay] = []
    lead_player: str | None = None
    spades_broken: bool = False
    taken: dict[str, list[str]]
    team_scores: list[int] = [0, 0]
    team_bags: list[int] = [0, 0]
    round: int = 1
    last_trick_winner: str | None = None


class Crazy8sState(BaseGameState):
    game_type: Literal["crazy8s"] = "crazy8s"
    hands: dict[str, list[str]]
    draw_pile: list[str]
    discard_pile: list[str]
    current_suit: str | None = None


class GoFishState(BaseGameState):
    game_type: Literal["gofish"] = "gofish"
    hands: dict[str, list[str]]
    draw_pile: list[str]
    books: dict[str, list[str]]
    last_ask: dict | None = None


CardGameState = HeartsState | SpadesState | Crazy8sState | GoFishState

# Tagged union keyed by game_type
GameState = Annotated[
    ChessState | CheckersState | HeartsState | SpadesState | Crazy8sState | GoFishState,
    Field(discriminator="game_type"),
]

_game_state_adapter = TypeAdapter(GameState)


def parse_game_state(data: dict) -> ChessState | CheckersState | CardGameState:
    """Validate a serialized state dict into the model for its game_type."""
    return _game_state_adapter.validate_python(data)
