"""Game move types - typed `{kind, data}` payloads sent by players and bots."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.game_engine import GamePhase, GameType, Square


class BoardMoveData(BaseModel):
    """Source and destination squares for a chess or checkers move."""

    model_config = ConfigDict(populate_by_name=True)

    from_square: Square = Field(..., alias="from")
    to_square: Square = Field(..., alias="to")


class CheckersMoveData(BoardMoveData):
    captures: list[Square] = Field(
        default_factory=list, description="Squares of every piece jumped by this move"
    )


class ChessMove(BaseModel):
    """Move a chess piece."""

    kind: Literal["chess_move"] = "chess_move"
    data: BoardMoveData


class CheckersMove(BaseModel):
    """Move or jump a checkers piece (a multi-jump is a single move)."""

    kind: Literal["checkers_move"] = "checkers_move"
    data: CheckersMoveData


class PassCardsData(BaseModel):
    cards: list[str] = Field(..., min_length=3, max_length=3)


class PassCards(BaseModel):
    """Hearts: hand three cards to the pass target at the start of a round."""

    kind: Literal["pass_cards"] = "pass_cards"
    data: PassCardsData


class PlayCardData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card: str
    new_suit: str | None = Field(None, alias="newSuit", description="Crazy eights: suit named with an 8")


class PlayCard(BaseModel):
    """Play a card from hand to the trick or discard pile."""

    kind: Literal["play_card"] = "play_card"
    data: PlayCardData


class DrawCard(BaseModel):
    """Crazy eights: take the top card of the draw pile."""

    kind: Literal["draw_card"] = "draw_card"
    data: dict = Field(default_factory=dict)


class BidData(BaseModel):
    bid: int = Field(..., ge=0, le=13)


class Bid(BaseModel):
    """Spades: declare how many tricks the player expects to take."""

    kind: Literal["bid"] = "bid"
    data: BidData


class AskForCardsData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_player: str = Field(..., alias="targetPlayer")
    rank: str


class AskForCards(BaseModel):
    """Go fish: ask another player for every card of a rank."""

    kind: Literal["ask_for_cards"] = "ask_for_cards"
    data: AskForCardsData


# Union type for all game moves
GameMove = Annotated[
    ChessMove | CheckersMove | PassCards | PlayCard | DrawCard | Bid | AskForCards,
    Field(discriminator="kind"),
]

_MOVE_TYPES: dict[str, type[BaseModel]] = {
    "chess_move": ChessMove,
    "checkers_move": CheckersMove,
    "pass_cards": PassCards,
    "play_card": PlayCard,
    "draw_card": DrawCard,
    "bid": Bid,
    "ask_for_cards": AskForCards,
}

# Move kinds each game accepts, per phase
ALLOWED_MOVES: dict[GameType, dict[GamePhase, tuple[str, ...]]] = {
    GameType.CHESS: {GamePhase.PLAYING: ("chess_move",)},
    GameType.CHECKERS: {GamePhase.PLAYING: ("checkers_move",)},
    GameType.HEARTS: {
        GamePhase.PASSING: ("pass_cards",),
        GamePhase.PLAYING: ("play_card",),
    },
    GameType.SPADES: {
        GamePhase.BIDDING: ("bid",),
        GamePhase.PLAYING: ("play_card",),
    },
    GameType.CRAZY8S: {GamePhase.PLAYING: ("play_card", "draw_card")},
    GameType.GOFISH: {GamePhase.PLAYING: ("ask_for_cards",)},
}


def build_move_from_payload(payload: dict) -> GameMove:
    """Build a typed move from a raw `{kind, data}` dict.

    Raises:
        ValueError: If kind is missing or unknown, or data fails validation
            (pydantic's ValidationError is a ValueError).
    """
    kind = payload.get("kind")
    move_type = _MOVE_TYPES.get(kind)
    if move_type is None:
        raise ValueError(f"Unknown move kind: {kind}")
    return move_type.model_validate({"kind": kind, "data": payload.get("data") or {}})


def move_to_wire(move: GameMove) -> dict:
    """Serialize a move back to the `{kind, data}` wire shape."""
    return move.model_dump(mode="json", by_alias=True)
