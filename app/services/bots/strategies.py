"""Per-game preferences and scores used by the bot selector.

`prefers(state, move)` marks the candidates a medium bot favours;
`score(state, move)` ranks candidates for a hard bot. Neither ever adds a
candidate, so the selector can only return legal moves.
"""

import random

from app.schemas.game_engine import (
    BotDifficulty,
    CheckersState,
    ChessState,
    Crazy8sState,
    GoFishState,
    HeartsState,
    SpadesState,
    TrickPlay,
)
from app.services.game.engine.actions import (
    AskForCards,
    CheckersMove,
    ChessMove,
    GameMove,
    PassCards,
    PassCardsData,
    PlayCard,
)
from app.services.game.engine.checkers import RED, color_of_player
from app.services.game.engine.crazy8s import WILD_RANK
from app.services.game.engine.deck import (
    HEART,
    QUEEN_OF_SPADES,
    SPADE,
    SUITS,
    card_rank,
    card_suit,
    card_value,
)
from app.services.game.engine.tricks import trick_winner
from app.services.game.engine.turns import partner_of

HONOR_RANKS = ("A", "K", "Q", "J")
BOARD_CENTER = 3.5


def is_safe_hearts_card(card: str) -> bool:
    return card_suit(card) != HEART and card != QUEEN_OF_SPADES


def spades_bid(hand: list[str], difficulty: BotDifficulty, rng: random.Random) -> int:
    """Half the spades held plus a third of the honours, at least one."""
    spades = sum(1 for card in hand if card_suit(card) == SPADE)
    honors = sum(1 for card in hand if card_rank(card) in HONOR_RANKS)
    bid = max(1, spades // 2 + honors // 3)
    if difficulty == BotDifficulty.EASY:
        bid += rng.randint(-1, 1)
    return max(0, min(13, bid))


def hearts_pass(hand: list[str]) -> PassCards:
    """Dump the queen of spades, then high hearts, then the highest cards."""

    def danger(card: str) -> tuple[int, int]:
        if card == QUEEN_OF_SPADES:
            return (3, 0)
        if card_suit(card) == SPADE and card_rank(card) in ("A", "K"):
            return (2, card_value(card))
        if card_suit(card) == HEART:
            return (1, card_value(card))
        return (0, card_value(card))

    worst = sorted(hand, key=danger, reverse=True)[:3]
    return PassCards(data=PassCardsData(cards=worst))


def best_suit(hand: list[str], exclude: str | None = None) -> str:
    """Most common suit in hand, ignoring one card (the eight being played)."""
    counts = {suit: 0 for suit in SUITS}
    for card in hand:
        if card != exclude:
            counts[card_suit(card)] += 1
    return max(SUITS, key=lambda suit: counts[suit])


def _is_chess_capture(state: ChessState, move: ChessMove) -> bool:
    to_sq = move.data.to_square
    return state.board[to_sq.row][to_sq.col] is not None


def _spades_would_win(state: SpadesState, card: str) -> bool:
    if not state.trick:
        return True
    trick = [*state.trick, TrickPlay(player_id=state.current_turn, card=card)]
    return trick_winner(trick, trump=SPADE).player_id == state.current_turn


def _partner_winning(state: SpadesState) -> bool:
    if not state.trick:
        return False
    partner = partner_of(state.players, state.current_turn)
    return trick_winner(state.trick, trump=SPADE).player_id == partner


def prefers(state, move: GameMove) -> bool:
    """Medium-difficulty preference."""
    if isinstance(state, ChessState) and isinstance(move, ChessMove):
        return _is_chess_capture(state, move)
    if isinstance(state, CheckersState) and isinstance(move, CheckersMove):
        return bool(move.data.captures)
    if isinstance(state, HeartsState) and isinstance(move, PlayCard):
        return is_safe_hearts_card(move.data.card)
    if isinstance(state, SpadesState) and isinstance(move, PlayCard):
        return _spades_would_win(state, move.data.card) and not _partner_winning(state)
    if isinstance(state, Crazy8sState) and isinstance(move, PlayCard):
        return card_rank(move.data.card) != WILD_RANK
    if isinstance(state, GoFishState) and isinstance(move, AskForCards):
        hand = state.hands[state.current_turn]
        held = [card_rank(card) for card in hand]
        return held.count(move.data.rank) == max(held.count(rank) for rank in held)
    return False


def score(state, move: GameMove) -> float:
    """Hard-difficulty static evaluation. Higher is better."""
    if isinstance(state, ChessState) and isinstance(move, ChessMove):
        to_sq = move.data.to_square
        value = 10.0 if _is_chess_capture(state, move) else 0.0
        return value - abs(to_sq.row - BOARD_CENTER) - abs(to_sq.col - BOARD_CENTER)

    if isinstance(state, CheckersState) and isinstance(move, CheckersMove):
        data = move.data
        rows = data.from_square.row - data.to_square.row
        forward = rows if color_of_player(state, state.current_turn) == RED else -rows
        return 100.0 * len(data.captures) + 5.0 * forward

    if isinstance(state, HeartsState) and isinstance(move, PlayCard):
        card = move.data.card
        return (20.0 if is_safe_hearts_card(card) else 0.0) - card_value(card)

    if isinstance(state, SpadesState) and isinstance(move, PlayCard):
        card = move.data.card
        if _partner_winning(state) or not _spades_would_win(state, card):
            return -card_value(card)
        # Win as cheaply as possible
        return 100.0 - card_value(card) - (20.0 if card_suit(card) == SPADE else 0.0)

    if isinstance(state, Crazy8sState) and isinstance(move, PlayCard):
        card = move.data.card
        if card_rank(card) == WILD_RANK:
            return -10.0
        hand = state.hands[state.current_turn]
        return float(sum(1 for held in hand if card_suit(held) == card_suit(card)))

    if isinstance(state, GoFishState) and isinstance(move, AskForCards):
        hand = state.hands[state.current_turn]
        held = sum(1 for card in hand if card_rank(card) == move.data.rank)
        return held * 100.0 + len(state.hands.get(move.data.target_player, []))

    return 0.0
