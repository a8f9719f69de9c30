"""Legal move enumeration for the player on turn.

Chess and checkers defer to their rule modules, so every candidate here is
accepted by process_move(). Card games are enumerated with the conventional
table rules (follow suit, no leading hearts or spades before they are broken,
two of clubs opens hearts) even though the engine only insists that the card
is in hand.
"""

from itertools import combinations

from app.schemas.game_engine import (
    CheckersState,
    ChessState,
    Crazy8sState,
    GamePhase,
    GoFishState,
    HeartsState,
    SpadesState,
)

from . import checkers, chess
from .actions import (
    AskForCards,
    AskForCardsData,
    Bid,
    BidData,
    DrawCard,
    GameMove,
    PassCards,
    PassCardsData,
    PlayCard,
    PlayCardData,
)
from .crazy8s import matches_top
from .deck import HEART, QUEEN_OF_SPADES, SPADE, TWO_OF_CLUBS, card_rank, card_suit
from .tricks import HAND_SIZE, led_suit


def _play(card: str) -> PlayCard:
    return PlayCard(data=PlayCardData(card=card))


def playable_trick_cards(
    hand: list[str],
    trick_suit: str | None,
    breaking_suit: str,
    broken: bool,
) -> list[str]:
    """Cards a careful player may put on the current trick.

    Following suit is required when possible. A leader may not open with
    `breaking_suit` until it is broken unless nothing else is held.
    """
    if trick_suit is not None:
        following = [card for card in hand if card_suit(card) == trick_suit]
        return following or list(hand)
    if broken:
        return list(hand)
    others = [card for card in hand if card_suit(card) != breaking_suit]
    return others or list(hand)


def _hearts_moves(state: HeartsState) -> list[GameMove]:
    hand = state.hands.get(state.current_turn, [])
    if state.phase == GamePhase.PASSING:
        return [PassCards(data=PassCardsData(cards=list(cards))) for cards in combinations(hand, 3)]

    first_trick = not any(state.taken.values())
    if first_trick and not state.trick and TWO_OF_CLUBS in hand:
        return [_play(TWO_OF_CLUBS)]
    cards = playable_trick_cards(hand, led_suit(state.trick), HEART, state.hearts_broken)
    if first_trick and state.trick:
        # No points on the opening trick unless there is no choice
        safe = [card for card in cards if card_suit(card) != HEART and card != QUEEN_OF_SPADES]
        cards = safe or cards
    return [_play(card) for card in cards]


def _spades_moves(state: SpadesState) -> list[GameMove]:
    if state.phase == GamePhase.BIDDING:
        return [Bid(data=BidData(bid=bid)) for bid in range(HAND_SIZE + 1)]
    hand = state.hands.get(state.current_turn, [])
    cards = playable_trick_cards(hand, led_suit(state.trick), SPADE, state.spades_broken)
    return [_play(card) for card in cards]


def _crazy8s_moves(state: Crazy8sState) -> list[GameMove]:
    hand = state.hands.get(state.current_turn, [])
    moves: list[GameMove] = []
    for card in hand:
        if matches_top(state, card):
            moves.append(_play(card))
    if not moves:
        moves.append(DrawCard())
    return moves


def _gofish_moves(state: GoFishState) -> list[GameMove]:
    hand = state.hands.get(state.current_turn, [])
    ranks = list(dict.fromkeys(card_rank(card) for card in hand))
    targets = [pid for pid in state.players if pid != state.current_turn]
    return [
        AskForCards(data=AskForCardsData(target_player=target, rank=rank))
        for rank in ranks
        for target in targets
    ]


def get_legal_moves(state) -> list[GameMove]:
    """Every move the player on turn may make. Empty when the game is over."""
    if state.game_over:
        return []
    if isinstance(state, ChessState):
        return chess.legal_moves(state.board, chess.color_of_player(state, state.current_turn))
    if isinstance(state, CheckersState):
        return checkers.legal_moves(state.board, checkers.color_of_player(state, state.current_turn))
    if isinstance(state, HeartsState):
        return _hearts_moves(state)
    if isinstance(state, SpadesState):
        return _spades_moves(state)
    if isinstance(state, Crazy8sState):
        return _crazy8s_moves(state)
    if isinstance(state, GoFishState):
        return _gofish_moves(state)
    return []
