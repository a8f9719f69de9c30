"""Crazy eights rules.

Players take turns playing one card onto the discard pile or drawing one
card. An eight names the suit to follow. The first player to empty their
hand wins. The turn passes after every play or draw.
"""

import logging
import random

from app.schemas.game_engine import Crazy8sState, EndReason, GamePhase

from .actions import DrawCard, PlayCard
from .deck import SUITS, card_rank, card_suit, shuffle_deck
from .errors import IllegalMove
from .tricks import remove_from_hand
from .turns import next_player

logger = logging.getLogger(__name__)

WILD_RANK = "8"


def active_suit(state: Crazy8sState) -> str:
    """Suit to follow: the one named by the last eight, else the top card's."""
    return state.current_suit or card_suit(state.discard_pile[-1])


def matches_top(state: Crazy8sState, card: str) -> bool:
    top = state.discard_pile[-1]
    return card_rank(card) == WILD_RANK or card_suit(card) == active_suit(state) or card_rank(card) == card_rank(top)


def _apply_play(state: Crazy8sState, move: PlayCard, player_id: str) -> tuple[Crazy8sState, list]:
    card = move.data.card
    hands = remove_from_hand(state.hands, player_id, card)

    current_suit = None
    if card_rank(card) == WILD_RANK:
        current_suit = move.data.new_suit or card_suit(card)
        if current_suit not in SUITS:
            raise IllegalMove(f"Unknown suit: {current_suit}")

    update = {
        "hands": hands,
        "discard_pile": [*state.discard_pile, card],
        "current_suit": current_suit,
        "current_turn": next_player(state.players, player_id),
        "move_count": state.move_count + 1,
    }
    if not hands[player_id]:
        logger.info("Crazy eights won by %s", player_id[:8])
        update.update(
            game_over=True, phase=GamePhase.FINISHED, winner=player_id, end_reason=EndReason.HAND_EMPTY
        )
    return state.model_copy(update=update), []


def _apply_draw(
    state: Crazy8sState, player_id: str, rng: random.Random | None
) -> tuple[Crazy8sState, list]:
    draw_pile = list(state.draw_pile)
    discard_pile = list(state.discard_pile)
    if not draw_pile and len(discard_pile) > 1:
        # Keep the top card showing and recycle the rest
        draw_pile = shuffle_deck(discard_pile[:-1], rng)
        discard_pile = discard_pile[-1:]
        logger.debug("Draw pile exhausted, reshuffled %d discards", len(draw_pile))

    hands = state.hands
    if draw_pile:
        hands = {pid: list(cards) for pid, cards in state.hands.items()}
        hands[player_id].append(draw_pile.pop(0))

    update = {
        "hands": hands,
        "draw_pile": draw_pile,
        "discard_pile": discard_pile,
        "current_turn": next_player(state.players, player_id),
        "move_count": state.move_count + 1,
    }
    return state.model_copy(update=update), []


def apply_move(
    state: Crazy8sState,
    move: PlayCard | DrawCard,
    player_id: str,
    rng: random.Random | None = None,
) -> tuple[Crazy8sState, list]:
    if isinstance(move, DrawCard):
        return _apply_draw(state, player_id, rng)
    return _apply_play(state, move, player_id)
