"""Bot move selection.

The selector enumerates candidates with the engine's own legal-move
generator and then picks by difficulty:
- easy: uniform random
- medium: random among preferred candidates (captures, safe cards), else random
- hard: highest static score, first-seen wins ties

Returns None when the player on turn has nothing to play.
"""

import logging
import random

from app.schemas.game_engine import BotDifficulty, Crazy8sState, GamePhase, HeartsState, SpadesState
from app.services.game.engine.actions import Bid, BidData, GameMove, PlayCard
from app.services.game.engine.crazy8s import WILD_RANK
from app.services.game.engine.deck import card_rank
from app.services.game.engine.legal_moves import get_legal_moves

from .strategies import best_suit, hearts_pass, prefers, score, spades_bid

logger = logging.getLogger(__name__)


def _name_suit(state: Crazy8sState, move: GameMove) -> GameMove:
    """Eights name the suit the bot holds most of."""
    if not isinstance(move, PlayCard) or card_rank(move.data.card) != WILD_RANK:
        return move
    hand = state.hands[state.current_turn]
    suit = best_suit(hand, exclude=move.data.card)
    return move.model_copy(update={"data": move.data.model_copy(update={"new_suit": suit})})


def select_move(
    state,
    difficulty: BotDifficulty | str = BotDifficulty.MEDIUM,
    rng: random.Random | None = None,
) -> GameMove | None:
    """Pick a move for the player on turn, or None if there is none."""
    rng = rng or random.Random()
    difficulty = BotDifficulty(difficulty)

    if state.game_over:
        return None

    if isinstance(state, SpadesState) and state.phase == GamePhase.BIDDING:
        bid = spades_bid(state.hands[state.current_turn], difficulty, rng)
        logger.debug("Bot bid: player=%s, bid=%d", state.current_turn[:8], bid)
        return Bid(data=BidData(bid=bid))

    if (
        isinstance(state, HeartsState)
        and state.phase == GamePhase.PASSING
        and difficulty != BotDifficulty.EASY
    ):
        return hearts_pass(state.hands[state.current_turn])

    candidates = get_legal_moves(state)
    if not candidates:
        logger.info(
            "Bot has no legal move: game=%s, player=%s", state.game_type, state.current_turn[:8]
        )
        return None

    if difficulty == BotDifficulty.EASY:
        choice = rng.choice(candidates)
    elif difficulty == BotDifficulty.MEDIUM:
        preferred = [move for move in candidates if prefers(state, move)]
        choice = rng.choice(preferred or candidates)
    else:
        choice = max(candidates, key=lambda move: score(state, move))

    if isinstance(state, Crazy8sState):
        choice = _name_suit(state, choice)

    logger.debug(
        "Bot selected move: game=%s, difficulty=%s, candidates=%d, move=%s",
        state.game_type,
        difficulty.value,
        len(candidates),
        choice,
    )
    return choice


class BotPlayer:
    """Injectable wrapper around select_move().

    Holds only an optional random source so tests can seed it.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng

    def select_move(
        self,
        state,
        difficulty: BotDifficulty | str = BotDifficulty.MEDIUM,
        rng: random.Random | None = None,
    ) -> GameMove | None:
        return select_move(state, difficulty, rng or self._rng)
