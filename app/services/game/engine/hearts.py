"""Hearts rules.

Each round opens with a three-card pass (left, right, across, then a hold
round with no pass), after which the holder of the two of clubs leads.
Hearts score a point each and the queen of spades thirteen; taking all
twenty-six points shoots the moon and gives twenty-six to everyone else.
The game ends once anyone reaches 100 and the lowest total wins.
"""

import logging
import random

from app.schemas.game_engine import (
    DRAW,
    EndReason,
    GamePhase,
    HeartsState,
    PassDirection,
    TrickPlay,
)

from .actions import PassCards, PlayCard
from .deck import HEART, QUEEN_OF_SPADES, TWO_OF_CLUBS, card_suit
from .errors import IllegalMove
from .events import RoundScored, TrickCompleted
from .tricks import deal_round, remove_from_hand, trick_winner
from .turns import next_player, seat_offset

logger = logging.getLogger(__name__)

GAME_END_SCORE = 100
MOON_POINTS = 26

PASS_CYCLE = [PassDirection.LEFT, PassDirection.RIGHT, PassDirection.ACROSS, PassDirection.HOLD]
_PASS_OFFSETS = {PassDirection.LEFT: 1, PassDirection.RIGHT: -1, PassDirection.ACROSS: 2}


def card_points(card: str) -> int:
    if card == QUEEN_OF_SPADES:
        return 13
    return 1 if card_suit(card) == HEART else 0


def pass_direction_for_round(round_number: int) -> PassDirection:
    return PASS_CYCLE[(round_number - 1) % len(PASS_CYCLE)]


def pass_target(players: list[str], player_id: str, direction: PassDirection) -> str:
    return seat_offset(players, player_id, _PASS_OFFSETS[direction])


def holder_of(hands: dict[str, list[str]], card: str) -> str:
    return next(pid for pid, hand in hands.items() if card in hand)


def round_fields(players: list[str], round_number: int, rng: random.Random | None = None) -> dict:
    """Fresh hands and per-round fields for `round_number`."""
    hands = deal_round(players, rng)
    direction = pass_direction_for_round(round_number)
    if direction == PassDirection.HOLD:
        phase = GamePhase.PLAYING
        first = holder_of(hands, TWO_OF_CLUBS)
        lead = first
    else:
        phase = GamePhase.PASSING
        first = players[0]
        lead = None
    return {
        "hands": hands,
        "trick": [],
        "lead_player": lead,
        "hearts_broken": False,
        "taken": {pid: [] for pid in players},
        "pending_passes": {},
        "pass_direction": direction,
        "round": round_number,
        "phase": phase,
        "current_turn": first,
        "last_trick_winner": None,
    }


def _apply_pass(state: HeartsState, move: PassCards, player_id: str) -> tuple[HeartsState, list]:
    cards = move.data.cards
    if len(set(cards)) != 3:
        raise IllegalMove("Pass exactly three different cards")
    hands = state.hands
    for card in cards:
        hands = remove_from_hand(hands, player_id, card)
    pending = {pid: list(passed) for pid, passed in state.pending_passes.items()}
    pending[player_id] = list(cards)

    update = {"hands": hands, "pending_passes": pending, "move_count": state.move_count + 1}

    if len(pending) < len(state.players):
        update["current_turn"] = next_player(state.players, player_id)
        return state.model_copy(update=update), []

    # Everyone has passed: hand the cards over and start play
    for giver, passed in pending.items():
        hands[pass_target(state.players, giver, state.pass_direction)].extend(passed)
    first = holder_of(hands, TWO_OF_CLUBS)
    logger.info("Hearts passing complete (%s), %s leads", state.pass_direction.value, first[:8])
    update.update(
        hands=hands,
        pending_passes={},
        phase=GamePhase.PLAYING,
        current_turn=first,
        lead_player=first,
    )
    return state.model_copy(update=update), []


def _score_round(state: HeartsState, taken: dict[str, list[str]]) -> dict[str, int]:
    points = {pid: sum(card_points(card) for card in cards) for pid, cards in taken.items()}
    shooter = next((pid for pid, pts in points.items() if pts == MOON_POINTS), None)
    if shooter is not None:
        logger.info("Moon shot by %s", shooter[:8])
        points = {pid: (0 if pid == shooter else MOON_POINTS) for pid in points}
    return {pid: state.scores.get(pid, 0) + points.get(pid, 0) for pid in state.players}


def _apply_play(
    state: HeartsState, move: PlayCard, player_id: str, rng: random.Random | None
) -> tuple[HeartsState, list]:
    card = move.data.card
    hands = remove_from_hand(state.hands, player_id, card)
    trick = [*state.trick, TrickPlay(player_id=player_id, card=card)]
    events = []
    update = {
        "hands": hands,
        "trick": trick,
        "hearts_broken": state.hearts_broken or card_suit(card) == HEART,
        "move_count": state.move_count + 1,
    }

    if len(trick) < len(state.players):
        update["current_turn"] = next_player(state.players, player_id)
        return state.model_copy(update=update), events

    winner = trick_winner(trick).player_id
    cards = [play.card for play in trick]
    taken = {pid: list(won) for pid, won in state.taken.items()}
    taken[winner].extend(cards)
    events.append(
        TrickCompleted(winner_id=winner, cards=cards, points=sum(card_points(c) for c in cards))
    )
    update.update(
        trick=[],
        taken=taken,
        lead_player=winner,
        current_turn=winner,
        last_trick_winner=winner,
    )

    if any(hands[pid] for pid in state.players):
        return state.model_copy(update=update), events

    scores = _score_round(state, taken)
    events.append(RoundScored(round=state.round, scores=scores))
    logger.info("Hearts round %d scored: %s", state.round, scores)
    update["scores"] = scores

    if max(scores.values()) >= GAME_END_SCORE:
        low = min(scores.values())
        leaders = [pid for pid in state.players if scores[pid] == low]
        update.update(
            game_over=True,
            phase=GamePhase.FINISHED,
            winner=leaders[0] if len(leaders) == 1 else DRAW,
            end_reason=EndReason.SCORE_LIMIT,
        )
        return state.model_copy(update=update), events

    update.update(round_fields(state.players, state.round + 1, rng))
    return state.model_copy(update=update), events


def apply_move(
    state: HeartsState,
    move: PassCards | PlayCard,
    player_id: str,
    rng: random.Random | None = None,
) -> tuple[HeartsState, list]:
    if isinstance(move, PassCards):
        return _apply_pass(state, move, player_id)
    return _apply_play(state, move, player_id, rng)
