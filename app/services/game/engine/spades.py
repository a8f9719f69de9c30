"""Spades rules.

Four seats in fixed partnerships (seats 0 and 2 against seats 1 and 3).
Every round opens with a bid from each seat, then thirteen tricks with spades
as trump. A team making its combined bid scores ten per bid trick plus one
per overtrick (bag); a team falling short loses ten per bid trick. A nil bid
is worth 100 if the bidder takes no tricks, otherwise -100. Every ten bags
cost 100 points. The game ends when a team reaches 500 or drops to -200.
"""

import logging
import random

from app.schemas.game_engine import DRAW, EndReason, GamePhase, SpadesState, TrickPlay

from .actions import Bid, PlayCard
from .deck import SPADE, card_suit
from .events import RoundScored, TrickCompleted
from .tricks import deal_round, remove_from_hand, trick_winner
from .turns import next_player, team_of

logger = logging.getLogger(__name__)

WINNING_SCORE = 500
LOSING_SCORE = -200
NIL_BONUS = 100
BAG_LIMIT = 10
BAG_PENALTY = 100


def round_fields(players: list[str], round_number: int, rng: random.Random | None = None) -> dict:
    """Fresh hands and per-round fields; the opening bidder rotates each round."""
    first = players[(round_number - 1) % len(players)]
    return {
        "hands": deal_round(players, rng),
        "bids": {},
        "tricks": {pid: 0 for pid in players},
        "trick": [],
        "lead_player": first,
        "spades_broken": False,
        "taken": {pid: [] for pid in players},
        "round": round_number,
        "phase": GamePhase.BIDDING,
        "current_turn": first,
        "last_trick_winner": None,
    }


def _apply_bid(state: SpadesState, move: Bid, player_id: str) -> tuple[SpadesState, list]:
    bids = {**state.bids, player_id: move.data.bid}
    update = {"bids": bids, "move_count": state.move_count + 1}
    if len(bids) < len(state.players):
        update["current_turn"] = next_player(state.players, player_id)
    else:
        first = state.lead_player or state.players[0]
        logger.info("Spades bidding complete: %s", bids)
        update.update(phase=GamePhase.PLAYING, current_turn=first, lead_player=first)
    return state.model_copy(update=update), []


def score_round(
    players: list[str],
    bids: dict[str, int],
    tricks: dict[str, int],
    team_scores: list[int],
    team_bags: list[int],
) -> tuple[list[int], list[int]]:
    """Apply one round of contract, nil and bag scoring to the team totals."""
    scores = list(team_scores)
    bags = list(team_bags)
    for team in (0, 1):
        members = [pid for pid in players if team_of(players, pid) == team]
        contract = 0
        made = 0
        round_bags = 0
        for pid in members:
            bid = bids.get(pid, 0)
            taken = tricks.get(pid, 0)
            if bid == 0:
                scores[team] += NIL_BONUS if taken == 0 else -NIL_BONUS
                round_bags += taken
            else:
                contract += bid
                made += taken
        if contract:
            if made >= contract:
                scores[team] += 10 * contract + (made - contract)
                round_bags += made - contract
            else:
                scores[team] -= 10 * contract
        bags[team] += round_bags
        if bags[team] >= BAG_LIMIT:
            scores[team] -= BAG_PENALTY
            bags[team] -= BAG_LIMIT
    return scores, bags


def _apply_play(
    state: SpadesState, move: PlayCard, player_id: str, rng: random.Random | None
) -> tuple[SpadesState, list]:
    card = move.data.card
    hands = remove_from_hand(state.hands, player_id, card)
    trick = [*state.trick, TrickPlay(player_id=player_id, card=card)]
    events = []
    update = {
        "hands": hands,
        "trick": trick,
        "spades_broken": state.spades_broken or card_suit(card) == SPADE,
        "move_count": state.move_count + 1,
    }

    if len(trick) < len(state.players):
        update["current_turn"] = next_player(state.players, player_id)
        return state.model_copy(update=update), events

    winner = trick_winner(trick, trump=SPADE).player_id
    cards = [play.card for play in trick]
    taken = {pid: list(won) for pid, won in state.taken.items()}
    taken[winner].extend(cards)
    tricks = {**state.tricks, winner: state.tricks.get(winner, 0) + 1}
    events.append(TrickCompleted(winner_id=winner, cards=cards))
    update.update(
        trick=[],
        taken=taken,
        tricks=tricks,
        lead_player=winner,
        current_turn=winner,
        last_trick_winner=winner,
    )

    if any(hands[pid] for pid in state.players):
        return state.model_copy(update=update), events

    team_scores, team_bags = score_round(
        state.players, state.bids, tricks, state.team_scores, state.team_bags
    )
    events.append(
        RoundScored(round=state.round, scores={str(team): score for team, score in enumerate(team_scores)})
    )
    logger.info("Spades round %d scored: teams=%s bags=%s", state.round, team_scores, team_bags)
    update.update(team_scores=team_scores, team_bags=team_bags)

    if max(team_scores) >= WINNING_SCORE or min(team_scores) <= LOSING_SCORE:
        if team_scores[0] == team_scores[1]:
            winner_slot = DRAW
        else:
            # Seat 0 stands for team 0, seat 1 for team 1
            winner_slot = state.players[0 if team_scores[0] > team_scores[1] else 1]
        update.update(
            game_over=True,
            phase=GamePhase.FINISHED,
            winner=winner_slot,
            end_reason=EndReason.SCORE_LIMIT,
        )
        return state.model_copy(update=update), events

    update.update(round_fields(state.players, state.round + 1, rng))
    return state.model_copy(update=update), events


def apply_move(
    state: SpadesState,
    move: Bid | PlayCard,
    player_id: str,
    rng: random.Random | None = None,
) -> tuple[SpadesState, list]:
    if isinstance(move, Bid):
        return _apply_bid(state, move, player_id)
    return _apply_play(state, move, player_id, rng)
