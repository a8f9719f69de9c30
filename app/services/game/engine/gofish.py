"""Go fish rules.

The player on turn asks another player for a rank. The target hands over
every card of that rank, or the asker draws from the pile ("go fish"); an
empty pile makes the draw a no-op. Four of a kind is laid down as a book
straight away. The turn passes after every ask, and the game ends when all
thirteen books are down.
"""

import logging

from app.schemas.game_engine import DRAW, EndReason, GamePhase, GoFishState

from .actions import AskForCards
from .deck import RANKS, card_rank
from .errors import IllegalMove
from .turns import next_player

logger = logging.getLogger(__name__)

TOTAL_BOOKS = len(RANKS)


def collect_books(hand: list[str]) -> tuple[list[str], list[str]]:
    """Split complete fours out of a hand. Returns (remaining hand, new book ranks)."""
    counts: dict[str, int] = {}
    for card in hand:
        counts[card_rank(card)] = counts.get(card_rank(card), 0) + 1
    books = [rank for rank in RANKS if counts.get(rank) == 4]
    remaining = [card for card in hand if card_rank(card) not in books]
    return remaining, books


def apply_move(state: GoFishState, move: AskForCards, player_id: str) -> tuple[GoFishState, list]:
    target = move.data.target_player
    rank = move.data.rank
    if target == player_id:
        raise IllegalMove("You cannot ask yourself")
    if target not in state.players:
        raise IllegalMove("That player is not in this game")
    if rank not in RANKS:
        raise IllegalMove(f"Unknown rank: {rank}")

    hands = {pid: list(cards) for pid, cards in state.hands.items()}
    draw_pile = list(state.draw_pile)

    received = [card for card in hands[target] if card_rank(card) == rank]
    drew = None
    if received:
        hands[target] = [card for card in hands[target] if card_rank(card) != rank]
        hands[player_id].extend(received)
    elif draw_pile:
        drew = draw_pile.pop(0)
        hands[player_id].append(drew)

    hands[player_id], new_books = collect_books(hands[player_id])
    books = {pid: list(ranks) for pid, ranks in state.books.items()}
    books[player_id] = books.get(player_id, []) + new_books

    update = {
        "hands": hands,
        "draw_pile": draw_pile,
        "books": books,
        "last_ask": {
            "player": player_id,
            "target": target,
            "rank": rank,
            "received": len(received),
            "drew": drew is not None,
            "books": new_books,
        },
        "current_turn": next_player(state.players, player_id),
        "move_count": state.move_count + 1,
    }

    if sum(len(ranks) for ranks in books.values()) == TOTAL_BOOKS:
        most = max(len(ranks) for ranks in books.values())
        leaders = [pid for pid in state.players if len(books.get(pid, [])) == most]
        update.update(
            game_over=True,
            phase=GamePhase.FINISHED,
            winner=leaders[0] if len(leaders) == 1 else DRAW,
            end_reason=EndReason.ALL_BOOKS,
        )
        logger.info("Go fish finished: books=%s", {pid[:8]: len(r) for pid, r in books.items()})

    return state.model_copy(update=update), []


def refill_empty_hand(state: GoFishState, player_id: str) -> GoFishState:
    """A player who has run out of cards draws one when their turn is skipped."""
    if state.hands.get(player_id) or not state.draw_pile:
        return state
    hands = {pid: list(cards) for pid, cards in state.hands.items()}
    hands[player_id] = [state.draw_pile[0]]
    return state.model_copy(update={"hands": hands, "draw_pile": state.draw_pile[1:]})
