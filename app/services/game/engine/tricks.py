"""Trick-taking helpers shared by hearts and spades."""

import random

from app.schemas.game_engine import TrickPlay

from .deck import card_suit, card_value, create_deck, deal, shuffle_deck
from .errors import IllegalMove

HAND_SIZE = 13


def trick_winner(trick: list[TrickPlay], trump: str | None = None) -> TrickPlay:
    """Highest trump if any was played, else highest card of the led suit."""
    led_suit = card_suit(trick[0].card)
    if trump is not None:
        trumps = [play for play in trick if card_suit(play.card) == trump]
        if trumps:
            return max(trumps, key=lambda play: card_value(play.card))
    followers = [play for play in trick if card_suit(play.card) == led_suit]
    return max(followers, key=lambda play: card_value(play.card))


def led_suit(trick: list[TrickPlay]) -> str | None:
    return card_suit(trick[0].card) if trick else None


def remove_from_hand(hands: dict[str, list[str]], player_id: str, card: str) -> dict[str, list[str]]:
    """Copy `hands` with `card` taken out of the player's hand."""
    hand = hands.get(player_id, [])
    if card not in hand:
        raise IllegalMove(f"{card} is not in your hand")
    new_hands = {pid: list(cards) for pid, cards in hands.items()}
    new_hands[player_id].remove(card)
    return new_hands


def deal_round(players: list[str], rng: random.Random | None = None) -> dict[str, list[str]]:
    """Shuffle a fresh deck and deal thirteen cards to each of four seats."""
    hands, _ = deal(shuffle_deck(create_deck(), rng), players, HAND_SIZE)
    return hands
