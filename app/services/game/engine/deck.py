"""Standard 52-card deck helpers shared by the card games."""

import random

SUITS = ["♠", "♥", "♦", "♣"]
RANKS = ["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]

SPADE, HEART, DIAMOND, CLUB = SUITS

# Trick-taking order: 2 lowest, ace highest
RANK_VALUES = {rank: value for value, rank in enumerate(RANKS[1:] + ["A"], start=2)}

QUEEN_OF_SPADES = f"Q{SPADE}"
TWO_OF_CLUBS = f"2{CLUB}"


def create_deck() -> list[str]:
    """Build the 52 card tokens, rank followed by suit symbol (e.g. '10♥')."""
    return [f"{rank}{suit}" for suit in SUITS for rank in RANKS]


def shuffle_deck(deck: list[str], rng: random.Random | None = None) -> list[str]:
    """Return a shuffled copy of the deck (Fisher-Yates). The input is untouched."""
    rng = rng or random.Random()
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def card_rank(card: str) -> str:
    return card[:-1]


def card_suit(card: str) -> str:
    return card[-1]


def card_value(card: str) -> int:
    return RANK_VALUES[card_rank(card)]


def is_valid_card(card: str) -> bool:
    return len(card) >= 2 and card_rank(card) in RANKS and card_suit(card) in SUITS


def deal(deck: list[str], players: list[str], per_player: int) -> tuple[dict[str, list[str]], list[str]]:
    """Deal `per_player` cards to each player in seat order.

    Returns the hands and the undealt remainder of the deck.
    """
    hands: dict[str, list[str]] = {}
    index = 0
    for player_id in players:
        hands[player_id] = deck[index : index + per_player]
        index += per_player
    return hands, deck[index:]
