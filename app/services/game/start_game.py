import random

from app.schemas.game_engine import (
    CheckersState,
    ChessState,
    Crazy8sState,
    GamePhase,
    GameType,
    GoFishState,
    HeartsState,
    SpadesState,
)

from .engine import checkers, chess, hearts, spades
from .engine.deck import create_deck, deal, shuffle_deck
from .engine.errors import UnsupportedGameType
from .engine.gofish import collect_books

# Inclusive (min, max) seats per game
PLAYER_COUNT_LIMITS: dict[GameType, tuple[int, int]] = {
    GameType.CHESS: (2, 2),
    GameType.CHECKERS: (2, 2),
    GameType.HEARTS: (4, 4),
    GameType.SPADES: (4, 4),
    GameType.CRAZY8S: (2, 8),
    GameType.GOFISH: (2, 6),
}


def _game_type(game_type: GameType | str) -> GameType:
    try:
        return GameType(game_type)
    except ValueError:
        raise UnsupportedGameType(game_type) from None


def validate_player_count(game_type: GameType | str, num_players: int) -> None:
    """Raise ValueError unless `num_players` can play `game_type`."""
    low, high = PLAYER_COUNT_LIMITS[_game_type(game_type)]
    if not low <= num_players <= high:
        if low == high:
            raise ValueError(f"{GameType(game_type).value} needs exactly {low} players.")
        raise ValueError(f"{GameType(game_type).value} needs between {low} and {high} players.")


def _validate_slots(player_slots: list[str]) -> None:
    if len(set(player_slots)) != len(player_slots):
        raise ValueError("Player slots must be unique.")


def _init_chess(players: list[str], rng: random.Random) -> ChessState:
    return ChessState(
        players=players,
        current_turn=players[0],
        board=chess.initial_board(),
        player_colors={players[0]: chess.WHITE, players[1]: chess.BLACK},
    )


def _init_checkers(players: list[str], rng: random.Random) -> CheckersState:
    return CheckersState(
        players=players,
        current_turn=players[0],
        board=checkers.initial_board(),
        player_colors={players[0]: checkers.RED, players[1]: checkers.BLACK},
    )


def _init_hearts(players: list[str], rng: random.Random) -> HeartsState:
    fields = hearts.round_fields(players, 1, rng)
    return HeartsState(players=players, scores={pid: 0 for pid in players}, **fields)


def _init_spades(players: list[str], rng: random.Random) -> SpadesState:
    fields = spades.round_fields(players, 1, rng)
    return SpadesState(players=players, **fields)


def _init_crazy8s(players: list[str], rng: random.Random) -> Crazy8sState:
    per_player = 7 if len(players) <= 2 else 5
    hands, remainder = deal(shuffle_deck(create_deck(), rng), players, per_player)
    return Crazy8sState(
        players=players,
        current_turn=players[0],
        hands=hands,
        draw_pile=remainder[1:],
        discard_pile=remainder[:1],
    )


def _init_gofish(players: list[str], rng: random.Random) -> GoFishState:
    per_player = 7 if len(players) <= 4 else 5
    hands, remainder = deal(shuffle_deck(create_deck(), rng), players, per_player)
    books: dict[str, list[str]] = {}
    for pid in players:
        hands[pid], books[pid] = collect_books(hands[pid])
    return GoFishState(
        players=players,
        current_turn=players[0],
        phase=GamePhase.PLAYING,
        hands=hands,
        draw_pile=remainder,
        books=books,
    )


_INITIALIZERS = {
    GameType.CHESS: _init_chess,
    GameType.CHECKERS: _init_checkers,
    GameType.HEARTS: _init_hearts,
    GameType.SPADES: _init_spades,
    GameType.CRAZY8S: _init_crazy8s,
    GameType.GOFISH: _init_gofish,
}


def initialize_game(
    game_type: GameType | str,
    player_slots: list[str],
    rng: random.Random | None = None,
):
    """
    Build the opening state for a game.

    Args:
        game_type: One of the six supported games.
        player_slots: Seated player slots in turn order. Seat 0 moves first
                      (white in chess, red in checkers).
        rng: Random source for shuffling. Pass a seeded random.Random for a
             reproducible deal.

    Returns:
        The initial state model for that game type.

    Raises:
        UnsupportedGameType: If game_type is not a supported game.
        ValueError: If the player slots are not unique.
    """
    game_type = _game_type(game_type)
    _validate_slots(player_slots)
    return _INITIALIZERS[game_type](list(player_slots), rng or random.Random())
