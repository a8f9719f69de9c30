"""Turn rotation helpers.

`current_turn` (a player slot id) is the only stored turn pointer; seat
indices are derived from it here whenever rules need arithmetic on seats.
"""


def seat_index(players: list[str], player_id: str) -> int:
    """Zero-based seat of a player slot."""
    return players.index(player_id)


def seat_offset(players: list[str], current: str, offset: int) -> str:
    """Seat `offset` places after `current` (negative goes the other way)."""
    return players[(seat_index(players, current) + offset) % len(players)]


def next_player(players: list[str], current: str) -> str:
    """Next seat clockwise, wrapping after the last."""
    return seat_offset(players, current, 1)


def other_player(players: list[str], current: str) -> str:
    """The opponent in a two-seat game."""
    return players[1] if players[0] == current else players[0]


def partner_of(players: list[str], player_id: str) -> str:
    """Spades partner: the seat directly across the table."""
    return seat_offset(players, player_id, 2)


def team_of(players: list[str], player_id: str) -> int:
    """Spades team: seats 0 and 2 are team 0, seats 1 and 3 are team 1."""
    return seat_index(players, player_id) % 2
