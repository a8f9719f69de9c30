"""Stateless engine service handed to the orchestrator.

Wraps the engine functions so callers can be given an engine (or a fake)
through their constructor instead of importing module functions.
"""

import random

from app.schemas.game_engine import GameType

from .engine import (
    GameMove,
    ProcessResult,
    agree_draw,
    build_move_from_payload,
    forfeit,
    get_legal_moves,
    process_move,
    skip_turn,
)
from .start_game import initialize_game, validate_player_count


class GameEngine:
    """Entry points for every game state transition. Holds no state."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng

    def initialize(self, game_type: GameType | str, player_slots: list[str]):
        return initialize_game(game_type, player_slots, self._rng)

    def validate_player_count(self, game_type: GameType | str, num_players: int) -> None:
        validate_player_count(game_type, num_players)

    def parse_move(self, payload: dict) -> GameMove:
        return build_move_from_payload(payload)

    def process_move(self, state, move: GameMove, player_id: str) -> ProcessResult:
        return process_move(state, move, player_id, self._rng)

    def forfeit(self, state, player_id: str) -> ProcessResult:
        return forfeit(state, player_id)

    def agree_draw(self, state) -> ProcessResult:
        return agree_draw(state)

    def skip_turn(self, state) -> ProcessResult:
        return skip_turn(state)

    def legal_moves(self, state) -> list[GameMove]:
        return get_legal_moves(state)
