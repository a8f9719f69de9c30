"""Game service module.

Provides:
- Game initialization (start_game.py)
- Game engine processing (engine/)
- The injectable engine service (service.py)
- Game state persistence (store.py) and room orchestration (session.py)
"""

# Re-export from engine for convenience
from .engine import (
    GameMove,
    ProcessResult,
    build_move_from_payload,
    get_legal_moves,
    process_move,
)
from .service import GameEngine
from .start_game import PLAYER_COUNT_LIMITS, initialize_game, validate_player_count

__all__ = [
    # Initialization
    "initialize_game",
    "validate_player_count",
    "PLAYER_COUNT_LIMITS",
    # Engine
    "GameEngine",
    "GameMove",
    "ProcessResult",
    "process_move",
    "build_move_from_payload",
    "get_legal_moves",
]
