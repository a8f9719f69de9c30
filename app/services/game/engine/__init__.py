"""Game engine module - pure functional game logic.

This module provides the core game engine with:
- Move types for explicit player inputs
- Event types for WebSocket broadcasts
- ProcessResult pattern for error handling
- One rule module per game (chess, checkers, hearts, spades, crazy8s, gofish)

Usage:
    from app.services.game.engine import build_move_from_payload, process_move

    move = build_move_from_payload({"kind": "play_card", "data": {"card": "7♥"}})
    result = process_move(state, move, player_id)

    if result.success:
        new_state = result.state
        events = result.events  # Broadcast these via WebSocket
    else:
        # Handle error
        print(f"Error: {result.error_code} - {result.error_message}")
"""

# Moves - explicit player inputs
from .actions import (
    ALLOWED_MOVES,
    AskForCards,
    Bid,
    CheckersMove,
    ChessMove,
    DrawCard,
    GameMove,
    PassCards,
    PlayCard,
    build_move_from_payload,
    move_to_wire,
)

# Errors raised by rule modules
from .errors import GameEngineError, IllegalMove, InvalidPhase, NotYourTurn, UnsupportedGameType

# Events - for WebSocket broadcasts
from .events import (
    AnyGameEvent,
    GameEnded,
    GameEvent,
    GameStarted,
    MoveApplied,
    RoundScored,
    TrickCompleted,
    TurnSkipped,
)

# Legal moves
from .legal_moves import get_legal_moves

# Main processing
from .process import agree_draw, forfeit, process_move, skip_turn

# Result types
from .validation import ProcessResult, ValidationResult, validate_move

__all__ = [
    # Moves
    "GameMove",
    "ChessMove",
    "CheckersMove",
    "PassCards",
    "PlayCard",
    "DrawCard",
    "Bid",
    "AskForCards",
    "ALLOWED_MOVES",
    "build_move_from_payload",
    "move_to_wire",
    # Errors
    "GameEngineError",
    "IllegalMove",
    "InvalidPhase",
    "NotYourTurn",
    "UnsupportedGameType",
    # Events
    "GameEvent",
    "AnyGameEvent",
    "GameStarted",
    "MoveApplied",
    "TrickCompleted",
    "RoundScored",
    "TurnSkipped",
    "GameEnded",
    # Processing
    "process_move",
    "forfeit",
    "agree_draw",
    "skip_turn",
    # Validation
    "ProcessResult",
    "ValidationResult",
    "validate_move",
    # Legal moves
    "get_legal_moves",
]
