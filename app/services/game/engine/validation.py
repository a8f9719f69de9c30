"""Validation layer for game moves and ProcessResult pattern.

Separates validation from processing logic:
- validate_move() checks turn ownership and phase before any rule runs
- ProcessResult replaces exceptions for control flow at the engine boundary
"""

import logging
from dataclasses import dataclass, field

from app.schemas.game_engine import GameType

from .actions import ALLOWED_MOVES, GameMove
from .errors import GameEngineError, InvalidPhase, NotYourTurn
from .events import AnyGameEvent

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Result of processing a game move.

    Replaces exceptions for control flow, providing explicit success/failure
    with error codes suitable for client localization.
    """

    state: object | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(
        cls,
        state: object,
        events: list[AnyGameEvent] | None = None,
    ) -> "ProcessResult":
        """Create a successful result with new state and events."""
        return cls(
            state=state,
            events=events or [],
            success=True,
        )

    @classmethod
    def failure(cls, code: str, message: str) -> "ProcessResult":
        """Create a failure result with error details."""
        return cls(
            state=None,
            events=[],
            success=False,
            error_code=code,
            error_message=message,
        )


@dataclass
class ValidationResult:
    """Result of validating a move before processing."""

    is_valid: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True)

    @classmethod
    def error(cls, code: str, message: str) -> "ValidationResult":
        """Create a validation failure with error details."""
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
        )

    @classmethod
    def from_error(cls, error: GameEngineError) -> "ValidationResult":
        return cls.error(error.code, error.message)


def validate_move(state, move: GameMove, player_id: str) -> ValidationResult:
    """Validate a move before processing.

    Checks:
    - Game is not over
    - The acting player is seated and owns the turn
    - The move kind is accepted by this game in its current phase

    Rule-level legality (piece movement, card in hand) is left to the
    per-game modules.
    """
    logger.debug(
        "Validating move: kind=%s, player=%s, phase=%s",
        move.kind,
        player_id[:8],
        state.phase.value,
    )

    if state.game_over:
        logger.warning("Validation failed: GAME_FINISHED")
        return ValidationResult.error("GAME_FINISHED", "Game has already finished")

    if player_id not in state.players:
        logger.warning("Validation failed: NOT_A_PLAYER, player=%s", player_id[:8])
        return ValidationResult.error("NOT_A_PLAYER", "You are not playing in this game")

    if state.current_turn != player_id:
        logger.warning(
            "Validation failed: %s, current=%s, attempted=%s",
            NotYourTurn.code,
            state.current_turn[:8],
            player_id[:8],
        )
        return ValidationResult.from_error(NotYourTurn(player_id))

    allowed = ALLOWED_MOVES[GameType(state.game_type)].get(state.phase, ())
    if move.kind not in allowed:
        logger.warning(
            "Validation failed: %s, kind=%s, phase=%s, allowed=%s",
            InvalidPhase.code,
            move.kind,
            state.phase.value,
            allowed,
        )
        return ValidationResult.from_error(InvalidPhase(move.kind, state.phase.value, state.game_type))

    logger.debug("Move validated successfully: kind=%s", move.kind)
    return ValidationResult.ok()
