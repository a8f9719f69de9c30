"""Main entry point for game move processing.

This module provides the primary interface for changing game state:
- process_move(): Validates and applies any player move
- forfeit(), agree_draw(), skip_turn(): non-move transitions
- Returns ProcessResult with new state and events

Every function is pure: the input state is never mutated, and a rejected
move returns a failure with no state at all.
"""

import logging
import random

from app.schemas.game_engine import DRAW, EndReason, GamePhase, GameType, GoFishState

from . import checkers, chess, crazy8s, gofish, hearts, spades
from .actions import GameMove, move_to_wire
from .errors import GameEngineError, UnsupportedGameType
from .events import AnyGameEvent, GameEnded, MoveApplied, TurnSkipped
from .turns import next_player, other_player
from .validation import ProcessResult, validate_move

logger = logging.getLogger(__name__)

BOARD_GAMES = (GameType.CHESS, GameType.CHECKERS)


def _apply_rules(state, move: GameMove, player_id: str, rng: random.Random | None):
    game_type = GameType(state.game_type)
    if game_type == GameType.CHESS:
        return chess.apply_move(state, move, player_id)
    if game_type == GameType.CHECKERS:
        return checkers.apply_move(state, move, player_id)
    if game_type == GameType.HEARTS:
        return hearts.apply_move(state, move, player_id, rng)
    if game_type == GameType.SPADES:
        return spades.apply_move(state, move, player_id, rng)
    if game_type == GameType.CRAZY8S:
        return crazy8s.apply_move(state, move, player_id, rng)
    if game_type == GameType.GOFISH:
        return gofish.apply_move(state, move, player_id)
    raise UnsupportedGameType(state.game_type)


def process_move(
    state,
    move: GameMove,
    player_id: str,
    rng: random.Random | None = None,
) -> ProcessResult:
    """Process a game move and return the result.

    This is the main entry point for all game moves. It:
    1. Validates turn ownership and that the move kind fits the phase
    2. Dispatches to the rule module for the game type
    3. Assigns sequence numbers to events
    4. Returns ProcessResult with new state and events

    Args:
        state: Current game state.
        move: The typed move to apply.
        player_id: The player slot making the move.
        rng: Random source for any reshuffle or redeal the move triggers.

    Returns:
        ProcessResult containing:
        - success: Whether the move was accepted
        - state: The new game state (if successful)
        - events: List of events that occurred (with seq numbers)
        - error_code/error_message: Error details (if failed)
    """
    logger.info(
        "Processing move: game=%s, kind=%s, player=%s, phase=%s",
        state.game_type,
        move.kind,
        player_id[:8],
        state.phase.value,
    )
    logger.debug("Move details: %s", move)

    validation = validate_move(state, move, player_id)
    if not validation.is_valid:
        return ProcessResult.failure(
            validation.error_code or "VALIDATION_ERROR",
            validation.error_message or "Invalid move",
        )

    try:
        new_state, rule_events = _apply_rules(state, move, player_id, rng)
    except GameEngineError as e:
        logger.warning(
            "Move rejected: code=%s, reason=%s, player=%s, kind=%s",
            e.code,
            e.message,
            player_id[:8],
            move.kind,
        )
        return ProcessResult.failure(e.code, e.message)

    events: list[AnyGameEvent] = [
        MoveApplied(
            player_id=player_id,
            move=move_to_wire(move),
            next_player_id=new_state.current_turn,
        ),
        *rule_events,
    ]
    if new_state.game_over:
        events.append(GameEnded(winner=new_state.winner, reason=new_state.end_reason))

    result = _assign_event_sequences(ProcessResult.ok(new_state, events))
    logger.info(
        "Move processed: kind=%s, player=%s, next=%s, events_generated=%d",
        move.kind,
        player_id[:8],
        new_state.current_turn[:8],
        len(result.events),
    )
    logger.debug("Generated events: %s", [e.event_type for e in result.events])
    return result


def _assign_event_sequences(result: ProcessResult) -> ProcessResult:
    """Assign monotonically increasing sequence numbers to events.

    Updates each event's seq field and increments the state's event_seq counter.
    """
    if result.state is None or not result.events:
        return result

    current_seq = result.state.event_seq
    for event in result.events:
        event.seq = current_seq
        current_seq += 1

    # Update state with new sequence counter
    new_state = result.state.model_copy(update={"event_seq": current_seq})

    return ProcessResult.ok(new_state, result.events)


def _finish(state, winner: str, reason: EndReason) -> ProcessResult:
    new_state = state.model_copy(
        update={
            "game_over": True,
            "phase": GamePhase.FINISHED,
            "winner": winner,
            "end_reason": reason,
        }
    )
    return _assign_event_sequences(
        ProcessResult.ok(new_state, [GameEnded(winner=winner, reason=reason)])
    )


def forfeit(state, player_id: str) -> ProcessResult:
    """End the game with `player_id` conceding.

    In two-seat games the opponent wins; otherwise the next seat is credited.
    """
    if state.game_over:
        return ProcessResult.failure("GAME_FINISHED", "Game has already finished")
    if player_id not in state.players:
        return ProcessResult.failure("NOT_A_PLAYER", "You are not playing in this game")

    if len(state.players) == 2:
        winner = other_player(state.players, player_id)
    else:
        winner = next_player(state.players, player_id)
    logger.info("Player %s forfeited, winner=%s", player_id[:8], winner[:8])
    return _finish(state, winner, EndReason.FORFEIT)


def agree_draw(state) -> ProcessResult:
    """End a chess or checkers game as a draw by agreement."""
    if state.game_over:
        return ProcessResult.failure("GAME_FINISHED", "Game has already finished")
    if GameType(state.game_type) not in BOARD_GAMES:
        return ProcessResult.failure(
            "INVALID_GAME_STATE", "Draws by agreement are only offered in chess and checkers"
        )
    logger.info("Draw agreed after %d moves", state.move_count)
    return _finish(state, DRAW, EndReason.DRAW_AGREED)


def skip_turn(state) -> ProcessResult:
    """Pass the turn on for a card-game player who has no move."""
    if state.game_over:
        return ProcessResult.failure("GAME_FINISHED", "Game has already finished")
    if GameType(state.game_type) in BOARD_GAMES:
        return ProcessResult.failure(
            "INVALID_GAME_STATE", "Turns cannot be skipped in chess or checkers"
        )

    skipped = state.current_turn
    following = next_player(state.players, skipped)
    if isinstance(state, GoFishState):
        state = gofish.refill_empty_hand(state, skipped)
    new_state = state.model_copy(update={"current_turn": following})
    logger.info("Turn skipped: player=%s, next=%s", skipped[:8], following[:8])
    return _assign_event_sequences(
        ProcessResult.ok(new_state, [TurnSkipped(player_id=skipped, next_player_id=following)])
    )
