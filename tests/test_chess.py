"""Tests for chess move legality and terminal detection.

Critical scenarios tested:
- Opening moves and turn hand-off
- Illegal piece movement and moving the opponent's pieces
- Self-check rejection
- Checkmate, stalemate and pawn promotion
"""

from app.schemas.game_engine import DRAW, EndReason, GameType
from app.services.game import initialize_game
from app.services.game.engine import get_legal_moves, process_move
from app.services.game.engine.chess import is_in_check

from .conftest import (
    PLAYER_1_ID,
    PLAYER_2_ID,
    TWO_PLAYERS,
    chess_move,
    create_chess_state,
    empty_board,
)


class TestOpening:
    """Test opening moves and basic movement."""

    def test_twenty_legal_moves_from_start(self):
        """Test white has twenty moves from the starting position."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)
        assert len(get_legal_moves(state)) == 20

    def test_king_pawn_two_squares(self):
        """Test a pawn advances two squares from its starting rank."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(6, 4, 4, 4), PLAYER_1_ID)

        assert result.success
        assert result.state.board[4][4] == "P"
        assert result.state.board[6][4] is None
        assert result.state.current_turn == PLAYER_2_ID
        assert result.state.move_count == 1
        assert result.state.move_history[-1]["piece"] == "P"
        # Input state is untouched
        assert state.board[6][4] == "P"
        assert state.current_turn == PLAYER_1_ID

    def test_black_cannot_move_first(self):
        """Test black moving first is rejected."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(1, 4, 3, 4), PLAYER_2_ID)

        assert not result.success
        assert result.error_code == "NOT_YOUR_TURN"

    def test_knight_cannot_move_straight(self):
        """Test a knight move along a file is rejected."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(7, 1, 5, 1), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == "ILLEGAL_MOVE"

    def test_cannot_move_opponent_piece(self):
        """Test a player cannot move the other side's piece."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(1, 4, 2, 4), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == "ILLEGAL_MOVE"

    def test_rook_blocked_by_own_pawn(self):
        """Test a rook cannot pass through its own pawn."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(7, 0, 5, 0), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == "ILLEGAL_MOVE"


class TestCheckRules:
    """Test check detection and pins."""

    def test_pinned_rook_cannot_leave_the_file(self):
        """Test a pinned rook may not expose its king."""
        board = empty_board()
        board[7][4] = "K"
        board[6][4] = "R"
        board[0][4] = "r"
        board[0][0] = "k"
        state = create_chess_state(board)

        result = process_move(state, chess_move(6, 4, 6, 0), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == "ILLEGAL_MOVE"
        assert "check" in result.error_message

    def test_capture_is_recorded(self):
        """Test a capture is reported in the move event."""
        board = empty_board()
        board[7][4] = "K"
        board[0][4] = "k"
        board[4][0] = "R"
        board[4][6] = "n"
        state = create_chess_state(board)

        result = process_move(state, chess_move(4, 0, 4, 6), PLAYER_1_ID)

        assert result.success
        assert result.state.captured_pieces["white"] == ["n"]
        assert result.state.captured_pieces["black"] == []
        assert result.state.move_history[-1]["captured"] == "n"

    def test_check_is_flagged(self):
        """Test a move giving check is flagged."""
        board = empty_board()
        board[7][4] = "K"
        board[0][4] = "k"
        board[4][0] = "R"
        state = create_chess_state(board)

        result = process_move(state, chess_move(4, 0, 4, 4), PLAYER_1_ID)

        assert result.success
        assert result.state.in_check
        assert is_in_check(result.state.board, "black")
        assert not result.state.game_over


class TestTerminalPositions:
    """Test checkmate, stalemate and promotion."""

    def test_fools_mate(self):
        """Test fool's mate ends the game with black winning."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)
        moves = [
            (PLAYER_1_ID, chess_move(6, 5, 5, 5)),  # f3
            (PLAYER_2_ID, chess_move(1, 4, 3, 4)),  # e5
            (PLAYER_1_ID, chess_move(6, 6, 4, 6)),  # g4
            (PLAYER_2_ID, chess_move(0, 3, 4, 7)),  # Qh4#
        ]
        result = None
        for player_id, move in moves:
            result = process_move(state, move, player_id)
            assert result.success
            state = result.state

        assert state.game_over
        assert state.winner == PLAYER_2_ID
        assert state.end_reason == EndReason.CHECKMATE
        assert state.in_check
        assert result.events[-1].event_type == "game_ended"
        assert get_legal_moves(state) == []

    def test_stalemate_is_a_draw(self):
        """Test stalemate ends the game as a draw."""
        board = empty_board()
        board[0][0] = "k"
        board[5][2] = "Q"
        board[7][7] = "K"
        state = create_chess_state(board)

        result = process_move(state, chess_move(5, 2, 1, 2), PLAYER_1_ID)

        assert result.success
        assert result.state.game_over
        assert result.state.winner == DRAW
        assert result.state.end_reason == EndReason.STALEMATE
        assert not result.state.in_check

    def test_pawn_promotes_to_queen(self):
        """Test a pawn reaching the last rank becomes a queen."""
        board = empty_board()
        board[1][0] = "P"
        board[7][4] = "K"
        board[4][7] = "k"
        state = create_chess_state(board)

        result = process_move(state, chess_move(1, 0, 0, 0), PLAYER_1_ID)

        assert result.success
        assert result.state.board[0][0] == "Q"
        assert result.state.move_history[-1]["promotion"] == "Q"

    def test_moves_after_game_over_rejected(self):
        """Test no moves are accepted after checkmate."""
        board = empty_board()
        board[0][0] = "k"
        board[5][2] = "Q"
        board[7][7] = "K"
        state = create_chess_state(board)
        finished = process_move(state, chess_move(5, 2, 1, 2), PLAYER_1_ID).state

        result = process_move(finished, chess_move(0, 0, 0, 1), PLAYER_2_ID)

        assert not result.success
        assert result.error_code == "GAME_FINISHED"
