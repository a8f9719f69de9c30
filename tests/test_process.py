"""Tests for the process_move() entry point and the non-move transitions.

Critical scenarios tested:
- Validation order and error codes
- Input states are never mutated
- Event sequence numbers are monotonic across moves
- forfeit(), agree_draw() and skip_turn()
- Payload parsing and state serialization
"""

import random

import pytest

from app.schemas.game_engine import DRAW, ChessState, EndReason, GameType, parse_game_state
from app.services.game import GameEngine, initialize_game
from app.services.game.engine import (
    ChessMove,
    InvalidPhase,
    NotYourTurn,
    agree_draw,
    build_move_from_payload,
    forfeit,
    process_move,
    skip_turn,
)
from app.services.game.engine.turns import next_player, partner_of, seat_index, seat_offset, team_of

from .conftest import (
    FOUR_PLAYERS,
    PLAYER_1_ID,
    PLAYER_2_ID,
    PLAYER_3_ID,
    PLAYER_4_ID,
    TWO_PLAYERS,
    chess_move,
    create_hearts_state,
)


def play_card(card: str):
    return build_move_from_payload({"kind": "play_card", "data": {"card": card}})


class TestValidation:
    """Test move validation order and error codes."""

    def test_input_state_is_not_mutated(self):
        """Test process_move leaves the input state untouched."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)
        before = state.model_dump()

        result = process_move(state, chess_move(6, 4, 4, 4), PLAYER_1_ID)

        assert result.success
        assert state.model_dump() == before

    def test_rejected_move_returns_no_state(self):
        """Test a rejected move returns no state and no events."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(6, 4, 3, 4), PLAYER_1_ID)

        assert not result.success
        assert result.state is None
        assert result.events == []

    def test_finished_game_rejects_moves(self):
        """Test a finished game rejects further moves."""
        state = forfeit(initialize_game(GameType.CHESS, TWO_PLAYERS), PLAYER_2_ID).state

        result = process_move(state, chess_move(6, 4, 4, 4), PLAYER_1_ID)

        assert result.error_code == "GAME_FINISHED"

    def test_outsider_is_not_a_player(self):
        """Test a move from outside the game is rejected."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(6, 4, 4, 4), "stranger")

        assert result.error_code == "NOT_A_PLAYER"

    def test_wrong_move_kind_for_the_game(self, rng):
        """Test a move kind the game does not allow is rejected with a named reason."""
        state = initialize_game(GameType.CRAZY8S, TWO_PLAYERS, rng)

        result = process_move(state, chess_move(6, 4, 4, 4), PLAYER_1_ID)

        assert result.error_code == InvalidPhase.code
        assert "chess_move" in result.error_message
        assert "crazy8s" in result.error_message

    def test_moving_out_of_turn(self):
        """Test a move made out of turn is rejected."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(1, 4, 3, 4), PLAYER_2_ID)

        assert result.error_code == NotYourTurn.code
        assert result.error_message == "It's not your turn"


class TestTurnHelpers:
    """Test seat arithmetic on the ordered player list."""

    def test_seat_index_is_the_list_position(self):
        """Test seats count from zero in join order."""
        assert seat_index(FOUR_PLAYERS, PLAYER_3_ID) == 2

    def test_next_player_wraps_after_the_last_seat(self):
        """Test the seat after the last one is the first."""
        assert next_player(FOUR_PLAYERS, PLAYER_1_ID) == PLAYER_2_ID
        assert next_player(FOUR_PLAYERS, PLAYER_4_ID) == PLAYER_1_ID
        assert next_player(TWO_PLAYERS, PLAYER_2_ID) == PLAYER_1_ID

    def test_negative_offset_goes_anticlockwise(self):
        """Test a negative offset walks back round the table."""
        assert seat_offset(FOUR_PLAYERS, PLAYER_1_ID, -1) == PLAYER_4_ID

    def test_partners_sit_across_the_table(self):
        """Test partners are two seats apart."""
        assert partner_of(FOUR_PLAYERS, PLAYER_1_ID) == PLAYER_3_ID
        assert partner_of(FOUR_PLAYERS, PLAYER_4_ID) == PLAYER_2_ID

    def test_teams_alternate_by_seat(self):
        """Test even seats form team 0 and odd seats team 1."""
        assert [team_of(FOUR_PLAYERS, pid) for pid in FOUR_PLAYERS] == [0, 1, 0, 1]


class TestEventSequence:
    """Test event sequence numbering."""

    def test_seq_numbers_continue_across_moves(self):
        """Test sequence numbers keep counting from one move to the next."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)
        seen = []
        for player_id, move in [
            (PLAYER_1_ID, chess_move(6, 4, 4, 4)),
            (PLAYER_2_ID, chess_move(1, 4, 3, 4)),
            (PLAYER_1_ID, chess_move(7, 6, 5, 5)),
        ]:
            result = process_move(state, move, player_id)
            seen.extend(event.seq for event in result.events)
            state = result.state

        assert seen == [0, 1, 2]
        assert state.event_seq == 3

    def test_trick_completion_numbers_every_event(self):
        """Test every event from a finished trick gets its own number."""
        state = create_hearts_state(
            {
                PLAYER_1_ID: ["2♣", "3♣"],
                PLAYER_2_ID: ["4♣", "5♣"],
                PLAYER_3_ID: ["6♣", "7♣"],
                PLAYER_4_ID: ["8♣", "9♣"],
            },
            event_seq=10,
        )
        for player_id, card in [(PLAYER_1_ID, "2♣"), (PLAYER_2_ID, "4♣"), (PLAYER_3_ID, "6♣")]:
            state = process_move(state, play_card(card), player_id).state

        result = process_move(state, play_card("8♣"), PLAYER_4_ID)

        assert [event.seq for event in result.events] == [13, 14]
        assert result.state.event_seq == 15


class TestForfeit:
    """Test forfeits."""

    def test_two_player_forfeit_credits_the_opponent(self):
        """Test forfeiting a two-player game makes the opponent the winner."""
        state = initialize_game(GameType.CHECKERS, TWO_PLAYERS)

        result = forfeit(state, PLAYER_1_ID)

        assert result.success
        assert result.state.winner == PLAYER_2_ID
        assert result.state.end_reason == EndReason.FORFEIT
        assert result.events[0].event_type == "game_ended"

    def test_multi_player_forfeit_credits_the_next_seat(self, rng):
        """Test forfeiting a four-player game credits the next seat."""
        state = initialize_game(GameType.CRAZY8S, FOUR_PLAYERS, rng)

        result = forfeit(state, PLAYER_2_ID)

        assert result.state.winner == PLAYER_3_ID

    def test_outsider_cannot_forfeit(self):
        """Test a forfeit from outside the game is rejected."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        assert forfeit(state, "stranger").error_code == "NOT_A_PLAYER"

    def test_cannot_forfeit_twice(self):
        """Test a finished game cannot be forfeited again."""
        state = forfeit(initialize_game(GameType.CHESS, TWO_PLAYERS), PLAYER_1_ID).state

        assert forfeit(state, PLAYER_2_ID).error_code == "GAME_FINISHED"


class TestAgreeDraw:
    """Test agreed draws."""

    def test_board_game_draw(self):
        """Test a board game ends as an agreed draw."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = agree_draw(state)

        assert result.state.game_over
        assert result.state.winner == DRAW
        assert result.state.end_reason == EndReason.DRAW_AGREED

    def test_card_games_cannot_agree_a_draw(self, rng):
        """Test card games cannot end in an agreed draw."""
        state = initialize_game(GameType.GOFISH, TWO_PLAYERS, rng)

        assert agree_draw(state).error_code == "INVALID_GAME_STATE"


class TestSkipTurn:
    """Test skipping a turn."""

    def test_card_game_turn_passes_on(self, rng):
        """Test a skipped card game turn moves to the next seat."""
        state = initialize_game(GameType.CRAZY8S, TWO_PLAYERS, rng)

        result = skip_turn(state)

        assert result.success
        assert result.state.current_turn == PLAYER_2_ID
        assert result.state.hands == state.hands
        event = result.events[0]
        assert event.event_type == "turn_skipped"
        assert (event.player_id, event.next_player_id) == (PLAYER_1_ID, PLAYER_2_ID)

    def test_board_games_cannot_skip(self):
        """Test board games cannot skip a turn."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        assert skip_turn(state).error_code == "INVALID_GAME_STATE"


class TestPayloads:
    """Test move payload parsing."""

    def test_chess_payload_uses_from_and_to(self):
        """Test chess payloads use the from and to field names."""
        move = build_move_from_payload(
            {"kind": "chess_move", "data": {"from": {"row": 6, "col": 4}, "to": {"row": 4, "col": 4}}}
        )

        assert isinstance(move, ChessMove)
        assert move.data.from_square.row == 6
        assert move.data.to_square.row == 4

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"kind": "teleport", "data": {}},
            {"kind": "chess_move", "data": {"from": {"row": 9, "col": 0}, "to": {"row": 0, "col": 0}}},
            {"kind": "ask_for_cards", "data": {"rank": "7"}},
        ],
    )
    def test_bad_payloads_raise_value_error(self, payload):
        """Test malformed payloads raise ValueError."""
        with pytest.raises(ValueError):
            build_move_from_payload(payload)

    def test_move_applied_carries_wire_move(self):
        """Test the move event carries the move in wire form."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)

        result = process_move(state, chess_move(6, 4, 4, 4), PLAYER_1_ID)

        assert result.events[0].move == {
            "kind": "chess_move",
            "data": {"from": {"row": 6, "col": 4}, "to": {"row": 4, "col": 4}},
        }


class TestStateSerialization:
    """Test state serialization."""

    def test_turn_index_follows_current_turn(self):
        """Test the serialized turn index matches the current seat."""
        state = initialize_game(GameType.CHESS, TWO_PLAYERS)
        after = process_move(state, chess_move(6, 4, 4, 4), PLAYER_1_ID).state

        assert state.turn == 0
        assert after.turn == 1
        assert after.model_dump(mode="json")["turn"] == 1

    def test_state_round_trips_through_json(self, rng):
        """Test a state survives a trip through JSON."""
        for game_type in GameType:
            players = FOUR_PLAYERS if game_type in (GameType.HEARTS, GameType.SPADES) else TWO_PLAYERS
            state = initialize_game(game_type, players, rng)

            restored = parse_game_state(state.model_dump(mode="json"))

            assert type(restored) is type(state)
            assert restored == state

    def test_engine_service_uses_its_random_source(self):
        """Test GameEngine deals the same game from the same seed."""
        first = GameEngine(random.Random(42)).initialize(GameType.GOFISH, TWO_PLAYERS)
        second = GameEngine(random.Random(42)).initialize(GameType.GOFISH, TWO_PLAYERS)

        assert first.hands == second.hands
        assert isinstance(GameEngine().initialize(GameType.CHESS, TWO_PLAYERS), ChessState)
