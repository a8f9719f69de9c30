"""Checkers (English draughts) rules.

Red men (`r`, seat 0) start on rows 5-7 and move toward row 0; black men
(`b`, seat 1) start on rows 0-2 and move toward row 7. A man reaching the far
row is crowned (`R` / `B`) and then moves both ways.

Captures are mandatory for every mover. A multi-jump chain is a single move
whose `captures` lists every jumped square; crowning ends the chain.
"""

import logging

from app.schemas.game_engine import Board, CheckersState, EndReason, GamePhase, Square

from .actions import CheckersMove, CheckersMoveData
from .errors import IllegalMove
from .turns import other_player, seat_index

logger = logging.getLogger(__name__)

RED = "red"
BLACK = "black"


def initial_board() -> Board:
    """Twelve men per side on the dark squares of their three home rows."""
    board: Board = [[None] * 8 for _ in range(8)]
    for row in range(8):
        for col in range(8):
            if (row + col) % 2 != 1:
                continue
            if row <= 2:
                board[row][col] = "b"
            elif row >= 5:
                board[row][col] = "r"
    return board


def copy_board(board: Board) -> Board:
    return [list(row) for row in board]


def piece_color(piece: str) -> str:
    return RED if piece.lower() == "r" else BLACK


def is_king(piece: str) -> bool:
    return piece.isupper()


def color_of_player(state: CheckersState, player_id: str) -> str:
    """Seat 0 plays red."""
    return RED if seat_index(state.players, player_id) == 0 else BLACK


def _directions(piece: str) -> list[tuple[int, int]]:
    if is_king(piece):
        return [(-1, -1), (-1, 1), (1, -1), (1, 1)]
    forward = -1 if piece_color(piece) == RED else 1
    return [(forward, -1), (forward, 1)]


def _crown_row(color: str) -> int:
    return 0 if color == RED else 7


def _on_board(row: int, col: int) -> bool:
    return 0 <= row < 8 and 0 <= col < 8


def _jump_chains(
    board: Board,
    piece: str,
    row: int,
    col: int,
    captured: list[tuple[int, int]],
) -> list[tuple[tuple[int, int], list[tuple[int, int]]]]:
    """Every maximal jump sequence from (row, col).

    Jumped pieces stay on the board until the move completes but may not be
    jumped twice.
    """
    chains = []
    color = piece_color(piece)
    for d_row, d_col in _directions(piece):
        mid_row, mid_col = row + d_row, col + d_col
        land_row, land_col = row + 2 * d_row, col + 2 * d_col
        if not _on_board(land_row, land_col):
            continue
        middle = board[mid_row][mid_col]
        if middle is None or piece_color(middle) == color or (mid_row, mid_col) in captured:
            continue
        if board[land_row][land_col] is not None:
            continue
        path = [*captured, (mid_row, mid_col)]
        crowned = not is_king(piece) and land_row == _crown_row(color)
        if crowned:
            chains.append(((land_row, land_col), path))
            continue
        # Move the jumping piece so its origin square reads as empty further along the chain
        scratch = copy_board(board)
        scratch[row][col] = None
        scratch[land_row][land_col] = piece
        longer = _jump_chains(scratch, piece, land_row, land_col, path)
        if longer:
            chains.extend(longer)
        else:
            chains.append(((land_row, land_col), path))
    return chains


def _to_move(from_row: int, from_col: int, to: tuple[int, int], captures) -> CheckersMove:
    return CheckersMove(
        data=CheckersMoveData(
            from_square=Square(row=from_row, col=from_col),
            to_square=Square(row=to[0], col=to[1]),
            captures=[Square(row=r, col=c) for r, c in captures],
        )
    )


def legal_moves(board: Board, color: str) -> list[CheckersMove]:
    """Legal moves for `color`. When any jump exists only jumps are returned."""
    jumps: list[CheckersMove] = []
    steps: list[CheckersMove] = []
    for row in range(8):
        for col in range(8):
            piece = board[row][col]
            if piece is None or piece_color(piece) != color:
                continue
            for landing, path in _jump_chains(board, piece, row, col, []):
                jumps.append(_to_move(row, col, landing, path))
            for d_row, d_col in _directions(piece):
                r, c = row + d_row, col + d_col
                if _on_board(r, c) and board[r][c] is None:
                    steps.append(_to_move(row, col, (r, c), []))
    return jumps if jumps else steps


def count_pieces(board: Board, color: str) -> int:
    return sum(1 for row in board for piece in row if piece is not None and piece_color(piece) == color)


def _match_legal_move(board: Board, color: str, move: CheckersMove) -> CheckersMove:
    """Find the generated legal move the player meant.

    Matches on source and destination; when the client names the jumped
    squares they must match too.
    """
    data = move.data
    piece = board[data.from_square.row][data.from_square.col]
    if piece is None:
        raise IllegalMove("No piece on the source square")
    if piece_color(piece) != color:
        raise IllegalMove("That piece belongs to your opponent")

    candidates = legal_moves(board, color)
    wanted_captures = {(sq.row, sq.col) for sq in data.captures}
    for candidate in candidates:
        c = candidate.data
        if c.from_square != data.from_square or c.to_square != data.to_square:
            continue
        if wanted_captures and {(sq.row, sq.col) for sq in c.captures} != wanted_captures:
            continue
        return candidate

    if candidates and candidates[0].data.captures and not data.captures:
        raise IllegalMove("A capture is available and must be taken")
    raise IllegalMove("That piece cannot move there")


def apply_move(state: CheckersState, move: CheckersMove, player_id: str) -> tuple[CheckersState, list]:
    """Validate and play a checkers move, crowning and ending the game as needed."""
    color = color_of_player(state, player_id)
    chosen = _match_legal_move(state.board, color, move)
    data = chosen.data

    new_board = copy_board(state.board)
    piece = new_board[data.from_square.row][data.from_square.col]
    new_board[data.from_square.row][data.from_square.col] = None
    for square in data.captures:
        new_board[square.row][square.col] = None
    crowned = not is_king(piece) and data.to_square.row == _crown_row(color)
    if crowned:
        piece = piece.upper()
    new_board[data.to_square.row][data.to_square.col] = piece

    captured_pieces = dict(state.captured_pieces)
    captured_pieces[color] = captured_pieces.get(color, 0) + len(data.captures)

    history_entry = {
        "from": data.from_square.model_dump(),
        "to": data.to_square.model_dump(),
        "captures": [sq.model_dump() for sq in data.captures],
        "crowned": crowned,
        "player": player_id,
    }

    opponent_color = BLACK if color == RED else RED
    update = {
        "board": new_board,
        "captured_pieces": captured_pieces,
        "move_history": [*state.move_history, history_entry],
        "current_turn": other_player(state.players, player_id),
        "move_count": state.move_count + 1,
    }

    if count_pieces(new_board, opponent_color) == 0:
        update.update(
            game_over=True, phase=GamePhase.FINISHED, winner=player_id, end_reason=EndReason.NO_PIECES
        )
        logger.info("Checkers won by capturing every piece: winner=%s", player_id[:8])
    elif not legal_moves(new_board, opponent_color):
        update.update(
            game_over=True, phase=GamePhase.FINISHED, winner=player_id, end_reason=EndReason.NO_MOVES
        )
        logger.info("Checkers won by blockade: winner=%s", player_id[:8])

    return state.model_copy(update=update), []
