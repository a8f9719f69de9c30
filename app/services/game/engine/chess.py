"""Chess rules.

Material legality only: piece movement, path blocking, self-check, pawn
promotion to queen, check, checkmate and stalemate. Castling, en passant and
the draw-by-repetition rules are not played.

Board orientation: row 0 is black's back rank, white (uppercase, seat 0)
starts on rows 6-7 and moves toward row 0.
"""

import logging

from app.schemas.game_engine import DRAW, Board, ChessState, EndReason, GamePhase, Square

from .actions import BoardMoveData, ChessMove
from .errors import IllegalMove
from .turns import other_player, seat_index

logger = logging.getLogger(__name__)

WHITE = "white"
BLACK = "black"

BACK_RANK = ["r", "n", "b", "q", "k", "b", "n", "r"]

KNIGHT_OFFSETS = [(-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1)]
KING_OFFSETS = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]
ROOK_DIRECTIONS = [(-1, 0), (1, 0), (0, -1), (0, 1)]
BISHOP_DIRECTIONS = [(-1, -1), (-1, 1), (1, -1), (1, 1)]


def initial_board() -> Board:
    """Standard starting position."""
    board: Board = [[None] * 8 for _ in range(8)]
    board[0] = list(BACK_RANK)
    board[1] = ["p"] * 8
    board[6] = ["P"] * 8
    board[7] = [piece.upper() for piece in BACK_RANK]
    return board


def copy_board(board: Board) -> Board:
    return [list(row) for row in board]


def piece_color(piece: str) -> str:
    return WHITE if piece.isupper() else BLACK


def opposite(color: str) -> str:
    return BLACK if color == WHITE else WHITE


def color_of_player(state: ChessState, player_id: str) -> str:
    """Seat 0 plays white."""
    return WHITE if seat_index(state.players, player_id) == 0 else BLACK


def _on_board(row: int, col: int) -> bool:
    return 0 <= row < 8 and 0 <= col < 8


def _pawn_direction(color: str) -> int:
    return -1 if color == WHITE else 1


def _slide(board: Board, row: int, col: int, directions, color: str):
    for d_row, d_col in directions:
        r, c = row + d_row, col + d_col
        while _on_board(r, c):
            target = board[r][c]
            if target is None:
                yield r, c
            else:
                if piece_color(target) != color:
                    yield r, c
                break
            r += d_row
            c += d_col


def _step(board: Board, row: int, col: int, offsets, color: str):
    for d_row, d_col in offsets:
        r, c = row + d_row, col + d_col
        if not _on_board(r, c):
            continue
        target = board[r][c]
        if target is None or piece_color(target) != color:
            yield r, c


def _pawn_targets(board: Board, row: int, col: int, color: str):
    direction = _pawn_direction(color)
    start_row = 6 if color == WHITE else 1
    ahead = row + direction
    if _on_board(ahead, col) and board[ahead][col] is None:
        yield ahead, col
        two_ahead = row + 2 * direction
        if row == start_row and board[two_ahead][col] is None:
            yield two_ahead, col
    for d_col in (-1, 1):
        r, c = ahead, col + d_col
        if _on_board(r, c) and board[r][c] is not None and piece_color(board[r][c]) != color:
            yield r, c


def pseudo_targets(board: Board, row: int, col: int) -> list[tuple[int, int]]:
    """Destinations reachable by the piece on (row, col), ignoring self-check."""
    piece = board[row][col]
    if piece is None:
        return []
    color = piece_color(piece)
    kind = piece.lower()
    if kind == "p":
        return list(_pawn_targets(board, row, col, color))
    if kind == "n":
        return list(_step(board, row, col, KNIGHT_OFFSETS, color))
    if kind == "k":
        return list(_step(board, row, col, KING_OFFSETS, color))
    if kind == "r":
        return list(_slide(board, row, col, ROOK_DIRECTIONS, color))
    if kind == "b":
        return list(_slide(board, row, col, BISHOP_DIRECTIONS, color))
    if kind == "q":
        return list(_slide(board, row, col, ROOK_DIRECTIONS + BISHOP_DIRECTIONS, color))
    return []


def find_king(board: Board, color: str) -> tuple[int, int] | None:
    king = "K" if color == WHITE else "k"
    for row in range(8):
        for col in range(8):
            if board[row][col] == king:
                return row, col
    return None


def is_square_attacked(board: Board, row: int, col: int, by_color: str) -> bool:
    """Whether any piece of `by_color` attacks (row, col).

    Pawns attack diagonally only, so their forward pushes are not counted.
    """
    for r in range(8):
        for c in range(8):
            piece = board[r][c]
            if piece is None or piece_color(piece) != by_color:
                continue
            if piece.lower() == "p":
                if r + _pawn_direction(by_color) == row and abs(c - col) == 1:
                    return True
                continue
            if (row, col) in pseudo_targets(board, r, c):
                return True
    return False


def is_in_check(board: Board, color: str) -> bool:
    king = find_king(board, color)
    if king is None:
        return False
    return is_square_attacked(board, king[0], king[1], opposite(color))


def move_piece(board: Board, from_sq: Square, to_sq: Square) -> tuple[Board, str | None]:
    """Play a move on a copy of the board.

    Returns the new board and the captured piece, if any. Pawns reaching the
    far rank become queens.
    """
    new_board = copy_board(board)
    piece = new_board[from_sq.row][from_sq.col]
    captured = new_board[to_sq.row][to_sq.col]
    new_board[from_sq.row][from_sq.col] = None
    if piece == "P" and to_sq.row == 0:
        piece = "Q"
    elif piece == "p" and to_sq.row == 7:
        piece = "q"
    new_board[to_sq.row][to_sq.col] = piece
    return new_board, captured


def legal_moves(board: Board, color: str) -> list[ChessMove]:
    """Every move for `color` that does not leave its own king in check."""
    moves: list[ChessMove] = []
    for row in range(8):
        for col in range(8):
            piece = board[row][col]
            if piece is None or piece_color(piece) != color:
                continue
            from_sq = Square(row=row, col=col)
            for to_row, to_col in pseudo_targets(board, row, col):
                to_sq = Square(row=to_row, col=to_col)
                scratch, _ = move_piece(board, from_sq, to_sq)
                if not is_in_check(scratch, color):
                    moves.append(
                        ChessMove(data=BoardMoveData(from_square=from_sq, to_square=to_sq))
                    )
    return moves


def has_legal_move(board: Board, color: str) -> bool:
    for row in range(8):
        for col in range(8):
            piece = board[row][col]
            if piece is None or piece_color(piece) != color:
                continue
            from_sq = Square(row=row, col=col)
            for to_row, to_col in pseudo_targets(board, row, col):
                scratch, _ = move_piece(board, from_sq, Square(row=to_row, col=to_col))
                if not is_in_check(scratch, color):
                    return True
    return False


def check_move(board: Board, color: str, from_sq: Square, to_sq: Square) -> None:
    """Raise IllegalMove unless `color` may play from_sq -> to_sq."""
    piece = board[from_sq.row][from_sq.col]
    if piece is None:
        raise IllegalMove("No piece on the source square")
    if piece_color(piece) != color:
        raise IllegalMove("That piece belongs to your opponent")
    target = board[to_sq.row][to_sq.col]
    if target is not None and piece_color(target) == color:
        raise IllegalMove("Destination holds one of your own pieces")
    if (to_sq.row, to_sq.col) not in pseudo_targets(board, from_sq.row, from_sq.col):
        raise IllegalMove(f"A {piece.upper()} cannot move that way")
    scratch, _ = move_piece(board, from_sq, to_sq)
    if is_in_check(scratch, color):
        raise IllegalMove("Move would leave your king in check")


def apply_move(state: ChessState, move: ChessMove, player_id: str) -> tuple[ChessState, list]:
    """Validate and play a chess move, then run the terminal checks."""
    color = color_of_player(state, player_id)
    from_sq = move.data.from_square
    to_sq = move.data.to_square

    check_move(state.board, color, from_sq, to_sq)

    piece = state.board[from_sq.row][from_sq.col]
    new_board, captured = move_piece(state.board, from_sq, to_sq)
    promoted = new_board[to_sq.row][to_sq.col] if new_board[to_sq.row][to_sq.col] != piece else None

    captured_pieces = {side: list(pieces) for side, pieces in state.captured_pieces.items()}
    if captured is not None:
        captured_pieces[color].append(captured)

    history_entry = {
        "from": from_sq.model_dump(),
        "to": to_sq.model_dump(),
        "piece": piece,
        "captured": captured,
        "promotion": promoted,
        "player": player_id,
    }

    opponent = opposite(color)
    in_check = is_in_check(new_board, opponent)
    can_reply = has_legal_move(new_board, opponent)

    update = {
        "board": new_board,
        "captured_pieces": captured_pieces,
        "move_history": [*state.move_history, history_entry],
        "current_turn": other_player(state.players, player_id),
        "move_count": state.move_count + 1,
        "in_check": in_check,
    }

    if not can_reply:
        update["game_over"] = True
        update["phase"] = GamePhase.FINISHED
        if in_check:
            update["winner"] = player_id
            update["end_reason"] = EndReason.CHECKMATE
            logger.info("Checkmate: winner=%s", player_id[:8])
        else:
            update["winner"] = DRAW
            update["end_reason"] = EndReason.STALEMATE
            logger.info("Stalemate after %d moves", state.move_count + 1)
    elif in_check:
        logger.debug("%s is in check", opponent)

    return state.model_copy(update=update), []
