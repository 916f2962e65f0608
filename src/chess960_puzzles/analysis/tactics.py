"""Board-level tactical helpers: defence, en prise pieces, ray pins.

is_defended, can_be_taken_by_lower_piece and is_in_bad_spot are vendored
from lichess-puzzler/tagger/util.py.

Upstream: https://github.com/ornicar/lichess-puzzler
Commit: d021969ec326c83cfa357f3ad58dbd9cea44e64f
License: AGPL-3.0

Modifications from upstream are marked with "# MODIFIED:" comments.
walk_ray, aligned_pins and attacked_enemy_pieces are local.
"""

import chess

from chess960_puzzles.analysis.constants import get_piece_value

__all__ = [
    "aligned_pins",
    "attacked_enemy_pieces",
    "can_be_taken_by_lower_piece",
    "is_defended",
    "is_in_bad_spot",
    "walk_ray",
]

_RAY_PIECE_TYPES = (chess.QUEEN, chess.ROOK, chess.BISHOP)

_ROOK_DIRS = [(0, 1), (0, -1), (1, 0), (-1, 0)]
_BISHOP_DIRS = [(1, 1), (1, -1), (-1, 1), (-1, -1)]
_RAY_DIRS: dict[chess.PieceType, list[tuple[int, int]]] = {
    chess.ROOK: _ROOK_DIRS,
    chess.BISHOP: _BISHOP_DIRS,
    chess.QUEEN: _ROOK_DIRS + _BISHOP_DIRS,
}


def walk_ray(
    board: chess.Board,
    start_sq: int,
    direction: tuple[int, int],
) -> tuple[int | None, int | None]:
    """Walk a ray from start_sq, return (first_hit_sq, second_hit_sq) or None."""
    df, dr = direction
    f = chess.square_file(start_sq) + df
    r = chess.square_rank(start_sq) + dr
    first = None
    while 0 <= f <= 7 and 0 <= r <= 7:
        sq = chess.square(f, r)
        if board.piece_at(sq) is not None:
            if first is None:
                first = sq
            else:
                return first, sq
        f += df
        r += dr
    return first, None


def aligned_pins(board: chess.Board, color: chess.Color) -> list[tuple[int, int]]:
    """Sliders of `color` that see the enemy king through exactly one enemy piece.

    Returns (slider_square, pinned_square) pairs.
    """
    enemy_king = board.king(not color)
    if enemy_king is None:
        return []
    pins = []
    for pt in _RAY_PIECE_TYPES:
        for slider_sq in board.pieces(pt, color):
            for direction in _RAY_DIRS[pt]:
                first_sq, second_sq = walk_ray(board, slider_sq, direction)
                if first_sq is None or second_sq != enemy_king:
                    continue
                first_piece = board.piece_at(first_sq)
                if first_piece is not None and first_piece.color != color:
                    pins.append((slider_sq, first_sq))
    return pins


def attacked_enemy_pieces(board: chess.Board, square: int) -> list[int]:
    """Squares of enemy pieces attacked by the piece on `square`."""
    piece = board.piece_at(square)
    if piece is None:
        return []
    return list(board.attacks(square) & board.occupied_co[not piece.color])


def is_defended(board: chess.Board, piece: chess.Piece, square: int) -> bool:
    if board.attackers(piece.color, square):
        return True
    # x-ray defence through an attacking slider
    for attacker in board.attackers(not piece.color, square):
        attacker_piece = board.piece_at(attacker)
        # MODIFIED: skip empty squares instead of asserting
        if attacker_piece and attacker_piece.piece_type in _RAY_PIECE_TYPES:
            bc = board.copy(stack=False)
            bc.remove_piece_at(attacker)
            if bc.attackers(piece.color, square):
                return True
    return False


def can_be_taken_by_lower_piece(board: chess.Board, piece: chess.Piece, square: int) -> bool:
    # MODIFIED: values come from get_piece_value; a king target is worth 100
    # so any non-king attacker counts as lower (upstream raises KeyError).
    value = get_piece_value(piece.piece_type, king=100)
    for attacker_square in board.attackers(not piece.color, square):
        attacker = board.piece_at(attacker_square)
        if (
            attacker
            and attacker.piece_type != chess.KING
            and get_piece_value(attacker.piece_type) < value
        ):
            return True
    return False


def is_in_bad_spot(board: chess.Board, square: int) -> bool:
    """Attacked and either undefended or takeable by a lower piece."""
    piece = board.piece_at(square)
    # MODIFIED: empty square is never in a bad spot (upstream asserts)
    if piece is None:
        return False
    # MODIFIED: is_hanging() inlined as `not is_defended(...)`
    return bool(board.attackers(not piece.color, square)) and (
        not is_defended(board, piece, square)
        or can_be_taken_by_lower_piece(board, piece, square)
    )
