"""Piece values and small board helpers shared across analysis submodules."""

import chess

__all__ = [
    "PIECE_VALUES",
    "get_piece_value",
    "piece_count",
]

PIECE_VALUES: dict[chess.PieceType, int] = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
}


def get_piece_value(piece_type: chess.PieceType, *, king=None) -> int:
    """Standard piece value in pawns. Kings are worth whatever `king` says (None by default)."""
    return {**PIECE_VALUES, chess.KING: king}[piece_type]


def piece_count(board: chess.Board) -> int:
    """Number of occupied squares, kings and pawns included."""
    return chess.popcount(board.occupied)
