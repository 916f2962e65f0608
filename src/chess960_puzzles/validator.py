"""Realism gate for generated positions.

Cheap local heuristics only: terminal state, material balance, king
shelter and hanging pieces. Thresholds relax as the target rating rises,
so a position rejected at one rating for material is rejected at every
lower rating too. False negatives are acceptable; absurd positions are not.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

import chess

from chess960_puzzles.analysis import (
    analyze_king_shelter,
    is_exposed,
    material_balance,
    piece_count,
)

__all__ = [
    "ValidationResult",
    "count_hanging_pieces",
    "is_king_exposed",
    "validate_position",
]

# (rating ceiling, max material difference), checked in order
_MATERIAL_LIMITS = [(1600, 5), (1800, 8)]
MIDGAME_PIECE_COUNT = 20
MAX_HANGING_LOW_RATING = 2

REASON_GAME_OVER = "Game is already over"
REASON_MATERIAL = "Material too imbalanced for rating"
REASON_KING_ROAMING = "King in unrealistic position for mid-game"
REASON_KING_EXPOSED = "King exposed - unrealistic for rating"
REASON_BOTH_KINGS_EXPOSED = "Both kings exposed - unrealistic"
REASON_HANGING = "Too many hanging pieces - unrealistic"
REASON_INVALID = "Invalid position"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.valid


def _as_board(position: chess.Board | str) -> chess.Board:
    if isinstance(position, chess.Board):
        return position
    return chess.Board(position, chess960=True)


def is_king_exposed(board: chess.Board, color: chess.Color) -> bool:
    shelter = analyze_king_shelter(board, color)
    return shelter is not None and is_exposed(shelter)


def _capture_targets(board: chess.Board, color: chess.Color) -> Counter:
    """Count legal moves of `color` landing on each square (castling excluded)."""
    if board.turn == color:
        moves = board.legal_moves
        return Counter(m.to_square for m in moves if not board.is_castling(m))

    if board.is_check():
        # A null move is illegal while in check; fall back to attack maps.
        targets: Counter = Counter()
        for sq in board.occupied_co[not color]:
            targets[sq] = len(board.attackers(color, sq))
        return targets

    probe = board.copy(stack=False)
    probe.push(chess.Move.null())
    return Counter(m.to_square for m in probe.legal_moves if not probe.is_castling(m))


def count_hanging_pieces(board: chess.Board) -> int:
    """Non-king pieces attacked by the opponent and defended by nothing."""
    targets = {
        chess.WHITE: _capture_targets(board, chess.WHITE),
        chess.BLACK: _capture_targets(board, chess.BLACK),
    }
    hanging = 0
    for square, piece in board.piece_map().items():
        if piece.piece_type == chess.KING:
            continue
        attackers = targets[not piece.color][square]
        defenders = len(board.attackers(piece.color, square))
        if attackers > defenders and defenders == 0:
            hanging += 1
    return hanging


def validate_position(position: chess.Board | str, target_rating: int) -> ValidationResult:
    """Accept or reject a position as a realistic exercise at `target_rating`."""
    try:
        board = _as_board(position)
    except ValueError:
        return ValidationResult(False, REASON_INVALID)

    if board.is_game_over():
        return ValidationResult(False, REASON_GAME_OVER)

    material_diff = abs(material_balance(board).difference)
    for ceiling, limit in _MATERIAL_LIMITS:
        if target_rating < ceiling and material_diff > limit:
            return ValidationResult(False, REASON_MATERIAL)

    white_king = board.king(chess.WHITE)
    black_king = board.king(chess.BLACK)
    if white_king is not None and black_king is not None:
        if piece_count(board) >= MIDGAME_PIECE_COUNT:
            # White king should stay on ranks 1-3, Black on ranks 6-8.
            if chess.square_rank(white_king) > 2 or chess.square_rank(black_king) < 5:
                return ValidationResult(False, REASON_KING_ROAMING)

        white_exposed = is_king_exposed(board, chess.WHITE)
        black_exposed = is_king_exposed(board, chess.BLACK)
        if target_rating < 1800:
            if white_exposed or black_exposed:
                return ValidationResult(False, REASON_KING_EXPOSED)
        elif target_rating < 2000:
            if white_exposed and black_exposed:
                return ValidationResult(False, REASON_BOTH_KINGS_EXPOSED)

    if target_rating < 1600 and count_hanging_pieces(board) > MAX_HANGING_LOW_RATING:
        return ValidationResult(False, REASON_HANGING)

    return ValidationResult(True)
