"""King shelter: adjacent defenders, pawn shield, exposure."""

from dataclasses import dataclass

import chess

__all__ = [
    "KingShelter",
    "analyze_king_shelter",
    "is_exposed",
]

_CENTER_FILES = range(2, 6)  # c..f


@dataclass
class KingShelter:
    king_square: str
    defenders: int              # own pieces on the 8 adjacent squares
    pawn_shield: int            # own pawns on the rank in front, within one file
    on_back_rank: bool
    on_center_file: bool


def analyze_king_shelter(board: chess.Board, color: chess.Color) -> KingShelter | None:
    king_sq = board.king(color)
    if king_sq is None:
        return None

    king_file = chess.square_file(king_sq)
    king_rank = chess.square_rank(king_sq)

    ring = chess.SquareSet(chess.BB_KING_ATTACKS[king_sq])
    defenders = len(ring & board.occupied_co[color])

    shield = 0
    ahead_rank = king_rank + 1 if color == chess.WHITE else king_rank - 1
    if 0 <= ahead_rank <= 7:
        for sf in (king_file - 1, king_file, king_file + 1):
            if 0 <= sf <= 7:
                piece = board.piece_at(chess.square(sf, ahead_rank))
                if piece and piece.piece_type == chess.PAWN and piece.color == color:
                    shield += 1

    back_rank = 0 if color == chess.WHITE else 7
    return KingShelter(
        king_square=chess.square_name(king_sq),
        defenders=defenders,
        pawn_shield=shield,
        on_back_rank=king_rank == back_rank,
        on_center_file=king_file in _CENTER_FILES,
    )


def is_exposed(shelter: KingShelter) -> bool:
    """Coarse exposure test: too few neighbours for where the king stands."""
    if shelter.on_back_rank and shelter.pawn_shield == 0 and shelter.defenders < 2:
        return True
    if shelter.on_center_file and shelter.defenders < 3:
        return True
    return shelter.defenders < 2
