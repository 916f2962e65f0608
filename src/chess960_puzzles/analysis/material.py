"""Material balance in pawn units."""

from dataclasses import dataclass

import chess

from chess960_puzzles.analysis.constants import PIECE_VALUES

__all__ = [
    "MaterialBalance",
    "material_balance",
    "side_material",
]


@dataclass(frozen=True)
class MaterialBalance:
    white: int
    black: int

    @property
    def difference(self) -> int:
        """White minus Black; negative when Black is ahead."""
        return self.white - self.black


def side_material(board: chess.Board, color: chess.Color) -> int:
    # Kings are left out.
    return sum(
        PIECE_VALUES[board.piece_type_at(square)]
        for square in chess.scan_forward(board.occupied_co[color] & ~board.kings)
    )


def material_balance(board: chess.Board) -> MaterialBalance:
    return MaterialBalance(
        white=side_material(board, chess.WHITE),
        black=side_material(board, chess.BLACK),
    )
