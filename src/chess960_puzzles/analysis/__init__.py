"""Cheap static board introspection used by the validator and motif tagger."""

from chess960_puzzles.analysis.constants import PIECE_VALUES, get_piece_value, piece_count
from chess960_puzzles.analysis.king_safety import KingShelter, analyze_king_shelter, is_exposed
from chess960_puzzles.analysis.material import MaterialBalance, material_balance, side_material
from chess960_puzzles.analysis.tactics import (
    aligned_pins,
    attacked_enemy_pieces,
    can_be_taken_by_lower_piece,
    is_defended,
    is_in_bad_spot,
    walk_ray,
)

__all__ = [
    "KingShelter",
    "MaterialBalance",
    "PIECE_VALUES",
    "aligned_pins",
    "analyze_king_shelter",
    "attacked_enemy_pieces",
    "can_be_taken_by_lower_piece",
    "get_piece_value",
    "is_defended",
    "is_exposed",
    "is_in_bad_spot",
    "material_balance",
    "piece_count",
    "side_material",
    "walk_ray",
]
