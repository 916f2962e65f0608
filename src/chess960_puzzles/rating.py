"""Heuristic puzzle difficulty.

Ratings are drawn from tiers keyed on a handful of observable features
(mate, evaluation size, capture, check, board complexity) with a random
offset inside each tier's band. No solver statistics are involved.
"""

from __future__ import annotations

import random

__all__ = [
    "MAX_RATING",
    "MIN_RATING",
    "clamp_rating",
    "estimate_rating",
    "rating_to_skill_level",
    "relative_rating",
]

MIN_RATING = 1200
MAX_RATING = 2500
COMPLEX_PIECE_COUNT = 20


def clamp_rating(rating: int) -> int:
    return max(MIN_RATING, min(MAX_RATING, rating))


def _tier(
    is_checkmate: bool,
    evaluation_abs: int,
    piece_count: int,
    is_capture: bool,
    is_check: bool,
    solution_length: int,
) -> tuple[int, int]:
    """Return (base, band) for the first matching tier."""
    complex_position = piece_count >= COMPLEX_PIECE_COUNT
    multi_move = solution_length >= 2

    if is_checkmate:
        return (1900, 200) if complex_position and multi_move else (1800, 200)
    if evaluation_abs >= 600:
        return (1400, 200) if piece_count <= 12 else (1600, 200)
    if evaluation_abs >= 400:
        return (2000, 200) if complex_position and multi_move else (1700, 200)
    if is_capture:
        if evaluation_abs >= 250:
            return (1900, 200) if complex_position else (1600, 200)
        return (1400, 400)
    if is_check:
        if evaluation_abs >= 250:
            return (1700, 200) if complex_position else (1500, 200)
        return (1300, 300)
    if evaluation_abs >= 200:
        return (1500, 200) if complex_position else (1300, 200)
    return (1200, 200)


def estimate_rating(
    is_checkmate: bool,
    evaluation_abs: int,
    piece_count: int,
    is_capture: bool,
    is_check: bool,
    solution_length: int,
    rng: random.Random | None = None,
) -> int:
    """Estimate a puzzle rating in [1200, 2500]."""
    base, band = _tier(
        is_checkmate, abs(evaluation_abs), piece_count, is_capture, is_check, solution_length,
    )
    return clamp_rating(base + (rng or random).randrange(band))


def rating_to_skill_level(rating: int) -> int:
    """Map a target rating to a Stockfish ``Skill Level`` (0-20)."""
    return max(0, min(20, round((rating - 1200) / 50 + 8)))


def relative_rating(
    target_rating: int,
    is_checkmate: bool,
    evaluation_abs: int,
    piece_count: int,
) -> int:
    """Rating for a puzzle found while playing at ``target_rating``."""
    rating = target_rating
    complex_position = piece_count >= COMPLEX_PIECE_COUNT
    if is_checkmate:
        rating += 200 if complex_position else 100
    elif abs(evaluation_abs) >= 400 and complex_position:
        rating += 100
    elif abs(evaluation_abs) >= 250:
        rating += 50
    return clamp_rating(rating)
