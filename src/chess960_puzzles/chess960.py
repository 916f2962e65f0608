"""Chess960 starting arrangements, numbered 1..960.

Numbering follows Scharnagl's scheme shifted by one: arrangement ``n`` is
Scharnagl number ``n - 1``, so 519 is the standard RNBQKBNR setup.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

import chess

from chess960_puzzles.errors import OutOfRangeError

__all__ = [
    "POSITION_COUNT",
    "StartingArrangement",
    "arrangement_for",
    "board_for",
    "castling_rook_files",
    "is_valid_arrangement",
    "random_arrangement",
    "random_position_number",
    "standard_arrangement",
]

POSITION_COUNT = 960
STANDARD_POSITION_NUMBER = 519

_LIGHT_FILES = (1, 3, 5, 7)
_DARK_FILES = (0, 2, 4, 6)

# Two-knight placements among the five squares left after bishops and queen.
_KNIGHT_PAIRS = (
    (0, 1), (0, 2), (0, 3), (0, 4),
    (1, 2), (1, 3), (1, 4),
    (2, 3), (2, 4),
    (3, 4),
)

_BACK_RANK_LETTERS = frozenset("RNBQK")


@dataclass(frozen=True)
class StartingArrangement:
    position_number: int
    back_rank: tuple[str, ...]   # 8 uppercase letters, a-file first
    fen: str


def _empty_files(rank: list[str | None]) -> list[int]:
    return [i for i, piece in enumerate(rank) if piece is None]


def _decode_back_rank(n: int) -> tuple[str, ...]:
    rank: list[str | None] = [None] * 8
    n -= 1

    n, light = divmod(n, 4)
    rank[_LIGHT_FILES[light]] = "B"
    n, dark = divmod(n, 4)
    rank[_DARK_FILES[dark]] = "B"

    n, queen = divmod(n, 6)
    rank[_empty_files(rank)[queen]] = "Q"

    remaining = _empty_files(rank)
    first, second = _KNIGHT_PAIRS[n]
    rank[remaining[first]] = "N"
    rank[remaining[second]] = "N"

    # King always lands between the two rooks.
    for file_index, letter in zip(_empty_files(rank), "RKR"):
        rank[file_index] = letter

    return tuple(rank)  # type: ignore[arg-type]


def _starting_fen(back_rank: tuple[str, ...]) -> str:
    white = "".join(back_rank)
    return f"{white.lower()}/pppppppp/8/8/8/8/PPPPPPPP/{white} w KQkq - 0 1"


def arrangement_for(n: int) -> StartingArrangement:
    """Return the starting arrangement numbered ``n`` (1..960).

    Raises:
        OutOfRangeError: if ``n`` is outside 1..960.
    """
    if isinstance(n, bool) or not isinstance(n, int) or not 1 <= n <= POSITION_COUNT:
        raise OutOfRangeError(f"Position must be between 1 and {POSITION_COUNT}, got {n!r}")
    back_rank = _decode_back_rank(n)
    return StartingArrangement(
        position_number=n,
        back_rank=back_rank,
        fen=_starting_fen(back_rank),
    )


def is_valid_arrangement(back_rank) -> bool:
    """Independently check a back rank: counts, bishop colours, king between rooks."""
    pieces = list(back_rank)
    if len(pieces) != 8:
        return False
    if any(not isinstance(p, str) or p not in _BACK_RANK_LETTERS for p in pieces):
        return False

    counts = {letter: pieces.count(letter) for letter in _BACK_RANK_LETTERS}
    if counts != {"R": 2, "N": 2, "B": 2, "Q": 1, "K": 1}:
        return False

    bishop_files = [i for i, p in enumerate(pieces) if p == "B"]
    if bishop_files[0] % 2 == bishop_files[1] % 2:
        return False

    first_rook, second_rook = [i for i, p in enumerate(pieces) if p == "R"]
    king = pieces.index("K")
    return first_rook < king < second_rook


def castling_rook_files(back_rank) -> tuple[int, int]:
    """Return (queenside, kingside) rook file indices of a back rank."""
    rooks = [i for i, p in enumerate(back_rank) if p == "R"]
    if len(rooks) != 2:
        raise ValueError("Invalid arrangement: must have exactly 2 rooks")
    return rooks[0], rooks[1]


def random_position_number(rng: random.Random | None = None) -> int:
    return (rng or random).randint(1, POSITION_COUNT)


def random_arrangement(rng: random.Random | None = None) -> StartingArrangement:
    return arrangement_for(random_position_number(rng))


def standard_arrangement() -> StartingArrangement:
    return arrangement_for(STANDARD_POSITION_NUMBER)


def board_for(position: StartingArrangement | str) -> chess.Board:
    """Build a Chess960-mode board from an arrangement or a FEN."""
    fen = position.fen if isinstance(position, StartingArrangement) else position
    return chess.Board(fen, chess960=True)
