"""Engine self-play from a starting arrangement to a game-like position."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping
import logging
import random

import chess

from chess960_puzzles.engine import EngineProtocol, first_of
from chess960_puzzles.errors import CandidateRejected, ConfigurationError
from chess960_puzzles.validator import validate_position

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = (0.7, 0.2, 0.1)


class SelfPlayMode(Enum):
    STRICT = "strict"       # any engine trouble aborts the attempt
    LENIENT = "lenient"     # fall back to a random legal move


class SelfPlayAborted(CandidateRejected):
    """Self-play could not continue; the attempt should be rejected."""


@dataclass
class SelfPlayOptions:
    depth: int = 8
    multipv: int = 3
    weights: tuple[float, ...] = DEFAULT_WEIGHTS
    move_timeout: float | None = 10.0
    mode: SelfPlayMode = SelfPlayMode.STRICT
    check_after: int | None = None      # first ply at which the realism probe runs
    check_every: int = 5
    check_rating: int = 1500

    def __post_init__(self):
        if not self.weights or any(w < 0 for w in self.weights) or sum(self.weights) <= 0:
            raise ConfigurationError(f"Invalid move weights: {self.weights!r}")
        if self.multipv < 1:
            raise ConfigurationError("multipv must be at least 1")
        if self.check_every < 1:
            raise ConfigurationError("check_every must be at least 1")


def pick_weighted(candidates: list[str], weights, rng: random.Random) -> str:
    """Sample a rank by weight; a rank beyond the candidate list falls back to the best."""
    roll = rng.random() * sum(weights)
    rank = len(weights) - 1
    for i, weight in enumerate(weights):
        roll -= weight
        if roll < 0:
            rank = i
            break
    return candidates[rank] if rank < len(candidates) else candidates[0]


def _engine_for(engines, color: chess.Color) -> EngineProtocol:
    if isinstance(engines, Mapping):
        return engines[color]
    return engines


async def choose_move(
    board: chess.Board,
    engine: EngineProtocol,
    options: SelfPlayOptions,
    rng: random.Random,
) -> chess.Move:
    analysis = await first_of(
        engine.analyze_position(board.fen(), depth=options.depth, multipv=options.multipv),
        options.move_timeout,
    )
    candidates = analysis.candidate_moves
    if not candidates:
        raise SelfPlayAborted("Engine returned no candidate moves")
    uci = pick_weighted(candidates, options.weights, rng)
    try:
        return board.parse_uci(uci)
    except ValueError as e:
        raise SelfPlayAborted(f"Illegal engine move {uci}") from e


def _probe_due(plies_played: int, options: SelfPlayOptions) -> bool:
    if options.check_after is None or plies_played < options.check_after:
        return False
    return (plies_played - options.check_after) % options.check_every == 0


async def play_out(
    board: chess.Board,
    engines: EngineProtocol | Mapping[chess.Color, EngineProtocol],
    plies: int,
    options: SelfPlayOptions | None = None,
    rng: random.Random | None = None,
) -> int:
    """Play up to ``plies`` moves on ``board`` in place.

    ``engines`` is one engine for both sides or a mapping by colour.
    Returns the number of plies actually played, which is lower than
    requested only when the game ended.

    Raises:
        SelfPlayAborted: strict mode engine failure, or a failed realism probe.
    """
    options = options or SelfPlayOptions()
    rng = rng or random.Random()
    played = 0

    while played < plies and not board.is_game_over():
        engine = _engine_for(engines, board.turn)
        try:
            move = await choose_move(board, engine, options, rng)
        except SelfPlayAborted as e:
            if options.mode is SelfPlayMode.STRICT:
                raise
            logger.debug("Self-play fallback at ply %d: %s", played, e.reason)
            move = rng.choice(list(board.legal_moves))
        except Exception as e:
            if options.mode is SelfPlayMode.STRICT:
                raise SelfPlayAborted(f"Engine error during self-play: {e!r}") from e
            logger.debug("Self-play fallback at ply %d: %r", played, e)
            move = rng.choice(list(board.legal_moves))

        board.push(move)
        played += 1

        if _probe_due(played, options) and not board.is_game_over():
            result = validate_position(board, options.check_rating)
            if not result.valid:
                raise SelfPlayAborted(result.reason or "Unrealistic position during self-play")

    return played
