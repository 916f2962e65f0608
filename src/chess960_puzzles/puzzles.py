"""Puzzle candidates from engine self-play over a Chess960 arrangement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
import asyncio
import logging
import random

import chess

from chess960_puzzles.analysis import piece_count
from chess960_puzzles.chess960 import StartingArrangement, arrangement_for, board_for, random_arrangement
from chess960_puzzles.engine import EngineProtocol, first_of
from chess960_puzzles.errors import CandidateRejected, ConfigurationError
from chess960_puzzles.models import PuzzleCandidate
from chess960_puzzles.motifs import classify_motifs
from chess960_puzzles.rating import estimate_rating
from chess960_puzzles.selfplay import SelfPlayMode, SelfPlayOptions, play_out
from chess960_puzzles.validator import validate_position

logger = logging.getLogger(__name__)

RejectCallback = Callable[[str], None]

DEEP_ANALYSIS_MULTIPV = 3


def analysis_timeout_for(depth: int) -> float:
    """Seconds allowed for one deep analysis call."""
    return 50.0 if depth >= 9 else 35.0


@dataclass
class TacticalFinding:
    solution_moves: list[str]
    evaluation: int             # White's point of view
    is_checkmate: bool
    is_capture: bool
    is_check: bool
    piece_count: int            # after the first solution move


async def find_tactic(
    board: chess.Board,
    engine: EngineProtocol,
    depth: int,
    multipv: int = DEEP_ANALYSIS_MULTIPV,
    threshold_cp: int = 150,
    timeout: float | None = None,
) -> TacticalFinding:
    """Analyse ``board`` and return the tactic its best move carries.

    A best move is tactically significant when it captures, checks,
    mates, or the evaluation exceeds ``threshold_cp`` in either direction.
    A non-mating check gets one shallower follow-up for the reply.

    Raises:
        CandidateRejected: on engine failure, missing or illegal best move,
            or when nothing tactical is found.
    """
    fen = board.fen()
    timeout = analysis_timeout_for(depth) if timeout is None else timeout
    try:
        analysis = await first_of(
            engine.analyze_position(fen, depth=depth, multipv=multipv), timeout,
        )
    except asyncio.TimeoutError as e:
        raise CandidateRejected("Engine analysis timed out") from e
    except Exception as e:
        raise CandidateRejected(f"Engine analysis failed: {e!r}") from e

    if analysis.best_move is None:
        raise CandidateRejected("No best move found")
    try:
        move = board.parse_uci(analysis.best_move)
    except ValueError as e:
        raise CandidateRejected(f"Engine returned illegal move {analysis.best_move}") from e

    is_capture = board.is_capture(move)
    after = board.copy(stack=False)
    after.push(move)
    is_check = after.is_check()
    is_checkmate = after.is_checkmate()

    if not (is_capture or is_check or is_checkmate or abs(analysis.evaluation_cp) > threshold_cp):
        raise CandidateRejected("No tactical opportunity")

    solution = [analysis.best_move]
    if is_check and not is_checkmate:
        reply = await _follow_up(after, engine, max(1, depth - 2))
        if reply is not None:
            solution.append(reply)

    return TacticalFinding(
        solution_moves=solution,
        evaluation=analysis.evaluation_cp,
        is_checkmate=is_checkmate,
        is_capture=is_capture,
        is_check=is_check,
        piece_count=piece_count(after),
    )


async def _follow_up(board: chess.Board, engine: EngineProtocol, depth: int) -> str | None:
    try:
        analysis = await first_of(
            engine.analyze_position(board.fen(), depth=depth), analysis_timeout_for(depth),
        )
    except Exception as e:
        logger.debug("Follow-up analysis failed: %r", e)
        return None
    if analysis.best_move is None:
        return None
    try:
        board.parse_uci(analysis.best_move)
    except ValueError:
        return None
    return analysis.best_move


def report_reject(on_reject: RejectCallback | None, reason: str) -> None:
    logger.debug("Candidate rejected: %s", reason)
    if on_reject is not None:
        on_reject(reason)


@dataclass
class PuzzleOptions:
    position_number: int | None = None
    depth: int = 12
    min_plies: int = 20
    max_plies: int = 40
    selfplay_depth: int = 8
    selfplay_multipv: int = 3
    selfplay_move_timeout: float = 10.0
    tactical_threshold_cp: int = 150
    provisional_rating: int = 1500
    probe_after: int | None = 10
    probe_every: int = 5

    def __post_init__(self):
        if self.min_plies < 0 or self.min_plies > self.max_plies:
            raise ConfigurationError(
                f"Invalid ply range: min_plies={self.min_plies}, max_plies={self.max_plies}"
            )
        if self.depth < 1:
            raise ConfigurationError("depth must be at least 1")
        if self.position_number is not None:
            arrangement_for(self.position_number)


def draw_plies(min_plies: int, max_plies: int, rng: random.Random) -> int:
    """Ply count in [min, max); min itself when the range is empty."""
    if max_plies <= min_plies:
        return min_plies
    return rng.randrange(min_plies, max_plies)


class PuzzleGenerator:
    """Play out a random arrangement, then look for a tactic at the final position."""

    def __init__(
        self,
        engine: EngineProtocol,
        options: PuzzleOptions | None = None,
        rng: random.Random | None = None,
    ):
        self.engine = engine
        self.options = options or PuzzleOptions()
        self.rng = rng or random.Random()

    @property
    def depth(self) -> int:
        return self.options.depth

    def _arrangement(self) -> StartingArrangement:
        if self.options.position_number is not None:
            return arrangement_for(self.options.position_number)
        return random_arrangement(self.rng)

    def _selfplay_options(self) -> SelfPlayOptions:
        return SelfPlayOptions(
            depth=self.options.selfplay_depth,
            multipv=self.options.selfplay_multipv,
            move_timeout=self.options.selfplay_move_timeout,
            mode=SelfPlayMode.STRICT,
            check_after=self.options.probe_after,
            check_every=self.options.probe_every,
            check_rating=self.options.provisional_rating,
        )

    async def generate(self, on_reject: RejectCallback | None = None) -> PuzzleCandidate | None:
        """Run one attempt. Returns a candidate, or None after reporting why."""
        await self.engine.wait_ready()
        arrangement = self._arrangement()
        board = board_for(arrangement)
        target = draw_plies(self.options.min_plies, self.options.max_plies, self.rng)

        try:
            played = await play_out(board, self.engine, target, self._selfplay_options(), self.rng)
            if played < self.options.min_plies:
                raise CandidateRejected(
                    f"Only played {played} plies, need at least {self.options.min_plies}"
                )
            return await self._evaluate(board, arrangement, self.options.provisional_rating)
        except CandidateRejected as e:
            report_reject(on_reject, e.reason)
            return None

    async def evaluate_position(
        self,
        board: chess.Board,
        *,
        provisional_rating: int | None = None,
        arrangement: StartingArrangement | None = None,
        on_reject: RejectCallback | None = None,
    ) -> PuzzleCandidate | None:
        """Analyse, validate, classify and rate a given position."""
        rating = self.options.provisional_rating if provisional_rating is None else provisional_rating
        try:
            return await self._evaluate(board, arrangement, rating)
        except CandidateRejected as e:
            report_reject(on_reject, e.reason)
            return None

    async def _evaluate(
        self,
        board: chess.Board,
        arrangement: StartingArrangement | None,
        provisional_rating: int,
    ) -> PuzzleCandidate:
        if board.is_game_over():
            raise CandidateRejected("Game is already over")
        fen = board.fen()

        validation = validate_position(board, provisional_rating)
        if not validation.valid:
            raise CandidateRejected(validation.reason)

        finding = await find_tactic(
            board,
            self.engine,
            depth=self.options.depth,
            threshold_cp=self.options.tactical_threshold_cp,
        )

        rating = estimate_rating(
            is_checkmate=finding.is_checkmate,
            evaluation_abs=abs(finding.evaluation),
            piece_count=finding.piece_count,
            is_capture=finding.is_capture,
            is_check=finding.is_check,
            solution_length=len(finding.solution_moves),
            rng=self.rng,
        )
        return build_candidate(fen, finding, rating, arrangement)


def build_candidate(
    fen: str,
    finding: TacticalFinding,
    rating: int,
    arrangement: StartingArrangement | None,
) -> PuzzleCandidate:
    """Re-validate at the final rating and tag themes."""
    validation = validate_position(fen, rating)
    if not validation.valid:
        raise CandidateRejected(f"{validation.reason} (rating {rating})")

    themes = classify_motifs(fen, finding.solution_moves, finding.evaluation, finding.is_checkmate)
    return PuzzleCandidate(
        fen=fen,
        solution_moves=finding.solution_moves,
        rating=rating,
        evaluation=finding.evaluation,
        themes=themes.themes,
        primary_theme=themes.primary_theme,
        source_position_number=arrangement.position_number if arrangement else None,
        source_arrangement_fen=arrangement.fen if arrangement else None,
    )
