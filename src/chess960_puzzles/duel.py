"""Puzzles found while a strong engine plays a slightly weaker one.

White is played at the skill level matching the target rating and Black
two skill levels lower, so White tends to end up with the chances. The
game is probed for a puzzle once it is long enough; the first position
that passes becomes the candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import cycle
import logging
import random

import chess

from chess960_puzzles.analysis import piece_count
from chess960_puzzles.chess960 import StartingArrangement, arrangement_for, board_for, random_arrangement
from chess960_puzzles.engine import EngineProtocol
from chess960_puzzles.errors import CandidateRejected, ConfigurationError
from chess960_puzzles.models import PuzzleCandidate
from chess960_puzzles.puzzles import RejectCallback, build_candidate, draw_plies, find_tactic, report_reject
from chess960_puzzles.rating import rating_to_skill_level, relative_rating
from chess960_puzzles.selfplay import SelfPlayOptions, choose_move
from chess960_puzzles.validator import validate_position

logger = logging.getLogger(__name__)

DEFAULT_TARGET_RATINGS = tuple(range(1200, 2001, 50))
SKILL_GAP = 2
PROBE_MAX_DEPTH = 10
PROBE_MULTIPV = 2
ENDGAME_PIECE_COUNT = 12


@dataclass
class DuelOptions:
    position_number: int | None = None
    target_ratings: tuple[int, ...] = DEFAULT_TARGET_RATINGS
    min_plies: int = 20
    max_plies: int = 40
    depth: int = 12
    move_depth: int = 5
    move_timeout: float = 3.0
    probe_timeout: float = 15.0
    probe_every: int = 5
    tactical_threshold_cp: int = 150

    def __post_init__(self):
        if self.min_plies < 0 or self.min_plies > self.max_plies:
            raise ConfigurationError(
                f"Invalid ply range: min_plies={self.min_plies}, max_plies={self.max_plies}"
            )
        if not self.target_ratings:
            raise ConfigurationError("At least one target rating is required")
        if self.depth < 1 or self.move_depth < 1:
            raise ConfigurationError("depth must be at least 1")
        if self.probe_every < 1:
            raise ConfigurationError("probe_every must be at least 1")
        if self.position_number is not None:
            arrangement_for(self.position_number)


class DuelPuzzleGenerator:
    def __init__(
        self,
        strong_engine: EngineProtocol,
        weak_engine: EngineProtocol,
        options: DuelOptions | None = None,
        rng: random.Random | None = None,
    ):
        self.strong_engine = strong_engine
        self.weak_engine = weak_engine
        self.options = options or DuelOptions()
        self.rng = rng or random.Random()
        self._ratings = cycle(self.options.target_ratings)

    @property
    def depth(self) -> int:
        return self.options.depth

    def _arrangement(self) -> StartingArrangement:
        if self.options.position_number is not None:
            return arrangement_for(self.options.position_number)
        return random_arrangement(self.rng)

    async def generate(self, on_reject: RejectCallback | None = None) -> PuzzleCandidate | None:
        """One attempt at the next target rating in the cycle."""
        return await self.generate_for_rating(next(self._ratings), on_reject)

    async def generate_for_rating(
        self,
        target_rating: int,
        on_reject: RejectCallback | None = None,
    ) -> PuzzleCandidate | None:
        await self.strong_engine.wait_ready()
        await self.weak_engine.wait_ready()

        strong_skill = rating_to_skill_level(target_rating)
        weak_skill = max(0, strong_skill - SKILL_GAP)
        try:
            await self.strong_engine.set_skill_level(strong_skill)
            await self.weak_engine.set_skill_level(weak_skill)
        except Exception as e:
            report_reject(on_reject, f"Could not set skill level: {e!r}")
            return None

        arrangement = self._arrangement()
        board = board_for(arrangement)
        plies = draw_plies(self.options.min_plies, self.options.max_plies, self.rng)
        move_options = SelfPlayOptions(
            depth=self.options.move_depth,
            multipv=1,
            weights=(1.0,),
            move_timeout=self.options.move_timeout,
        )
        engines = {chess.WHITE: self.strong_engine, chess.BLACK: self.weak_engine}
        last_reason = "No puzzle found during game"

        for ply in range(plies):
            if board.is_game_over():
                break
            try:
                move = await choose_move(board, engines[board.turn], move_options, self.rng)
            except Exception as e:
                logger.debug("Engine error at ply %d: %r", ply, e)
                last_reason = f"Engine error during game: {e!r}"
                break
            board.push(move)

            if self._probe_due(ply, board):
                try:
                    return await self._probe(board, arrangement, target_rating)
                except CandidateRejected as e:
                    last_reason = e.reason

        report_reject(on_reject, last_reason)
        return None

    def _probe_due(self, ply: int, board: chess.Board) -> bool:
        if ply < self.options.min_plies - 1:
            return False
        return piece_count(board) <= ENDGAME_PIECE_COUNT or ply % self.options.probe_every == 0

    async def _probe(
        self,
        board: chess.Board,
        arrangement: StartingArrangement,
        target_rating: int,
    ) -> PuzzleCandidate:
        if board.is_game_over():
            raise CandidateRejected("Game is already over")
        validation = validate_position(board, target_rating)
        if not validation.valid:
            raise CandidateRejected(validation.reason)

        finding = await find_tactic(
            board,
            self.strong_engine,
            depth=min(self.options.depth, PROBE_MAX_DEPTH),
            multipv=PROBE_MULTIPV,
            threshold_cp=self.options.tactical_threshold_cp,
            timeout=self.options.probe_timeout,
        )
        rating = relative_rating(
            target_rating,
            is_checkmate=finding.is_checkmate,
            evaluation_abs=abs(finding.evaluation),
            piece_count=finding.piece_count,
        )
        return build_candidate(board.fen(), finding, rating, arrangement)
