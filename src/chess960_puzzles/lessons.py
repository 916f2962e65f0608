"""Instructional lessons: a position, a goal, instructions and hints.

Unlike puzzles, a lesson always gets a goal once the engine has
suggested a legal move. Weak or unclear positions fall back to a
nominal WIN_MATERIAL target so generation keeps moving.
"""

from __future__ import annotations

from dataclasses import dataclass
import asyncio
import logging
import random

import chess

from chess960_puzzles.chess960 import StartingArrangement, arrangement_for, board_for, random_arrangement
from chess960_puzzles.engine import AnalysisResult, EngineProtocol, first_of
from chess960_puzzles.errors import CandidateRejected, ConfigurationError
from chess960_puzzles.models import (
    GoalKind,
    LessonCandidate,
    LessonCategory,
    LessonDifficulty,
    LessonGoal,
)
from chess960_puzzles.profiles import LessonProfile, get_profile, parse_category, parse_difficulty
from chess960_puzzles.puzzles import RejectCallback, draw_plies, report_reject
from chess960_puzzles.selfplay import SelfPlayMode, SelfPlayOptions, play_out
from chess960_puzzles.validator import validate_position

logger = logging.getLogger(__name__)

MAX_HINTS = 3
MAX_MATE_IN = 5
MIN_CAPTURE_CP = 50
FALLBACK_CP = 30

_CATEGORY_SUFFIX = {
    LessonCategory.TACTICS: "Look for tactical opportunities like pins, forks, or skewers.",
    LessonCategory.CHECKMATE: "Look for ways to trap the enemy king.",
    LessonCategory.ENDGAME: "Focus on endgame principles like king activity and pawn promotion.",
    LessonCategory.STRATEGY: "Consider long-term strategic advantages.",
}

_GOAL_HINTS = {
    GoalKind.MATE: [
        "Look for ways to attack the enemy king.",
        "Check all checks - sometimes the obvious move is the best.",
        "Consider forcing moves that limit the opponent's options.",
    ],
    GoalKind.WIN_MATERIAL: [
        "Look for ways to attack undefended pieces.",
        "Consider tactical motifs like pins, forks, or skewers.",
        "Calculate the consequences of captures carefully.",
    ],
    GoalKind.PROMOTION: [
        "Use your king to support the pawn.",
        "Control key squares in front of the pawn.",
        "Consider zugzwang - forcing the opponent to move.",
    ],
    GoalKind.EQUALIZE: [
        "Find the move that takes the sting out of your opponent's pressure.",
        "Improve your least active piece.",
        "Trade off the pieces that attack your position.",
    ],
}
_GOAL_HINTS[GoalKind.MATE_IN] = _GOAL_HINTS[GoalKind.MATE]

_DIFFICULTY_HINT = {
    LessonDifficulty.BEGINNER: "Take your time to analyze all candidate moves.",
    LessonDifficulty.INTERMEDIATE: "Look for forcing sequences.",
}


@dataclass
class LessonOptions:
    category: LessonCategory | str = LessonCategory.TACTICS
    difficulty: LessonDifficulty | str = LessonDifficulty.INTERMEDIATE
    position_number: int | None = None
    depth: int | None = None            # defaults to the difficulty profile
    min_plies: int | None = None
    max_plies: int | None = None
    selfplay_depth: int = 4
    selfplay_move_timeout: float = 2.0
    analysis_multipv: int = 3

    def __post_init__(self):
        self.category = parse_category(self.category)
        self.difficulty = parse_difficulty(self.difficulty)
        profile = get_profile(self.difficulty)
        if self.min_plies is None:
            self.min_plies = profile.min_plies
        if self.max_plies is None:
            self.max_plies = max(profile.max_plies, self.min_plies)
        if self.min_plies < 0 or self.min_plies > self.max_plies:
            raise ConfigurationError(
                f"Invalid ply range: min_plies={self.min_plies}, max_plies={self.max_plies}"
            )
        if self.depth is not None and self.depth < 1:
            raise ConfigurationError("depth must be at least 1")
        if self.position_number is not None:
            arrangement_for(self.position_number)


def _mover_relative(cp: int, turn: chess.Color) -> int:
    return cp if turn == chess.WHITE else -cp


def determine_goal(
    board: chess.Board,
    move: chess.Move,
    analysis: AnalysisResult,
    category: LessonCategory,
) -> LessonGoal:
    """Derive the lesson goal for playing ``move`` in ``board``. Never returns None."""
    mover_eval = _mover_relative(analysis.evaluation_cp, board.turn)
    eval_abs = abs(mover_eval)

    after = board.copy(stack=False)
    after.push(move)
    if after.is_checkmate():
        return LessonGoal(GoalKind.MATE)

    if analysis.mate_distance is not None:
        mover_mate = _mover_relative(analysis.mate_distance, board.turn)
        if 0 < mover_mate <= MAX_MATE_IN:
            return LessonGoal(GoalKind.MATE_IN, moves=mover_mate)

    if move.promotion:
        return LessonGoal(GoalKind.PROMOTION, cp=eval_abs)
    if board.is_capture(move) or after.is_check():
        return LessonGoal(GoalKind.WIN_MATERIAL, cp=max(MIN_CAPTURE_CP, eval_abs))
    if category in (LessonCategory.TACTICS, LessonCategory.CHECKMATE) and eval_abs > 100:
        return LessonGoal(GoalKind.WIN_MATERIAL, cp=eval_abs)
    if mover_eval > 30:
        return LessonGoal(GoalKind.WIN_MATERIAL, cp=mover_eval)
    if category in (LessonCategory.STRATEGY, LessonCategory.ENDGAME) and mover_eval > 10:
        return LessonGoal(GoalKind.WIN_MATERIAL, cp=mover_eval)
    if category is LessonCategory.STRATEGY and eval_abs <= 30:
        return LessonGoal(GoalKind.EQUALIZE, cp=eval_abs)
    return LessonGoal(GoalKind.WIN_MATERIAL, cp=max(FALLBACK_CP, eval_abs))


def solution_line(board: chess.Board, analysis: AnalysisResult, goal: LessonGoal) -> list[str]:
    """Moves the student should find.

    For MATE_IN goals the principal variation is cut to the mating side's
    moves plus the replies in between, kept only if it really mates.
    """
    best = [analysis.best_move]
    if goal.kind is not GoalKind.MATE_IN or not analysis.lines:
        return best

    pv = analysis.lines[0].pv[: 2 * goal.moves - 1]
    replay = board.copy(stack=False)
    for uci in pv:
        try:
            replay.push(replay.parse_uci(uci))
        except ValueError:
            return best
    return pv if replay.is_checkmate() else best


def describe_goal(
    goal: LessonGoal,
    category: LessonCategory,
    turn: chess.Color,
) -> tuple[str, str]:
    """Return (title, instructions) for a goal."""
    side = "White" if turn == chess.WHITE else "Black"

    if goal.kind is GoalKind.MATE:
        title = "Find the Checkmate"
        instructions = f"{side} to move. Find checkmate in this position."
    elif goal.kind is GoalKind.MATE_IN:
        plural = "s" if goal.moves > 1 else ""
        title = f"Checkmate in {goal.moves}"
        instructions = f"{side} to move. Find checkmate in {goal.moves} move{plural}."
    elif goal.kind is GoalKind.PROMOTION:
        title = "Promote the Pawn"
        instructions = f"{side} to move. Find the best way to promote your pawn."
    elif goal.kind is GoalKind.EQUALIZE:
        title = "Equalize the Position"
        instructions = f"{side} to move. Find the best move to equalize the position."
    else:
        pawns = max(1, round(goal.cp / 100))
        plural = "s" if pawns > 1 else ""
        title = "Win Material"
        instructions = (
            f"{side} to move. Find the best move to win material "
            f"(approximately {pawns} pawn{plural} advantage)."
        )

    return title, f"{instructions} {_CATEGORY_SUFFIX[category]}"


def _solution_pgn(board: chess.Board, moves: list[str]) -> str:
    replay = board.copy(stack=False)
    line = []
    for uci in moves:
        move = replay.parse_uci(uci)
        line.append(move)
        replay.push(move)
    return board.variation_san(line)


def lesson_hints(goal: LessonGoal, difficulty: LessonDifficulty) -> list[str]:
    hints = list(_GOAL_HINTS[goal.kind])
    if difficulty in _DIFFICULTY_HINT:
        hints.insert(0, _DIFFICULTY_HINT[difficulty])
    return hints[:MAX_HINTS]


class LessonGenerator:
    def __init__(
        self,
        engine: EngineProtocol,
        options: LessonOptions | None = None,
        rng: random.Random | None = None,
    ):
        self.engine = engine
        self.options = options or LessonOptions()
        self.rng = rng or random.Random()

    @property
    def profile(self) -> LessonProfile:
        return get_profile(self.options.difficulty)

    @property
    def depth(self) -> int:
        if self.options.depth is None:
            return self.profile.analysis_depth
        return self.options.depth

    def _arrangement(self) -> StartingArrangement:
        if self.options.position_number is not None:
            return arrangement_for(self.options.position_number)
        return random_arrangement(self.rng)

    async def generate(self, on_reject: RejectCallback | None = None) -> LessonCandidate | None:
        await self.engine.wait_ready()
        arrangement = self._arrangement()
        board = board_for(arrangement)
        plies = draw_plies(self.options.min_plies, self.options.max_plies, self.rng)
        selfplay = SelfPlayOptions(
            depth=self.options.selfplay_depth,
            multipv=1,
            weights=(1.0,),
            move_timeout=self.options.selfplay_move_timeout,
            mode=SelfPlayMode.LENIENT,
        )
        try:
            await play_out(board, self.engine, plies, selfplay, self.rng)
            return await self._build(board, arrangement)
        except CandidateRejected as e:
            report_reject(on_reject, e.reason)
            return None

    async def build_lesson(
        self,
        board: chess.Board,
        *,
        arrangement: StartingArrangement | None = None,
        on_reject: RejectCallback | None = None,
    ) -> LessonCandidate | None:
        """Turn a given position into a lesson, or None after reporting why."""
        try:
            return await self._build(board, arrangement)
        except CandidateRejected as e:
            report_reject(on_reject, e.reason)
            return None

    async def _analyse(self, fen: str) -> AnalysisResult:
        try:
            return await first_of(
                self.engine.analyze_position(
                    fen, depth=self.depth, multipv=self.options.analysis_multipv,
                ),
                self.profile.analysis_timeout,
            )
        except asyncio.TimeoutError as e:
            raise CandidateRejected("Engine analysis timed out") from e
        except Exception as e:
            raise CandidateRejected(f"Engine analysis failed: {e!r}") from e

    async def _build(
        self,
        board: chess.Board,
        arrangement: StartingArrangement | None,
    ) -> LessonCandidate:
        if board.is_game_over():
            raise CandidateRejected("Game is already over")
        validation = validate_position(board, self.profile.validation_rating)
        if not validation.valid:
            raise CandidateRejected(validation.reason)

        fen = board.fen()
        analysis = await self._analyse(fen)
        if analysis.best_move is None:
            raise CandidateRejected("No best move found")
        try:
            move = board.parse_uci(analysis.best_move)
        except ValueError as e:
            raise CandidateRejected(f"Engine returned illegal move {analysis.best_move}") from e

        category = self.options.category
        difficulty = self.options.difficulty
        goal = determine_goal(board, move, analysis, category)
        logger.debug("Lesson goal %s for %s", goal.kind.value, fen)
        moves = solution_line(board, analysis, goal)
        title, instructions = describe_goal(goal, category, board.turn)

        return LessonCandidate(
            title=title,
            initial_fen=fen,
            instructions=instructions,
            solution_pgn=_solution_pgn(board, moves),
            solution_moves=moves,
            goal=goal,
            hints=lesson_hints(goal, difficulty),
            category=category,
            difficulty=difficulty,
            source_position_number=arrangement.position_number if arrangement else None,
        )
