"""Shared fixtures: a scripted engine so generator tests run without Stockfish.

FakeEngine answers every analysis with the position's legal moves in
sorted UCI order and a fixed evaluation, unless a FEN is scripted with
an explicit move list or AnalysisResult.
"""

from __future__ import annotations

import asyncio
import random

import chess
import pytest

from chess960_puzzles.engine import AnalysisResult, LineInfo


class FakeEngine:
    def __init__(
        self,
        evaluation: int = 200,
        mate: int | None = None,
        scripted: dict | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.evaluation = evaluation
        self.mate = mate
        self.scripted = dict(scripted or {})
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []
        self.skill_levels: list[int] = []
        self.ready_waits = 0

    async def analyze_position(self, fen, depth=None, multipv=1, time_ms=None):
        self.calls.append({"fen": fen, "depth": depth, "multipv": multipv})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

        scripted = self.scripted.get(fen)
        if isinstance(scripted, AnalysisResult):
            return scripted
        if scripted is None:
            board = chess.Board(fen, chess960=True)
            scripted = sorted(m.uci() for m in board.legal_moves)
        moves = list(scripted)[: max(1, multipv)]
        if not moves:
            return AnalysisResult(best_move=None, search_depth=depth or 0)

        lines = [
            LineInfo(
                uci=uci, san=uci, score_cp=self.evaluation, score_mate=self.mate,
                pv=[uci], depth=depth or 1,
            )
            for uci in moves
        ]
        return AnalysisResult(
            best_move=moves[0],
            alternative_moves=moves[1:],
            evaluation_cp=self.evaluation,
            mate_distance=self.mate,
            search_depth=depth or 1,
            lines=lines,
        )

    async def set_skill_level(self, level: int) -> None:
        self.skill_levels.append(level)

    async def wait_ready(self, timeout=None) -> bool:
        self.ready_waits += 1
        return True


@pytest.fixture
def make_engine():
    """Factory for FakeEngine instances with custom scripting."""
    return FakeEngine


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(960)
