"""Tests for the generated-candidate SQLite store."""

import pytest

from chess960_puzzles.errors import PersistenceError
from chess960_puzzles.models import (
    GoalKind,
    LessonCandidate,
    LessonCategory,
    LessonDifficulty,
    LessonGoal,
    PuzzleCandidate,
)
from chess960_puzzles.store import CandidateStore

PUZZLE_FEN = "r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 4 4"
LESSON_FEN = "7k/8/8/8/8/8/R7/1R4K1 w - - 0 1"


def _puzzle(fen=PUZZLE_FEN):
    return PuzzleCandidate(
        fen=fen,
        solution_moves=["h5f7"],
        rating=1850,
        evaluation=10000,
        themes=["opening", "mate", "mateIn1"],
        primary_theme="mateIn1",
        source_position_number=519,
        source_arrangement_fen="rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
    )


def _lesson(fen=LESSON_FEN):
    return LessonCandidate(
        title="Checkmate in 2",
        initial_fen=fen,
        instructions="White to move. Find checkmate in 2 moves. Look for ways to trap the enemy king.",
        solution_pgn="1. Rb7 Kg8 2. Ra8#",
        solution_moves=["b1b7", "h8g8", "a2a8"],
        goal=LessonGoal(GoalKind.MATE_IN, moves=2),
        hints=["Look for ways to attack the enemy king."],
        category=LessonCategory.CHECKMATE,
        difficulty=LessonDifficulty.EXPERT,
    )


@pytest.fixture
async def store():
    s = CandidateStore(db_path=":memory:")
    await s.start()
    yield s
    await s.close()


class TestCandidateStore:
    async def test_start_memory(self):
        s = CandidateStore(db_path=":memory:")
        assert not s.available
        await s.start()
        assert s.available
        await s.close()
        assert not s.available

    async def test_start_creates_file(self, tmp_path):
        path = tmp_path / "nested" / "generated.db"
        s = CandidateStore(db_path=str(path))
        await s.start()
        await s.create(_puzzle())
        await s.close()
        assert path.exists()

        reopened = CandidateStore(db_path=str(path))
        await reopened.start()
        assert await reopened.count("puzzle") == 1
        await reopened.close()

    async def test_not_started(self):
        s = CandidateStore(db_path=":memory:")
        with pytest.raises(PersistenceError, match="not started"):
            await s.find_existing(PUZZLE_FEN)
        with pytest.raises(PersistenceError):
            await s.create(_puzzle())

    async def test_puzzle_round_trip(self, store):
        record_id = await store.create(_puzzle())
        assert len(record_id) == 32
        found = await store.find_existing(PUZZLE_FEN, "puzzle")
        assert found == _puzzle()

    async def test_lesson_round_trip(self, store):
        await store.create(_lesson())
        found = await store.find_existing(LESSON_FEN, "lesson")
        assert found == _lesson()

    async def test_find_any_kind(self, store):
        await store.create(_lesson())
        assert isinstance(await store.find_existing(LESSON_FEN), LessonCandidate)
        assert await store.find_existing(LESSON_FEN, "puzzle") is None

    async def test_missing(self, store):
        assert await store.find_existing("8/8/8/8/8/8/8/K6k w - - 0 1") is None

    async def test_duplicate_fen_rejected(self, store):
        await store.create(_puzzle())
        with pytest.raises(PersistenceError, match="Failed to save"):
            await store.create(_puzzle())
        assert await store.count("puzzle") == 1

    async def test_kinds_are_separate_tables(self, store):
        await store.create(_puzzle(LESSON_FEN))
        await store.create(_lesson(LESSON_FEN))
        assert await store.count("puzzle") == 1
        assert await store.count("lesson") == 1

    async def test_unknown_kind(self, store):
        with pytest.raises(PersistenceError, match="Unknown candidate kind"):
            await store.count("opening")
        with pytest.raises(PersistenceError, match="Unknown candidate kind"):
            await store.find_existing(PUZZLE_FEN, "opening")

    async def test_unsupported_candidate(self, store):
        with pytest.raises(PersistenceError, match="Cannot store"):
            await store.create(object())
