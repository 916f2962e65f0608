"""Tests for the bounded generation loop."""

import asyncio

import pytest

from chess960_puzzles.errors import ConfigurationError, PersistenceError
from chess960_puzzles.models import PuzzleCandidate
from chess960_puzzles.runner import (
    REASON_NO_CANDIDATE,
    REASON_TIMEOUT,
    GenerationRun,
    attempt_timeout_for,
    generate_many,
    run_generation,
)
from chess960_puzzles.store import CandidateStore

FEN_A = "rnbqkbnr/pppppppp/8/8/8/P7/1PPPPPPP/RNBQKBNR b KQkq - 0 1"
FEN_B = "rnbqkbnr/pppppppp/8/8/8/1P6/P1PPPPPP/RNBQKBNR b KQkq - 0 1"
FEN_C = "rnbqkbnr/pppppppp/8/8/8/2P5/PP1PPPPP/RNBQKBNR b KQkq - 0 1"


def _puzzle(fen):
    return PuzzleCandidate(fen=fen, solution_moves=["a7a6"], rating=1500, evaluation=200, themes=["opening"])


class ScriptedSource:
    """Plays back outcomes: a candidate, a rejection reason, an exception, or None."""

    depth = 6

    def __init__(self, *outcomes, delay=0.0):
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls = 0
        self.cancelled = 0

    async def generate(self, on_reject=None):
        self.calls += 1
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if not self.outcomes:
            if on_reject:
                on_reject("Script exhausted")
            return None
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, str):
            if on_reject:
                on_reject(outcome)
            return None
        return outcome


class FailingStore:
    async def find_existing(self, fen, kind=None):
        return None

    async def create(self, candidate):
        raise PersistenceError("disk full")


class TestRunGeneration:
    async def test_accepts_until_requested(self):
        source = ScriptedSource(_puzzle(FEN_A), _puzzle(FEN_B), _puzzle(FEN_C))
        run = await run_generation(source, 2)
        assert run.complete
        assert [c.fen for c in run.accepted] == [FEN_A, FEN_B]
        assert run.attempts_used == 2
        assert source.calls == 2

    async def test_rejections_are_counted_by_reason(self):
        source = ScriptedSource("No tactical opportunity", "No tactical opportunity", _puzzle(FEN_A))
        run = await run_generation(source, 1)
        assert run.complete
        assert run.attempts_used == 3
        assert run.rejected_reasons == {"No tactical opportunity": 2}

    async def test_silent_none_gets_generic_reason(self):
        class Silent:
            async def generate(self, on_reject=None):
                return None

        run = await run_generation(Silent(), 1, max_attempts=2)
        assert run.rejected_reasons == {REASON_NO_CANDIDATE: 2}

    async def test_duplicate_fens_skipped(self):
        source = ScriptedSource(_puzzle(FEN_A), _puzzle(FEN_A), _puzzle(FEN_B))
        run = await run_generation(source, 2)
        assert [c.fen for c in run.accepted] == [FEN_A, FEN_B]
        assert run.duplicates == 1
        assert run.attempts_used == 3

    async def test_unexpected_exception_is_a_rejection(self):
        source = ScriptedSource(RuntimeError("boom"), _puzzle(FEN_A))
        run = await run_generation(source, 1)
        assert run.complete
        assert run.rejected_reasons == {"Unexpected error: RuntimeError": 1}

    async def test_attempt_timeout(self):
        source = ScriptedSource(_puzzle(FEN_A), delay=1.0)
        run = await run_generation(source, 1, max_attempts=2, attempt_timeout=0.01)
        assert not run.complete
        assert run.rejected_reasons == {REASON_TIMEOUT: 2}
        await asyncio.sleep(0.01)
        assert source.cancelled == 2

    async def test_budget_exhausted(self):
        source = ScriptedSource()
        progress = []
        run = await run_generation(
            source, 5, max_attempts=7, on_progress=lambda *args: progress.append(args),
        )
        assert not run.complete
        assert run.accepted == []
        assert run.attempts_used == 7
        assert source.calls == 7
        assert run.rejected_reasons == {"Script exhausted": 7}
        assert progress == []

    async def test_default_budget(self):
        run = await run_generation(ScriptedSource(), 2)
        assert run.max_attempts == 10
        assert run.attempts_used == 10

    async def test_zero_requested(self):
        source = ScriptedSource(_puzzle(FEN_A))
        run = await run_generation(source, 0)
        assert run.complete
        assert run.attempts_used == 0
        assert source.calls == 0

    @pytest.mark.parametrize("requested,max_attempts", [(-1, None), (5, 4)])
    async def test_bad_budget(self, requested, max_attempts):
        with pytest.raises(ConfigurationError):
            await run_generation(ScriptedSource(), requested, max_attempts=max_attempts)

    async def test_sync_progress_callback(self):
        seen = []
        source = ScriptedSource(_puzzle(FEN_A), "nope", _puzzle(FEN_B))
        await run_generation(source, 2, on_progress=lambda n, total, c: seen.append((n, total, c.fen)))
        assert seen == [(1, 2, FEN_A), (2, 2, FEN_B)]

    async def test_async_progress_callback(self):
        seen = []

        async def progress(n, total, candidate):
            seen.append(n)

        await run_generation(ScriptedSource(_puzzle(FEN_A)), 1, on_progress=progress)
        assert seen == [1]

    async def test_retry_delay_between_attempts(self, monkeypatch):
        sleeps = []
        real_sleep = asyncio.sleep

        async def fake_sleep(delay, *args, **kwargs):
            sleeps.append(delay)
            await real_sleep(0)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        await run_generation(ScriptedSource("a", "b", _puzzle(FEN_A)), 1, retry_delay=0.5)
        assert sleeps == [0.5, 0.5]

    async def test_generate_many(self):
        accepted = await generate_many(ScriptedSource(_puzzle(FEN_A)), 1)
        assert [c.fen for c in accepted] == [FEN_A]


class TestRunWithStore:
    @pytest.fixture
    async def store(self):
        s = CandidateStore(":memory:")
        await s.start()
        yield s
        await s.close()

    async def test_saves_accepted(self, store):
        await run_generation(ScriptedSource(_puzzle(FEN_A), _puzzle(FEN_B)), 2, store=store)
        assert await store.count("puzzle") == 2

    async def test_skips_previously_stored(self, store):
        await store.create(_puzzle(FEN_A))
        run = await run_generation(
            ScriptedSource(_puzzle(FEN_A), _puzzle(FEN_B)), 1, store=store,
        )
        assert [c.fen for c in run.accepted] == [FEN_B]
        assert run.duplicates == 1
        assert await store.count("puzzle") == 2

    async def test_save_failure_recorded(self):
        run = await run_generation(ScriptedSource(_puzzle(FEN_A)), 1, store=FailingStore())
        assert run.complete
        assert len(run.save_errors) == 1
        assert "disk full" in run.save_errors[0]


class TestGenerationRun:
    def test_summary(self):
        run = GenerationRun(requested_count=2, max_attempts=10, attempts_used=4)
        run.accepted.append(_puzzle(FEN_A))
        run.reject("x")
        run.reject("x")
        run.reject("y")
        summary = run.summary()
        assert summary["requested"] == 2
        assert summary["accepted"] == 1
        assert summary["attempts"] == 4
        assert summary["rejected"] == {"x": 2, "y": 1}
        assert not run.complete

    def test_attempt_timeout_scales_with_depth(self):
        assert attempt_timeout_for(8) == 30.0
        assert attempt_timeout_for(12) == 45.0
