from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Protocol, TypeVar
import asyncio
import logging

import chess
import chess.engine

logger = logging.getLogger(__name__)

T = TypeVar("T")

MATE_SCORE = 10000
DEFAULT_DEPTH = 12
DEFAULT_READY_TIMEOUT = 5.0


class EngineState(Enum):
    NOT_READY = "not_ready"
    READY = "ready"


@dataclass
class LineInfo:
    """One MultiPV line, scored from White's side."""
    uci: str
    san: str                    # SAN of the first move only
    score_cp: int | None
    score_mate: int | None
    pv: list[str]
    depth: int


@dataclass
class AnalysisResult:
    best_move: str | None
    alternative_moves: list[str] = field(default_factory=list)
    evaluation_cp: int = 0      # White's point of view, mates as +/-MATE_SCORE
    mate_distance: int | None = None
    search_depth: int = 0
    lines: list[LineInfo] = field(default_factory=list)

    @property
    def candidate_moves(self) -> list[str]:
        """Best move followed by the alternatives, in engine order."""
        if self.best_move is None:
            return []
        return [self.best_move, *self.alternative_moves]


class EngineProtocol(Protocol):
    async def analyze_position(
        self,
        fen: str,
        depth: int | None = None,
        multipv: int = 1,
        time_ms: int | None = None,
    ) -> AnalysisResult: ...

    async def set_skill_level(self, level: int) -> None: ...

    async def wait_ready(self, timeout: float | None = None) -> bool: ...


def _discard_outcome(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned task finished with %r", exc)


async def first_of(
    awaitable: Awaitable[T],
    timeout: float | None,
    cancel_loser: bool = False,
) -> T:
    """Race ``awaitable`` against a timer.

    On timeout raise ``asyncio.TimeoutError``. The losing task is either
    cancelled or left to finish, with its result or exception discarded.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return task.result()

    task.add_done_callback(_discard_outcome)
    if cancel_loser:
        task.cancel()
    raise asyncio.TimeoutError(f"Timed out after {timeout}s")


def _white_cp(score: chess.engine.Score) -> int:
    if score.is_mate():
        return MATE_SCORE if score.score(mate_score=MATE_SCORE) > 0 else -MATE_SCORE
    return score.score()


class EngineAdapter:
    """Async UCI engine wrapper (Stockfish) satisfying EngineProtocol."""

    def __init__(
        self,
        stockfish_path: str = "stockfish",
        hash_mb: int = 64,
        threads: int = 1,
        ready_timeout: float = DEFAULT_READY_TIMEOUT,
    ):
        self._path = stockfish_path
        self._hash_mb = hash_mb
        self._threads = threads
        self._ready_timeout = ready_timeout
        self._engine: chess.engine.UciProtocol | None = None
        self._lock = asyncio.Lock()
        self._ready = asyncio.Event()
        self._state = EngineState.NOT_READY
        self._skill_level: int | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    def _mark_ready(self) -> None:
        self._state = EngineState.READY
        self._ready.set()

    async def start(self):
        if self._engine is not None:
            try:
                await self._engine.quit()
            except (chess.engine.EngineError, asyncio.TimeoutError, OSError):
                pass
            self._engine = None
        self._state = EngineState.NOT_READY
        self._ready.clear()
        _, self._engine = await chess.engine.popen_uci(self._path)
        options: dict[str, Any] = {"Hash": self._hash_mb, "Threads": self._threads}
        if self._skill_level is not None:
            options["Skill Level"] = self._skill_level
        await self._engine.configure(options)
        self._mark_ready()
        logger.debug("Engine %s ready", self._path)

    async def stop(self):
        if self._engine:
            try:
                await self._engine.quit()
            except (chess.engine.EngineError, asyncio.TimeoutError, OSError):
                # Transport may already be closed (process killed, shutdown race)
                pass
            self._engine = None
        self._state = EngineState.NOT_READY
        self._ready.clear()

    async def wait_ready(self, timeout: float | None = None) -> bool:
        """Wait for the ready signal.

        Returns False when it does not arrive in time; the adapter is then
        treated as ready anyway so generation can proceed.
        """
        if self._ready.is_set():
            return True
        timeout = self._ready_timeout if timeout is None else timeout
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("Engine not ready after %.1fs, continuing anyway", timeout)
            self._mark_ready()
            return False

    async def set_skill_level(self, level: int) -> None:
        if not 0 <= level <= 20:
            raise ValueError(f"Skill level must be between 0 and 20, got {level}")
        self._skill_level = level
        if self._engine is None:
            return
        async with self._lock:
            await self._engine.configure({"Skill Level": level})

    def _validate_board(self, fen: str) -> chess.Board:
        try:
            board = chess.Board(fen, chess960=True)
        except ValueError as e:
            raise ValueError(f"Invalid FEN: {fen}") from e
        if not board.is_valid():
            raise ValueError(f"Illegal position: {fen}")
        return board

    async def _analyse_with_retry(self, board: chess.Board, limit: chess.engine.Limit, **kwargs):
        """Analyse, restarting Stockfish once if the process has died."""
        try:
            return await self._engine.analyse(board, limit, **kwargs)
        except chess.engine.EngineTerminatedError:
            logger.warning("Engine process terminated, restarting %s", self._path)
            try:
                await self.start()
            except Exception as e:
                raise RuntimeError("Engine restart failed") from e
            try:
                return await self._engine.analyse(board, limit, **kwargs)
            except chess.engine.EngineTerminatedError as e:
                raise RuntimeError("Engine restart failed") from e

    async def analyze_position(
        self,
        fen: str,
        depth: int | None = None,
        multipv: int = 1,
        time_ms: int | None = None,
    ) -> AnalysisResult:
        """MultiPV analysis; scores are from White's point of view."""
        if self._engine is None:
            raise RuntimeError("Engine not started. Call start() first.")
        board = self._validate_board(fen)
        if depth is None and time_ms is None:
            depth = DEFAULT_DEPTH
        limit = chess.engine.Limit(
            depth=depth,
            time=time_ms / 1000 if time_ms is not None else None,
        )
        async with self._lock:
            results = await self._analyse_with_retry(board, limit, multipv=max(1, multipv))
        if not isinstance(results, list):
            results = [results]
        return analysis_from_infos(board, results, depth or 0)


def analysis_from_infos(
    board: chess.Board,
    infos: list[chess.engine.InfoDict],
    requested_depth: int = 0,
) -> AnalysisResult:
    """Collapse python-chess info dicts into an AnalysisResult."""
    lines = []
    for info in infos:
        pv = info.get("pv", [])
        if not pv or "score" not in info:
            continue
        score = info["score"].white()
        lines.append(LineInfo(
            uci=pv[0].uci(),
            san=board.san(pv[0]),
            score_cp=_white_cp(score),
            score_mate=score.mate(),
            pv=[m.uci() for m in pv],
            depth=info.get("depth", requested_depth),
        ))

    if not lines:
        return AnalysisResult(best_move=None, search_depth=requested_depth)

    best = lines[0]
    return AnalysisResult(
        best_move=best.uci,
        alternative_moves=[line.uci for line in lines[1:]],
        evaluation_cp=best.score_cp,
        mate_distance=best.score_mate,
        search_depth=best.depth,
        lines=lines,
    )
