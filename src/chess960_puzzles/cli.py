"""Command-line entry point for puzzle and lesson generation.

Usage:
    chess960-puzzles position N
    chess960-puzzles puzzles [--count N] [--position N] [--depth D]
        [--min-plies N] [--max-plies N] [--db-path FILE] [--stockfish PATH]
    chess960-puzzles duel [--count N] [--ratings 1200,1400,...] ...
    chess960-puzzles lessons [--count N] [--category C] [--difficulty D] ...

Candidates are written to stdout as JSON lines; a run summary goes to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import chess.engine
from pydantic import ValidationError

from chess960_puzzles.chess960 import arrangement_for
from chess960_puzzles.config import Settings
from chess960_puzzles.duel import DEFAULT_TARGET_RATINGS, DuelOptions, DuelPuzzleGenerator
from chess960_puzzles.engine import EngineAdapter
from chess960_puzzles.errors import GenerationError
from chess960_puzzles.lessons import LessonGenerator, LessonOptions
from chess960_puzzles.models import LessonCategory, LessonDifficulty
from chess960_puzzles.puzzles import PuzzleGenerator, PuzzleOptions
from chess960_puzzles.runner import GenerationRun, run_generation
from chess960_puzzles.store import CandidateStore

logger = logging.getLogger(__name__)


def _emit(accepted: int, requested: int, candidate) -> None:
    json.dump(candidate.to_dict(), sys.stdout)
    print(flush=True)
    logger.info("Accepted %d/%d", accepted, requested)


def _make_engine(settings: Settings, path: str | None) -> EngineAdapter:
    return EngineAdapter(
        stockfish_path=path or settings.stockfish_path,
        hash_mb=settings.stockfish_hash_mb,
        threads=settings.stockfish_threads,
        ready_timeout=settings.engine_ready_timeout,
    )


def _parse_ratings(value: str) -> tuple[int, ...]:
    try:
        ratings = tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid rating list: {value!r}") from e
    if not ratings:
        raise argparse.ArgumentTypeError("rating list is empty")
    return ratings


def _build_generator(args: argparse.Namespace, settings: Settings, engines: list[EngineAdapter]):
    depth = settings.analysis_depth if args.depth is None else args.depth
    min_plies = settings.min_plies if args.min_plies is None else args.min_plies
    max_plies = settings.max_plies if args.max_plies is None else args.max_plies

    if args.command == "puzzles":
        options = PuzzleOptions(
            position_number=args.position,
            depth=depth,
            min_plies=min_plies,
            max_plies=max_plies,
        )
        return PuzzleGenerator(engines[0], options)
    if args.command == "duel":
        options = DuelOptions(
            position_number=args.position,
            target_ratings=args.ratings,
            depth=depth,
            min_plies=min_plies,
            max_plies=max_plies,
        )
        return DuelPuzzleGenerator(engines[0], engines[1], options)
    # Lesson ply ranges come from the difficulty profile unless given explicitly.
    options = LessonOptions(
        category=args.category,
        difficulty=args.difficulty,
        position_number=args.position,
        depth=args.depth,
        min_plies=args.min_plies,
        max_plies=args.max_plies,
    )
    return LessonGenerator(engines[0], options)


async def _generate(args: argparse.Namespace, settings: Settings) -> GenerationRun:
    engine_count = 2 if args.command == "duel" else 1
    engines = [_make_engine(settings, args.stockfish) for _ in range(engine_count)]
    generator = _build_generator(args, settings, engines)

    store = None
    db_path = args.db_path or settings.db_path
    if db_path:
        store = CandidateStore(db_path)
        await store.start()

    try:
        for engine in engines:
            try:
                await engine.start()
            except (OSError, chess.engine.EngineError) as e:
                raise GenerationError(f"Cannot start engine: {e}") from e
        max_attempts = args.max_attempts
        if max_attempts is None:
            max_attempts = args.count * settings.attempts_per_candidate
        return await run_generation(
            generator,
            args.count,
            max_attempts=max_attempts,
            retry_delay=settings.retry_delay,
            on_progress=_emit,
            store=store,
        )
    finally:
        for engine in engines:
            await engine.stop()
        if store is not None:
            await store.close()


def _add_generation_args(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--count", type=int, default=10, help="Candidates to generate (default: 10)")
    sub.add_argument("--max-attempts", type=int, help="Attempt budget (default: count x attempts_per_candidate)")
    sub.add_argument("--position", type=int, help="Chess960 position 1-960 (default: random)")
    sub.add_argument("--depth", type=int, help="Analysis depth")
    sub.add_argument("--min-plies", type=int, help="Minimum self-play plies")
    sub.add_argument("--max-plies", type=int, help="Maximum self-play plies (exclusive)")
    sub.add_argument("--stockfish", help="Path to Stockfish binary")
    sub.add_argument("--db-path", metavar="FILE", help="Save accepted candidates to this SQLite file")
    sub.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chess960-puzzles",
        description="Generate Chess960 puzzles and lessons with Stockfish",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    position = subparsers.add_parser("position", help="Print a starting arrangement")
    position.add_argument("number", type=int, help="Position number 1-960")

    puzzles = subparsers.add_parser("puzzles", help="Self-play puzzles")
    _add_generation_args(puzzles)

    duel = subparsers.add_parser("duel", help="Strong-vs-weak engine puzzles")
    _add_generation_args(duel)
    duel.add_argument(
        "--ratings", type=_parse_ratings, default=DEFAULT_TARGET_RATINGS,
        help="Comma-separated target ratings to cycle through (default: 1200..2000 step 50)",
    )

    lessons = subparsers.add_parser("lessons", help="Instructional lessons")
    _add_generation_args(lessons)
    lessons.add_argument(
        "--category", default=LessonCategory.TACTICS.value,
        choices=[c.value for c in LessonCategory], type=str.upper,
    )
    lessons.add_argument(
        "--difficulty", default=LessonDifficulty.INTERMEDIATE.value,
        choices=[d.value for d in LessonDifficulty], type=str.upper,
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "position":
        try:
            arrangement = arrangement_for(args.number)
        except GenerationError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2
        json.dump({
            "position_number": arrangement.position_number,
            "back_rank": "".join(arrangement.back_rank),
            "fen": arrangement.fen,
        }, sys.stdout)
        print()
        return 0

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"error: invalid settings: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or settings.verbose) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        run = asyncio.run(_generate(args, settings))
    except GenerationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    json.dump(run.summary(), sys.stderr, indent=2)
    print(file=sys.stderr)
    return 0 if run.complete else 1


if __name__ == "__main__":
    sys.exit(main())
