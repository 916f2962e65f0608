"""Generated candidate store: async SQLite, one table per candidate kind."""

from pathlib import Path
import json
import uuid

import aiosqlite

from chess960_puzzles.errors import PersistenceError
from chess960_puzzles.models import (
    LessonCandidate,
    LessonCategory,
    LessonDifficulty,
    LessonGoal,
    PuzzleCandidate,
)


SCHEMA = """
CREATE TABLE IF NOT EXISTS puzzles (
    id              TEXT PRIMARY KEY,
    fen             TEXT NOT NULL UNIQUE,
    moves           TEXT NOT NULL,
    rating          INTEGER NOT NULL,
    evaluation      INTEGER NOT NULL,
    themes          TEXT NOT NULL,
    primary_theme   TEXT NOT NULL,
    source_position INTEGER,
    source_fen      TEXT
);
CREATE INDEX IF NOT EXISTS idx_puzzles_rating ON puzzles(rating);

CREATE TABLE IF NOT EXISTS lessons (
    id              TEXT PRIMARY KEY,
    fen             TEXT NOT NULL UNIQUE,
    title           TEXT NOT NULL,
    instructions    TEXT NOT NULL,
    solution_pgn    TEXT NOT NULL,
    moves           TEXT NOT NULL,
    goal            TEXT NOT NULL,
    hints           TEXT NOT NULL,
    category        TEXT NOT NULL,
    difficulty      TEXT NOT NULL,
    source_position INTEGER
);
"""

_TABLES = {"puzzle": "puzzles", "lesson": "lessons"}

_PUZZLE_COLUMNS = "id, fen, moves, rating, evaluation, themes, primary_theme, source_position, source_fen"
_LESSON_COLUMNS = (
    "id, fen, title, instructions, solution_pgn, moves, goal, hints, "
    "category, difficulty, source_position"
)


def _row_to_puzzle(row: aiosqlite.Row) -> PuzzleCandidate:
    return PuzzleCandidate(
        fen=row[1],
        solution_moves=row[2].split(),
        rating=row[3],
        evaluation=row[4],
        themes=row[5].split() if row[5] else [],
        primary_theme=row[6],
        source_position_number=row[7],
        source_arrangement_fen=row[8],
    )


def _row_to_lesson(row: aiosqlite.Row) -> LessonCandidate:
    return LessonCandidate(
        title=row[2],
        initial_fen=row[1],
        instructions=row[3],
        solution_pgn=row[4],
        solution_moves=row[5].split(),
        goal=LessonGoal.from_dict(json.loads(row[6])),
        hints=json.loads(row[7]),
        category=LessonCategory(row[8]),
        difficulty=LessonDifficulty(row[9]),
        source_position_number=row[10],
    )


class CandidateStore:
    """Create/find store for generated puzzles and lessons, keyed by FEN."""

    def __init__(self, db_path: str = "data/generated.db"):
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    @property
    def available(self) -> bool:
        return self._db is not None

    async def start(self) -> None:
        """Open (creating if needed) the database and apply the schema."""
        try:
            if self._db_path == ":memory:":
                self._db = await aiosqlite.connect(":memory:")
            else:
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
                self._db = await aiosqlite.connect(self._db_path)
                await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.executescript(SCHEMA)
            await self._db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise PersistenceError(f"Cannot open candidate store {self._db_path}: {e}") from e

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    def _require_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise PersistenceError("Candidate store not started. Call start() first.")
        return self._db

    async def find_existing(self, fen: str, kind: str | None = None):
        """Stored candidate with this FEN (any kind unless ``kind`` is given), or None."""
        db = self._require_db()
        kinds = [kind] if kind else list(_TABLES)
        try:
            for k in kinds:
                if k == "puzzle":
                    cursor = await db.execute(
                        f"SELECT {_PUZZLE_COLUMNS} FROM puzzles WHERE fen = ?", (fen,)
                    )
                    row = await cursor.fetchone()
                    if row:
                        return _row_to_puzzle(row)
                elif k == "lesson":
                    cursor = await db.execute(
                        f"SELECT {_LESSON_COLUMNS} FROM lessons WHERE fen = ?", (fen,)
                    )
                    row = await cursor.fetchone()
                    if row:
                        return _row_to_lesson(row)
                else:
                    raise PersistenceError(f"Unknown candidate kind: {k!r}")
        except aiosqlite.Error as e:
            raise PersistenceError(f"Lookup failed for {fen}: {e}") from e
        return None

    async def create(self, candidate: PuzzleCandidate | LessonCandidate) -> str:
        """Insert a candidate and return its new id."""
        db = self._require_db()
        record_id = uuid.uuid4().hex
        if isinstance(candidate, PuzzleCandidate):
            query = f"INSERT INTO puzzles ({_PUZZLE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"
            params = (
                record_id,
                candidate.fen,
                " ".join(candidate.solution_moves),
                candidate.rating,
                candidate.evaluation,
                " ".join(candidate.themes),
                candidate.primary_theme,
                candidate.source_position_number,
                candidate.source_arrangement_fen,
            )
        elif isinstance(candidate, LessonCandidate):
            query = f"INSERT INTO lessons ({_LESSON_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
            params = (
                record_id,
                candidate.initial_fen,
                candidate.title,
                candidate.instructions,
                candidate.solution_pgn,
                " ".join(candidate.solution_moves),
                json.dumps(candidate.goal.to_dict()),
                json.dumps(candidate.hints),
                candidate.category.value,
                candidate.difficulty.value,
                candidate.source_position_number,
            )
        else:
            raise PersistenceError(f"Cannot store {type(candidate).__name__}")

        try:
            await db.execute(query, params)
            await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to save candidate {candidate.fen}: {e}") from e
        return record_id

    async def count(self, kind: str = "puzzle") -> int:
        db = self._require_db()
        table = _TABLES.get(kind)
        if table is None:
            raise PersistenceError(f"Unknown candidate kind: {kind!r}")
        cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")
        row = await cursor.fetchone()
        return row[0] if row else 0
