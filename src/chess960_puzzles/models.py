"""Candidate records produced by the generators."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class LessonCategory(str, Enum):
    TACTICS = "TACTICS"
    CHECKMATE = "CHECKMATE"
    ENDGAME = "ENDGAME"
    STRATEGY = "STRATEGY"


class LessonDifficulty(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    EXPERT = "EXPERT"


class GoalKind(str, Enum):
    MATE = "MATE"
    MATE_IN = "MATE_IN"
    WIN_MATERIAL = "WIN_MATERIAL"
    EQUALIZE = "EQUALIZE"
    PROMOTION = "PROMOTION"


@dataclass(frozen=True)
class LessonGoal:
    kind: GoalKind
    moves: int | None = None    # MATE_IN only
    cp: int | None = None       # WIN_MATERIAL, EQUALIZE, PROMOTION

    def to_dict(self) -> dict:
        data: dict = {"type": self.kind.value}
        if self.moves is not None:
            data["moves"] = self.moves
        if self.cp is not None:
            data["cp"] = self.cp
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LessonGoal":
        return cls(GoalKind(data["type"]), data.get("moves"), data.get("cp"))


@dataclass
class PuzzleCandidate:
    fen: str
    solution_moves: list[str]
    rating: int
    evaluation: int
    themes: list[str] = field(default_factory=list)
    primary_theme: str = "tactics"
    source_position_number: int | None = None
    source_arrangement_fen: str | None = None

    kind = "puzzle"

    @property
    def solution(self) -> str:
        return self.solution_moves[0]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["solution"] = self.solution
        return data


@dataclass
class LessonCandidate:
    title: str
    initial_fen: str
    instructions: str
    solution_pgn: str
    solution_moves: list[str]
    goal: LessonGoal
    hints: list[str]
    category: LessonCategory
    difficulty: LessonDifficulty
    source_position_number: int | None = None

    kind = "lesson"

    @property
    def fen(self) -> str:
        return self.initial_fen

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "initial_fen": self.initial_fen,
            "instructions": self.instructions,
            "solution_pgn": self.solution_pgn,
            "solution_moves": list(self.solution_moves),
            "goal": self.goal.to_dict(),
            "hints": list(self.hints),
            "category": self.category.value,
            "difficulty": self.difficulty.value,
            "source_position_number": self.source_position_number,
        }
