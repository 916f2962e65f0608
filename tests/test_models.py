"""Tests for candidate records."""

from chess960_puzzles.models import (
    GoalKind,
    LessonCandidate,
    LessonCategory,
    LessonDifficulty,
    LessonGoal,
    PuzzleCandidate,
)


class TestLessonGoal:
    def test_to_dict_omits_unset_fields(self):
        assert LessonGoal(GoalKind.MATE).to_dict() == {"type": "MATE"}
        assert LessonGoal(GoalKind.MATE_IN, moves=3).to_dict() == {"type": "MATE_IN", "moves": 3}
        assert LessonGoal(GoalKind.EQUALIZE, cp=0).to_dict() == {"type": "EQUALIZE", "cp": 0}

    def test_from_dict(self):
        goal = LessonGoal.from_dict({"type": "WIN_MATERIAL", "cp": 240})
        assert goal == LessonGoal(GoalKind.WIN_MATERIAL, cp=240)


class TestCandidates:
    def test_puzzle_dict(self):
        puzzle = PuzzleCandidate(
            fen="4k3/8/8/8/8/8/8/R3K3 w - - 0 1",
            solution_moves=["a1a8", "e8d7"],
            rating=1400,
            evaluation=500,
            themes=["endgame", "rookEndgame"],
            primary_theme="rookEndgame",
        )
        data = puzzle.to_dict()
        assert data["solution"] == "a1a8"
        assert data["solution_moves"] == ["a1a8", "e8d7"]
        assert data["source_position_number"] is None
        assert puzzle.kind == "puzzle"

    def test_lesson_dict(self):
        lesson = LessonCandidate(
            title="Equalize the Position",
            initial_fen="4k3/8/8/8/8/8/8/R3K3 w - - 0 1",
            instructions="White to move.",
            solution_pgn="1. Ra2",
            solution_moves=["a1a2"],
            goal=LessonGoal(GoalKind.EQUALIZE, cp=5),
            hints=["Improve your least active piece."],
            category=LessonCategory.STRATEGY,
            difficulty=LessonDifficulty.ADVANCED,
            source_position_number=100,
        )
        data = lesson.to_dict()
        assert data["goal"] == {"type": "EQUALIZE", "cp": 5}
        assert data["category"] == "STRATEGY"
        assert data["difficulty"] == "ADVANCED"
        assert lesson.fen == lesson.initial_fen
        assert lesson.kind == "lesson"
