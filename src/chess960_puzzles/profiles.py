"""Difficulty profiles for lesson generation."""

from dataclasses import dataclass

from chess960_puzzles.errors import ConfigurationError
from chess960_puzzles.models import LessonCategory, LessonDifficulty


@dataclass(frozen=True)
class LessonProfile:
    difficulty: LessonDifficulty
    analysis_depth: int         # depth of the goal-finding analysis
    min_plies: int              # self-play length range [min, max)
    max_plies: int
    analysis_timeout: float     # seconds per analysis call
    validation_rating: int      # realism gate rating for this tier


LESSON_PROFILES: dict[LessonDifficulty, LessonProfile] = {
    LessonDifficulty.BEGINNER:     LessonProfile(LessonDifficulty.BEGINNER,      8,  8, 14,  8.0, 1200),
    LessonDifficulty.INTERMEDIATE: LessonProfile(LessonDifficulty.INTERMEDIATE,  8, 10, 18, 10.0, 1500),
    LessonDifficulty.ADVANCED:     LessonProfile(LessonDifficulty.ADVANCED,     10, 12, 20, 12.0, 1800),
    LessonDifficulty.EXPERT:       LessonProfile(LessonDifficulty.EXPERT,       12, 14, 24, 15.0, 2100),
}


def parse_difficulty(value: str | LessonDifficulty) -> LessonDifficulty:
    if isinstance(value, LessonDifficulty):
        return value
    try:
        return LessonDifficulty(value.upper())
    except (AttributeError, ValueError) as e:
        raise ConfigurationError(f"Unknown lesson difficulty: {value!r}") from e


def parse_category(value: str | LessonCategory) -> LessonCategory:
    if isinstance(value, LessonCategory):
        return value
    try:
        return LessonCategory(value.upper())
    except (AttributeError, ValueError) as e:
        raise ConfigurationError(f"Unknown lesson category: {value!r}") from e


def get_profile(difficulty: str | LessonDifficulty) -> LessonProfile:
    """Look up the profile for a difficulty tier (name or enum)."""
    return LESSON_PROFILES[parse_difficulty(difficulty)]
