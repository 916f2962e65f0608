"""Centralized generator configuration.

All settings are read from environment variables (or a .env.puzzles
file). Every field has a default, so a bare environment works as long as
a `stockfish` binary is on PATH. Command-line flags override these.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env.puzzles", env_file_encoding="utf-8",
    )

    # Stockfish
    stockfish_path: str = "stockfish"
    stockfish_hash_mb: int = 64
    stockfish_threads: int = 1
    engine_ready_timeout: float = 5.0

    # Search budgets
    analysis_depth: int = 12
    min_plies: int = 20
    max_plies: int = 40

    # Generation loop
    attempts_per_candidate: int = 5
    retry_delay: float = 1.0

    # Accepted candidates are saved here when set
    db_path: str | None = None

    verbose: bool = False

    @model_validator(mode="after")
    def _check_ply_bounds(self) -> "Settings":
        if self.min_plies < 0:
            raise ValueError("min_plies must be non-negative")
        if self.min_plies > self.max_plies:
            raise ValueError(
                f"min_plies ({self.min_plies}) exceeds max_plies ({self.max_plies})"
            )
        if self.attempts_per_candidate < 1:
            raise ValueError("attempts_per_candidate must be at least 1")
        return self
