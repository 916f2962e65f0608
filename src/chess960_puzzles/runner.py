"""Bounded generation loop: attempts, dedup, progress and persistence."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol
import asyncio
import inspect
import logging

from chess960_puzzles.engine import first_of
from chess960_puzzles.errors import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

ATTEMPTS_PER_CANDIDATE = 5
REASON_TIMEOUT = "Attempt timed out"
REASON_NO_CANDIDATE = "No candidate produced"

ProgressCallback = Callable[[int, int, Any], "Awaitable[None] | None"]


class CandidateSource(Protocol):
    async def generate(self, on_reject: Callable[[str], None] | None = None) -> Any: ...


def attempt_timeout_for(depth: int) -> float:
    """Seconds allowed for one whole generation attempt."""
    return 45.0 if depth >= 9 else 30.0


@dataclass
class GenerationRun:
    requested_count: int
    max_attempts: int
    attempts_used: int = 0
    accepted: list = field(default_factory=list)
    rejected_reasons: Counter = field(default_factory=Counter)
    duplicates: int = 0
    save_errors: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return len(self.accepted) >= self.requested_count

    def reject(self, reason: str) -> None:
        self.rejected_reasons[reason] += 1

    def summary(self) -> dict:
        return {
            "requested": self.requested_count,
            "accepted": len(self.accepted),
            "attempts": self.attempts_used,
            "max_attempts": self.max_attempts,
            "duplicates": self.duplicates,
            "rejected": dict(self.rejected_reasons.most_common()),
            "save_errors": len(self.save_errors),
        }


def _resolve_max_attempts(requested_count: int, max_attempts: int | None) -> int:
    if requested_count < 0:
        raise ConfigurationError(f"requested_count must be non-negative, got {requested_count}")
    if max_attempts is None:
        return requested_count * ATTEMPTS_PER_CANDIDATE
    if max_attempts < requested_count:
        raise ConfigurationError(
            f"max_attempts ({max_attempts}) must be at least requested_count ({requested_count})"
        )
    return max_attempts


async def _is_stored(store, candidate) -> bool:
    try:
        return await store.find_existing(candidate.fen, getattr(candidate, "kind", None)) is not None
    except PersistenceError as e:
        logger.warning("Duplicate lookup failed for %s: %s", candidate.fen, e)
        return False


async def run_generation(
    generator: CandidateSource,
    requested_count: int,
    *,
    max_attempts: int | None = None,
    attempt_timeout: float | None = None,
    retry_delay: float = 0.0,
    on_progress: ProgressCallback | None = None,
    store=None,
) -> GenerationRun:
    """Call ``generator.generate()`` until enough unique candidates are accepted.

    ``attempt_timeout`` defaults to ``attempt_timeout_for(generator.depth)``.
    Timeouts and unexpected exceptions count as rejections. With a
    ``store``, FENs already stored are skipped and accepted candidates are
    saved; save failures are recorded on the run.
    """
    run = GenerationRun(requested_count, _resolve_max_attempts(requested_count, max_attempts))
    if attempt_timeout is None:
        attempt_timeout = attempt_timeout_for(getattr(generator, "depth", 0))
    seen: set[str] = set()

    while not run.complete and run.attempts_used < run.max_attempts:
        if run.attempts_used and retry_delay > 0:
            await asyncio.sleep(retry_delay)
        run.attempts_used += 1
        logger.info(
            "Attempt %d/%d: candidate %d/%d",
            run.attempts_used, run.max_attempts, len(run.accepted) + 1, requested_count,
        )

        reasons: list[str] = []
        try:
            candidate = await first_of(
                generator.generate(on_reject=reasons.append),
                attempt_timeout,
                cancel_loser=True,
            )
        except asyncio.TimeoutError:
            logger.info("Attempt %d timed out after %.1fs", run.attempts_used, attempt_timeout)
            run.reject(REASON_TIMEOUT)
            continue
        except Exception as e:
            logger.warning("Attempt %d failed: %r", run.attempts_used, e)
            run.reject(f"Unexpected error: {type(e).__name__}")
            continue

        if candidate is None:
            run.reject(reasons[-1] if reasons else REASON_NO_CANDIDATE)
            continue

        if candidate.fen in seen or (store is not None and await _is_stored(store, candidate)):
            run.duplicates += 1
            logger.debug("Duplicate candidate dropped: %s", candidate.fen)
            continue
        seen.add(candidate.fen)
        run.accepted.append(candidate)

        if store is not None:
            try:
                await store.create(candidate)
            except PersistenceError as e:
                logger.error("Failed to save candidate %s: %s", candidate.fen, e)
                run.save_errors.append(str(e))

        if on_progress is not None:
            result = on_progress(len(run.accepted), requested_count, candidate)
            if inspect.isawaitable(result):
                await result

    logger.info(
        "Generated %d/%d candidates in %d attempts",
        len(run.accepted), requested_count, run.attempts_used,
    )
    return run


async def generate_many(generator: CandidateSource, requested_count: int, **kwargs) -> list:
    """Like run_generation but return only the accepted candidates."""
    run = await run_generation(generator, requested_count, **kwargs)
    return run.accepted
