"""Running score and stars for one practice run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable, Sequence

from errors import SessionClosedError
from models import Attempt, PracticeMode, SessionSummary, utc_now
from sentence_analyzer import percent

logger = logging.getLogger(__name__)

TOTAL_STARS = 5


def running_score(attempts: Sequence[Attempt]) -> int:
    if not attempts:
        return 0
    correct = sum(1 for attempt in attempts if attempt.is_correct)
    return percent(correct, len(attempts))


def stars_earned(attempts: Sequence[Attempt]) -> int:
    correct = sum(1 for attempt in attempts if attempt.is_correct)
    stars = (TOTAL_STARS * correct) // max(len(attempts), 1)
    return min(TOTAL_STARS, max(0, stars))


class PracticeSessionAggregator:
    """Owns the SessionSummary of one run; every attempt is appended, never merged."""

    def __init__(
        self,
        mode: PracticeMode = PracticeMode.WORD,
        grade_level: int = 1,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._clock = clock
        self._summary = SessionSummary(mode=mode, grade_level=grade_level, started_at=clock())

    @property
    def summary(self) -> SessionSummary:
        return self._summary

    @property
    def closed(self) -> bool:
        return self._summary.closed

    def record_attempt(self, attempt: Attempt) -> SessionSummary:
        if self.closed:
            raise SessionClosedError("cannot record an attempt after the session was finalized")
        attempts = self._summary.attempts + (attempt,)
        self._summary = replace(
            self._summary,
            attempts=attempts,
            running_score=running_score(attempts),
            stars_earned=stars_earned(attempts),
        )
        logger.debug(
            "Recorded attempt %d (correct=%s): score=%d stars=%d",
            len(attempts),
            attempt.is_correct,
            self._summary.running_score,
            self._summary.stars_earned,
        )
        return self._summary

    def finalize(self) -> SessionSummary:
        if not self.closed:
            self._summary = replace(self._summary, finished_at=self._clock())
        return self._summary


@dataclass(frozen=True)
class ProgressStats:
    session_count: int
    total_attempts: int
    accuracy: int
    average_score: int
    best_score: int


def progress_stats(records: Iterable[dict]) -> ProgressStats:
    """Summarize saved session records for a progress view."""
    records = list(records)
    if not records:
        return ProgressStats(0, 0, 0, 0, 0)
    total = 0
    correct = 0
    for record in records:
        attempts = list(record.get("wordAttempts", [])) + list(record.get("sentenceAttempts", []))
        total += len(attempts)
        correct += sum(1 for attempt in attempts if attempt.get("isCorrect"))
    scores = [int(record.get("score", 0)) for record in records]
    return ProgressStats(
        session_count=len(records),
        total_attempts=total,
        accuracy=percent(correct, total) if total else 0,
        average_score=percent(sum(scores), 100 * len(scores)),
        best_score=max(scores),
    )
