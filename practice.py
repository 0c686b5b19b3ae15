"""Practice run orchestration: targets, recording, scoring and aggregation."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from aggregator import PracticeSessionAggregator
from comparison import compare
from errors import SessionClosedError
from interfaces import LevelMonitor, Recorder, SessionStore, TranscriptionProvider
from models import Attempt, Failed, PracticeMode, RecordingOutcome, SessionState, SessionSummary
from recording_session import (
    ErrorCallback,
    FallbackPolicy,
    PartialCallback,
    RecordingSession,
    StateCallback,
)
from sentence_analyzer import SentenceAnalyzer
from targets import TargetCursor

logger = logging.getLogger(__name__)

AttemptCallback = Callable[[Attempt, SessionSummary], None]
FailureCallback = Callable[[Failed], None]


def score_attempt(
    target: str,
    transcript: str,
    mode: PracticeMode,
    analyzer: Optional[SentenceAnalyzer] = None,
    fallback: bool = False,
) -> Attempt:
    """Build the immutable Attempt for one transcript."""
    comparison = compare(target, transcript, mode)
    if mode == PracticeMode.WORD:
        return Attempt(
            target=target,
            transcript=transcript,
            mode=mode,
            units=comparison.units,
            is_correct=comparison.is_correct,
            fallback=fallback,
        )
    analyzer = analyzer or SentenceAnalyzer()
    breakdown = analyzer.analyze(target, transcript)
    return Attempt(
        target=target,
        transcript=transcript,
        mode=mode,
        units=comparison.units,
        is_correct=analyzer.is_passing(breakdown),
        score_breakdown=breakdown,
        fallback=fallback,
    )


class PracticeController:
    def __init__(
        self,
        cursor: TargetCursor,
        provider: Optional[TranscriptionProvider],
        monitor: Optional[LevelMonitor] = None,
        microphone_factory: Optional[Callable[[], Recorder]] = None,
        mode: PracticeMode = PracticeMode.WORD,
        grade_level: int = 1,
        locale: str = "en-US",
        allow_fallback: bool = True,
        fallback_policy: Optional[FallbackPolicy] = None,
        listen_timeout_s: Optional[float] = None,
        store: Optional[SessionStore] = None,
        analyzer: Optional[SentenceAnalyzer] = None,
        on_attempt: Optional[AttemptCallback] = None,
        on_failure: Optional[FailureCallback] = None,
        on_state_change: Optional[StateCallback] = None,
        on_partial: Optional[PartialCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.cursor = cursor
        self._mode = mode
        self._store = store
        self._analyzer = analyzer or SentenceAnalyzer()
        self._on_attempt = on_attempt
        self._on_failure = on_failure
        self._lock = threading.Lock()
        self._attempt_target = ""
        self.aggregator = PracticeSessionAggregator(mode=mode, grade_level=grade_level)
        self.session = RecordingSession(
            provider=provider,
            monitor=monitor,
            microphone_factory=microphone_factory,
            mode=mode,
            locale=locale,
            allow_fallback=allow_fallback,
            fallback_policy=fallback_policy,
            listen_timeout_s=listen_timeout_s,
            on_state_change=on_state_change,
            on_partial=on_partial,
            on_result=self._handle_outcome,
            on_error=on_error,
        )
        self.session.enabled = cursor.current is not None

    @property
    def mode(self) -> PracticeMode:
        return self._mode

    @property
    def current_target(self) -> Optional[str]:
        return self.cursor.current

    @property
    def summary(self) -> SessionSummary:
        return self.aggregator.summary

    def start_attempt(self) -> bool:
        target = self.cursor.current
        if target is None or self.aggregator.closed:
            return False
        if self.session.state != SessionState.IDLE:
            return False
        self._attempt_target = target
        return self.session.start(target)

    def stop_attempt(self) -> None:
        self.session.stop()

    def next_target(self) -> Optional[str]:
        if self.session.state != SessionState.IDLE:
            return self.cursor.current
        return self.cursor.advance()

    def select_list(self, list_id: int) -> bool:
        if self.session.state != SessionState.IDLE:
            return False
        return self.cursor.select_list(list_id)

    def finish(self) -> SessionSummary:
        """Close recording, finalize the run and hand it to the store."""
        self.session.close()
        with self._lock:
            summary = self.aggregator.finalize()
        if self._store is not None and summary.attempts:
            self._save(summary)
        return summary

    def _save(self, summary: SessionSummary) -> bool:
        try:
            self._store.save(summary.to_record())
        except Exception:
            logger.exception("Failed to save practice session")
            return False
        return True

    def _handle_outcome(self, outcome: RecordingOutcome) -> None:
        if isinstance(outcome, Failed):
            logger.info("Attempt failed: %s", outcome.reason)
            if self._on_failure:
                self._on_failure(outcome)
            return
        if not outcome.text.strip():
            logger.info("Empty transcript, no attempt recorded")
            return
        attempt = score_attempt(
            self._attempt_target,
            outcome.text,
            self._mode,
            analyzer=self._analyzer,
            fallback=outcome.is_fallback,
        )
        with self._lock:
            try:
                summary = self.aggregator.record_attempt(attempt)
            except SessionClosedError:
                logger.warning("Discarding attempt that finished after the session closed")
                return
        if self._on_attempt:
            self._on_attempt(attempt, summary)
