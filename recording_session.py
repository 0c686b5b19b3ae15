"""State-machine based recording of one practice attempt."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from errors import (
    LISTEN_TIMEOUT,
    MICROPHONE_DENIED,
    PROVIDER_ERROR,
    PROVIDER_UNAVAILABLE,
    SESSION_CLOSED,
    message_for,
)
from interfaces import LevelMonitor, Recorder, TranscriptionProvider
from models import (
    Failed,
    ListenConfig,
    PracticeMode,
    RecognitionEvent,
    RecognitionKind,
    RecordingOutcome,
    SessionState,
    Transcribed,
    TranscriptSource,
)

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
PartialCallback = Callable[[str], None]
ResultCallback = Callable[[RecordingOutcome], None]
ErrorCallback = Callable[[str, str], None]

DEFAULT_FALLBACK_SENTENCE = "The quick brown fox jumps over the lazy dog."
DEFAULT_LISTEN_TIMEOUTS_S = {PracticeMode.WORD: 10.0, PracticeMode.SENTENCE: 20.0}


class CancellationToken:
    """Shared by every source that may complete an attempt; first cancel wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        with self._lock:
            if self._cancelled:
                return False
            self._cancelled = True
            return True


@dataclass(frozen=True)
class FallbackPolicy:
    word_delay_s: float = 2.0
    sentence_delay_s: float = 3.0
    fallback_sentence: str = DEFAULT_FALLBACK_SENTENCE

    def delay_for(self, mode: PracticeMode) -> float:
        return self.sentence_delay_s if mode == PracticeMode.SENTENCE else self.word_delay_s

    def transcript_for(self, mode: PracticeMode, target: str) -> str:
        if mode == PracticeMode.SENTENCE:
            return self.fallback_sentence
        return target.strip().lower() or "hello"


class RecordingSession:
    def __init__(
        self,
        provider: Optional[TranscriptionProvider],
        monitor: Optional[LevelMonitor] = None,
        microphone_factory: Optional[Callable[[], Recorder]] = None,
        mode: PracticeMode = PracticeMode.WORD,
        locale: str = "en-US",
        allow_fallback: bool = True,
        fallback_policy: Optional[FallbackPolicy] = None,
        listen_timeout_s: Optional[float] = None,
        on_state_change: Optional[StateCallback] = None,
        on_partial: Optional[PartialCallback] = None,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._provider = provider
        self._monitor = monitor
        self._microphone_factory = microphone_factory
        self._mode = mode
        self._locale = locale
        self._allow_fallback = allow_fallback
        self._fallback_policy = fallback_policy or FallbackPolicy()
        self._listen_timeout_s = listen_timeout_s
        self._on_state_change = on_state_change
        self._on_partial = on_partial
        self._on_result = on_result
        self._on_error = on_error

        self.enabled = True
        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._closed = False
        self._attempt_id = 0
        self._token: Optional[CancellationToken] = None
        self._timer: Optional[threading.Timer] = None
        self._target = ""
        self._latest_partial = ""

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> PracticeMode:
        return self._mode

    @mode.setter
    def mode(self, mode: PracticeMode) -> None:
        with self._lock:
            if self._state != SessionState.IDLE:
                raise RuntimeError("mode can only change between attempts")
            self._mode = mode

    @property
    def attempt_id(self) -> int:
        return self._attempt_id

    @property
    def is_active(self) -> bool:
        return self.enabled and not self._closed

    def start(self, target: str) -> bool:
        """Begin listening for ``target``; returns False when the call is ignored."""
        outcome: Optional[RecordingOutcome] = None
        with self._lock:
            if self._state != SessionState.IDLE:
                logger.debug("start ignored while %s", self._state.value)
                return False
            if not self.is_active or not target or not target.strip():
                return False
            self._attempt_id += 1
            token = CancellationToken()
            self._token = token
            self._target = target
            self._latest_partial = ""
            self._transition(SessionState.LISTENING)
            self._start_monitor()

            if self._provider is None:
                outcome = self._begin_fallback(token, PROVIDER_UNAVAILABLE, "no transcription provider")
            else:
                config = ListenConfig.for_mode(self._mode, self._locale)
                try:
                    self._provider.start_listening(
                        config, lambda event: self._handle_event(token, event)
                    )
                except Exception as exc:
                    outcome = self._begin_fallback(token, PROVIDER_ERROR, f"start failed: {exc}")
                else:
                    # The provider may already have finished or failed the attempt
                    # from inside start_listening.
                    if (
                        token is self._token
                        and not token.cancelled
                        and self._state == SessionState.LISTENING
                    ):
                        timeout = self._listen_timeout_s or DEFAULT_LISTEN_TIMEOUTS_S[self._mode]
                        self._start_timer(token, timeout, self._on_listen_timeout)
        if outcome is not None:
            self._finish(outcome)
        return True

    def stop(self) -> None:
        """Finalize now with whatever transcript is available."""
        with self._lock:
            if self._state not in (SessionState.LISTENING, SessionState.FINALIZING):
                return
            token = self._token
            if token is None or not self._claim(token):
                return
            outcome = Transcribed(self._normalize(self._latest_partial), TranscriptSource.INTERRUPTED)
        self._finish(outcome)

    def close(self) -> None:
        """Destroy the session, releasing the microphone and any pending timer."""
        outcome: Optional[RecordingOutcome] = None
        with self._lock:
            self._closed = True
            self._cancel_timer()
            token = self._token
            if token is not None and self._claim(token):
                outcome = Failed(SESSION_CLOSED, message_for(SESSION_CLOSED))
        if outcome is not None:
            self._finish(outcome)
        else:
            self._teardown()

    def __enter__(self) -> "RecordingSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Event sources
    # ------------------------------------------------------------------

    def _handle_event(self, token: CancellationToken, event: RecognitionEvent) -> None:
        outcome: Optional[RecordingOutcome] = None
        partial: Optional[str] = None
        with self._lock:
            if token.cancelled or token is not self._token:
                logger.debug("Discarding late %s event", event.kind)
                return
            kind = event.kind
            if kind == RecognitionKind.PARTIAL.value:
                if self._state != SessionState.LISTENING:
                    return
                self._latest_partial = event.text
                partial = event.text
            elif kind == RecognitionKind.FINAL.value:
                if self._claim(token):
                    outcome = Transcribed(self._normalize(event.text), TranscriptSource.RECOGNIZED)
            elif kind == RecognitionKind.ERROR.value:
                if self._state != SessionState.LISTENING:
                    return
                outcome = self._begin_fallback(token, event.code or PROVIDER_ERROR, event.message)
        if partial is not None and self._on_partial:
            self._on_partial(partial)
        if outcome is not None:
            self._finish(outcome)

    def _on_fallback_timer(self, token: CancellationToken) -> None:
        with self._lock:
            if token is not self._token or not self._claim(token):
                return
            text = self._fallback_policy.transcript_for(self._mode, self._target)
            outcome = Transcribed(text, TranscriptSource.FALLBACK)
        self._finish(outcome)

    def _on_listen_timeout(self, token: CancellationToken) -> None:
        with self._lock:
            if token is not self._token or self._state != SessionState.LISTENING:
                return
            if not self._claim(token):
                return
            text = self._normalize(self._latest_partial)
            if text:
                outcome: RecordingOutcome = Transcribed(text, TranscriptSource.RECOGNIZED)
            else:
                outcome = Failed(LISTEN_TIMEOUT, message_for(LISTEN_TIMEOUT))
        self._finish(outcome)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _begin_fallback(
        self, token: CancellationToken, code: str, message: str
    ) -> Optional[RecordingOutcome]:
        self._cancel_timer()
        self._transition(SessionState.FINALIZING)
        self._emit_error(code, message or message_for(code))
        if not self._allow_fallback:
            if self._claim(token):
                return Failed(code, message or message_for(code))
            return None
        delay = self._fallback_policy.delay_for(self._mode)
        logger.warning("Transcription unavailable (%s: %s); fallback in %.1fs", code, message, delay)
        self._start_timer(token, delay, self._on_fallback_timer)
        return None

    def _claim(self, token: CancellationToken) -> bool:
        if not token.cancel():
            return False
        self._cancel_timer()
        self._transition(SessionState.FINALIZING)
        return True

    def _finish(self, outcome: RecordingOutcome) -> None:
        self._teardown()
        with self._lock:
            if isinstance(outcome, Failed):
                self._transition(SessionState.ERROR)
            self._token = None
            self._transition(SessionState.IDLE)
        logger.info("Attempt %d finished: %s", self._attempt_id, outcome)
        if self._on_result:
            self._on_result(outcome)

    def _start_monitor(self) -> None:
        if self._monitor is None or self._microphone_factory is None:
            return
        try:
            stream = self._microphone_factory()
        except Exception as exc:
            logger.warning("Microphone unavailable: %s", exc)
            self._emit_error(MICROPHONE_DENIED, str(exc))
            return
        self._monitor.start(stream)

    def _teardown(self) -> None:
        if self._provider is not None:
            try:
                self._provider.stop()
            except Exception:
                logger.exception("Failed to stop transcription provider")
        if self._monitor is not None:
            try:
                self._monitor.stop()
            except Exception:
                logger.exception("Failed to stop level monitor")

    def _start_timer(
        self,
        token: CancellationToken,
        delay_s: float,
        callback: Callable[[CancellationToken], None],
    ) -> None:
        self._cancel_timer()
        timer = threading.Timer(delay_s, callback, args=(token,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _normalize(self, text: str) -> str:
        text = text.strip()
        if self._mode == PracticeMode.WORD:
            return text.lower()
        return text

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("Recording %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
