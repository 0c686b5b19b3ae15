"""Transcription provider using DashScope qwen3-asr-flash.

qwen3-asr-flash accepts a complete clip and streams back recognition text
with ``stream=True``. The provider therefore listens for one utterance: it
collects PCM frames from its own microphone until the speaker falls silent
(or the clip reaches its maximum length), encodes the clip as WAV and feeds
it to the model. Streamed chunks become partial events when interim results
are requested; the last text becomes the final event.
"""

from __future__ import annotations

import base64
import io
import logging
import os
import threading
import wave
from queue import Empty, Queue
from typing import Callable, Optional

import numpy as np

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, NETWORK_ERROR, PROVIDER_UNAVAILABLE
from interfaces import Recorder
from models import AudioFrame, ListenConfig, RecognitionEvent, RecognitionKind
from recorder import SoundDeviceRecorder

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _frame_rms(frame: AudioFrame) -> float:
    samples = np.frombuffer(frame.pcm16_bytes, dtype=np.int16).astype(np.float32)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples * samples)))


def _frame_ms(frame: AudioFrame) -> float:
    n_samples = len(frame.pcm16_bytes) // (2 * max(frame.channels, 1))
    return 1000.0 * n_samples / frame.sample_rate


def language_for(locale: str) -> str:
    return locale.replace("_", "-").split("-")[0].lower() or "en"


class DashscopeTranscriptionProvider:
    def __init__(
        self,
        api_key: str,
        recorder: Optional[Recorder] = None,
        model: str = "qwen3-asr-flash",
        request_timeout_s: float = 10.0,
        speech_rms_threshold: float = 500.0,
        end_silence_ms: float = 800.0,
        continuous_end_silence_ms: float = 1500.0,
        max_utterance_s: float = 15.0,
        queue_maxsize: int = 400,
    ) -> None:
        self._api_key = api_key
        self._recorder = recorder or SoundDeviceRecorder()
        self._model = model
        self._request_timeout_s = request_timeout_s
        self._speech_rms_threshold = speech_rms_threshold
        self._end_silence_ms = end_silence_ms
        self._continuous_end_silence_ms = continuous_end_silence_ms
        self._max_utterance_ms = max_utterance_s * 1000.0
        self._queue_maxsize = queue_maxsize
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._audio_queue: Optional[Queue[AudioFrame | None]] = None
        self._on_event: Optional[Callable[[RecognitionEvent], None]] = None
        self._config = ListenConfig()

    def start_listening(
        self,
        config: ListenConfig,
        on_event: Callable[[RecognitionEvent], None],
    ) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._config = config
        self._on_event = on_event
        self._stop_event.clear()
        self._audio_queue = Queue(maxsize=self._queue_maxsize)
        self._recorder.start(self._audio_queue)
        self._thread = threading.Thread(target=self._worker, name="dashscope-asr", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        self._release_microphone()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=0.5)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _release_microphone(self) -> None:
        try:
            self._recorder.stop()
        except Exception:
            logger.exception("Failed to stop recognizer microphone")

    def _worker(self) -> None:
        """Collect one utterance, then recognise it."""
        if self._audio_queue is None or self._on_event is None:
            return

        utterance = self._collect_utterance(self._audio_queue)
        self._release_microphone()
        if utterance is None or self._stop_event.is_set():
            return

        pcm, sample_rate, channels = utterance
        if not pcm:
            self._on_event(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=""))
            return

        wav_b64 = _pcm_to_wav_base64(pcm, sample_rate, channels)
        self._recognize_stream(wav_b64)

    def _collect_utterance(
        self, audio_queue: Queue[AudioFrame | None]
    ) -> Optional[tuple[bytes, int, int]]:
        """Read frames until end of speech; None when stopped first."""
        end_silence_ms = (
            self._continuous_end_silence_ms if self._config.continuous else self._end_silence_ms
        )
        pcm = bytearray()
        sample_rate = 16000
        channels = 1
        heard_speech = False
        silence_ms = 0.0
        total_ms = 0.0

        while not self._stop_event.is_set():
            try:
                frame = audio_queue.get(timeout=0.2)
            except Empty:
                continue
            if frame is None:  # Sentinel
                break
            sample_rate = frame.sample_rate
            channels = frame.channels
            duration_ms = _frame_ms(frame)
            total_ms += duration_ms
            if _frame_rms(frame) >= self._speech_rms_threshold:
                heard_speech = True
                silence_ms = 0.0
            elif heard_speech:
                silence_ms += duration_ms
            if heard_speech:
                pcm.extend(frame.pcm16_bytes)
            if heard_speech and silence_ms >= end_silence_ms:
                break
            if total_ms >= self._max_utterance_ms:
                break
        else:
            return None

        logger.debug("Utterance collected: %.0f ms, speech=%s", total_ms, heard_speech)
        return bytes(pcm), sample_rate, channels

    def _recognize_stream(self, wav_base64: str) -> None:
        """Send the clip to DashScope and turn streamed chunks into events."""
        if self._on_event is None:
            return
        if dashscope is None:
            self._on_event(_error_event(PROVIDER_UNAVAILABLE, "dashscope is not installed"))
            return
        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            self._on_event(_error_event(AUTH_FAILED, "No API key configured"))
            return

        latest_text = ""
        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key, **self._request(wav_base64)
            )
            for chunk in response:
                if self._stop_event.is_set():
                    return
                text = chunk_text(chunk)
                if not text:
                    continue
                latest_text = text
                if self._config.interim_results:
                    self._on_event(RecognitionEvent(kind=RecognitionKind.PARTIAL.value, text=text))
        except Exception as exc:
            code, retryable = classify_failure(exc)
            logger.warning("Recognition failed (%s): %s", code, exc)
            self._on_event(_error_event(code, str(exc), retryable))
            return

        if not self._stop_event.is_set():
            self._on_event(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=latest_text))

    def _request(self, wav_base64: str) -> dict:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": [{"text": ""}]},
                {"role": "user", "content": [{"audio": f"data:audio/wav;base64,{wav_base64}"}]},
            ],
            "result_format": "message",
            "asr_options": {"enable_itn": False, "language": language_for(self._config.locale)},
            "stream": True,
            "timeout": self._request_timeout_s,
        }


# (code, retryable, lower-case markers in the exception text), first match wins
_FAILURE_MARKERS = (
    (AUTH_FAILED, False, ("401", "auth", "api key")),
    (NETWORK_ERROR, True, ("timeout", "network", "connection")),
)


def classify_failure(exc: Exception) -> tuple[str, bool]:
    """Map an SDK or network exception to an error code and retry hint."""
    text = str(exc).lower()
    for code, retryable, markers in _FAILURE_MARKERS:
        if any(marker in text for marker in markers):
            return code, retryable
    return ASR_PROTOCOL_ERROR, True


def chunk_text(chunk: object) -> str:
    """Text of one streamed ``result_format="message"`` chunk, or ``""``."""
    try:
        content = chunk["output"]["choices"][0]["message"]["content"]  # type: ignore[index]
        return str(content[0].get("text", "")) if content else ""
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""


def _error_event(code: str, message: str, retryable: bool = False) -> RecognitionEvent:
    return RecognitionEvent(
        kind=RecognitionKind.ERROR.value, code=code, message=message, retryable=retryable
    )
