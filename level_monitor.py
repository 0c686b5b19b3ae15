"""Live microphone loudness for the recording indicator.

The monitor owns its own capture stream, drains it on a fixed tick (about
60 Hz) and reports a loudness value in ``[0, 1]``. Loudness follows the Web
Audio ``AnalyserNode`` convention: the magnitude spectrum of the most recent
block is mapped from decibels onto bytes and averaged, then divided by the
largest byte value.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Queue
from typing import Callable, Optional

import numpy as np

from errors import MICROPHONE_DENIED
from interfaces import Recorder
from models import AudioFrame

logger = logging.getLogger(__name__)

LevelCallback = Callable[[float], None]
ErrorCallback = Callable[[str, str], None]

MAX_BYTE = 255.0


def frequency_bytes(
    samples: np.ndarray,
    fft_size: int = 2048,
    min_db: float = -100.0,
    max_db: float = -30.0,
) -> np.ndarray:
    """Return ``fft_size // 2`` magnitude bins scaled to ``0..255``."""
    x = np.asarray(samples, dtype=np.float32).reshape(-1) / 32768.0
    if x.size < fft_size:
        x = np.pad(x, (fft_size - x.size, 0))
    else:
        x = x[-fft_size:]
    spectrum = np.fft.rfft(x * np.blackman(fft_size))[: fft_size // 2]
    magnitude = np.abs(spectrum) / fft_size
    db = 20.0 * np.log10(np.maximum(magnitude, 1e-12))
    scaled = MAX_BYTE * (db - min_db) / (max_db - min_db)
    return np.clip(scaled, 0.0, MAX_BYTE).astype(np.uint8)


def loudness(samples: np.ndarray, fft_size: int = 2048) -> float:
    bins = frequency_bytes(samples, fft_size=fft_size)
    if bins.size == 0:
        return 0.0
    return float(bins.mean()) / MAX_BYTE


def frame_samples(frame: AudioFrame) -> np.ndarray:
    samples = np.frombuffer(frame.pcm16_bytes, dtype=np.int16)
    if frame.channels > 1:
        usable = samples.size - samples.size % frame.channels
        samples = samples[:usable].reshape(-1, frame.channels).mean(axis=1)
    return samples


class AudioLevelMonitor:
    def __init__(
        self,
        on_level: Optional[LevelCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        rate_hz: float = 60.0,
        fft_size: int = 2048,
        queue_maxsize: int = 32,
    ) -> None:
        self._on_level = on_level
        self._on_error = on_error
        self._interval_s = 1.0 / rate_hz
        self._fft_size = fft_size
        self._queue_maxsize = queue_maxsize

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stream: Optional[Recorder] = None
        self._queue: Optional[Queue[AudioFrame | None]] = None
        self._history = np.zeros(0, dtype=np.float32)
        self._level = 0.0

    @property
    def level(self) -> float:
        return self._level

    @property
    def active(self) -> bool:
        return self._stream is not None

    def start(self, stream: Recorder) -> None:
        with self._lock:
            if self._stream is not None:
                return
            audio_queue: Queue[AudioFrame | None] = Queue(maxsize=self._queue_maxsize)
            try:
                stream.start(audio_queue)
            except Exception as exc:
                logger.warning("Microphone unavailable, loudness stays flat: %s", exc)
                self._emit_error(MICROPHONE_DENIED, str(exc))
                return
            self._stream = stream
            self._queue = audio_queue
            self._history = np.zeros(0, dtype=np.float32)
            self._level = 0.0
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name="level-monitor", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        """Cancel the sampling loop and release the capture stream."""
        with self._lock:
            thread, self._thread = self._thread, None
            self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._release()

    def __enter__(self) -> "AudioLevelMonitor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def sample_once(self) -> bool:
        """Drain pending audio and emit one loudness sample.

        Returns False once the stream has signalled its end.
        """
        audio_queue = self._queue
        if audio_queue is None:
            return False
        ended = False
        while True:
            try:
                frame = audio_queue.get_nowait()
            except Empty:
                break
            if frame is None:
                ended = True
                break
            self._append(frame_samples(frame))
        if self._history.size:
            self._level = loudness(self._history, fft_size=self._fft_size)
        if self._on_level:
            self._on_level(self._level)
        return not ended

    def _append(self, samples: np.ndarray) -> None:
        joined = np.concatenate([self._history, samples.astype(np.float32)])
        self._history = joined[-self._fft_size :]

    def _run(self) -> None:
        try:
            while not self._stop_event.wait(self._interval_s):
                if not self.sample_once():
                    break
        except Exception:
            logger.exception("Loudness sampling failed")
        finally:
            self._release()

    def _release(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
            self._queue = None
        if stream is None:
            return
        self._level = 0.0
        try:
            stream.stop()
        except Exception:
            logger.exception("Failed to release microphone")
        if self._on_level:
            try:
                self._on_level(0.0)
            except Exception:
                logger.exception("Level callback failed on release")

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)
