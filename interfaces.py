"""Protocol interfaces used by RecordingSession and PracticeController."""

from __future__ import annotations

from queue import Queue
from typing import Callable, Protocol

from models import AudioFrame, ListenConfig, RecognitionEvent, TargetList


class Recorder(Protocol):
    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...


class TranscriptionProvider(Protocol):
    def start_listening(
        self,
        config: ListenConfig,
        on_event: Callable[[RecognitionEvent], None],
    ) -> None: ...

    def stop(self) -> None: ...


class LevelMonitor(Protocol):
    def start(self, stream: Recorder) -> None: ...

    def stop(self) -> None: ...


class SessionStore(Protocol):
    def save(self, record: dict) -> dict: ...


class TargetSource(Protocol):
    def get_by_grade_level(self, grade_level: int) -> list[TargetList]: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_locale(self) -> str: ...

    def get_strict_mode(self) -> bool: ...

    def get_grade_level(self) -> int: ...

    def get_practice_mode(self) -> str: ...
