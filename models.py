"""Core data models for the practice engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


class SessionState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    FINALIZING = "FINALIZING"
    ERROR = "ERROR"


class PracticeMode(str, Enum):
    WORD = "word"
    SENTENCE = "sentence"


class UnitStatus(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    EXTRA = "extra"
    MISSING = "missing"


class RecognitionKind(str, Enum):
    PARTIAL = "partial"
    FINAL = "final"
    ERROR = "error"


class TranscriptSource(str, Enum):
    RECOGNIZED = "recognized"
    FALLBACK = "fallback"
    INTERRUPTED = "interrupted"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""
    retryable: bool = False

    @property
    def is_final(self) -> bool:
        return self.kind == RecognitionKind.FINAL.value


@dataclass(frozen=True)
class ListenConfig:
    continuous: bool = False
    interim_results: bool = False
    locale: str = "en-US"

    @classmethod
    def for_mode(cls, mode: PracticeMode, locale: str = "en-US") -> "ListenConfig":
        sentence = mode == PracticeMode.SENTENCE
        return cls(continuous=sentence, interim_results=sentence, locale=locale)


@dataclass(frozen=True)
class Unit:
    index: int
    expected: str
    actual: str
    status: UnitStatus


@dataclass(frozen=True)
class ComparisonResult:
    units: tuple[Unit, ...]
    is_correct: bool

    def count(self, status: UnitStatus) -> int:
        return sum(1 for unit in self.units if unit.status == status)


@dataclass(frozen=True)
class ScoreBreakdown:
    overall_score: int
    spelling_score: int
    punctuation_score: int
    length_score: int
    feedback: str
    fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "overallScore": self.overall_score,
            "spellingScore": self.spelling_score,
            "punctuationScore": self.punctuation_score,
            "lengthScore": self.length_score,
            "feedback": self.feedback,
        }


@dataclass(frozen=True)
class Attempt:
    target: str
    transcript: str
    mode: PracticeMode
    units: tuple[Unit, ...]
    is_correct: bool
    score_breakdown: Optional[ScoreBreakdown] = None
    fallback: bool = False
    timestamp: datetime = field(default_factory=utc_now)

    def to_record(self) -> dict:
        record = {
            "type": self.mode.value,
            "isCorrect": self.is_correct,
            "fallback": self.fallback,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.mode == PracticeMode.WORD:
            record["targetWord"] = self.target
            record["transcribedWord"] = self.transcript
        else:
            record["targetSentence"] = self.target
            record["transcribedSentence"] = self.transcript
            if self.score_breakdown is not None:
                record["grammarAnalysis"] = self.score_breakdown.to_dict()
        return record


@dataclass(frozen=True)
class SessionSummary:
    mode: PracticeMode
    grade_level: int
    attempts: tuple[Attempt, ...] = ()
    running_score: int = 0
    stars_earned: int = 0
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def correct_count(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.is_correct)

    @property
    def closed(self) -> bool:
        return self.finished_at is not None

    def to_record(self) -> dict:
        attempts = [attempt.to_record() for attempt in self.attempts]
        word_mode = self.mode == PracticeMode.WORD
        end = self.finished_at or utc_now()
        return {
            "practiceMode": self.mode.value,
            "gradeLevel": self.grade_level,
            "wordAttempts": attempts if word_mode else [],
            "sentenceAttempts": [] if word_mode else attempts,
            "score": self.running_score,
            "starsEarned": self.stars_earned,
            "attemptCount": len(self.attempts),
            "correctCount": self.correct_count,
            "startedAt": self.started_at.isoformat(),
            "finishedAt": end.isoformat(),
            "duration": int((end - self.started_at).total_seconds()),
        }


@dataclass(frozen=True)
class Transcribed:
    text: str
    source: TranscriptSource = TranscriptSource.RECOGNIZED

    @property
    def is_fallback(self) -> bool:
        return self.source == TranscriptSource.FALLBACK


@dataclass(frozen=True)
class Failed:
    reason: str
    message: str = ""


RecordingOutcome = Union[Transcribed, Failed]


@dataclass(frozen=True)
class TargetList:
    id: int
    grade_level: int
    category: str
    mode: PracticeMode
    items: tuple[str, ...]
