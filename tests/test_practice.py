from __future__ import annotations

import threading
from typing import Callable, Optional

from errors import LISTEN_TIMEOUT
from models import Attempt, Failed, PracticeMode, RecognitionEvent, SessionSummary, TargetList
from practice import PracticeController, score_attempt
from recording_session import FallbackPolicy
from targets import TargetCursor

WORDS = TargetList(1, 1, "Animals", PracticeMode.WORD, ("cat", "dog"))
SENTENCES = TargetList(6, 1, "Simple", PracticeMode.SENTENCE, ("The dog runs.",))


class FakeProvider:
    def __init__(self) -> None:
        self.on_event: Optional[Callable[[RecognitionEvent], None]] = None

    def start_listening(self, config, on_event) -> None:  # noqa: ANN001
        self.on_event = on_event

    def stop(self) -> None:
        pass

    def final(self, text: str) -> None:
        assert self.on_event is not None
        self.on_event(RecognitionEvent(kind="final", text=text))


class FakeStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: list[dict] = []

    def save(self, record: dict) -> dict:
        if self.fail:
            raise OSError("disk full")
        self.saved.append(record)
        return record


class AttemptLog:
    def __init__(self) -> None:
        self.items: list[tuple[Attempt, SessionSummary]] = []
        self.done = threading.Event()

    def __call__(self, attempt: Attempt, summary: SessionSummary) -> None:
        self.items.append((attempt, summary))
        self.done.set()


def _controller(provider, lists=(WORDS,), mode=PracticeMode.WORD, **kwargs) -> PracticeController:  # noqa: ANN001, ANN003
    return PracticeController(
        cursor=TargetCursor(lists),
        provider=provider,
        mode=mode,
        fallback_policy=FallbackPolicy(word_delay_s=0.05, sentence_delay_s=0.05),
        **kwargs,
    )


# ---------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------

def test_score_word_attempt() -> None:
    attempt = score_attempt("cat", "cot", PracticeMode.WORD)
    assert attempt.is_correct is False
    assert attempt.score_breakdown is None
    assert len(attempt.units) == 3


def test_score_sentence_attempt_uses_pass_threshold() -> None:
    good = score_attempt("One two three four five.", "One two three four fire.", PracticeMode.SENTENCE)
    assert good.score_breakdown.overall_score == 88
    assert good.is_correct is True

    poor = score_attempt("The dog runs.", "the dog run", PracticeMode.SENTENCE)
    assert poor.is_correct is False


# ---------------------------------------------------------------
# Controller
# ---------------------------------------------------------------

def test_recognized_word_is_scored_and_aggregated() -> None:
    provider = FakeProvider()
    log = AttemptLog()
    controller = _controller(provider, on_attempt=log)

    assert controller.start_attempt() is True
    provider.final("Cat")

    attempt, summary = log.items[0]
    assert attempt.target == "cat"
    assert attempt.transcript == "cat"
    assert attempt.is_correct is True
    assert summary.running_score == 100
    assert summary.stars_earned == 5


def test_sentence_attempt_carries_breakdown() -> None:
    provider = FakeProvider()
    log = AttemptLog()
    controller = _controller(provider, lists=(SENTENCES,), mode=PracticeMode.SENTENCE, on_attempt=log)

    controller.start_attempt()
    provider.final("the dog run")

    attempt, summary = log.items[0]
    assert attempt.score_breakdown.overall_score == 70
    assert attempt.is_correct is False
    assert summary.running_score == 0


def test_fallback_transcript_is_flagged() -> None:
    log = AttemptLog()
    controller = _controller(None, on_attempt=log)

    controller.start_attempt()

    assert log.done.wait(2.0)
    attempt, _ = log.items[0]
    assert attempt.fallback is True
    assert attempt.is_correct is True


def test_empty_transcript_records_nothing() -> None:
    provider = FakeProvider()
    log = AttemptLog()
    controller = _controller(provider, on_attempt=log)

    controller.start_attempt()
    provider.final("   ")

    assert log.items == []
    assert controller.summary.attempts == ()


def test_failure_is_reported_not_recorded() -> None:
    failures: list[Failed] = []
    done = threading.Event()

    def on_failure(failure: Failed) -> None:
        failures.append(failure)
        done.set()

    controller = _controller(FakeProvider(), on_failure=on_failure, listen_timeout_s=0.05)
    controller.start_attempt()

    assert done.wait(2.0)
    assert failures[0].reason == LISTEN_TIMEOUT
    assert controller.summary.attempts == ()


def test_next_target_and_list_selection() -> None:
    other = TargetList(2, 1, "Colors", PracticeMode.WORD, ("red",))
    controller = _controller(FakeProvider(), lists=(WORDS, other))

    assert controller.current_target == "cat"
    assert controller.next_target() == "dog"
    assert controller.select_list(2) is True
    assert controller.current_target == "red"


def test_navigation_blocked_while_listening() -> None:
    controller = _controller(FakeProvider())
    controller.start_attempt()

    assert controller.next_target() == "cat"
    assert controller.select_list(1) is False
    controller.stop_attempt()


def test_no_targets_disables_recording() -> None:
    controller = _controller(FakeProvider(), lists=())
    assert controller.start_attempt() is False
    assert controller.session.enabled is False


def test_finish_saves_summary() -> None:
    provider = FakeProvider()
    store = FakeStore()
    controller = _controller(provider, store=store)

    controller.start_attempt()
    provider.final("cat")
    controller.next_target()
    controller.start_attempt()
    provider.final("dig")
    summary = controller.finish()

    assert summary.closed is True
    assert len(store.saved) == 1
    assert store.saved[0]["score"] == 50
    assert store.saved[0]["attemptCount"] == 2
    assert controller.start_attempt() is False


def test_finish_without_attempts_skips_store() -> None:
    store = FakeStore()
    _controller(FakeProvider(), store=store).finish()
    assert store.saved == []


def test_store_failure_does_not_raise() -> None:
    provider = FakeProvider()
    controller = _controller(provider, store=FakeStore(fail=True))

    controller.start_attempt()
    provider.final("cat")
    summary = controller.finish()

    assert summary.correct_count == 1
