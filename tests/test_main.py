from __future__ import annotations

import time
from pathlib import Path

import pytest

import main
from config import JsonConfigStore
from main import ConsoleApp, build_parser, format_attempt, format_units
from models import PracticeMode, SessionState, SessionSummary
from practice import score_attempt
from session_store import JsonSessionStore


class FakeMicrophone:
    def start(self, audio_queue) -> None:  # noqa: ANN001
        self.queue = audio_queue

    def stop(self) -> None:
        pass


def _wait_until(predicate, timeout: float = 2.0) -> bool:  # noqa: ANN001
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_format_units_marks_each_letter() -> None:
    attempt = score_attempt("cat", "ca", PracticeMode.WORD)
    assert format_units(attempt) == "c[+] a[+] ?[_]"


def test_format_word_attempt() -> None:
    attempt = score_attempt("cat", "cot", PracticeMode.WORD, fallback=True)
    summary = SessionSummary(
        mode=PracticeMode.WORD, grade_level=1, attempts=(attempt,), running_score=0, stars_earned=0
    )
    text = format_attempt(attempt, summary)

    assert text.startswith("Good try!")
    assert "You said: cot" in text
    assert "sample transcript" in text
    assert "o[x]" in text
    assert "stars ....." in text


def test_format_sentence_attempt_shows_score() -> None:
    attempt = score_attempt("The dog runs.", "The dog runs.", PracticeMode.SENTENCE)
    summary = SessionSummary(
        mode=PracticeMode.SENTENCE, grade_level=1, attempts=(attempt,), running_score=100, stars_earned=5
    )
    text = format_attempt(attempt, summary)

    assert text.startswith("Perfect!")
    assert "Overall score: 100%" in text
    assert "Letter by letter" not in text
    assert "stars *****" in text


def test_parser_defaults_and_flags() -> None:
    parser = build_parser()

    args = parser.parse_args([])
    assert args.grade is None
    assert args.mode is None
    assert args.strict is False

    args = parser.parse_args(
        ["--grade", "2", "--mode", "sentence", "--targets", "lists.json", "--strict", "--no-recognizer", "-v"]
    )
    assert args.grade == 2
    assert args.mode == "sentence"
    assert args.targets == Path("lists.json")
    assert args.strict is True
    assert args.no_recognizer is True
    assert args.verbose is True


def test_parser_rejects_unknown_mode() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--mode", "paragraph"])


def _console_app(tmp_path: Path, monkeypatch) -> ConsoleApp:  # noqa: ANN001
    monkeypatch.setattr(main, "JsonConfigStore", lambda: JsonConfigStore(path=tmp_path / "config.json"))
    monkeypatch.setattr(main, "JsonSessionStore", lambda: JsonSessionStore(tmp_path / "sessions.json"))
    monkeypatch.setattr(main, "SoundDeviceRecorder", FakeMicrophone)
    return ConsoleApp(build_parser().parse_args(["--no-recognizer"]))


def test_hotkey_press_toggles_recording(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    app = _console_app(tmp_path, monkeypatch)
    session = app.controller.session

    app._toggle_recording()
    assert session.state != SessionState.IDLE

    app._toggle_recording()
    assert _wait_until(lambda: session.state == SessionState.IDLE)
    assert app.controller.summary.attempts == ()
    app.controller.finish()
