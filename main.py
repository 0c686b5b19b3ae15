"""Application entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from config import JsonConfigStore
from errors import message_for
from hotkey import GlobalHotkeyAdapter
from level_monitor import AudioLevelMonitor
from models import Attempt, Failed, PracticeMode, SessionState, SessionSummary, UnitStatus
from practice import PracticeController
from recognizer import DashscopeTranscriptionProvider
from recorder import SoundDeviceRecorder
from session_store import JsonSessionStore
from targets import InMemoryTargetSource, JsonTargetSource, TargetCursor

logger = logging.getLogger(__name__)

UNIT_MARKS = {
    UnitStatus.CORRECT: "+",
    UnitStatus.INCORRECT: "x",
    UnitStatus.EXTRA: "^",
    UnitStatus.MISSING: "_",
}
LEVEL_BAR_WIDTH = 30


def format_units(attempt: Attempt) -> str:
    cells = []
    for unit in attempt.units:
        shown = unit.actual or "?"
        cells.append(f"{shown}[{UNIT_MARKS[unit.status]}]")
    return " ".join(cells)


def format_attempt(attempt: Attempt, summary: SessionSummary) -> str:
    verdict = "Perfect! Well done!" if attempt.is_correct else "Good try! Keep practicing!"
    lines = [verdict, f"  You said: {attempt.transcript}"]
    if attempt.fallback:
        lines.append("  (live recognition unavailable, sample transcript used)")
    if attempt.score_breakdown is not None:
        breakdown = attempt.score_breakdown
        lines.append(f"  Overall score: {breakdown.overall_score}%")
        lines.append(f"  Tips: {breakdown.feedback}")
    else:
        lines.append(f"  Letter by letter: {format_units(attempt)}")
    stars = "*" * summary.stars_earned + "." * (5 - summary.stars_earned)
    lines.append(
        f"  Tried {len(summary.attempts)}, correct {summary.correct_count}, "
        f"accuracy {summary.running_score}%, stars {stars}"
    )
    return "\n".join(lines)


class ConsoleApp:
    def __init__(self, args: argparse.Namespace) -> None:
        self.config_store = JsonConfigStore()
        grade_level = args.grade or self.config_store.get_grade_level()
        mode = PracticeMode(args.mode or self.config_store.get_practice_mode())
        source = JsonTargetSource(args.targets) if args.targets else InMemoryTargetSource()

        provider: Optional[DashscopeTranscriptionProvider] = None
        if not args.no_recognizer:
            provider = DashscopeTranscriptionProvider(api_key=self.config_store.get_api_key())

        self._output_lock = threading.Lock()
        self._quit = threading.Event()
        self.controller = PracticeController(
            cursor=TargetCursor.for_grade(source, grade_level, mode),
            provider=provider,
            monitor=AudioLevelMonitor(on_level=self._on_level),
            microphone_factory=SoundDeviceRecorder,
            mode=mode,
            grade_level=grade_level,
            locale=self.config_store.get_locale(),
            allow_fallback=not (args.strict or self.config_store.get_strict_mode()),
            store=JsonSessionStore(),
            on_attempt=self._on_attempt,
            on_failure=self._on_failure,
            on_state_change=self._on_state_change,
            on_partial=self._on_partial,
            on_error=self._on_error,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads)
    # ------------------------------------------------------------------

    def _print(self, text: str) -> None:
        with self._output_lock:
            sys.stdout.write("\r" + " " * (LEVEL_BAR_WIDTH + 12) + "\r" + text + "\n")
            sys.stdout.flush()

    def _on_level(self, level: float) -> None:
        if self.controller.session.state != SessionState.LISTENING:
            return
        filled = int(round(level * LEVEL_BAR_WIDTH))
        with self._output_lock:
            sys.stdout.write("\r[" + "#" * filled + " " * (LEVEL_BAR_WIDTH - filled) + "]")
            sys.stdout.flush()

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        if to_state == SessionState.LISTENING:
            self._print("Listening...")

    def _on_partial(self, text: str) -> None:
        self._print(f"  ... {text}")

    def _on_error(self, code: str, message: str) -> None:
        self._print(f"! {message_for(code)} ({message})")

    def _on_attempt(self, attempt: Attempt, summary: SessionSummary) -> None:
        self._print(format_attempt(attempt, summary))
        self._show_prompt()

    def _on_failure(self, failure: Failed) -> None:
        if self._quit.is_set():
            return
        self._print(f"! {failure.message or message_for(failure.reason)}")
        self._show_prompt()

    # ------------------------------------------------------------------
    # Input handlers
    # ------------------------------------------------------------------

    def _toggle_recording(self) -> None:
        if self.controller.session.state == SessionState.IDLE:
            self.controller.start_attempt()
        else:
            threading.Thread(target=self.controller.stop_attempt, daemon=True).start()

    def _next(self) -> None:
        if self.controller.session.state == SessionState.IDLE:
            self.controller.next_target()
            self._show_prompt()

    def _show_prompt(self) -> None:
        target = self.controller.current_target
        if target is None:
            return
        index, total = self.controller.cursor.position
        kind = "word" if self.controller.mode == PracticeMode.WORD else "sentence"
        self._print(f"\nSay this {kind} ({index} of {total}): {target}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        if self.controller.current_target is None:
            self._print("No practice lists for this grade level.")
            return 1
        self._show_prompt()
        try:
            self.hotkey.start(
                on_press=self._toggle_recording,
                on_release=lambda: None,
                on_next=self._next,
                on_quit=self._quit.set,
            )
        except Exception as exc:
            logger.warning("Hotkey disabled: %s", exc)
            self._run_line_mode()
        else:
            self._print("Press the hotkey to record, Right arrow for next, Esc to quit.")
            self._quit.wait()
        finally:
            self._quit.set()
            self.hotkey.stop()
        self._print(self._finish())
        return 0

    def _run_line_mode(self) -> None:
        self._print("Enter: record/stop, n: next, q: quit.")
        for line in sys.stdin:
            command = line.strip().lower()
            if command == "q":
                self._quit.set()
                break
            if command == "n":
                self._next()
            else:
                self._toggle_recording()

    def _finish(self) -> str:
        summary = self.controller.finish()
        if not summary.attempts:
            return "No attempts this time. See you soon!"
        return (
            f"Session finished: {summary.correct_count}/{len(summary.attempts)} correct, "
            f"score {summary.running_score}%, {summary.stars_earned} stars."
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speech-practice",
        description="Say a word or sentence and get scored.",
    )
    parser.add_argument("--grade", type=int, help="grade level of the practice lists")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in PracticeMode],
        help="word or sentence practice",
    )
    parser.add_argument("--targets", type=Path, help="JSON file with practice lists")
    parser.add_argument("--strict", action="store_true", help="never substitute sample transcripts")
    parser.add_argument("--no-recognizer", action="store_true", help="run without live speech recognition")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return ConsoleApp(args).run()


if __name__ == "__main__":
    raise SystemExit(main())
