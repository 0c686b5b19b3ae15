"""Global record and navigation keys based on pynput."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)

Action = Callable[[], None]


class GlobalHotkeyAdapter:
    """Report presses and releases of ``hotkey_name`` plus taps of the next/quit keys.

    Key repeat is suppressed: ``on_press`` fires once until the key is released.

    Key names use pynput's ``str(key)`` form, e.g. ``Key.alt_l`` or ``'n'``.
    """

    def __init__(
        self,
        hotkey_name: str = "Key.alt_l",
        next_key_name: str = "Key.right",
        quit_key_name: str = "Key.esc",
    ) -> None:
        self._hotkey_name = hotkey_name
        self._next_key_name = next_key_name
        self._quit_key_name = quit_key_name
        self._listener: Optional[object] = None
        self._pressed = False
        self._lock = threading.Lock()

    def start(
        self,
        on_press: Action,
        on_release: Action,
        on_next: Optional[Action] = None,
        on_quit: Optional[Action] = None,
    ) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")

        def _on_press(key: object) -> None:
            name = str(key)
            if name == self._next_key_name and on_next:
                on_next()
                return
            if name == self._quit_key_name and on_quit:
                on_quit()
                return
            if name != self._hotkey_name:
                return
            with self._lock:
                if self._pressed:
                    return
                self._pressed = True
            on_press()

        def _on_release(key: object) -> None:
            if str(key) != self._hotkey_name:
                return
            with self._lock:
                if not self._pressed:
                    return
                self._pressed = False
            on_release()

        self._listener = keyboard.Listener(on_press=_on_press, on_release=_on_release)
        self._listener.start()
        logger.debug(
            "Listening for %s (next=%s, quit=%s)",
            self._hotkey_name,
            self._next_key_name,
            self._quit_key_name,
        )

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
