"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

from models import PracticeMode


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "speech_practice" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        return str(self._read_all().get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        return str(self._read_all().get("hotkey", "Key.alt_l"))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_locale(self) -> str:
        return str(self._read_all().get("locale", "en-US"))

    def set_locale(self, locale: str) -> None:
        self._set("locale", locale)

    def get_strict_mode(self) -> bool:
        return bool(self._read_all().get("strict_mode", False))

    def set_strict_mode(self, strict: bool) -> None:
        self._set("strict_mode", bool(strict))

    def get_grade_level(self) -> int:
        try:
            return int(self._read_all().get("grade_level", 1))
        except (TypeError, ValueError):
            return 1

    def set_grade_level(self, grade_level: int) -> None:
        self._set("grade_level", int(grade_level))

    def get_practice_mode(self) -> str:
        value = str(self._read_all().get("practice_mode", PracticeMode.WORD.value))
        if value not in {mode.value for mode in PracticeMode}:
            return PracticeMode.WORD.value
        return value

    def set_practice_mode(self, mode: str) -> None:
        self._set("practice_mode", PracticeMode(mode).value)

    def _set(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
