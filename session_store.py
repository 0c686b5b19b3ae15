"""JSON file store for finished practice sessions."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from models import utc_now

logger = logging.getLogger(__name__)


class JsonSessionStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".local" / "share" / "speech_practice" / "sessions.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def save(self, record: dict) -> dict:
        sessions = self._read_all()
        saved = dict(record)
        saved["id"] = max((int(item.get("id", 0)) for item in sessions), default=0) + 1
        saved.setdefault("timestamp", utc_now().isoformat())
        sessions.append(saved)
        self._write_all(sessions)
        logger.info("Saved practice session %d (score=%s)", saved["id"], saved.get("score"))
        return saved

    def get_all(self) -> list[dict]:
        return self._read_all()

    def get_recent(self, limit: int = 10) -> list[dict]:
        sessions = sorted(self._read_all(), key=lambda item: item.get("timestamp", ""), reverse=True)
        return sessions[:limit]

    def _read_all(self) -> list[dict]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            logger.warning("Session history at %s is unreadable; starting empty", self._path)
            return []
        return data if isinstance(data, list) else []

    def _write_all(self, sessions: list[dict]) -> None:
        self._path.write_text(json.dumps(sessions, ensure_ascii=False, indent=2), encoding="utf-8")
