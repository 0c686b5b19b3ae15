from __future__ import annotations

from pathlib import Path

from session_store import JsonSessionStore


def test_save_assigns_increasing_ids(tmp_path: Path) -> None:
    store = JsonSessionStore(tmp_path / "sessions.json")

    first = store.save({"score": 60})
    second = store.save({"score": 80})

    assert first["id"] == 1
    assert second["id"] == 2
    assert "timestamp" in first
    assert [item["score"] for item in store.get_all()] == [60, 80]


def test_recent_sessions_are_newest_first(tmp_path: Path) -> None:
    store = JsonSessionStore(tmp_path / "sessions.json")
    store.save({"score": 1, "timestamp": "2024-01-01T00:00:00+00:00"})
    store.save({"score": 3, "timestamp": "2024-03-01T00:00:00+00:00"})
    store.save({"score": 2, "timestamp": "2024-02-01T00:00:00+00:00"})

    recent = store.get_recent(limit=2)

    assert [item["score"] for item in recent] == [3, 2]


def test_corrupt_history_reads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "sessions.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonSessionStore(path)

    assert store.get_all() == []
    assert store.save({"score": 50})["id"] == 1


def test_creates_parent_directory(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "dir" / "sessions.json"
    JsonSessionStore(path).save({"score": 10})
    assert path.exists()
