"""Word and sentence lists keyed by grade level and category."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from interfaces import TargetSource
from models import PracticeMode, TargetList

logger = logging.getLogger(__name__)

BUILTIN_LISTS = (
    TargetList(1, 1, "Animals", PracticeMode.WORD, ("cat", "dog", "pig", "hen", "cow", "fox")),
    TargetList(2, 1, "Colors", PracticeMode.WORD, ("red", "blue", "green", "pink", "black")),
    TargetList(3, 2, "Nature", PracticeMode.WORD, ("tree", "river", "cloud", "stone", "flower")),
    TargetList(4, 2, "Home", PracticeMode.WORD, ("table", "chair", "window", "kitchen", "pillow")),
    TargetList(5, 3, "Science", PracticeMode.WORD, ("planet", "magnet", "energy", "fossil", "orbit")),
    TargetList(
        6,
        1,
        "Simple Sentences",
        PracticeMode.SENTENCE,
        ("The cat sat on the mat.", "I can see a red ball.", "The dog runs fast."),
    ),
    TargetList(
        7,
        2,
        "Everyday Sentences",
        PracticeMode.SENTENCE,
        ("We went to the park today.", "Can you help me find my book?", "The sun is very bright!"),
    ),
    TargetList(
        8,
        3,
        "Longer Sentences",
        PracticeMode.SENTENCE,
        (
            "The quick brown fox jumps over the lazy dog.",
            "My family visits the museum every summer.",
            "Plants need water and sunlight to grow.",
        ),
    ),
)


class InMemoryTargetSource:
    def __init__(self, lists: Iterable[TargetList] = BUILTIN_LISTS) -> None:
        self._lists = tuple(lists)

    def get_all(self) -> list[TargetList]:
        return list(self._lists)

    def get_by_grade_level(self, grade_level: int) -> list[TargetList]:
        return [item for item in self._lists if item.grade_level == grade_level]

    def get_by_id(self, list_id: int) -> Optional[TargetList]:
        return next((item for item in self._lists if item.id == list_id), None)


class JsonTargetSource(InMemoryTargetSource):
    """Load lists from a JSON array of ``{id, gradeLevel, category, mode, items}``.

    ``words`` or ``sentences`` may be used instead of ``items``; they also
    imply the mode when ``mode`` is absent.
    """

    def __init__(self, path: Path) -> None:
        super().__init__(self._load(path))

    @staticmethod
    def _load(path: Path) -> list[TargetList]:
        data = json.loads(path.read_text(encoding="utf-8"))
        lists = []
        for index, entry in enumerate(data, start=1):
            if "sentences" in entry:
                items, default_mode = entry["sentences"], PracticeMode.SENTENCE.value
            else:
                items, default_mode = entry.get("items", entry.get("words", [])), PracticeMode.WORD.value
            lists.append(
                TargetList(
                    id=int(entry.get("id", entry.get("Id", index))),
                    grade_level=int(entry["gradeLevel"]),
                    category=str(entry.get("category", "")),
                    mode=PracticeMode(entry.get("mode", default_mode)),
                    items=tuple(str(item) for item in items),
                )
            )
        logger.debug("Loaded %d target lists from %s", len(lists), path)
        return lists


class TargetCursor:
    """Walks the lists of one grade and mode; ``advance`` wraps around."""

    def __init__(self, lists: Iterable[TargetList]) -> None:
        self._lists = [item for item in lists if item.items]
        self._list: Optional[TargetList] = self._lists[0] if self._lists else None
        self._index = 0

    @classmethod
    def for_grade(
        cls, source: TargetSource, grade_level: int, mode: PracticeMode
    ) -> "TargetCursor":
        return cls(item for item in source.get_by_grade_level(grade_level) if item.mode == mode)

    @property
    def lists(self) -> list[TargetList]:
        return list(self._lists)

    @property
    def current_list(self) -> Optional[TargetList]:
        return self._list

    @property
    def current(self) -> Optional[str]:
        if self._list is None:
            return None
        return self._list.items[self._index]

    @property
    def position(self) -> tuple[int, int]:
        """One-based index of the current item and the list length."""
        if self._list is None:
            return 0, 0
        return self._index + 1, len(self._list.items)

    def advance(self) -> Optional[str]:
        if self._list is None:
            return None
        self._index = (self._index + 1) % len(self._list.items)
        return self.current

    def select_list(self, list_id: int) -> bool:
        for item in self._lists:
            if item.id == list_id:
                self._list = item
                self._index = 0
                return True
        return False
