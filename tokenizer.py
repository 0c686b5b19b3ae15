"""Locale-naive word tokenizer shared by comparison and sentence analysis."""

from __future__ import annotations

import re
from typing import List

# Words are runs of letters/digits; an inner apostrophe keeps contractions whole.
WORD_RE = re.compile(r"\w+(?:['’]\w+)*", flags=re.UNICODE)
TERMINAL_PUNCTUATION_RE = re.compile(r"[.!?]$")


def tokenize(text: str) -> List[str]:
    """Case-folded word tokens with surrounding punctuation stripped."""
    return [tok.replace("’", "'") for tok in WORD_RE.findall(text.casefold())]


def has_terminal_punctuation(text: str) -> bool:
    return bool(TERMINAL_PUNCTUATION_RE.search(text.strip()))
