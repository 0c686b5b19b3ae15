"""Positional unit-by-unit comparison of a target and a transcript.

Units are letters in word mode and tokens in sentence mode. Alignment is by
index only: an inserted or dropped unit shifts every later position, which
then reads as incorrect.
"""

from __future__ import annotations

from typing import List

from models import ComparisonResult, PracticeMode, Unit, UnitStatus
from tokenizer import tokenize


def split_units(text: str, mode: PracticeMode) -> List[str]:
    if mode == PracticeMode.SENTENCE:
        return tokenize(text)
    return list(text.strip().lower())


def classify(expected: str, actual: str) -> UnitStatus:
    if expected and actual:
        return UnitStatus.CORRECT if expected == actual else UnitStatus.INCORRECT
    if expected:
        return UnitStatus.MISSING
    return UnitStatus.EXTRA


def compare(
    target: str,
    transcript: str,
    mode: PracticeMode = PracticeMode.WORD,
) -> ComparisonResult:
    expected = split_units(target, mode)
    actual = split_units(transcript, mode)
    units = []
    for index in range(max(len(expected), len(actual))):
        exp = expected[index] if index < len(expected) else ""
        act = actual[index] if index < len(actual) else ""
        units.append(Unit(index=index, expected=exp, actual=act, status=classify(exp, act)))

    if mode == PracticeMode.WORD:
        is_correct = target.strip().lower() == transcript.strip().lower()
    else:
        is_correct = bool(units) and all(unit.status == UnitStatus.CORRECT for unit in units)
    return ComparisonResult(units=tuple(units), is_correct=is_correct)
