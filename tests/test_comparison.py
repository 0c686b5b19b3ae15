from __future__ import annotations

from comparison import classify, compare, split_units
from models import PracticeMode, UnitStatus
from tokenizer import has_terminal_punctuation, tokenize


def _statuses(result) -> list[UnitStatus]:  # noqa: ANN001
    return [unit.status for unit in result.units]


# ---------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------

def test_tokenize_strips_punctuation_and_case() -> None:
    assert tokenize("The dog runs.") == ["the", "dog", "runs"]
    assert tokenize("  Hello,   WORLD!! ") == ["hello", "world"]


def test_tokenize_keeps_contractions_whole() -> None:
    assert tokenize("I can’t go, don't wait") == ["i", "can't", "go", "don't", "wait"]


def test_terminal_punctuation() -> None:
    assert has_terminal_punctuation("The dog runs.  ")
    assert has_terminal_punctuation("Stop!")
    assert not has_terminal_punctuation("the dog runs")
    assert not has_terminal_punctuation("")


# ---------------------------------------------------------------
# Word mode
# ---------------------------------------------------------------

def test_single_substitution_marks_one_letter() -> None:
    result = compare("cat", "cot")

    assert _statuses(result) == [UnitStatus.CORRECT, UnitStatus.INCORRECT, UnitStatus.CORRECT]
    assert result.units[1].expected == "a"
    assert result.units[1].actual == "o"
    assert result.is_correct is False


def test_identical_word_is_all_correct() -> None:
    result = compare("elephant", "elephant")

    assert result.is_correct is True
    assert result.count(UnitStatus.CORRECT) == 8
    assert [unit.index for unit in result.units] == list(range(8))


def test_word_comparison_ignores_case_and_whitespace() -> None:
    result = compare("Cat", " cat ")
    assert result.is_correct is True
    assert all(unit.status == UnitStatus.CORRECT for unit in result.units)


def test_longer_transcript_has_extra_units() -> None:
    result = compare("cat", "cats")

    assert _statuses(result)[-1] == UnitStatus.EXTRA
    assert result.units[-1].expected == ""
    assert result.units[-1].actual == "s"
    assert result.is_correct is False


def test_shorter_transcript_has_missing_units() -> None:
    result = compare("cats", "cat")

    assert _statuses(result)[-1] == UnitStatus.MISSING
    assert result.units[-1].actual == ""
    assert len(result.units) == 4


def test_empty_transcript_marks_every_letter_missing() -> None:
    result = compare("dog", "")
    assert _statuses(result) == [UnitStatus.MISSING] * 3
    assert result.is_correct is False


# ---------------------------------------------------------------
# Sentence mode
# ---------------------------------------------------------------

def test_sentence_units_are_tokens() -> None:
    assert split_units("The dog runs.", PracticeMode.SENTENCE) == ["the", "dog", "runs"]
    result = compare("The dog runs.", "the dog runs", PracticeMode.SENTENCE)

    assert result.is_correct is True
    assert len(result.units) == 3


def test_inserted_token_shifts_later_positions() -> None:
    result = compare("the dog runs", "the big dog runs", PracticeMode.SENTENCE)

    assert _statuses(result) == [
        UnitStatus.CORRECT,
        UnitStatus.INCORRECT,
        UnitStatus.INCORRECT,
        UnitStatus.EXTRA,
    ]
    assert result.is_correct is False


def test_empty_sentence_is_never_correct() -> None:
    result = compare("", "", PracticeMode.SENTENCE)
    assert result.units == ()
    assert result.is_correct is False


def test_classify() -> None:
    assert classify("a", "a") == UnitStatus.CORRECT
    assert classify("a", "b") == UnitStatus.INCORRECT
    assert classify("a", "") == UnitStatus.MISSING
    assert classify("", "b") == UnitStatus.EXTRA
