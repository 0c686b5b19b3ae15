from __future__ import annotations

import sentence_analyzer
from sentence_analyzer import (
    EXCELLENT_FEEDBACK,
    EXTRA_WORDS_FEEDBACK,
    FALLBACK_FEEDBACK,
    FALLBACK_MATCH_FEEDBACK,
    GOOD_EFFORT_FEEDBACK,
    MISSING_WORDS_FEEDBACK,
    PUNCTUATION_FEEDBACK,
    SPELLING_FEEDBACK,
    SentenceAnalyzer,
    percent,
)


def test_percent_rounds_halves_up() -> None:
    assert percent(2, 3) == 67
    assert percent(1, 3) == 33
    assert percent(1, 8) == 13
    assert percent(1, 2) == 50
    assert percent(5, 5) == 100


def test_misspelled_sentence_without_period() -> None:
    result = SentenceAnalyzer().analyze("The dog runs.", "the dog run")

    assert result.spelling_score == 67
    assert result.punctuation_score == 50
    assert result.length_score == 100
    assert result.overall_score == 70
    assert SPELLING_FEEDBACK in result.feedback
    assert PUNCTUATION_FEEDBACK in result.feedback
    assert result.fallback is False


def test_identical_sentence_scores_full_marks() -> None:
    result = SentenceAnalyzer().analyze("The dog runs.", "The dog runs.")

    assert result.overall_score == 100
    assert result.spelling_score == 100
    assert result.feedback == EXCELLENT_FEEDBACK


def test_one_wrong_word_gets_good_effort() -> None:
    result = SentenceAnalyzer().analyze("One two three four five.", "One two three four fire.")

    assert result.spelling_score == 80
    assert result.overall_score == 88
    assert result.feedback == GOOD_EFFORT_FEEDBACK


def test_extra_word_feedback() -> None:
    result = SentenceAnalyzer().analyze("The dog runs.", "The big dog runs.")

    assert result.length_score == 80
    assert EXTRA_WORDS_FEEDBACK in result.feedback
    assert MISSING_WORDS_FEEDBACK not in result.feedback


def test_missing_word_feedback() -> None:
    result = SentenceAnalyzer().analyze("The dog runs fast.", "The dog runs.")

    assert result.spelling_score == 75
    assert result.overall_score == 81
    assert MISSING_WORDS_FEEDBACK in result.feedback


def test_length_score_floors_at_zero() -> None:
    result = SentenceAnalyzer().analyze("a b c d e f g.", "a.")
    assert result.length_score == 0


def test_empty_transcript_scores_low() -> None:
    result = SentenceAnalyzer().analyze("The dog runs.", "")

    assert result.spelling_score == 0
    assert result.overall_score == 18


def test_pass_threshold() -> None:
    analyzer = SentenceAnalyzer()
    assert analyzer.is_passing(analyzer.analyze("The dog runs.", "The dog runs."))
    assert not analyzer.is_passing(analyzer.analyze("The dog runs.", "the dog run"))


def test_failing_tokenizer_falls_back_to_binary_score() -> None:
    def broken(text: str) -> list[str]:
        raise ValueError("tokenizer crashed")

    analyzer = SentenceAnalyzer(tokenizer=broken)

    match = analyzer.analyze("The dog runs.", " the dog runs. ")
    assert match.overall_score == 100
    assert match.feedback == FALLBACK_MATCH_FEEDBACK
    assert match.fallback is True

    miss = analyzer.analyze("The dog runs.", "the cat sits")
    assert miss.overall_score == 60
    assert miss.spelling_score == 60
    assert miss.feedback == FALLBACK_FEEDBACK


def test_missing_tokenizer_uses_binary_score() -> None:
    result = SentenceAnalyzer(tokenizer=None).analyze("Hi.", "hi.")
    assert result.fallback is True
    assert result.overall_score == 100


def test_module_level_analyze() -> None:
    assert sentence_analyzer.analyze("The dog runs.", "The dog runs.").overall_score == 100


def test_breakdown_serializes_with_record_keys() -> None:
    data = SentenceAnalyzer().analyze("The dog runs.", "the dog run").to_dict()
    assert data["overallScore"] == 70
    assert set(data) == {"overallScore", "spellingScore", "punctuationScore", "lengthScore", "feedback"}
