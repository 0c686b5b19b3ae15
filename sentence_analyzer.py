"""Heuristic scoring and feedback for sentence attempts."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from errors import ANALYSIS_FAILURE
from models import ScoreBreakdown
from tokenizer import has_terminal_punctuation, tokenize

logger = logging.getLogger(__name__)

Tokenizer = Callable[[str], List[str]]

EXCELLENT_FEEDBACK = "Excellent work! Your sentence structure and spelling are very good."
GOOD_EFFORT_FEEDBACK = "Good effort! Just a few small improvements needed."
DEFAULT_FEEDBACK = "Keep practicing to improve your sentences!"
SPELLING_FEEDBACK = "Check your spelling of individual words."
PUNCTUATION_FEEDBACK = "Remember to include proper punctuation at the end."
MISSING_WORDS_FEEDBACK = "Try to include all the words from the sentence."
EXTRA_WORDS_FEEDBACK = "Try not to add extra words to the sentence."
FALLBACK_MATCH_FEEDBACK = "Perfect match!"
FALLBACK_FEEDBACK = "Good try! Keep practicing your sentences."

PASS_SCORE = 80


def percent(numerator: int, denominator: int) -> int:
    """``round(100 * numerator / denominator)`` with halves rounded up."""
    return (200 * numerator + denominator) // (2 * denominator)


class SentenceAnalyzer:
    """Scores spelling, terminal punctuation and length of a spoken sentence.

    ``analyze`` never raises: if the tokenizer is missing or fails, a binary
    exact-match score is returned instead.
    """

    def __init__(self, tokenizer: Optional[Tokenizer] = tokenize, pass_score: int = PASS_SCORE) -> None:
        self._tokenizer = tokenizer
        self.pass_score = pass_score

    def analyze(self, target: str, transcript: str) -> ScoreBreakdown:
        if self._tokenizer is None:
            logger.warning("No tokenizer available; using binary sentence score")
            return self._binary_score(target, transcript)
        try:
            return self._score(target, transcript, self._tokenizer)
        except Exception:
            logger.exception("%s: using binary sentence score", ANALYSIS_FAILURE)
            return self._binary_score(target, transcript)

    def is_passing(self, breakdown: ScoreBreakdown) -> bool:
        return breakdown.overall_score >= self.pass_score

    def _score(self, target: str, transcript: str, tokenizer: Tokenizer) -> ScoreBreakdown:
        target_tokens = tokenizer(target)
        spoken_tokens = tokenizer(transcript)

        longest = max(len(target_tokens), len(spoken_tokens))
        matched = sum(1 for want, got in zip(target_tokens, spoken_tokens) if want == got)
        spelling = percent(matched, longest) if longest else 0

        same_ending = has_terminal_punctuation(target) == has_terminal_punctuation(transcript)
        punctuation = 100 if same_ending else 50

        token_gap = len(target_tokens) - len(spoken_tokens)
        length = max(0, 100 - 20 * abs(token_gap))

        # 0.6 / 0.2 / 0.2 weighting, kept in integers so halves round up exactly.
        overall = (6 * spelling + 2 * punctuation + 2 * length + 5) // 10

        return ScoreBreakdown(
            overall_score=overall,
            spelling_score=spelling,
            punctuation_score=punctuation,
            length_score=length,
            feedback=self._feedback(overall, spelling, punctuation, token_gap),
        )

    @staticmethod
    def _feedback(overall: int, spelling: int, punctuation: int, token_gap: int) -> str:
        if overall >= 90:
            return EXCELLENT_FEEDBACK
        issues = []
        if spelling < 80:
            issues.append(SPELLING_FEEDBACK)
        if punctuation < 100:
            issues.append(PUNCTUATION_FEEDBACK)
        if token_gap > 0:
            issues.append(MISSING_WORDS_FEEDBACK)
        elif token_gap < 0:
            issues.append(EXTRA_WORDS_FEEDBACK)
        if issues:
            return " ".join(issues)
        return GOOD_EFFORT_FEEDBACK if overall >= 70 else DEFAULT_FEEDBACK

    @staticmethod
    def _binary_score(target: str, transcript: str) -> ScoreBreakdown:
        exact = target.strip().lower() == transcript.strip().lower()
        score = 100 if exact else 60
        return ScoreBreakdown(
            overall_score=score,
            spelling_score=score,
            punctuation_score=score,
            length_score=score,
            feedback=FALLBACK_MATCH_FEEDBACK if exact else FALLBACK_FEEDBACK,
            fallback=True,
        )


_default_analyzer = SentenceAnalyzer()


def analyze(target: str, transcript: str) -> ScoreBreakdown:
    return _default_analyzer.analyze(target, transcript)
