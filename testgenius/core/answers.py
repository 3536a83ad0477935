# testgenius/core/answers.py
from typing import Optional


class AnswerNormalizer:
    """Single place that decides whether a selected option matches a correct answer.

    Matching is exact string equality. Option text produced by the AI, picked by
    the user and read from an answer key must agree verbatim; an unattempted
    question (None) never matches.
    """

    @staticmethod
    def equals(candidate: Optional[str], reference: Optional[str]) -> bool:
        if candidate is None or reference is None:
            return False
        return candidate == reference

    @staticmethod
    def is_option(candidate: Optional[str], options) -> bool:
        """True when candidate is one of the question's options"""
        return any(AnswerNormalizer.equals(candidate, option) for option in options)
