# testgenius/core/scoring.py
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from .answers import AnswerNormalizer
from .errors import AnswerKeyMismatchError, InputValidationError
from .schemas import AnsweredQuestion, Question, ResultItem, ScoreSummary, TestConfiguration

logger = logging.getLogger(__name__)

QUESTION_FIELDS = {"id", "question_text", "options", "ai_assigned_answer"}


@dataclass(frozen=True)
class ScoringItem:
    user_answer: Optional[str]
    correct_answer: str


@dataclass(frozen=True)
class ScoreOutcome:
    total: float
    per_item: List[bool]


class ScoringPolicy:
    """Plain count, optionally with negative marking for attempted-but-wrong answers.

    The total is clamped at zero.
    """

    @staticmethod
    def score(items: Sequence[ScoringItem], configuration: TestConfiguration) -> ScoreOutcome:
        penalty = Decimal(str(configuration.negative_mark_per_wrong))
        total = Decimal(0)
        per_item = []

        for item in items:
            is_correct = AnswerNormalizer.equals(item.user_answer, item.correct_answer)
            per_item.append(is_correct)

            if is_correct:
                total += 1
            elif configuration.negative_marking_enabled and item.user_answer is not None:
                total -= penalty

        return ScoreOutcome(total=float(max(Decimal(0), total)), per_item=per_item)


def build_score_summary(questions: Sequence[Question], answers: Dict[str, str],
                        correct_answers: Sequence[str],
                        configuration: TestConfiguration) -> Tuple[ScoreSummary, List[AnsweredQuestion]]:
    """Score questions against correct answers given in question order.

    Returns the summary and the questions annotated with the scoring outcome;
    the input questions are left untouched.
    """
    if len(correct_answers) != len(questions):
        raise AnswerKeyMismatchError(len(correct_answers), len(questions))

    items = [
        ScoringItem(user_answer=answers.get(q.id), correct_answer=correct)
        for q, correct in zip(questions, correct_answers)
    ]
    outcome = ScoringPolicy.score(items, configuration)

    results = []
    annotated = []
    for question, item, is_correct in zip(questions, items, outcome.per_item):
        results.append(ResultItem(
            question_id=question.id,
            question_text=question.question_text,
            user_selected_answer=item.user_answer,
            actual_correct_answer=item.correct_answer,
            is_correct=is_correct,
            options=list(question.options),
        ))
        annotated.append(AnsweredQuestion(
            **question.model_dump(include=QUESTION_FIELDS),
            user_selected_answer=item.user_answer,
            actual_correct_answer=item.correct_answer,
            is_correct=is_correct,
        ))

    summary = ScoreSummary(score=outcome.total, total_questions=len(questions), results=results)
    logger.info(f"✅ Scored {summary.correct_count}/{summary.total_questions} correct, score {summary.score}")
    return summary, annotated


def score_with_key(questions: Sequence[Question], answers: Dict[str, str], key: Sequence[str],
                   configuration: TestConfiguration) -> Tuple[ScoreSummary, List[AnsweredQuestion]]:
    """Key-based scoring; refuses when the key and the test differ in length"""
    if len(key) != len(questions):
        logger.warning(f"Answer key mismatch: {len(key)} answers for {len(questions)} questions")
        raise AnswerKeyMismatchError(len(key), len(questions))
    return build_score_summary(questions, answers, key, configuration)


def parse_answer_key(filename: str, data: bytes, content_type: str = None) -> List[str]:
    """Read an uploaded answer key.

    JSON files must hold an array of strings; plain text holds one answer per
    line, blank lines ignored.
    """
    name = (filename or "").lower()
    is_json = name.endswith(".json") or content_type == "application/json"
    is_text = name.endswith(".txt") or content_type == "text/plain"

    if not (is_json or is_text):
        raise InputValidationError("Please upload a TXT or JSON file for the answer key.")

    try:
        content = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise InputValidationError("Answer key must be UTF-8 encoded text.")

    if is_json:
        try:
            answers = json.loads(content)
        except json.JSONDecodeError as e:
            raise InputValidationError(f"Answer key is not valid JSON: {e}")
        if not isinstance(answers, list) or not all(isinstance(a, str) for a in answers):
            raise InputValidationError("JSON key must be an array of strings.")
        return answers

    return [line.strip() for line in content.splitlines() if line.strip()]
