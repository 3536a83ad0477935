# tests/test_scoring.py
import json
import itertools

import pytest

from conftest import make_questions
from testgenius.core.errors import AnswerKeyMismatchError, InputValidationError
from testgenius.core.schemas import Question, TestConfiguration
from testgenius.core.scoring import (
    ScoringItem, ScoringPolicy, build_score_summary, parse_answer_key, score_with_key,
)

PLAIN = TestConfiguration()


def negative(mark):
    return TestConfiguration(negative_marking_enabled=True, negative_mark_per_wrong=mark)


def items(user_answers, correct_answers):
    return [ScoringItem(user_answer=u, correct_answer=c) for u, c in zip(user_answers, correct_answers)]


def test_plain_count():
    outcome = ScoringPolicy.score(items(["A", "B", "C", "D"], ["A", "X", "C", "Y"]), PLAIN)
    assert outcome.total == 2
    assert outcome.per_item == [True, False, True, False]


def test_negative_marking_skips_unattempted():
    outcome = ScoringPolicy.score(items(["A", "B", "C", None], ["A", "X", "C", "Y"]), negative(0.25))
    assert outcome.total == 1.75


def test_total_is_clamped_at_zero():
    outcome = ScoringPolicy.score(items(["B", "B"], ["A", "A"]), negative(1.0))
    assert outcome.total == 0


def test_adding_a_correct_answer_never_lowers_the_score():
    correct = ["A", "A", "A", "A"]
    for config in (PLAIN, negative(0.25), negative(1.0)):
        for answers in itertools.product(["A", "B", None], repeat=4):
            base = ScoringPolicy.score(items(answers, correct), config).total
            for i, answer in enumerate(answers):
                if answer == "A":
                    continue
                improved = list(answers)
                improved[i] = "A"
                assert ScoringPolicy.score(items(improved, correct), config).total >= base


def test_score_never_negative():
    for mark in (0.25, 0.5, 1.0, 5.0):
        outcome = ScoringPolicy.score(items(["B"] * 10, ["A"] * 10), negative(mark))
        assert outcome.total == 0


def test_unattempted_questions_cost_nothing():
    for config in (PLAIN, negative(0.5)):
        outcome = ScoringPolicy.score(items([None] * 5, ["A"] * 5), config)
        assert outcome.total == 0
        assert outcome.per_item == [False] * 5


def test_summary_annotates_copies_and_keeps_questions():
    questions = make_questions(4)
    answers = {questions[0].id: "Q1 A", questions[1].id: "Q2 B"}
    key = [q.options[0] for q in questions]

    summary, annotated = build_score_summary(questions, answers, key, negative(0.25))

    assert summary.score == 0.75
    assert summary.total_questions == 4
    assert summary.correct_count == 1
    assert summary.incorrect_count == 1
    assert summary.unattempted_count == 2
    assert [r.question_id for r in summary.results] == [q.id for q in questions]
    assert annotated[1].user_selected_answer == "Q2 B"
    assert annotated[1].is_correct is False
    assert not hasattr(questions[0], "is_correct")


def test_results_follow_question_ids_when_texts_repeat():
    options = ["A", "B", "C", "D"]
    questions = [Question(question_text="Same?", options=options) for _ in range(2)]
    answers = {questions[0].id: "A", questions[1].id: "B"}

    summary, _ = build_score_summary(questions, answers, ["A", "A"], PLAIN)

    assert [r.is_correct for r in summary.results] == [True, False]
    assert summary.results[0].question_id != summary.results[1].question_id


def test_key_length_mismatch_is_refused():
    questions = make_questions(5)
    with pytest.raises(AnswerKeyMismatchError) as exc_info:
        score_with_key(questions, {}, ["Q1 A", "Q2 A", "Q3 A"], PLAIN)
    assert "3" in str(exc_info.value)
    assert "5" in str(exc_info.value)


def test_parse_text_key_ignores_blank_lines():
    data = "Q1 A\n\n  Q2 B  \nQ3 C\n".encode("utf-8")
    assert parse_answer_key("key.txt", data) == ["Q1 A", "Q2 B", "Q3 C"]


def test_parse_json_key():
    data = json.dumps(["नई दिल्ली", "पूर्व"], ensure_ascii=False).encode("utf-8")
    assert parse_answer_key("key.json", data) == ["नई दिल्ली", "पूर्व"]


def test_parse_json_key_must_be_string_array():
    with pytest.raises(InputValidationError):
        parse_answer_key("key.json", b'{"answers": ["A"]}')
    with pytest.raises(InputValidationError):
        parse_answer_key("key.json", b'[1, 2]')
    with pytest.raises(InputValidationError):
        parse_answer_key("key.json", b'[not json')


def test_parse_key_rejects_other_file_types():
    with pytest.raises(InputValidationError):
        parse_answer_key("key.csv", b"A,B,C")
