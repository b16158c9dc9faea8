import pytest

from exam_engine.schemas.attempt_schema import AttemptResult
from exam_engine.schemas.question_schema import Question
from exam_engine.services.answer_ledger import AnswerLedger
from exam_engine.services.grading_service import (
    marks_breakdown, question_outcome, review_breakdown, score_attempt, section_breakdown,
)


def make_questions(n, section=None):
    # every question's key is option 0
    return [Question(id=str(i), text=f"q{i}", options=["a", "b", "c", "d"], correct_index=0, section=section)
            for i in range(1, n + 1)]


def test_ten_question_example():
    questions = make_questions(10)
    answers = {str(i): 0 for i in range(1, 7)}  # 6 correct
    answers.update({"7": 2, "8": 1})  # 2 wrong, 9 and 10 skipped

    result = score_attempt(questions, answers, marks_per_question=1, negative_marks_per_wrong=0.25)
    assert result.correct_count == 6
    assert result.wrong_count == 2
    assert result.unattempted_count == 2
    assert result.total_questions == 10
    assert result.score == 5.5


def test_counts_always_add_up():
    questions = make_questions(7)
    for answers in ({}, {"1": 0}, {"1": 1, "2": 0, "3": 3}, {str(i): 1 for i in range(1, 8)}):
        r = score_attempt(questions, answers)
        assert r.correct_count + r.wrong_count + r.unattempted_count == r.total_questions


def test_score_is_pure():
    questions = make_questions(5)
    ledger = AnswerLedger({"1": 0, "2": 1})
    first = score_attempt(questions, ledger, 2, 0.5)
    second = score_attempt(questions, ledger, 2, 0.5)
    assert first == second
    assert ledger.as_dict() == {"1": 0, "2": 1}


def test_negative_score_is_not_clamped():
    questions = make_questions(4)
    result = score_attempt(questions, {str(i): 1 for i in range(1, 5)}, 1, 0.5)
    assert result.score == -2.0


def test_marks_per_question():
    questions = make_questions(3)
    result = score_attempt(questions, {"1": 0, "2": 0}, marks_per_question=4)
    assert result.score == 8.0


def test_missing_marking_defaults():
    questions = make_questions(2)
    result = score_attempt(questions, {"1": 0, "2": 3}, None, None)
    assert result.score == 1.0


def test_negative_penalty_rejected():
    with pytest.raises(ValueError):
        score_attempt(make_questions(1), {}, 1, -1)


def test_unresolved_key_is_never_correct():
    q = Question(id="x", text="?", options=["a", "b"], correct_index=-1)
    assert question_outcome(q, {}) == "skipped"
    for choice in (0, 1):
        assert question_outcome(q, {"x": choice}) == "wrong"
    result = score_attempt([q], {"x": 0})
    assert (result.correct_count, result.wrong_count, result.unattempted_count) == (0, 1, 0)


def test_answers_outside_the_working_list_are_ignored():
    questions = make_questions(2)
    result = score_attempt(questions, {"1": 0, "99": 0})
    assert result.correct_count == 1
    assert result.unattempted_count == 1


def test_marks_breakdown():
    result = AttemptResult(correct_count=6, wrong_count=2, unattempted_count=2, total_questions=10, score=5.5)
    assert marks_breakdown(result, 1, 0.25) == {"marks_from_correct": 6.0, "negative_marks": 0.5}


def test_review_filters():
    questions = make_questions(3)
    answers = {"1": 0, "2": 2}
    rows = review_breakdown(questions, answers)
    assert [(r.id, r.outcome, r.selected_index) for r in rows] == [
        ("1", "correct", 0), ("2", "wrong", 2), ("3", "skipped", None),
    ]
    assert [r.id for r in review_breakdown(questions, answers, "wrong")] == ["2"]
    assert [r.id for r in review_breakdown(questions, answers, "skipped")] == ["3"]
    with pytest.raises(ValueError):
        review_breakdown(questions, answers, "bogus")


def test_section_breakdown():
    questions = make_questions(2, "p") + [
        Question(id="c1", text="c", options=["a", "b"], correct_index=1, section="c"),
    ]
    rows = section_breakdown(questions, {"1": 0, "2": 1, "c1": 1}, 1, 0.5)
    assert [r["section"] for r in rows] == ["p", "c"]
    assert rows[0]["correct_count"] == 1
    assert rows[0]["wrong_count"] == 1
    assert rows[0]["score"] == 0.5
    assert rows[1]["score"] == 1.0
