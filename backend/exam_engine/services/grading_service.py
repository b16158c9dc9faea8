from typing import Dict, List, Mapping, Optional

from ..schemas.attempt_schema import AttemptResult
from ..schemas.question_schema import Question, ReviewQuestion

CORRECT = "correct"
WRONG = "wrong"
SKIPPED = "skipped"

REVIEW_FILTERS = ("all", CORRECT, WRONG, SKIPPED)


def question_outcome(question: Question, answers: Mapping[str, int]) -> str:
    """correct / wrong / skipped for one question. A -1 key never matches a selection."""
    selected = answers.get(question.id)
    if selected is None:
        return SKIPPED
    if selected == question.correct_index:
        return CORRECT
    return WRONG


def score_attempt(
    questions: List[Question],
    answers: Mapping[str, int],
    marks_per_question: float = 1.0,
    negative_marks_per_wrong: float = 0.0,
) -> AttemptResult:
    """
    Grade the given answers against the working question list.
    - questions: the questions the student was shown
    - answers: mapping question_id -> selected option index (AnswerLedger or plain dict)

    score = correct * marks_per_question - wrong * negative_marks_per_wrong
    The score is not clamped and may be negative.
    Answers for ids outside ``questions`` are ignored.
    """
    if marks_per_question is None:
        marks_per_question = 1.0
    if negative_marks_per_wrong is None:
        negative_marks_per_wrong = 0.0
    if negative_marks_per_wrong < 0:
        raise ValueError("negative_marks_per_wrong must be >= 0")

    correct = 0
    wrong = 0
    for q in questions:
        outcome = question_outcome(q, answers)
        if outcome == CORRECT:
            correct += 1
        elif outcome == WRONG:
            wrong += 1

    total = len(questions)
    return AttemptResult(
        correct_count=correct,
        wrong_count=wrong,
        unattempted_count=total - correct - wrong,
        total_questions=total,
        score=correct * marks_per_question - wrong * negative_marks_per_wrong,
    )


def marks_breakdown(result: AttemptResult, marks_per_question: float = 1.0, negative_marks_per_wrong: float = 0.0) -> Dict[str, float]:
    return {
        "marks_from_correct": result.correct_count * (marks_per_question or 1.0),
        "negative_marks": result.wrong_count * (negative_marks_per_wrong or 0.0),
    }


def review_breakdown(
    questions: List[Question],
    answers: Mapping[str, int],
    outcome_filter: str = "all",
) -> List[ReviewQuestion]:
    """Per-question review rows, optionally limited to one outcome."""
    if outcome_filter not in REVIEW_FILTERS:
        raise ValueError(f"unknown review filter '{outcome_filter}', expected one of {REVIEW_FILTERS}")

    rows: List[ReviewQuestion] = []
    for q in questions:
        outcome = question_outcome(q, answers)
        if outcome_filter != "all" and outcome != outcome_filter:
            continue
        rows.append(ReviewQuestion(
            id=q.id,
            text=q.text,
            options=list(q.options),
            section=q.section,
            explanation=q.explanation,
            correct_index=q.correct_index,
            selected_index=answers.get(q.id),
            outcome=outcome,
        ))
    return rows


def section_breakdown(
    questions: List[Question],
    answers: Mapping[str, int],
    marks_per_question: float = 1.0,
    negative_marks_per_wrong: float = 0.0,
) -> List[Dict[str, object]]:
    """
    Scores per section, in order of first appearance.
    Questions without a section are reported under ``None``.
    """
    grouped: Dict[Optional[str], List[Question]] = {}
    for q in questions:
        grouped.setdefault(q.section, []).append(q)

    out = []
    for section, qs in grouped.items():
        result = score_attempt(qs, answers, marks_per_question, negative_marks_per_wrong)
        out.append({"section": section, **result.model_dump()})
    return out
