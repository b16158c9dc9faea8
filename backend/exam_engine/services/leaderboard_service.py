"""
Display scores derived from stored (correct, wrong) counts.

Used by the exam leaderboard, the batch leaderboard and the admin results
view, so all three always agree with each other.
"""
from datetime import datetime
from typing import Dict, Iterable, List
from uuid import UUID

from ..schemas.attempt_schema import LeaderboardEntry, ResultsSummary
from ..schemas.exam_schema import ExamConfig

_LATEST = datetime.max


def project_score(correct: int, wrong: int, negative_rate: float, marks_per_question: float = 1.0) -> float:
    return (correct or 0) * (marks_per_question or 1.0) - (wrong or 0) * (negative_rate or 0.0)


def _student_fields(attempt) -> dict:
    student = getattr(attempt, "student", None)
    return {
        "name": getattr(student, "full_name", None),
        "roll": getattr(student, "roll", None),
    }


def _rank(entries: List[dict]) -> List[LeaderboardEntry]:
    # score desc, then earliest submission, then student id
    entries.sort(key=lambda e: (-e["score"], e["submitted_at"] or _LATEST, str(e["student_id"])))
    return [LeaderboardEntry(rank=i + 1, **e) for i, e in enumerate(entries)]


def exam_leaderboard(attempts: Iterable, exam: ExamConfig) -> List[LeaderboardEntry]:
    entries = []
    for a in attempts:
        entries.append({
            "student_id": a.student_id,
            "score": project_score(a.correct_count, a.wrong_count, exam.negative_marks_per_wrong, exam.marks_per_question),
            "correct_count": a.correct_count,
            "wrong_count": a.wrong_count,
            "submitted_at": a.submitted_at,
            **_student_fields(a),
        })
    return _rank(entries)


def batch_leaderboard(attempts: Iterable, exams: Dict[UUID, ExamConfig]) -> List[LeaderboardEntry]:
    """
    Total projected score per student over the batch's exams.
    Attempts for exams outside ``exams`` are ignored. Ties go to the student
    whose first submission in the batch came earliest.
    """
    totals: Dict[UUID, dict] = {}
    for a in attempts:
        exam = exams.get(a.exam_id)
        if exam is None:
            continue
        score = project_score(a.correct_count, a.wrong_count, exam.negative_marks_per_wrong, exam.marks_per_question)
        entry = totals.get(a.student_id)
        if entry is None:
            entry = totals[a.student_id] = {
                "student_id": a.student_id,
                "score": 0.0,
                "correct_count": 0,
                "wrong_count": 0,
                "submitted_at": a.submitted_at,
                "exams_taken": 0,
                **_student_fields(a),
            }
        entry["score"] += score
        entry["correct_count"] += a.correct_count or 0
        entry["wrong_count"] += a.wrong_count or 0
        entry["exams_taken"] += 1
        if a.submitted_at is not None and (entry["submitted_at"] is None or a.submitted_at < entry["submitted_at"]):
            entry["submitted_at"] = a.submitted_at
    return _rank(list(totals.values()))


def results_summary(entries: List[LeaderboardEntry]) -> ResultsSummary:
    if not entries:
        return ResultsSummary(total_students=0, average_score=0.0, max_score=0.0, min_score=0.0)
    scores = [e.score for e in entries]
    return ResultsSummary(
        total_students=len(scores),
        average_score=sum(scores) / len(scores),
        max_score=max(scores),
        min_score=min(scores),
    )
