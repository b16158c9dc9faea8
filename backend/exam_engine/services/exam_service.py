from datetime import datetime
from typing import Optional

from ..errors import AuthorizationFailure, ExamUnavailable
from ..schemas.exam_schema import ExamConfig
from ..schemas.user_schema import StudentContext
from ..timeutils import to_naive_utc, utcnow


def check_access(exam: ExamConfig, batch_is_public: Optional[bool], student: Optional[StudentContext]) -> None:
    """
    Raise AuthorizationFailure unless the student may take the exam.

    Exams without a batch and exams of a public batch are open to everyone,
    otherwise the student must be enrolled in the batch.
    """
    if exam.batch_id is None:
        return
    if batch_is_public:
        return
    if student is None or not student.is_enrolled_in(exam.batch_id):
        raise AuthorizationFailure("You are not enrolled in this exam's batch")


def check_window(exam: ExamConfig, now: Optional[datetime] = None) -> None:
    """
    Live exams cannot start before start_at. Once end_at has passed the exam
    runs as a practice exam, matching how classify_exam lists it.
    """
    if classify_exam(exam, now) == "upcoming":
        raise ExamUnavailable("Exam has not started yet")


def classify_exam(exam: ExamConfig, now: Optional[datetime] = None) -> str:
    """
    live / upcoming / practice, for the student's exam list.
    Finished live exams are listed with the practice ones.
    """
    if exam.is_practice:
        return "practice"
    now = to_naive_utc(now) if now is not None else utcnow()
    start_at = to_naive_utc(exam.start_at)
    end_at = to_naive_utc(exam.end_at)
    if start_at is not None and now < start_at:
        return "upcoming"
    if end_at is not None and now > end_at:
        return "practice"
    return "live"
