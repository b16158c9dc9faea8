from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from ..db import get_async_session
from ..dependencies import current_admin, get_student_context, get_question_bank, get_snapshot_store, http_error_for
from ..errors import ExamEngineError
from ..models.attempt_model import ExamAttempt
from ..models.batch_model import Batch
from ..models.exam_model import Exam
from ..models.user_model import User, UserRole
from ..schemas.attempt_schema import (
    AttemptRecord, AttemptResult, ExamResultsResponse, LeaderboardEntry, ReviewResponse,
)
from ..schemas.exam_schema import ExamConfig
from ..schemas.user_schema import StudentContext
from ..security import current_active_user
from ..services.grading_service import REVIEW_FILTERS, marks_breakdown, review_breakdown, score_attempt, section_breakdown
from ..services.leaderboard_service import batch_leaderboard, exam_leaderboard, results_summary
from ..services.question_bank import load_exam_questions
from ..services.section_filter import filter_by_sections
from .student_routers import load_exam_for_student

logger = logging.getLogger(__name__)

router = APIRouter()


async def _exam_config(session: AsyncSession, exam_id: UUID) -> ExamConfig:
    res = await session.execute(select(Exam).where(Exam.id == exam_id))
    exam = res.scalar_one_or_none()
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    return ExamConfig.model_validate(exam)


async def _exam_attempts(session: AsyncSession, exam_id: UUID) -> List[ExamAttempt]:
    res = await session.execute(
        select(ExamAttempt).options(selectinload(ExamAttempt.student)).where(ExamAttempt.exam_id == exam_id)
    )
    return list(res.scalars().all())


@router.get("/student/results", response_model=List[AttemptRecord])
async def my_results(
    student: StudentContext = Depends(get_student_context),
    session: AsyncSession = Depends(get_async_session),
):
    res = await session.execute(
        select(ExamAttempt).where(ExamAttempt.student_id == student.student_id).order_by(ExamAttempt.submitted_at)
    )
    return res.scalars().all()


@router.get("/exams/{exam_id}/review", response_model=ReviewResponse)
async def review_attempt(
    exam_id: UUID,
    filter: str = "all",
    custom: Optional[bool] = None,
    student: StudentContext = Depends(get_student_context),
    session: AsyncSession = Depends(get_async_session),
    question_bank=Depends(get_question_bank),
    snapshots=Depends(get_snapshot_store),
):
    """
    Per-question review of the student's attempt.

    Rebuilt from the local answer snapshot and the current question list.
    Without a snapshot only the stored attempt is returned.
    """
    if filter not in REVIEW_FILTERS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"filter must be one of {list(REVIEW_FILTERS)}")
    exam = await load_exam_for_student(session, exam_id, student)

    res = await session.execute(
        select(ExamAttempt).where(ExamAttempt.student_id == student.student_id, ExamAttempt.exam_id == exam_id)
    )
    row = res.scalars().first()
    attempt = AttemptRecord.model_validate(row) if row is not None else None

    if custom is None:
        snapshot = snapshots.load(student.student_id, exam_id) or snapshots.load(student.student_id, exam_id, custom=True)
    else:
        snapshot = snapshots.load(student.student_id, exam_id, custom=custom)

    if snapshot is None:
        stored = None
        if attempt is not None:
            stored = AttemptResult(
                correct_count=attempt.correct_count,
                wrong_count=attempt.wrong_count,
                unattempted_count=attempt.unattempted_count,
                total_questions=attempt.correct_count + attempt.wrong_count + attempt.unattempted_count,
                score=attempt.score,
            )
        return ReviewResponse(exam_id=exam_id, attempt=attempt, answers_available=False, result=stored)

    try:
        questions = await load_exam_questions(question_bank, exam.file_id)
    except ExamEngineError as e:
        raise http_error_for(e)
    if snapshot["sections"] is not None:
        questions = filter_by_sections(questions, snapshot["sections"])

    answers = snapshot["answers"]
    result = score_attempt(questions, answers, exam.marks_per_question, exam.negative_marks_per_wrong)
    marks = marks_breakdown(result, exam.marks_per_question, exam.negative_marks_per_wrong)
    return ReviewResponse(
        exam_id=exam_id,
        attempt=attempt,
        answers_available=True,
        result=result,
        marks_from_correct=marks["marks_from_correct"],
        negative_marks=marks["negative_marks"],
        section_scores=section_breakdown(questions, answers, exam.marks_per_question, exam.negative_marks_per_wrong),
        questions=review_breakdown(questions, answers, filter),
    )


@router.get("/exams/{exam_id}/leaderboard", response_model=List[LeaderboardEntry])
async def exam_leaderboard_view(
    exam_id: UUID,
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    if user.role == UserRole.ADMIN:
        exam = await _exam_config(session, exam_id)
    else:
        exam = await load_exam_for_student(
            session, exam_id,
            StudentContext(student_id=user.id, enrolled_batches=[str(b) for b in (user.enrolled_batches or [])]),
        )
    return exam_leaderboard(await _exam_attempts(session, exam_id), exam)


@router.get("/batches/{batch_id}/leaderboard", response_model=List[LeaderboardEntry])
async def batch_leaderboard_view(
    batch_id: UUID,
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    res = await session.execute(select(Batch).where(Batch.id == batch_id))
    batch = res.scalar_one_or_none()
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    if user.role != UserRole.ADMIN and not batch.is_public:
        if str(batch_id) not in [str(b) for b in (user.enrolled_batches or [])]:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not enrolled in this batch")

    res = await session.execute(select(Exam).where(Exam.batch_id == batch_id))
    exams = {e.id: ExamConfig.model_validate(e) for e in res.scalars().all()}
    if not exams:
        return []

    res = await session.execute(
        select(ExamAttempt).options(selectinload(ExamAttempt.student)).where(ExamAttempt.exam_id.in_(list(exams)))
    )
    return batch_leaderboard(res.scalars().all(), exams)


@router.get("/exams/{exam_id}/results", response_model=ExamResultsResponse, dependencies=[Depends(current_admin)])
async def exam_results(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    exam = await _exam_config(session, exam_id)
    entries = exam_leaderboard(await _exam_attempts(session, exam_id), exam)
    return ExamResultsResponse(summary=results_summary(entries), results=entries)
