from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response
import logging

from ..db import get_async_session
from ..dependencies import (
    get_student_context, get_question_bank, get_snapshot_store, get_attempt_gateway, http_error_for,
)
from ..errors import ExamEngineError
from ..models.batch_model import Batch
from ..models.exam_model import Exam
from ..schemas.attempt_schema import (
    StartSessionPayload, SelectAnswerPayload, ReviewTogglePayload,
    SessionStateResponse, SessionStartResponse, SubmitResponse,
)
from ..schemas.exam_schema import ExamConfig, ExamRead, StudentExamRead
from ..schemas.question_schema import StudentQuestion
from ..schemas.user_schema import StudentContext
from ..services.exam_service import check_access, classify_exam
from ..services.exam_session import ExamSession
from ..services.question_bank import load_exam_questions
from ..services.session_registry import SessionRegistry, get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter()


async def load_exam_for_student(session: AsyncSession, exam_id: UUID, student: StudentContext) -> ExamConfig:
    """ExamConfig of an exam the student may take, else 404/403."""
    res = await session.execute(
        select(Exam, Batch.is_public).outerjoin(Batch, Exam.batch_id == Batch.id).where(Exam.id == exam_id)
    )
    row = res.first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    exam, batch_is_public = row
    config = ExamConfig.model_validate(exam)
    try:
        check_access(config, batch_is_public, student)
    except ExamEngineError as e:
        raise http_error_for(e)
    return config


def _owned_session(sid: str, student: StudentContext, registry: SessionRegistry) -> ExamSession:
    live = registry.get(sid)
    # other students' sessions look like missing ones
    if live is None or live.student.student_id != student.student_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return live


def _state_response(sid: str, live: ExamSession) -> dict:
    return {"session_id": sid, **live.state()}


@router.get("/student/exams", response_model=List[StudentExamRead])
async def list_student_exams(
    student: StudentContext = Depends(get_student_context),
    session: AsyncSession = Depends(get_async_session),
):
    res = await session.execute(
        select(Exam, Batch.is_public).outerjoin(Batch, Exam.batch_id == Batch.id).order_by(Exam.created_at)
    )
    out = []
    for exam, batch_is_public in res.all():
        # only exams the student can open
        if exam.batch_id is not None and not batch_is_public and not student.is_enrolled_in(exam.batch_id):
            continue
        data = ExamRead.model_validate(exam).model_dump()
        data["category"] = classify_exam(ExamConfig.model_validate(exam))
        out.append(StudentExamRead(**data))
    return out


@router.post("/exams/{exam_id}/start", response_model=SessionStartResponse)
async def start_exam(
    exam_id: UUID,
    payload: StartSessionPayload,
    student: StudentContext = Depends(get_student_context),
    session: AsyncSession = Depends(get_async_session),
    question_bank=Depends(get_question_bank),
    snapshots=Depends(get_snapshot_store),
    gateway=Depends(get_attempt_gateway),
    registry: SessionRegistry = Depends(get_session_registry),
):
    exam = await load_exam_for_student(session, exam_id, student)

    try:
        questions = await load_exam_questions(question_bank, exam.file_id)
        live = ExamSession(exam, questions, student, gateway, snapshots)
        live.start(sections=payload.sections, duration_minutes=payload.duration_minutes)
    except (ExamEngineError, ValueError) as e:
        logger.warning("Exam %s could not start for student %s: %s", exam_id, student.student_id, e)
        raise http_error_for(e)

    sid = registry.add(live)
    registry.start_clock(sid)
    return {
        **_state_response(sid, live),
        "sections": live.sections,
        "questions": [StudentQuestion.from_question(q) for q in live.questions],
    }


@router.get("/sessions/{sid}", response_model=SessionStateResponse)
async def get_session_state(
    sid: str,
    student: StudentContext = Depends(get_student_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    live = _owned_session(sid, student, registry)
    return _state_response(sid, live)


@router.post("/sessions/{sid}/answers", response_model=SessionStateResponse)
async def select_answer(
    sid: str,
    payload: SelectAnswerPayload,
    student: StudentContext = Depends(get_student_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    live = _owned_session(sid, student, registry)
    try:
        live.select_answer(payload.question_id, payload.option_index)
    except (ExamEngineError, ValueError) as e:
        raise http_error_for(e)
    return _state_response(sid, live)


@router.post("/sessions/{sid}/review", response_model=SessionStateResponse)
async def toggle_review(
    sid: str,
    payload: ReviewTogglePayload,
    student: StudentContext = Depends(get_student_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    live = _owned_session(sid, student, registry)
    try:
        live.toggle_review(payload.question_id)
    except (ExamEngineError, ValueError) as e:
        raise http_error_for(e)
    return _state_response(sid, live)


@router.post("/sessions/{sid}/submit", response_model=SubmitResponse)
async def submit_exam(
    sid: str,
    student: StudentContext = Depends(get_student_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    live = _owned_session(sid, student, registry)
    try:
        outcome = await live.submit()
    except ExamEngineError as e:
        raise http_error_for(e)

    if outcome is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Submission already in progress")
    return {
        "status": outcome.status,
        "result": live.result,
        "attempt": outcome.attempt,
        "reason": outcome.reason,
    }


@router.delete("/sessions/{sid}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_exam(
    sid: str,
    student: StudentContext = Depends(get_student_context),
    registry: SessionRegistry = Depends(get_session_registry),
):
    # leaving without submitting stores nothing
    _owned_session(sid, student, registry)
    registry.remove(sid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
