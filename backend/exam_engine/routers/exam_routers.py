from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from uuid import UUID
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from ..db import get_async_session
from ..dependencies import current_admin
from ..models.batch_model import Batch
from ..models.exam_model import Exam
from ..models.user_model import User
from ..schemas.exam_schema import ExamCreate, ExamRead, ExamUpdate, BatchCreate, BatchRead
from ..schemas.user_schema import UserRead
from ..timeutils import to_naive_utc

router = APIRouter(tags=["Exams"])


async def _get_exam(session: AsyncSession, exam_id: UUID) -> Exam:
    result = await session.execute(select(Exam).where(Exam.id == exam_id))
    exam = result.scalar_one_or_none()
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found")
    return exam


async def _ensure_batch_exists(session: AsyncSession, batch_id: UUID | None) -> None:
    if batch_id is None:
        return
    res = await session.execute(select(Batch.id).where(Batch.id == batch_id))
    if res.scalar_one_or_none() is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Batch does not exist")


# --- batches -----------------------------------------------------------------

@router.post("/batches", response_model=BatchRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(current_admin)])
async def create_batch(payload: BatchCreate, session: AsyncSession = Depends(get_async_session)):
    batch = Batch(
        name=payload.name,
        description=payload.description,
        icon_url=payload.icon_url,
        is_public=payload.is_public,
    )
    session.add(batch)
    await session.commit()
    await session.refresh(batch)
    return batch


@router.get("/batches", response_model=List[BatchRead], dependencies=[Depends(current_admin)])
async def list_batches(session: AsyncSession = Depends(get_async_session)):
    result = await session.execute(select(Batch).order_by(Batch.created_at))
    return result.scalars().all()


@router.get("/batches/{batch_id}", response_model=BatchRead, dependencies=[Depends(current_admin)])
async def get_batch(batch_id: UUID, session: AsyncSession = Depends(get_async_session)):
    result = await session.execute(select(Batch).where(Batch.id == batch_id))
    batch = result.scalar_one_or_none()
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return batch


async def _get_batch_and_user(session: AsyncSession, batch_id: UUID, user_id: UUID):
    batch = (await session.execute(select(Batch).where(Batch.id == batch_id))).scalar_one_or_none()
    if not batch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    user = (await session.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return batch, user


@router.put("/batches/{batch_id}/students/{user_id}", response_model=UserRead, dependencies=[Depends(current_admin)])
async def enroll_student(batch_id: UUID, user_id: UUID, session: AsyncSession = Depends(get_async_session)):
    batch, user = await _get_batch_and_user(session, batch_id, user_id)
    enrolled = [str(b) for b in (user.enrolled_batches or [])]
    if str(batch.id) not in enrolled:
        # assign a new list so the JSON column is flagged dirty
        user.enrolled_batches = enrolled + [str(batch.id)]
        await session.commit()
        await session.refresh(user)
    return user


@router.delete("/batches/{batch_id}/students/{user_id}", response_model=UserRead, dependencies=[Depends(current_admin)])
async def unenroll_student(batch_id: UUID, user_id: UUID, session: AsyncSession = Depends(get_async_session)):
    batch, user = await _get_batch_and_user(session, batch_id, user_id)
    user.enrolled_batches = [b for b in (user.enrolled_batches or []) if str(b) != str(batch.id)]
    await session.commit()
    await session.refresh(user)
    return user


# --- exams -------------------------------------------------------------------

@router.get("/exams", response_model=List[ExamRead], dependencies=[Depends(current_admin)])
async def get_all_exams(session: AsyncSession = Depends(get_async_session)):
    result = await session.execute(select(Exam).order_by(Exam.created_at))
    return result.scalars().all()


@router.post("/exams", response_model=ExamRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(current_admin)])
async def create_exam(payload: ExamCreate, session: AsyncSession = Depends(get_async_session)):
    await _ensure_batch_exists(session, payload.batch_id)

    data = payload.model_dump()
    # Normalize times to naive UTC to match DB
    data["start_at"] = to_naive_utc(payload.start_at)
    data["end_at"] = to_naive_utc(payload.end_at)

    exam = Exam(**data)
    session.add(exam)
    await session.commit()
    await session.refresh(exam)
    return exam


@router.get("/exams/{exam_id}", response_model=ExamRead, dependencies=[Depends(current_admin)])
async def get_exam(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    return await _get_exam(session, exam_id)


@router.put("/exams/{exam_id}", response_model=ExamRead, dependencies=[Depends(current_admin)])
async def update_exam(exam_id: UUID, payload: ExamUpdate, session: AsyncSession = Depends(get_async_session)):
    # update only fields sent
    exam = await _get_exam(session, exam_id)
    changes = payload.model_dump(exclude_unset=True)

    if "batch_id" in changes:
        await _ensure_batch_exists(session, changes["batch_id"])
    for key in ("start_at", "end_at"):
        if key in changes:
            changes[key] = to_naive_utc(changes[key])

    for key, value in changes.items():
        setattr(exam, key, value)

    if exam.start_at and exam.end_at and exam.end_at <= exam.start_at:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_at must be after start_at")
    if exam.total_subjects and exam.total_subjects < len(exam.mandatory_subjects or []):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="total_subjects cannot be smaller than the number of mandatory subjects")

    session.add(exam)
    await session.commit()
    await session.refresh(exam)
    return exam


@router.delete("/exams/{exam_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(current_admin)])
async def delete_exam(exam_id: UUID, session: AsyncSession = Depends(get_async_session)):
    from ..models.attempt_model import ExamAttempt

    exam = await _get_exam(session, exam_id)

    # delete attempts first to avoid FK constraint issues on backends without cascade
    await session.execute(delete(ExamAttempt).where(ExamAttempt.exam_id == exam.id))
    await session.delete(exam)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
