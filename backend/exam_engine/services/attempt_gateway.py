import logging
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import SubmissionTransportFailure
from ..models.attempt_model import ExamAttempt
from ..models.user_model import User
from ..schemas.attempt_schema import AttemptRecord, AttemptResult, SubmitOutcome, SubmitStatus
from ..timeutils import utcnow

logger = logging.getLogger(__name__)


class AttemptGateway(Protocol):
    """Durable storage of attempts. At most one stored attempt per (student, exam)."""

    async def submit_attempt(
        self,
        student_id: UUID,
        exam_id: UUID,
        result: AttemptResult,
        marks_per_question: float = 1.0,
    ) -> SubmitOutcome:
        ...


async def _find_attempt(session: AsyncSession, student_id: UUID, exam_id: UUID) -> Optional[ExamAttempt]:
    res = await session.execute(
        select(ExamAttempt).where(ExamAttempt.student_id == student_id, ExamAttempt.exam_id == exam_id)
    )
    rows = res.scalars().all()
    if len(rows) > 1:
        logger.warning("Multiple ExamAttempt rows found for exam_id=%s student_id=%s, using the first one", str(exam_id), str(student_id))
    return rows[0] if rows else None


class SqlAttemptGateway:
    """
    insert-if-absent on the ``exam_attempts`` table.

    A second submission for the same pair reports DUPLICATE with the stored row
    untouched, whether it is caught by the pre-check or by the unique
    constraint (two tabs racing).
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def submit_attempt(
        self,
        student_id: UUID,
        exam_id: UUID,
        result: AttemptResult,
        marks_per_question: float = 1.0,
    ) -> SubmitOutcome:
        try:
            async with self._session_factory() as session:
                return await self._insert_if_absent(session, student_id, exam_id, result, marks_per_question)
        except SQLAlchemyError as e:
            logger.exception("DB error while storing attempt for exam_id=%s student_id=%s", str(exam_id), str(student_id))
            raise SubmissionTransportFailure(str(e)) from e

    async def _insert_if_absent(
        self,
        session: AsyncSession,
        student_id: UUID,
        exam_id: UUID,
        result: AttemptResult,
        marks_per_question: float,
    ) -> SubmitOutcome:
        student = await session.get(User, student_id)
        if student is None:
            logger.warning("Student %s is not registered, attempt for exam_id=%s not stored", str(student_id), str(exam_id))
            return SubmitOutcome(status=SubmitStatus.REJECTED, reason="student is not registered")

        existing = await _find_attempt(session, student_id, exam_id)
        if existing:
            logger.info("Attempt already recorded for exam_id=%s student_id=%s", str(exam_id), str(student_id))
            return SubmitOutcome(status=SubmitStatus.DUPLICATE, attempt=AttemptRecord.model_validate(existing))

        attempt = ExamAttempt(
            exam_id=exam_id,
            student_id=student_id,
            correct_count=result.correct_count,
            wrong_count=result.wrong_count,
            unattempted_count=result.unattempted_count,
            score=result.score,
            marks_per_question=marks_per_question or 1.0,
            submitted_at=utcnow(),
        )
        session.add(attempt)
        try:
            await session.commit()
        except IntegrityError as ie:
            await session.rollback()
            existing = await _find_attempt(session, student_id, exam_id)
            if existing:
                logger.info("Concurrent submission for exam_id=%s student_id=%s resolved as duplicate", str(exam_id), str(student_id))
                return SubmitOutcome(status=SubmitStatus.DUPLICATE, attempt=AttemptRecord.model_validate(existing))
            logger.warning("Attempt for exam_id=%s student_id=%s rejected: %s", str(exam_id), str(student_id), ie.orig)
            return SubmitOutcome(status=SubmitStatus.REJECTED, reason=str(ie.orig))

        await session.refresh(attempt)
        return SubmitOutcome(status=SubmitStatus.ACCEPTED, attempt=AttemptRecord.model_validate(attempt))
