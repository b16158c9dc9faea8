from ..db import Base
from sqlalchemy import Column, Integer, Float, DateTime, UniqueConstraint
from sqlalchemy import ForeignKey
from sqlalchemy.orm import relationship, backref
from fastapi_users_db_sqlalchemy.generics import GUID
import uuid
from ..timeutils import utcnow


class ExamAttempt(Base):
    """One scored submission. At most one row per (student, exam)."""
    __tablename__ = "exam_attempts"
    __table_args__ = (UniqueConstraint('student_id', 'exam_id', name='uq_attempt_student_exam'),)

    id = Column(GUID, primary_key=True, default=uuid.uuid4)

    # DB-level ON DELETE CASCADE removes attempts together with the exam
    exam_id = Column(GUID, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(GUID, ForeignKey("users.id"), nullable=False)

    correct_count = Column(Integer, nullable=False, default=0)
    wrong_count = Column(Integer, nullable=False, default=0)
    unattempted_count = Column(Integer, nullable=False, default=0)
    score = Column(Float, nullable=False, default=0.0)
    # marking scheme in force at submit time
    marks_per_question = Column(Float, nullable=False, default=1.0)
    submitted_at = Column(DateTime, nullable=False, default=utcnow)

    exam = relationship("Exam", backref=backref("attempts", passive_deletes=True))
    student = relationship("User")
