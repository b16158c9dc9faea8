from ..db import Base, JSONType
from sqlalchemy import String


"""
Exams Model
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `name` | VARCHAR | |
| `batch_id` | UUID | FK -> Batches, NULL means public exam |
| `file_id` | VARCHAR | question set id in the upstream question bank |
| `duration_minutes` | INTEGER | NULL for untimed practice |
| `marks_per_question` | FLOAT | Default `1` |
| `negative_marks_per_wrong` | FLOAT | Default `0` |
| `is_practice` | BOOLEAN | always available when true |
| `start_at` / `end_at` | TIMESTAMP | naive UTC, bound a live exam |
| `total_subjects` | INTEGER | set -> subject-selection exam |
| `mandatory_subjects` | JSON | list of section codes |
| `optional_subjects` | JSON | list of section codes |
"""

from sqlalchemy import Column, Boolean, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship, backref
from fastapi_users_db_sqlalchemy.generics import GUID
import uuid
from ..timeutils import utcnow


class Exam(Base):
    __tablename__ = "exams"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    course_name = Column(String, nullable=True)
    batch_id = Column(GUID, ForeignKey("batches.id", ondelete="SET NULL"), nullable=True)
    file_id = Column(String, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    marks_per_question = Column(Float, default=1.0, nullable=False)
    negative_marks_per_wrong = Column(Float, default=0.0, nullable=False)
    is_practice = Column(Boolean, default=False, nullable=False)
    start_at = Column(DateTime, nullable=True)
    end_at = Column(DateTime, nullable=True)
    shuffle_questions = Column(Boolean, default=False, nullable=False)
    shuffle_sections_only = Column(Boolean, default=False, nullable=False)
    total_subjects = Column(Integer, nullable=True)
    mandatory_subjects = Column(JSONType, nullable=True)
    optional_subjects = Column(JSONType, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    batch = relationship("Batch", backref=backref("exams", passive_deletes=True))
