from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from ..models.batch_model import BatchStatus


def _lower_codes(v):
    if v is None:
        return v
    return [str(code).strip().lower() for code in v if str(code).strip()]


def _check_number(field: str, v):
    # None means "not set" here; ExamUpdate rejects explicit nulls separately
    if v is None:
        return v
    if field == "duration_minutes" and v <= 0:
        raise ValueError("duration_minutes must be a positive integer (minutes)")
    if field == "marks_per_question" and v <= 0:
        raise ValueError("marks_per_question must be positive")
    if field == "negative_marks_per_wrong" and v < 0:
        raise ValueError("negative_marks_per_wrong must be >= 0")
    return v


class ExamConfig(BaseModel):
    """Exam settings the engine needs. Built from the ORM row."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    batch_id: Optional[UUID] = None
    file_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    marks_per_question: float = 1.0
    negative_marks_per_wrong: float = 0.0
    is_practice: bool = False
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    shuffle_questions: bool = False
    shuffle_sections_only: bool = False
    total_subjects: Optional[int] = None
    mandatory_subjects: List[str] = []
    optional_subjects: List[str] = []

    @field_validator("marks_per_question", mode="before")
    @classmethod
    def default_marks(cls, v):
        return 1.0 if v is None else v

    @field_validator("negative_marks_per_wrong", mode="before")
    @classmethod
    def default_negative(cls, v):
        return 0.0 if v is None else v

    @field_validator("negative_marks_per_wrong")
    @classmethod
    def negative_not_below_zero(cls, v):
        if v < 0:
            raise ValueError("negative_marks_per_wrong must be >= 0")
        return v

    @field_validator("mandatory_subjects", "optional_subjects", mode="before")
    @classmethod
    def normalize_codes(cls, v):
        return _lower_codes(v) or []

    @property
    def is_custom(self) -> bool:
        return bool(self.total_subjects and self.total_subjects > 0)


class ExamCreate(BaseModel):
    name: str
    description: Optional[str] = None
    course_name: Optional[str] = None
    batch_id: Optional[UUID] = None
    file_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    marks_per_question: float = 1.0
    negative_marks_per_wrong: float = 0.0
    is_practice: bool = False
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    shuffle_questions: bool = False
    shuffle_sections_only: bool = False
    total_subjects: Optional[int] = None
    mandatory_subjects: Optional[List[str]] = None
    optional_subjects: Optional[List[str]] = None

    @field_validator("duration_minutes", "marks_per_question", "negative_marks_per_wrong")
    @classmethod
    def check_numbers(cls, v, info):
        return _check_number(info.field_name, v)

    @field_validator("mandatory_subjects", "optional_subjects")
    @classmethod
    def normalize_codes(cls, v):
        return _lower_codes(v)

    @model_validator(mode="after")
    def check_window_and_subjects(self):
        if self.start_at is not None and self.end_at is not None and self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        if self.total_subjects:
            mandatory = self.mandatory_subjects or []
            optional = self.optional_subjects or []
            if self.total_subjects < len(mandatory):
                raise ValueError("total_subjects cannot be smaller than the number of mandatory subjects")
            if self.total_subjects - len(mandatory) > len(optional):
                raise ValueError("not enough optional subjects to reach total_subjects")
        return self


class ExamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    course_name: Optional[str] = None
    batch_id: Optional[UUID] = None
    file_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    marks_per_question: Optional[float] = None
    negative_marks_per_wrong: Optional[float] = None
    is_practice: Optional[bool] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    shuffle_questions: Optional[bool] = None
    shuffle_sections_only: Optional[bool] = None
    total_subjects: Optional[int] = None
    mandatory_subjects: Optional[List[str]] = None
    optional_subjects: Optional[List[str]] = None

    @field_validator("duration_minutes", "marks_per_question", "negative_marks_per_wrong")
    @classmethod
    def check_numbers(cls, v, info):
        return _check_number(info.field_name, v)

    @field_validator(
        "name", "marks_per_question", "negative_marks_per_wrong",
        "is_practice", "shuffle_questions", "shuffle_sections_only",
    )
    @classmethod
    def not_null(cls, v, info):
        # only runs for fields present in the payload
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("mandatory_subjects", "optional_subjects")
    @classmethod
    def normalize_codes(cls, v):
        return _lower_codes(v)


class ExamRead(ExamConfig):
    description: Optional[str] = None
    course_name: Optional[str] = None
    created_at: Optional[datetime] = None


class StudentExamRead(ExamRead):
    # live / upcoming / practice
    category: str


class BatchCreate(BaseModel):
    name: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    is_public: bool = False


class BatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    status: BatchStatus
    is_public: bool
    created_at: Optional[datetime] = None
