from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional, Dict, List
from uuid import UUID
from datetime import datetime
import enum

from .question_schema import StudentQuestion, ReviewQuestion


class AttemptResult(BaseModel):
    """Outcome of scoring one attempt. Computed at submit time."""
    model_config = ConfigDict(frozen=True)

    correct_count: int
    wrong_count: int
    unattempted_count: int
    total_questions: int
    score: float


class AttemptRecord(BaseModel):
    """A persisted attempt row."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    exam_id: UUID
    student_id: UUID
    correct_count: int
    wrong_count: int
    unattempted_count: int
    score: float
    marks_per_question: float = 1.0
    submitted_at: datetime


def result_from_record(record: AttemptRecord) -> AttemptResult:
    return AttemptResult(
        correct_count=record.correct_count,
        wrong_count=record.wrong_count,
        unattempted_count=record.unattempted_count,
        total_questions=record.correct_count + record.wrong_count + record.unattempted_count,
        score=record.score,
    )


class SubmitStatus(str, enum.Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


class SubmitOutcome(BaseModel):
    status: SubmitStatus
    # the stored attempt; for DUPLICATE this is the first recorded one
    attempt: Optional[AttemptRecord] = None
    reason: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status in (SubmitStatus.ACCEPTED, SubmitStatus.DUPLICATE)


# --- HTTP payloads -----------------------------------------------------------

class StartSessionPayload(BaseModel):
    # chosen subject codes (subject-selection exams) or free custom sections (practice)
    sections: Optional[List[str]] = None
    duration_minutes: Optional[int] = Field(None, gt=0)


class SelectAnswerPayload(BaseModel):
    question_id: str
    option_index: int = Field(..., ge=0)


class ReviewTogglePayload(BaseModel):
    question_id: str


class SessionStateResponse(BaseModel):
    session_id: str
    exam_id: UUID
    status: str
    remaining_seconds: Optional[int]
    remaining_display: Optional[str] = None
    answers: Dict[str, int] = {}
    marked_for_review: List[str] = []
    attempted_count: int
    unattempted_count: int
    # warnings raised since the previous poll
    events: List[str] = []


class SessionStartResponse(SessionStateResponse):
    sections: Optional[List[str]] = None
    questions: List[StudentQuestion]


class SubmitResponse(BaseModel):
    status: SubmitStatus
    result: AttemptResult
    attempt: Optional[AttemptRecord] = None
    reason: Optional[str] = None


class ReviewResponse(BaseModel):
    exam_id: UUID
    # authoritative persisted attempt (None when never submitted)
    attempt: Optional[AttemptRecord] = None
    # False when the local answer snapshot is missing
    answers_available: bool
    result: Optional[AttemptResult] = None
    marks_from_correct: Optional[float] = None
    negative_marks: Optional[float] = None
    # per-section counts and score, in order of first appearance
    section_scores: List[Dict[str, Any]] = []
    questions: List[ReviewQuestion] = []


class LeaderboardEntry(BaseModel):
    rank: int
    student_id: UUID
    name: Optional[str] = None
    roll: Optional[str] = None
    score: float
    correct_count: Optional[int] = None
    wrong_count: Optional[int] = None
    submitted_at: Optional[datetime] = None
    exams_taken: int = 1


class ResultsSummary(BaseModel):
    total_students: int
    average_score: float
    max_score: float
    min_score: float


class ExamResultsResponse(BaseModel):
    summary: ResultsSummary
    results: List[LeaderboardEntry]
