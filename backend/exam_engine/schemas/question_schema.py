from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional


class Question(BaseModel):
    """
    Canonical in-memory question.

    Built once per exam load by the question normalizer and never mutated
    during a session (the model is frozen).
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable identifier, unique within the question set.")
    text: str = Field("", description="Question body. May contain markup and LaTeX.")
    options: List[str] = Field(..., min_length=2, max_length=5, description="Answer options in display order.")
    correct_index: int = Field(-1, ge=-1, description="Zero-based index into options, -1 when the key is unresolved.")
    section: Optional[str] = Field(None, description="Lowercase subject code.")
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def correct_index_points_into_options(self) -> "Question":
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct_index {self.correct_index} is outside the {len(self.options)} options of question {self.id}"
            )
        return self

    @property
    def is_scorable(self) -> bool:
        return self.correct_index >= 0


class StudentQuestion(BaseModel):
    """Question as sent to a student during an attempt (no answer key)."""
    id: str
    text: str
    options: List[str]
    section: Optional[str] = None

    @classmethod
    def from_question(cls, q: Question) -> "StudentQuestion":
        return cls(id=q.id, text=q.text, options=list(q.options), section=q.section)


class ReviewQuestion(BaseModel):
    """Question with the student's answer and its outcome, for the review screen."""
    id: str
    text: str
    options: List[str]
    section: Optional[str] = None
    explanation: Optional[str] = None
    correct_index: int
    selected_index: Optional[int] = None
    outcome: str
