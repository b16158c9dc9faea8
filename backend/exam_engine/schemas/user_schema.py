from fastapi_users import schemas
from ..models.user_model import UserRole
import uuid
from pydantic import BaseModel
from typing import List


class UserRead(schemas.BaseUser[uuid.UUID]):
    full_name: str | None = None
    roll: str | None = None
    role: UserRole
    enrolled_batches: List[str] = []

class UserCreate(schemas.BaseUserCreate):
    # self-registration: role stays STUDENT, enrollment is set by an admin
    full_name: str
    roll: str | None = None

class UserUpdate(schemas.BaseUserUpdate):
    full_name : str | None = None
    roll: str | None = None
    role: UserRole | None = None
    enrolled_batches: List[str] | None = None


class StudentContext(BaseModel):
    """Resolved identity handed to an exam session instead of ambient auth state."""
    student_id: uuid.UUID
    enrolled_batches: List[str] = []
    name: str | None = None

    def is_enrolled_in(self, batch_id) -> bool:
        return str(batch_id) in {str(b) for b in self.enrolled_batches}
