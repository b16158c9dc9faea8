from ..db import Base
from sqlalchemy import Column, String, Boolean, DateTime, Enum as SAEnum
from fastapi_users_db_sqlalchemy.generics import GUID
import uuid
from ..timeutils import utcnow
import enum


"""
Batches (cohorts)
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `name` | VARCHAR | |
| `status` | ENUM | `live` / `end` |
| `is_public` | BOOLEAN | public batches need no enrollment |
"""


class BatchStatus(str, enum.Enum):
    LIVE = "live"
    END = "end"


class Batch(Base):
    __tablename__ = "batches"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    icon_url = Column(String, nullable=True)
    status = Column(SAEnum(BatchStatus), default=BatchStatus.LIVE, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
