from ..db import Base, JSONType
from sqlalchemy import String
from sqlalchemy import Column, Enum as SQLAlchemyEnum
from fastapi_users.db import SQLAlchemyBaseUserTableUUID
import enum

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STUDENT = "student"

class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"
    full_name = Column(String)
    roll = Column(String, nullable=True)
    role = Column(SQLAlchemyEnum(UserRole), default=UserRole.STUDENT)
    # list of batch ids (as strings) the student is enrolled in
    enrolled_batches = Column(JSONType, nullable=False, default=list)
