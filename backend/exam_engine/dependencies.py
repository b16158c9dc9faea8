from fastapi import Depends, HTTPException, status, Request

from .config import SNAPSHOT_DIR
from .models.user_model import User, UserRole
from .schemas.user_schema import StudentContext
from .security import current_active_user
from .services.attempt_gateway import SqlAttemptGateway
from .services.question_bank import QuestionBankClient
from .services.snapshot_store import LocalSnapshotStore


def current_user_has_role(required_role: UserRole):
    async def current_user_contains_role(user: User = Depends(current_active_user)):
        if user.role != required_role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted",
            )
        return user
    return current_user_contains_role


current_admin = current_user_has_role(UserRole.ADMIN)
current_student = current_user_has_role(UserRole.STUDENT)


async def get_student_context(user: User = Depends(current_student)) -> StudentContext:
    # resolved once per request and passed explicitly into the exam session
    return StudentContext(
        student_id=user.id,
        enrolled_batches=[str(b) for b in (user.enrolled_batches or [])],
        name=user.full_name,
    )


async def users_router_permission(request: Request, user: User = Depends(current_active_user)):
    method = request.method.upper()
    # Admin-only methods
    if method in ("POST", "PUT", "PATCH", "DELETE"):
        if user.role != UserRole.ADMIN:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
    return True


def get_question_bank() -> QuestionBankClient:
    return QuestionBankClient()


def get_snapshot_store() -> LocalSnapshotStore:
    return LocalSnapshotStore(SNAPSHOT_DIR)


def get_attempt_gateway() -> SqlAttemptGateway:
    # the gateway opens its own DB sessions: auto-submit runs outside any request
    from .db import async_session_maker
    return SqlAttemptGateway(async_session_maker)


def http_error_for(exc: Exception) -> HTTPException:
    """Map an engine exception to the HTTP error the routers return."""
    from .errors import (
        AuthorizationFailure, ConfigurationFailure, ExamUnavailable, LoadFailure,
        SessionStateError, SubmissionTransportFailure,
    )
    if isinstance(exc, LoadFailure):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Could not load questions: {exc}")
    if isinstance(exc, AuthorizationFailure):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, (ConfigurationFailure, ExamUnavailable, ValueError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, SessionStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, SubmissionTransportFailure):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Your answers are saved locally but the result could not be stored. Please retry.",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
