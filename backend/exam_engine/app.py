from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi import Depends

from .routers import exam_routers, student_routers, result_routers
from contextlib import asynccontextmanager
from .config import CORS_ORIGINS, LOG_LEVEL, SNAPSHOT_DIR
from .db import create_db_and_tables
from .security import auth_backend, app_users
from .dependencies import users_router_permission
from .schemas.user_schema import UserCreate, UserRead, UserUpdate
from .services.session_registry import registry

import asyncio
import logging
import os

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # run once when app starts. Make DB and snapshot folder.
    await create_db_and_tables()
    os.makedirs(SNAPSHOT_DIR, exist_ok=True)
    cleanup = asyncio.create_task(registry.run_cleanup())
    yield
    cleanup.cancel()
    # running exams are not persisted on shutdown
    for sid in registry.session_ids():
        registry.remove(sid)
    logger.info("Exam engine stopped")

app = FastAPI(lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,  # which sites can call this API
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach users router with small permission check. This router provides /users and /users/me
app.include_router(
    app_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(users_router_permission)],
)


app.include_router(exam_routers.router, prefix="/api")
app.include_router(student_routers.router, prefix="/api", tags=["Student"])
app.include_router(result_routers.router, prefix="/api", tags=["Results"])

# Auth routers
app.include_router(app_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
app.include_router(app_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(app_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])
