"""
In-process store of running exam sessions.

Each started attempt gets a random session id. Sessions idle for longer than
the TTL are abandoned and dropped; an abandoned session is never persisted.
Submitted sessions stay only long enough for the client to re-read the result.
"""
import asyncio
import logging
import threading
import time
import uuid
from typing import Dict, List, Optional

from ..config import FINISHED_SESSION_TTL, SESSION_CLEANUP_INTERVAL, SESSION_TTL
from .exam_session import ExamSession, SessionStatus

logger = logging.getLogger(__name__)


class SessionRegistry:

    def __init__(self, ttl: int = SESSION_TTL, finished_ttl: int = FINISHED_SESSION_TTL):
        self.ttl = ttl
        self.finished_ttl = min(ttl, finished_ttl)
        self._lock = threading.Lock()
        self._sessions: Dict[str, ExamSession] = {}
        self._timestamps: Dict[str, float] = {}
        self._clocks: Dict[str, asyncio.Task] = {}

    def add(self, session: ExamSession) -> str:
        sid = uuid.uuid4().hex
        with self._lock:
            self._sessions[sid] = session
            self._timestamps[sid] = time.time()
        return sid

    def get(self, sid: str) -> Optional[ExamSession]:
        """Session by id, or None when unknown or expired. Access refreshes the TTL."""
        with self._lock:
            session = self._sessions.get(sid)
            if session is None:
                return None
            if self._is_stale(sid, time.time()):
                self._drop(sid)
                return None
            self._timestamps[sid] = time.time()
            return session

    def start_clock(self, sid: str) -> Optional[asyncio.Task]:
        """Run the session's countdown on the current event loop."""
        session = self.get(sid)
        if session is None or session.countdown is None or not session.countdown.is_timed:
            return None
        task = asyncio.get_running_loop().create_task(session.run_clock())
        with self._lock:
            self._clocks[sid] = task
        return task

    def _drop(self, sid: str) -> None:
        # caller holds the lock
        session = self._sessions.pop(sid, None)
        self._timestamps.pop(sid, None)
        task = self._clocks.pop(sid, None)
        if task is not None and not task.done():
            task.cancel()
        if session is not None:
            session.abandon()

    def remove(self, sid: str) -> None:
        with self._lock:
            self._drop(sid)

    def _is_stale(self, sid: str, now: float) -> bool:
        # caller holds the lock
        status = self._sessions[sid].status
        if status is SessionStatus.SUBMITTING:
            return False
        idle = now - self._timestamps[sid]
        if status in (SessionStatus.SUBMITTED, SessionStatus.ABANDONED):
            return idle > self.finished_ttl
        return idle > self.ttl

    def cleanup_expired(self) -> int:
        """Drop expired and finished sessions. Returns how many were removed."""
        now = time.time()
        with self._lock:
            expired = [sid for sid in self._timestamps if self._is_stale(sid, now)]
            for sid in expired:
                self._drop(sid)
        if expired:
            logger.info("Dropped %d expired exam sessions", len(expired))
        return len(expired)

    async def run_cleanup(self, interval: float = SESSION_CLEANUP_INTERVAL) -> None:
        """Prune the registry every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.cleanup_expired()

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)


registry = SessionRegistry()


def get_session_registry() -> SessionRegistry:
    return registry
