import asyncio
import uuid

from exam_engine.schemas.attempt_schema import SubmitOutcome, SubmitStatus
from exam_engine.schemas.exam_schema import ExamConfig
from exam_engine.schemas.question_schema import Question
from exam_engine.schemas.user_schema import StudentContext
from exam_engine.services.exam_session import ExamSession, SessionStatus
from exam_engine.services.session_registry import SessionRegistry


class DummyGateway:
    def __init__(self):
        self.calls = 0

    async def submit_attempt(self, student_id, exam_id, result, marks_per_question=1.0):
        self.calls += 1
        return SubmitOutcome(status=SubmitStatus.ACCEPTED)


def make_session(duration_minutes=None, gateway=None):
    exam = ExamConfig(id=uuid.uuid4(), name="p", is_practice=True, duration_minutes=duration_minutes)
    questions = [Question(id="1", text="t", options=["a", "b"], correct_index=0)]
    session = ExamSession(exam, questions, StudentContext(student_id=uuid.uuid4()), gateway or DummyGateway())
    session.start()
    return session


def test_add_and_get():
    registry = SessionRegistry(ttl=60)
    session = make_session()
    sid = registry.add(session)
    assert registry.get(sid) is session
    assert registry.get("unknown") is None
    assert len(registry) == 1


def test_expired_sessions_are_abandoned():
    registry = SessionRegistry(ttl=0)
    session = make_session()
    sid = registry.add(session)
    registry._timestamps[sid] -= 1
    assert registry.get(sid) is None
    assert session.status is SessionStatus.ABANDONED
    assert len(registry) == 0


def test_cleanup_expired():
    registry = SessionRegistry(ttl=100)
    old, fresh = make_session(), make_session()
    old_sid = registry.add(old)
    registry.add(fresh)
    registry._timestamps[old_sid] -= 500
    assert registry.cleanup_expired() == 1
    assert old.status is SessionStatus.ABANDONED
    assert fresh.status is SessionStatus.RUNNING
    assert registry.session_ids() != [old_sid]


def test_untimed_session_has_no_clock():
    async def scenario():
        registry = SessionRegistry()
        sid = registry.add(make_session())
        return registry.start_clock(sid)

    assert asyncio.run(scenario()) is None


def test_remove_cancels_the_clock():
    gateway = DummyGateway()

    async def scenario():
        registry = SessionRegistry()
        session = make_session(duration_minutes=30, gateway=gateway)
        sid = registry.add(session)
        task = registry.start_clock(sid)
        await asyncio.sleep(0)
        registry.remove(sid)
        await asyncio.sleep(0)
        return session, task

    session, task = asyncio.run(scenario())
    assert task.cancelled() or task.done()
    assert session.status is SessionStatus.ABANDONED
    assert gateway.calls == 0


def test_submitted_sessions_are_dropped_after_the_grace_period():
    registry = SessionRegistry(ttl=3600, finished_ttl=60)
    done, running = make_session(), make_session()
    asyncio.run(done.submit())
    done_sid = registry.add(done)
    running_sid = registry.add(running)
    registry._timestamps[done_sid] -= 120
    registry._timestamps[running_sid] -= 120

    assert registry.cleanup_expired() == 1
    assert registry.session_ids() == [running_sid]
    # a dropped submitted session keeps its outcome
    assert done.status is SessionStatus.SUBMITTED


def test_periodic_cleanup_prunes_without_reads():
    async def scenario():
        registry = SessionRegistry(ttl=0, finished_ttl=0)
        for _ in range(50):
            session = make_session()
            await session.submit()
            sid = registry.add(session)
            registry._timestamps[sid] -= 1
        task = asyncio.get_running_loop().create_task(registry.run_cleanup(interval=0))
        await asyncio.sleep(0.01)
        task.cancel()
        return len(registry)

    assert asyncio.run(scenario()) == 0
