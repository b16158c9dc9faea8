import asyncio
import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine

from exam_engine.app import app
from exam_engine.config import DATABASE_URL
from exam_engine.dependencies import get_question_bank, get_snapshot_store
from exam_engine.models.user_model import User, UserRole
from exam_engine.services.snapshot_store import LocalSnapshotStore
from exam_engine.timeutils import utcnow

RECORDS = [
    {"id": "1", "question": "Unit of force?", "option1": "Newton", "option2": "Joule", "answer": "1", "section": "p"},
    {"id": "2", "question": "H2O is?", "option1": "Salt", "option2": "Water", "answer": "B", "section": "c"},
    {"id": "3", "question": "2 + 3?", "option1": "4", "option2": "6", "option3": "5", "answer": "3", "section": "m"},
]


class FakeBank:
    async def fetch_questions(self, file_id):
        return RECORDS


def promote_to_admin(email):
    # registration only creates students
    async def promote():
        engine = create_async_engine(DATABASE_URL)
        async with engine.begin() as conn:
            await conn.execute(update(User).where(User.email == email).values(role=UserRole.ADMIN))
        await engine.dispose()

    asyncio.run(promote())


def login(client, email):
    res = client.post("/auth/jwt/login", data={"username": email, "password": "s3cret-pass"})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


def register_and_login(client, role):
    email = f"{role}-{uuid.uuid4().hex[:8]}@school.edu"
    res = client.post("/auth/register", json={
        "email": email, "password": "s3cret-pass", "full_name": f"Test {role}", "roll": "R-1",
    })
    assert res.status_code == 201, res.text
    if role == "admin":
        promote_to_admin(email)
    return login(client, email)


@pytest.fixture(scope="module")
def api(tmp_path_factory):
    snapshot_dir = str(tmp_path_factory.mktemp("snapshots"))
    app.dependency_overrides[get_question_bank] = lambda: FakeBank()
    app.dependency_overrides[get_snapshot_store] = lambda: LocalSnapshotStore(snapshot_dir)
    with TestClient(app) as client:
        admin = register_and_login(client, "admin")
        student = register_and_login(client, "student")
        yield client, admin, student
    app.dependency_overrides.clear()


def create_exam(client, admin, **fields):
    payload = {"name": "Science practice", "file_id": "set-1", "is_practice": True,
               "negative_marks_per_wrong": 0.5, "duration_minutes": 30}
    payload.update(fields)
    res = client.post("/api/exams", json=payload, headers=admin)
    assert res.status_code == 201, res.text
    return res.json()


def test_full_attempt(api):
    client, admin, student = api
    exam = create_exam(client, admin)
    exam_id = exam["id"]

    listed = client.get("/api/student/exams", headers=student)
    assert listed.status_code == 200
    assert {"id": exam_id, "category": "practice"}.items() <= next(e for e in listed.json() if e["id"] == exam_id).items()

    res = client.post(f"/api/exams/{exam_id}/start", json={}, headers=student)
    assert res.status_code == 200, res.text
    started = res.json()
    sid = started["session_id"]
    assert started["status"] == "running"
    assert started["remaining_seconds"] == 1800
    assert [q["id"] for q in started["questions"]] == ["1", "2", "3"]
    # no answer key goes to the student
    assert all("correct_index" not in q for q in started["questions"])

    client.post(f"/api/sessions/{sid}/answers", json={"question_id": "1", "option_index": 0}, headers=student)
    client.post(f"/api/sessions/{sid}/answers", json={"question_id": "2", "option_index": 0}, headers=student)
    state = client.post(f"/api/sessions/{sid}/answers", json={"question_id": "1", "option_index": 1}, headers=student).json()
    assert state["answers"] == {"1": 0, "2": 0}
    state = client.post(f"/api/sessions/{sid}/review", json={"question_id": "3"}, headers=student).json()
    assert state["marked_for_review"] == ["3"]
    assert state["unattempted_count"] == 1

    res = client.post(f"/api/sessions/{sid}/submit", headers=student)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["status"] == "accepted"
    assert body["result"] == {"correct_count": 1, "wrong_count": 1, "unattempted_count": 1,
                              "total_questions": 3, "score": 0.5}
    again = client.post(f"/api/sessions/{sid}/submit", headers=student).json()
    assert again["status"] == "accepted"
    assert again["attempt"]["id"] == body["attempt"]["id"]

    # answering after submission is a state conflict
    res = client.post(f"/api/sessions/{sid}/answers", json={"question_id": "3", "option_index": 0}, headers=student)
    assert res.status_code == 409

    board = client.get(f"/api/exams/{exam_id}/leaderboard", headers=student).json()
    assert len(board) == 1
    assert board[0]["rank"] == 1
    assert board[0]["score"] == 0.5
    assert board[0]["name"] == "Test student"

    review = client.get(f"/api/exams/{exam_id}/review", headers=student).json()
    assert review["answers_available"] is True
    assert review["marks_from_correct"] == 1.0
    assert review["negative_marks"] == 0.5
    assert [(q["id"], q["outcome"]) for q in review["questions"]] == [("1", "correct"), ("2", "wrong"), ("3", "skipped")]
    wrong_only = client.get(f"/api/exams/{exam_id}/review", params={"filter": "wrong"}, headers=student).json()
    assert [q["id"] for q in wrong_only["questions"]] == ["2"]
    assert client.get(f"/api/exams/{exam_id}/review", params={"filter": "bogus"}, headers=student).status_code == 400

    mine = client.get("/api/student/results", headers=student).json()
    assert [r["exam_id"] for r in mine].count(exam_id) == 1

    results = client.get(f"/api/exams/{exam_id}/results", headers=admin)
    assert results.status_code == 200
    assert results.json()["summary"]["total_students"] == 1
    assert client.get(f"/api/exams/{exam_id}/results", headers=student).status_code == 403

    # a second run of the same exam never stores a second attempt
    sid2 = client.post(f"/api/exams/{exam_id}/start", json={}, headers=student).json()["session_id"]
    client.post(f"/api/sessions/{sid2}/answers", json={"question_id": "3", "option_index": 2}, headers=student)
    dup = client.post(f"/api/sessions/{sid2}/submit", headers=student).json()
    assert dup["status"] == "duplicate"
    assert dup["attempt"]["id"] == body["attempt"]["id"]
    assert dup["attempt"]["score"] == 0.5
    # the response shows the stored result, not the second run's
    assert dup["result"] == body["result"]


def test_sessions_belong_to_their_student(api):
    client, admin, student = api
    other = register_and_login(client, "student")
    exam = create_exam(client, admin, name="Ownership check")
    sid = client.post(f"/api/exams/{exam['id']}/start", json={}, headers=student).json()["session_id"]

    assert client.get(f"/api/sessions/{sid}", headers=other).status_code == 404
    assert client.delete(f"/api/sessions/{sid}", headers=other).status_code == 404
    assert client.delete(f"/api/sessions/{sid}", headers=student).status_code == 204
    assert client.get(f"/api/sessions/{sid}", headers=student).status_code == 404


def test_private_batch_is_closed_to_outsiders(api):
    client, admin, student = api
    batch = client.post("/api/batches", json={"name": "HSC 2025"}, headers=admin)
    assert batch.status_code == 201, batch.text
    batch_id = batch.json()["id"]
    exam = create_exam(client, admin, name="Batch exam", batch_id=batch_id)

    assert client.post(f"/api/exams/{exam['id']}/start", json={}, headers=student).status_code == 403
    assert client.get(f"/api/batches/{batch_id}/leaderboard", headers=student).status_code == 403
    assert client.get(f"/api/batches/{batch_id}/leaderboard", headers=admin).json() == []
    listed = client.get("/api/student/exams", headers=student).json()
    assert exam["id"] not in [e["id"] for e in listed]


def test_live_exam_outside_window(api):
    client, admin, student = api
    start = utcnow() + timedelta(days=1)
    exam = create_exam(client, admin, name="Tomorrow", is_practice=False,
                       start_at=start.isoformat(), end_at=(start + timedelta(hours=2)).isoformat())
    res = client.post(f"/api/exams/{exam['id']}/start", json={}, headers=student)
    assert res.status_code == 400
    assert "not started" in res.json()["detail"]

    listed = client.get("/api/student/exams", headers=student).json()
    assert next(e for e in listed if e["id"] == exam["id"])["category"] == "upcoming"


def test_subject_selection_over_http(api):
    client, admin, student = api
    exam = create_exam(client, admin, name="Admission", total_subjects=2,
                       mandatory_subjects=["p"], optional_subjects=["c", "m"])
    bad = client.post(f"/api/exams/{exam['id']}/start", json={"sections": ["c", "m"]}, headers=student)
    assert bad.status_code == 400
    res = client.post(f"/api/exams/{exam['id']}/start", json={"sections": ["m"]}, headers=student)
    assert res.status_code == 200, res.text
    started = res.json()
    assert started["sections"] == ["p", "m"]
    assert sorted(q["id"] for q in started["questions"]) == ["1", "3"]


def test_only_admins_manage_exams(api):
    client, admin, student = api
    res = client.post("/api/exams", json={"name": "x"}, headers=student)
    assert res.status_code == 403
    assert client.get("/api/exams", headers=admin).status_code == 200
    exam = create_exam(client, admin, name="Temp")
    res = client.put(f"/api/exams/{exam['id']}", json={"duration_minutes": 45}, headers=admin)
    assert res.json()["duration_minutes"] == 45
    assert client.delete(f"/api/exams/{exam['id']}", headers=admin).status_code == 204
    assert client.get(f"/api/exams/{exam['id']}", headers=admin).status_code == 404


def test_registration_cannot_grant_role_or_enrollment(api):
    client, admin, student = api
    batch_id = client.post("/api/batches", json={"name": "Closed batch"}, headers=admin).json()["id"]
    exam = create_exam(client, admin, name="Closed exam", batch_id=batch_id)

    email = f"eager-{uuid.uuid4().hex[:8]}@school.edu"
    res = client.post("/auth/register", json={
        "email": email, "password": "s3cret-pass", "full_name": "Eager", "role": "admin", "enrolled_batches": [batch_id],
    })
    assert res.status_code == 201, res.text
    user = res.json()
    assert user["role"] == "student"
    assert user["enrolled_batches"] == []

    eager = login(client, email)
    assert client.post(f"/api/exams/{exam['id']}/start", json={}, headers=eager).status_code == 403
    assert client.post("/api/exams", json={"name": "x"}, headers=eager).status_code == 403
    assert client.patch("/users/me", json={"enrolled_batches": [batch_id]}, headers=eager).status_code == 403

    # enrollment is granted by an admin
    assert client.put(f"/api/batches/{batch_id}/students/{user['id']}", headers=eager).status_code == 403
    res = client.put(f"/api/batches/{batch_id}/students/{user['id']}", headers=admin)
    assert res.status_code == 200, res.text
    assert res.json()["enrolled_batches"] == [batch_id]
    assert client.post(f"/api/exams/{exam['id']}/start", json={}, headers=eager).status_code == 200

    res = client.delete(f"/api/batches/{batch_id}/students/{user['id']}", headers=admin)
    assert res.json()["enrolled_batches"] == []
    assert client.post(f"/api/exams/{exam['id']}/start", json={}, headers=eager).status_code == 403


def test_finished_live_exam_is_listed_and_opened_as_practice(api):
    client, admin, student = api
    start = utcnow() - timedelta(hours=3)
    exam = create_exam(client, admin, name="Last week", is_practice=False,
                       start_at=start.isoformat(), end_at=(start + timedelta(hours=2)).isoformat())

    listed = client.get("/api/student/exams", headers=student).json()
    assert next(e for e in listed if e["id"] == exam["id"])["category"] == "practice"
    res = client.post(f"/api/exams/{exam['id']}/start", json={}, headers=student)
    assert res.status_code == 200, res.text


def test_exam_update_rejects_nulls_and_bad_marks(api):
    client, admin, student = api
    exam = create_exam(client, admin, name="Strict")
    assert client.put(f"/api/exams/{exam['id']}", json={"marks_per_question": None}, headers=admin).status_code == 422
    assert client.put(f"/api/exams/{exam['id']}", json={"negative_marks_per_wrong": None}, headers=admin).status_code == 422
    assert client.put(f"/api/exams/{exam['id']}", json={"marks_per_question": 0}, headers=admin).status_code == 422
    res = client.put(f"/api/exams/{exam['id']}", json={"marks_per_question": 2}, headers=admin)
    assert res.json()["marks_per_question"] == 2
