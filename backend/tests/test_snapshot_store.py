import json
import os
import uuid

from exam_engine.services.snapshot_store import LocalSnapshotStore, snapshot_key


def test_key_scheme():
    assert snapshot_key("s1", "e1") == "s1_e1"
    assert snapshot_key("s1", "e1", custom=True) == "s1_e1_custom"


def test_save_and_load(tmp_path):
    store = LocalSnapshotStore(str(tmp_path))
    student, exam = uuid.uuid4(), uuid.uuid4()

    key = store.save(student, exam, {"q1": 2, "q2": 0})
    assert key == f"{student}_{exam}"
    assert store.load(student, exam) == {"answers": {"q1": 2, "q2": 0}, "sections": None}
    # a plain run is not visible under the custom key
    assert store.load(student, exam, custom=True) is None


def test_custom_runs_keep_their_sections(tmp_path):
    store = LocalSnapshotStore(str(tmp_path))
    student, exam = uuid.uuid4(), uuid.uuid4()

    key = store.save(student, exam, {"q1": 1}, sections=["p", "c"])
    assert key.endswith("_custom")
    assert store.load(student, exam, custom=True) == {"answers": {"q1": 1}, "sections": ["p", "c"]}
    assert store.load(student, exam) is None


def test_missing_or_broken_snapshot_is_not_an_error(tmp_path):
    store = LocalSnapshotStore(str(tmp_path))
    student, exam = uuid.uuid4(), uuid.uuid4()
    assert store.load(student, exam) is None

    with open(os.path.join(str(tmp_path), f"{student}_{exam}.json"), "w") as f:
        f.write("{not json")
    assert store.load(student, exam) is None


def test_bare_answers_file_is_accepted(tmp_path):
    store = LocalSnapshotStore(str(tmp_path))
    with open(os.path.join(str(tmp_path), "s_e.json"), "w") as f:
        json.dump({"q1": "3"}, f)
    assert store.load("s", "e") == {"answers": {"q1": 3}, "sections": None}


def test_delete(tmp_path):
    store = LocalSnapshotStore(str(tmp_path))
    store.save("s", "e", {"q": 0})
    assert store.delete("s", "e") is True
    assert store.delete("s", "e") is False
    assert store.load("s", "e") is None
