"""
Local, non-authoritative copy of a submitted answer ledger.

Written before the attempt is sent to the database so no answers are lost if
persistence fails, and read back by the review screen. Losing a snapshot only
costs the per-question review; the stored score stays available.
"""
import json
import logging
import os
import re
from typing import Dict, List, Optional
from uuid import UUID

from ..config import SNAPSHOT_DIR

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


def snapshot_key(student_id, exam_id, custom: bool = False) -> str:
    """{studentId}_{examId} with a ``_custom`` suffix for section-filtered runs."""
    key = f"{student_id}_{exam_id}"
    if custom:
        key += "_custom"
    return key


class LocalSnapshotStore:
    """One JSON file per key under ``directory``."""

    def __init__(self, directory: str = SNAPSHOT_DIR):
        self.directory = os.path.abspath(directory)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, _SAFE_KEY.sub("_", key) + ".json")

    def save(self, student_id: UUID, exam_id: UUID, answers: Dict[str, int], sections: Optional[List[str]] = None) -> str:
        key = snapshot_key(student_id, exam_id, custom=sections is not None)
        os.makedirs(self.directory, exist_ok=True)
        data = {"answers": dict(answers), "sections": list(sections) if sections is not None else None}
        path = self._path(key)
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, path)
        logger.info("Saved answer snapshot %s (%d answers)", key, len(answers))
        return key

    def load(self, student_id: UUID, exam_id: UUID, custom: bool = False) -> Optional[dict]:
        """
        Returns {"answers": {...}, "sections": [...] | None} or None.
        A missing or unreadable snapshot is not an error.
        """
        key = snapshot_key(student_id, exam_id, custom)
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning("Answer snapshot %s is unreadable, ignoring it", key)
            return None

        # older snapshots stored the bare answers mapping
        if isinstance(data, dict) and "answers" not in data:
            data = {"answers": data, "sections": None}
        if not isinstance(data, dict) or not isinstance(data.get("answers"), dict):
            logger.warning("Answer snapshot %s has an unexpected shape, ignoring it", key)
            return None
        try:
            answers = {str(k): int(v) for k, v in data["answers"].items()}
        except (TypeError, ValueError):
            logger.warning("Answer snapshot %s holds non-integer answers, ignoring it", key)
            return None
        return {"answers": answers, "sections": data.get("sections")}

    def delete(self, student_id: UUID, exam_id: UUID, custom: bool = False) -> bool:
        path = self._path(snapshot_key(student_id, exam_id, custom))
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False
