import os
import tempfile

# config is read at import time, so point it at throwaway locations first
_TMP = tempfile.mkdtemp(prefix="exam_engine_tests_")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(_TMP, 'api.db')}")
os.environ.setdefault("SNAPSHOT_DIR", os.path.join(_TMP, "snapshots"))
os.environ.setdefault("SECRET", "test-secret")
os.environ.setdefault("QUESTION_BANK_TOKEN", "test-token")
