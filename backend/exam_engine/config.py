import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# database
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{os.path.join(BASE_DIR, 'exam_engine.db')}"
SCHEMA_SEARCH_PATH = os.getenv("SCHEMA_SEARCH_PATH")
SQL_ECHO = os.getenv("SQL_ECHO", "0").lower() in ("1", "true", "yes")

# auth
SECRET = os.getenv("SECRET", "change-me")
JWT_LIFETIME_SECONDS = int(os.getenv("JWT_LIFETIME_SECONDS", "3600"))

# upstream question bank
QUESTION_BANK_URL = os.getenv("QUESTION_BANK_URL", "https://csv.mnr.world").rstrip("/")
QUESTION_BANK_TOKEN = os.getenv("QUESTION_BANK_TOKEN", "")
QUESTION_BANK_TIMEOUT = float(os.getenv("QUESTION_BANK_TIMEOUT", "15"))

# exam sessions
SNAPSHOT_DIR = os.getenv("SNAPSHOT_DIR") or os.path.join(BASE_DIR, "..", "snapshots")
SUBMIT_RETRIES = int(os.getenv("SUBMIT_RETRIES", "2"))
SUBMIT_TIMEOUT = float(os.getenv("SUBMIT_TIMEOUT", "10"))
SESSION_TTL = int(os.getenv("SESSION_TTL", str(6 * 3600)))
# submitted or abandoned sessions are kept this long so the result can be re-read
FINISHED_SESSION_TTL = int(os.getenv("FINISHED_SESSION_TTL", "600"))
SESSION_CLEANUP_INTERVAL = float(os.getenv("SESSION_CLEANUP_INTERVAL", "300"))

# NOTE: exact origins used by the frontend dev server (no trailing slash)
CORS_ORIGINS = [
    o.strip() for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
    ).split(",") if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
