import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import QUESTION_BANK_URL, QUESTION_BANK_TOKEN, QUESTION_BANK_TIMEOUT
from ..errors import LoadFailure
from ..schemas.question_schema import Question
from .question_normalizer import normalize_questions

logger = logging.getLogger(__name__)


def _extract_question_list(payload: Any) -> List[Dict[str, Any]]:
    # The bank returns a bare array; the proxy format wraps it as
    # { success, data: { questions } } or { success, questions }.
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if payload.get("success") is False:
            raise LoadFailure(payload.get("message") or "question bank reported a failure")
        data = payload.get("data")
        if isinstance(data, dict) and isinstance(data.get("questions"), list):
            return data["questions"]
        if isinstance(payload.get("questions"), list):
            return payload["questions"]
    raise LoadFailure("Unexpected API response shape")


class QuestionBankClient:
    """Read-only client for the upstream question-bank service."""

    def __init__(
        self,
        base_url: str = QUESTION_BANK_URL,
        token: str = QUESTION_BANK_TOKEN,
        timeout: float = QUESTION_BANK_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _params(self, file_id: str) -> Dict[str, str]:
        # token must go last
        params = {"route": "questions"}
        if file_id:
            params["file_id"] = str(file_id)
        params["token"] = self.token
        return params

    async def fetch_questions(self, file_id: str) -> List[Dict[str, Any]]:
        """GET the raw question records of one question set."""
        url = f"{self.base_url}/api/index.php"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=self._params(file_id))
        except httpx.HTTPError as e:
            logger.exception("Question bank request failed for file_id=%s", file_id)
            raise LoadFailure(f"question bank unreachable: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.error("Question bank returned %s for file_id=%s: %s", response.status_code, file_id, response.text[:200])
            raise LoadFailure(f"API fetch failed ({response.status_code})")

        try:
            payload = response.json()
        except ValueError as e:
            raise LoadFailure("question bank returned malformed JSON") from e

        return _extract_question_list(payload)


async def load_exam_questions(client: QuestionBankClient, file_id: Optional[str]) -> List[Question]:
    """Fetch and normalize the question set of an exam."""
    if not file_id:
        raise LoadFailure("exam has no question set attached")
    raw = await client.fetch_questions(file_id)
    questions = normalize_questions(raw)
    logger.info("Loaded %d questions for file_id=%s", len(questions), file_id)
    return questions
