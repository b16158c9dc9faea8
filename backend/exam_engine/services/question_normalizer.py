"""
Turn raw question-bank records into canonical ``Question`` objects.

This is the only place that knows about the upstream field names
(``question``/``question_text``, ``option1``..``option5``, ``answer``/``correct``).
Everything after it works with ``Question``.
"""
import logging
import string
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from ..errors import LoadFailure, QuestionShapeError
from ..schemas.question_schema import Question

logger = logging.getLogger(__name__)

OPTION_FIELDS = ("option1", "option2", "option3", "option4", "option5")
MAX_OPTIONS = 5


def resolve_correct_index(answer: Any) -> int:
    """
    Resolve an answer key to a zero-based option index.

    - integer-like ("3", 3) -> value - 1 (keys are 1-based)
    - a single letter ("C", "c") -> position in the alphabet
    - anything else -> -1
    """
    if answer is None or isinstance(answer, bool):
        return -1
    if isinstance(answer, int):
        return answer - 1
    text = str(answer).strip()
    if not text:
        return -1
    try:
        return int(text) - 1
    except ValueError:
        pass
    if len(text) == 1 and text in string.ascii_letters:
        return ord(text.upper()) - ord("A")
    return -1


def _clean_option(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _extract_options(raw: Mapping[str, Any]) -> List[str]:
    # prefer an explicit, non-empty options array
    options = raw.get("options")
    if isinstance(options, Mapping):
        options = [options[k] for k in sorted(options)]
    if isinstance(options, (list, tuple)) and len(options) > 0:
        cleaned = [_clean_option(o) for o in options]
        return [o for o in cleaned if o is not None]
    cleaned = [_clean_option(raw.get(f)) for f in OPTION_FIELDS]
    return [o for o in cleaned if o is not None]


def _section_code(value: Any) -> Optional[str]:
    if value is None:
        return None
    code = str(value).strip().lower()
    return code or None


def normalize_question(raw: Mapping[str, Any], position: int = 0) -> Question:
    """Normalize one raw record. Raises QuestionShapeError on unrecognized shapes."""
    if not isinstance(raw, Mapping):
        raise QuestionShapeError(f"question #{position + 1} is not an object: {type(raw).__name__}")

    qid = raw.get("id") or raw.get("uid")
    text = raw.get("question") or raw.get("question_text") or ""
    options = _extract_options(raw)

    if qid is None or str(qid).strip() == "":
        raise QuestionShapeError(f"question #{position + 1} has no id")
    if not text and not options:
        raise QuestionShapeError(f"question {qid} has neither text nor options")
    if len(options) < 2:
        raise QuestionShapeError(f"question {qid} has {len(options)} option(s), at least 2 are required")
    if len(options) > MAX_OPTIONS:
        raise QuestionShapeError(f"question {qid} has {len(options)} options, at most {MAX_OPTIONS} are allowed")

    answer = raw.get("answer")
    if answer is None or (isinstance(answer, str) and not answer.strip()):
        answer = raw.get("correct")
    correct_index = resolve_correct_index(answer)
    if correct_index < 0 or correct_index >= len(options):
        logger.warning("Unresolvable answer key %r for question %s; question cannot be answered correctly", answer, qid)
        correct_index = -1

    try:
        return Question(
            id=str(qid),
            text=str(text),
            options=options,
            correct_index=correct_index,
            section=_section_code(raw.get("section")),
            explanation=raw.get("explanation") or None,
        )
    except ValidationError as e:
        raise QuestionShapeError(f"question {qid} is malformed: {e}") from e


def normalize_questions(raw_questions: List[Dict[str, Any]]) -> List[Question]:
    """
    Normalize a whole question set, keeping input order.

    An empty set is a load failure, never an empty exam.
    """
    if not raw_questions:
        raise LoadFailure("question set is empty")

    questions: List[Question] = []
    seen = set()
    for position, raw in enumerate(raw_questions):
        q = normalize_question(raw, position)
        if q.id in seen:
            raise QuestionShapeError(f"duplicate question id {q.id}")
        seen.add(q.id)
        questions.append(q)
    return questions
