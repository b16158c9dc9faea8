import enum
import random
from typing import Dict, List, Optional

from ..schemas.exam_schema import ExamConfig
from ..schemas.question_schema import Question


class ShuffleMode(str, enum.Enum):
    NONE = "none"
    FULL = "full"
    SECTIONS = "sections"


def shuffle_mode_for(exam: ExamConfig) -> ShuffleMode:
    if exam.shuffle_sections_only:
        return ShuffleMode.SECTIONS
    if exam.shuffle_questions:
        return ShuffleMode.FULL
    return ShuffleMode.NONE


def fisher_yates(items: List, rng: random.Random) -> List:
    """Uniform random permutation of a copy of ``items``."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def group_by_section(questions: List[Question]) -> List[List[Question]]:
    """Stable partition by section, groups in order of first appearance."""
    groups: Dict[Optional[str], List[Question]] = {}
    for q in questions:
        groups.setdefault(q.section, []).append(q)
    return list(groups.values())


def shuffle_questions(
    questions: List[Question],
    mode: ShuffleMode = ShuffleMode.NONE,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """
    Order the working question list for one session.

    ``none`` keeps input order. ``full`` permutes the whole list. ``sections``
    keeps the order of sections (first appearance) and permutes the questions
    inside each one; questions without a section form a group of their own.
    The input list is never mutated.
    """
    mode = ShuffleMode(mode)
    if mode is ShuffleMode.NONE:
        return list(questions)
    rng = rng or random.Random()
    if mode is ShuffleMode.FULL:
        return fisher_yates(questions, rng)
    out: List[Question] = []
    for group in group_by_section(questions):
        out.extend(fisher_yates(group, rng))
    return out
