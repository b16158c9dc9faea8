from collections.abc import Mapping
from typing import Dict, Iterator, Optional, Set


class AnswerLedger(Mapping):
    """
    Selected option per question id.

    The first answer for a question is final: selecting again, even a
    different option, leaves the recorded one in place.
    """

    def __init__(self, answers: Optional[Dict[str, int]] = None):
        self._answers: Dict[str, int] = {}
        for qid, idx in (answers or {}).items():
            self.select(qid, idx)

    def select(self, question_id: str, option_index: int) -> bool:
        """Record an answer. Returns False when the question was already answered."""
        key = str(question_id)
        if key in self._answers:
            return False
        self._answers[key] = int(option_index)
        return True

    def is_answered(self, question_id: str) -> bool:
        return str(question_id) in self._answers

    def as_dict(self) -> Dict[str, int]:
        return dict(self._answers)

    def __getitem__(self, question_id: str) -> int:
        return self._answers[str(question_id)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._answers)

    def __len__(self) -> int:
        return len(self._answers)

    def __repr__(self) -> str:
        return f"AnswerLedger({self._answers!r})"


class ReviewFlags:
    """Question ids marked for revisit. Independent of the ledger."""

    def __init__(self, flagged: Optional[Set[str]] = None):
        self._flagged: Set[str] = {str(q) for q in (flagged or set())}

    def toggle(self, question_id: str) -> bool:
        """Flip the flag; returns the new state."""
        key = str(question_id)
        if key in self._flagged:
            self._flagged.discard(key)
            return False
        self._flagged.add(key)
        return True

    def clear(self, question_id: str) -> None:
        self._flagged.discard(str(question_id))

    def __contains__(self, question_id) -> bool:
        return str(question_id) in self._flagged

    def __len__(self) -> int:
        return len(self._flagged)

    def as_list(self) -> list:
        return sorted(self._flagged)


def answer_status(question_id: str, ledger: AnswerLedger, flags: ReviewFlags) -> str:
    """Palette status of a question: marked, attempted or unattempted."""
    if question_id in flags:
        return "marked"
    if ledger.is_answered(question_id):
        return "attempted"
    return "unattempted"
