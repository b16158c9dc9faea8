from typing import Iterable, List

from ..errors import ConfigurationFailure
from ..schemas.exam_schema import ExamConfig
from ..schemas.question_schema import Question


def _codes(values: Iterable[str]) -> List[str]:
    return [str(v).strip().lower() for v in values if v is not None and str(v).strip()]


def filter_by_sections(questions: List[Question], section_codes: Iterable[str]) -> List[Question]:
    """Questions whose section is one of the codes (case-insensitive), input order kept."""
    wanted = set(_codes(section_codes))
    return [q for q in questions if q.section and q.section.lower() in wanted]


def available_sections(questions: List[Question]) -> List[str]:
    """Distinct section codes in order of first appearance."""
    seen: List[str] = []
    for q in questions:
        if q.section and q.section not in seen:
            seen.append(q.section)
    return seen


def validate_subject_selection(exam: ExamConfig, chosen: Iterable[str]) -> List[str]:
    """
    Validate the subjects a student picked for a subject-selection exam.

    Mandatory subjects are always part of the selection; listing them again is
    allowed. The other picks must come from the optional pool and there must be
    exactly ``total_subjects - len(mandatory)`` of them.

    Returns mandatory codes followed by the optional picks.
    """
    if not exam.is_custom:
        raise ConfigurationFailure("exam does not use subject selection")

    mandatory = _codes(exam.mandatory_subjects)
    optional_pool = set(_codes(exam.optional_subjects))
    needed = exam.total_subjects - len(mandatory)
    if needed < 0:
        raise ConfigurationFailure(
            f"exam requires {exam.total_subjects} subjects but has {len(mandatory)} mandatory ones"
        )

    picks: List[str] = []
    for code in _codes(chosen):
        if code in mandatory:
            continue
        if code not in optional_pool:
            raise ConfigurationFailure(f"'{code}' is not an optional subject of this exam")
        if code in picks:
            raise ConfigurationFailure(f"'{code}' selected more than once")
        picks.append(code)

    if len(picks) != needed:
        raise ConfigurationFailure(
            f"select exactly {needed} optional subject(s), got {len(picks)}"
        )
    return mandatory + picks


def validate_custom_sections(questions: List[Question], chosen: Iterable[str]) -> List[str]:
    """Sections for a free custom practice run: at least one, all present in the set."""
    codes: List[str] = []
    for code in _codes(chosen):
        if code not in codes:
            codes.append(code)
    if not codes:
        raise ConfigurationFailure("select at least one section")
    known = set(available_sections(questions))
    unknown = [c for c in codes if c not in known]
    if unknown:
        raise ConfigurationFailure(f"unknown section(s): {', '.join(unknown)}")
    return codes
