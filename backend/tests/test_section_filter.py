import uuid

import pytest

from exam_engine.errors import ConfigurationFailure
from exam_engine.schemas.exam_schema import ExamConfig
from exam_engine.schemas.question_schema import Question
from exam_engine.services.section_filter import (
    available_sections, filter_by_sections, validate_custom_sections, validate_subject_selection,
)


def make_exam(**kwargs):
    base = dict(id=uuid.uuid4(), name="Admission mock", total_subjects=3,
                mandatory_subjects=["p", "c"], optional_subjects=["b", "m"])
    base.update(kwargs)
    return ExamConfig(**base)


def q(qid, section):
    return Question(id=qid, text=f"question {qid}", options=["a", "b"], correct_index=0, section=section)


QUESTIONS = [q("1", "p"), q("2", "c"), q("3", "b"), q("4", "m"), q("5", "p"), q("6", None)]


@pytest.mark.parametrize("pick", [["b"], ["m"], ["B"]])
def test_exactly_one_optional_is_accepted(pick):
    assert validate_subject_selection(make_exam(), pick) == ["p", "c", pick[0].lower()]


@pytest.mark.parametrize("pick", [[], ["b", "m"]])
def test_zero_or_two_optionals_rejected(pick):
    with pytest.raises(ConfigurationFailure):
        validate_subject_selection(make_exam(), pick)


def test_mandatory_codes_may_be_repeated():
    assert validate_subject_selection(make_exam(), ["p", "c", "m"]) == ["p", "c", "m"]


def test_unknown_or_duplicate_pick_rejected():
    with pytest.raises(ConfigurationFailure):
        validate_subject_selection(make_exam(), ["x"])
    with pytest.raises(ConfigurationFailure):
        validate_subject_selection(make_exam(total_subjects=4), ["b", "b"])


def test_exam_without_subject_selection():
    with pytest.raises(ConfigurationFailure):
        validate_subject_selection(make_exam(total_subjects=None), ["b"])


def test_filter_keeps_input_order():
    picked = filter_by_sections(QUESTIONS, ["P", "b"])
    assert [x.id for x in picked] == ["1", "3", "5"]


def test_available_sections_in_first_seen_order():
    assert available_sections(QUESTIONS) == ["p", "c", "b", "m"]


def test_custom_sections():
    assert validate_custom_sections(QUESTIONS, ["m", "p", "m"]) == ["m", "p"]
    with pytest.raises(ConfigurationFailure):
        validate_custom_sections(QUESTIONS, [])
    with pytest.raises(ConfigurationFailure):
        validate_custom_sections(QUESTIONS, ["z"])
