"""답안 리듀서 테스트"""
from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.attempt import AnswerRecord, AnswerSubmitRequest
from app.schemas.quiz import OptionDefinition, QuestionDefinition, QuestionType
from app.services import answer_reducer

NOW = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)

QUESTION = QuestionDefinition(
    id=1,
    type=QuestionType.MULTIPLE_CHOICE,
    prompt="다음 중 옳은 것은?",
    points=1,
    options=(
        OptionDefinition(id=11, text="A", is_correct=True),
        OptionDefinition(id=12, text="B"),
        OptionDefinition(id=13, text="C"),
    ),
)


def test_apply_answer_replaces_prior():
    prior = AnswerRecord(question_id=1, selected_option_id=11, time_spent_seconds=7, last_modified_at=NOW)
    later = NOW + timedelta(seconds=20)

    record = answer_reducer.apply_answer(prior, 1, AnswerSubmitRequest(selected_option_id=12), later, 25)

    assert record.selected_option_id == 12
    assert record.time_spent_seconds == 25
    assert record.last_modified_at == later
    # 이전 레코드는 그대로
    assert prior.selected_option_id == 11


def test_apply_answer_keeps_time_when_not_measured():
    prior = AnswerRecord(question_id=1, selected_option_id=11, time_spent_seconds=7, last_modified_at=NOW)

    record = answer_reducer.apply_answer(prior, 1, AnswerSubmitRequest(selected_option_id=13), NOW, None)

    assert record.time_spent_seconds == 7


def test_apply_answer_first_answer_without_time():
    record = answer_reducer.apply_answer(None, 1, AnswerSubmitRequest(selected_option_id=13), NOW, None)

    assert record.time_spent_seconds == 0


def test_select_option_is_exclusive_and_pure():
    state = answer_reducer.initial_selection(QUESTION)
    first = answer_reducer.select_option(state, 11)
    second = answer_reducer.select_option(first, 13)

    assert state == {11: False, 12: False, 13: False}
    assert first == {11: True, 12: False, 13: False}
    assert second == {11: False, 12: False, 13: True}


def test_select_option_unknown_id():
    with pytest.raises(KeyError):
        answer_reducer.select_option(answer_reducer.initial_selection(QUESTION), 99)


def test_selection_state_from_answer():
    answer = AnswerRecord(question_id=1, selected_option_id=12, last_modified_at=NOW)

    assert answer_reducer.selection_state(QUESTION, answer) == {11: False, 12: True, 13: False}
    assert answer_reducer.selection_state(QUESTION, None) == {11: False, 12: False, 13: False}
