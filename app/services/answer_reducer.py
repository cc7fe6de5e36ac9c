"""답안 상태 리듀서

이전 상태와 이벤트로 다음 상태를 계산하는 순수 함수들.
기존 레코드나 같은 문제의 다른 선택지를 제자리에서 수정하지 않는다.
"""
from datetime import datetime
from typing import Mapping

from app.schemas.attempt import AnswerRecord, AnswerSubmitRequest
from app.schemas.quiz import QuestionDefinition


def apply_answer(
    prior: AnswerRecord | None,
    question_id: int,
    payload: AnswerSubmitRequest,
    occurred_at: datetime,
    elapsed_seconds: int | None,
) -> AnswerRecord:
    """새 답안 레코드 계산 (나중 답안이 이전 답안을 대체)

    elapsed_seconds가 None이면 이전 소요 시간을 유지한다.
    """
    if elapsed_seconds is None:
        time_spent = prior.time_spent_seconds if prior is not None else 0
    else:
        time_spent = max(elapsed_seconds, 0)

    return AnswerRecord(
        question_id=question_id,
        selected_option_id=payload.selected_option_id,
        text_answer=payload.text_answer,
        file_url=payload.file_url,
        time_spent_seconds=time_spent,
        last_modified_at=occurred_at,
    )


def initial_selection(question: QuestionDefinition) -> dict[int, bool]:
    return {option.id: False for option in question.options}


def select_option(state: Mapping[int, bool], option_id: int) -> dict[int, bool]:
    """단일 선택 문제: option_id 하나만 선택된 새 상태"""
    if option_id not in state:
        raise KeyError(option_id)
    return {oid: oid == option_id for oid in state}


def selection_state(question: QuestionDefinition, answer: AnswerRecord | None) -> dict[int, bool]:
    """답안 레코드에서 선택지별 선택 여부 도출"""
    state = initial_selection(question)
    if answer is not None and answer.selected_option_id in state:
        state = select_option(state, answer.selected_option_id)
    return state
