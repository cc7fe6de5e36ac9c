from fastapi import APIRouter, Depends

from app.api.deps import get_attempt_controller, get_current_user_id
from app.schemas import attempt as attempt_schema
from app.services.attempt_service import AttemptSessionController

router = APIRouter(prefix="/attempts", tags=["attempts"])


@router.get("/{attempt_id}", response_model=attempt_schema.AttemptStateResponse)
async def get_attempt_state(
    attempt_id: int,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """응시 상태 조회 API"""
    return await controller.get_state(attempt_id, user_id)


@router.get("/{attempt_id}/questions", response_model=attempt_schema.AttemptQuestionsResponse)
async def get_attempt_questions(
    attempt_id: int,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """응시 문제 조회 API (정답 미포함)"""
    return await controller.get_questions(attempt_id, user_id)


@router.put("/{attempt_id}/answers/{question_id}", response_model=attempt_schema.AnswerRecord)
async def record_answer(
    attempt_id: int,
    question_id: int,
    request: attempt_schema.AnswerSubmitRequest,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """답안 저장 API (저장 완료 후 응답)"""
    return await controller.record_answer(attempt_id, user_id, question_id, request)


@router.post("/{attempt_id}/navigate", response_model=attempt_schema.AttemptStateResponse)
async def navigate(
    attempt_id: int,
    request: attempt_schema.NavigateRequest,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """문제 이동 API"""
    return await controller.navigate(attempt_id, user_id, request.index)


@router.post("/{attempt_id}/submit", response_model=attempt_schema.AttemptResultResponse)
async def submit_attempt(
    attempt_id: int,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """제출 및 채점 API"""
    return await controller.submit(attempt_id, user_id)


@router.get("/{attempt_id}/result", response_model=attempt_schema.AttemptResultResponse)
async def get_attempt_result(
    attempt_id: int,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """채점 결과 조회 API"""
    return await controller.get_result(attempt_id, user_id)


@router.get("/{attempt_id}/pending-answers", response_model=attempt_schema.PendingAnswerListResponse)
async def get_pending_answers(
    attempt_id: int,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """수동 채점 대상 답안 조회 API (채점 워크플로 연동용)"""
    return await controller.list_pending_answers(attempt_id, user_id)
